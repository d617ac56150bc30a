"""
Megaverse Client Library

Reads a candidate's goal map and publishes every entity on it through the
retrying fan-out dispatcher.

Usage:
    from megaverse_client import AsyncMegaverseClient, ClientSettings

    async with AsyncMegaverseClient(ClientSettings(candidate_id="...")) as client:
        grid = await client.read_goal()
        result = await client.publish(grid)
"""

from .config import ClientSettings, get_settings
from .aclient import AsyncMegaverseClient, classify_response
from .errors import MegaverseError, GoalFetchError, GoalParseError
from .grid import Grid
from .models import (
    Entity,
    EntityKind,
    Polyanet,
    Soloon,
    SoloonColor,
    Cometh,
    ComethDirection,
    parse_cell,
)

__version__ = "1.0.0"
__all__ = [
    "AsyncMegaverseClient",
    "ClientSettings",
    "get_settings",
    "classify_response",
    "MegaverseError",
    "GoalFetchError",
    "GoalParseError",
    "Grid",
    "Entity",
    "EntityKind",
    "Polyanet",
    "Soloon",
    "SoloonColor",
    "Cometh",
    "ComethDirection",
    "parse_cell",
]
