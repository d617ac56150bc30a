"""
Pydantic models for Megaverse entities.

Entities are a discriminated union on `kind`. Each one knows its endpoint,
its goal-map token and the extra fields it adds to the wire payload; the
position and candidate are supplied by the grid when building operations.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import GoalParseError

SPACE = "SPACE"
CELL_WIDTH = 13


class EntityKind(str, Enum):
    POLYANET = "polyanet"
    SOLOON = "soloon"
    COMETH = "cometh"

    @property
    def endpoint(self) -> str:
        return f"{self.value}s"

    @property
    def token(self) -> str:
        return self.value.upper()


class SoloonColor(str, Enum):
    BLUE = "blue"
    RED = "red"
    PURPLE = "purple"
    WHITE = "white"


class ComethDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    RIGHT = "right"
    LEFT = "left"


class _Entity(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str

    @property
    def entity_kind(self) -> EntityKind:
        return EntityKind(self.kind)

    @property
    def endpoint(self) -> str:
        return self.entity_kind.endpoint

    @property
    def token(self) -> str:
        return self.entity_kind.token

    def attributes(self) -> dict[str, Any]:
        """Type-specific payload fields."""
        return {}

    def to_payload(self, candidate_id: str, row: int, column: int) -> dict[str, Any]:
        return {"candidateId": candidate_id, "row": row, "column": column, **self.attributes()}

    def render(self) -> str:
        return f"{self.token:<{CELL_WIDTH}}"


class Polyanet(_Entity):
    kind: Literal["polyanet"] = "polyanet"


class Soloon(_Entity):
    kind: Literal["soloon"] = "soloon"
    color: SoloonColor

    @property
    def token(self) -> str:
        return f"{self.color.value.upper()}_{self.entity_kind.token}"

    def attributes(self) -> dict[str, Any]:
        return {"color": self.color.value}


class Cometh(_Entity):
    kind: Literal["cometh"] = "cometh"
    direction: ComethDirection

    @property
    def token(self) -> str:
        return f"{self.direction.value.upper()}_{self.entity_kind.token}"

    def attributes(self) -> dict[str, Any]:
        return {"direction": self.direction.value}


Entity = Annotated[Union[Polyanet, Soloon, Cometh], Field(discriminator="kind")]


def parse_cell(token: object) -> Optional[Entity]:
    """Decode a goal-map token ("SPACE", "POLYANET", "RED_SOLOON", "UP_COMETH").

    Entity names match exactly; the colour or direction part is
    case-insensitive. Returns None for empty space. Raises GoalParseError
    for anything else, non-string cells included.
    """
    if not isinstance(token, str):
        raise GoalParseError(f"Unexpected value: {token!r}")

    parts = token.strip().split("_")

    if len(parts) == 1:
        name = parts[0]
        if name == SPACE:
            return None
        if name == EntityKind.POLYANET.token:
            return Polyanet()

    elif len(parts) == 2:
        attr, name = parts[0].lower(), parts[1]
        try:
            if name == EntityKind.SOLOON.token:
                return Soloon(color=attr)
            if name == EntityKind.COMETH.token:
                return Cometh(direction=attr)
        except ValidationError as exc:
            raise GoalParseError(f"Unexpected value: {token}") from exc

    raise GoalParseError(f"Unexpected value: {token}")
