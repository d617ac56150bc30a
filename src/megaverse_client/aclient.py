from __future__ import annotations

from typing import Iterable, Optional, Union

import httpx
from loguru import logger

from megaverse.dispatch import (
    AggregatedResult,
    AttemptEventBus,
    AttemptResult,
    DispatchSettings,
    FanoutCoordinator,
    Operation,
    PermanentFailure,
    RateLimited,
    Success,
    TransientFailure,
    TransportUnavailableError,
    get_dispatch_settings,
)

from .config import ClientSettings, get_settings
from .errors import GoalFetchError, GoalParseError
from .grid import Grid

GOAL_PATH = "map/{candidate_id}/goal"
JSON_HEADERS = {"Content-Type": "application/json"}


def classify_response(status: int, body: str = "") -> AttemptResult:
    """2xx → Success, 429 → RateLimited, anything else → PermanentFailure."""
    if 200 <= status < 300:
        return Success(status, body)
    if status == 429:
        return RateLimited(status, body)
    return PermanentFailure(status, body)


class AsyncMegaverseClient:
    """
    Async client for the Megaverse API.

    One httpx.AsyncClient (and its connection pool) is shared by every
    concurrent send.

    Usage:

        async with AsyncMegaverseClient(ClientSettings(candidate_id="...")) as client:
            grid = await client.read_goal()
            result = await client.publish(grid)
            result.raise_for_failures()
    """

    def __init__(
        self,
        cfg: Optional[ClientSettings] = None,
        *,
        dispatch: Optional[DispatchSettings] = None,
        events: Optional[AttemptEventBus] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cfg = cfg or get_settings()
        if not self.cfg.candidate_id:
            raise ValueError("candidate_id required")
        self.dispatch = dispatch or get_dispatch_settings()
        self._events = events
        self._http = httpx.AsyncClient(
            base_url=self.cfg.base_url,
            timeout=self.cfg.timeout_s,
            follow_redirects=True,
            transport=transport,
        )

    @property
    def candidate_id(self) -> str:
        return self.cfg.candidate_id

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "AsyncMegaverseClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    # ---------- goal ----------

    async def read_goal(self) -> Grid:
        path = GOAL_PATH.format(candidate_id=self.candidate_id)
        try:
            resp = await self._http.get(path)
        except httpx.HTTPError as exc:
            raise GoalFetchError(f"Cannot fetch {path}: {type(exc).__name__}: {exc}") from exc
        if resp.status_code >= 400:
            raise GoalFetchError(
                f"Error HTTP response from {path}: {resp.status_code} -> {resp.text}",
                status=resp.status_code,
            )
        try:
            matrix = resp.json()["goal"]
        except (ValueError, KeyError, TypeError) as exc:
            raise GoalFetchError(f"Unusable goal body from {path}: {exc}") from exc
        if not isinstance(matrix, list) or not all(isinstance(row, list) for row in matrix):
            raise GoalParseError("Goal must be a list of rows")

        grid = Grid.from_goal(self.candidate_id, matrix)
        logger.info(
            f"Read goal {grid.rows}x{grid.columns} with {grid.occupied_count} occupied cells"
        )
        return grid

    # ---------- transport ----------

    async def send(self, operation: Operation) -> AttemptResult:
        """POST one operation and classify the outcome. Never raises for network faults."""
        if self._http.is_closed:
            raise TransportUnavailableError("HTTP client is closed")
        try:
            resp = await self._http.post(
                operation.destination, json=operation.body(), headers=JSON_HEADERS
            )
        except (httpx.UnsupportedProtocol, httpx.InvalidURL) as exc:
            raise TransportUnavailableError(f"Cannot reach {self.cfg.base_url}: {exc}") from exc
        except httpx.TransportError as exc:
            return TransientFailure(exc)
        return classify_response(resp.status_code, resp.text)

    # ---------- publish ----------

    def coordinator(self, *, coord_id: str = "publish") -> FanoutCoordinator:
        return FanoutCoordinator.from_settings(
            self.send, self.dispatch, events=self._events, coord_id=coord_id
        )

    async def publish(
        self, target: Union[Grid, Iterable[Operation]], *, coord_id: str = "publish"
    ) -> AggregatedResult:
        """Create every entity of a grid (or an explicit list of operations)."""
        ops = target.to_operations() if isinstance(target, Grid) else list(target)
        return await self.coordinator(coord_id=coord_id).run(ops)
