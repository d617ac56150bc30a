"""
Demo: publishing a goal map against a rate-limiting fake API.

Every POST has a 40% chance of a 429 and a 5% chance of a dropped
connection; the dispatcher retries with jittered backoff until each
entity is created or its retry budget runs out.

Runs offline: HTTP is served by httpx.MockTransport.
"""

import asyncio
import random

import httpx
from loguru import logger

from megaverse.dispatch import DispatchSettings, attempt_bus, log_attempt
from megaverse_client import AsyncMegaverseClient, ClientSettings

SIZE = 11
CANDIDATE = "demo-candidate"


def _goal() -> list[list[str]]:
    """An X of polyanets with a soloon and a cometh next to the centre."""
    grid = [["SPACE"] * SIZE for _ in range(SIZE)]
    for i in range(2, SIZE - 2):
        grid[i][i] = "POLYANET"
        grid[i][SIZE - 1 - i] = "POLYANET"
    grid[SIZE // 2][SIZE // 2 + 1] = "PURPLE_SOLOON"
    grid[SIZE // 2 - 1][SIZE // 2] = "UP_COMETH"
    return grid


def handler(request: httpx.Request) -> httpx.Response:
    if request.method == "GET":
        return httpx.Response(200, json={"goal": _goal()})
    roll = random.random()
    if roll < 0.05:
        raise httpx.ConnectError("connection dropped", request=request)
    if roll < 0.45:
        return httpx.Response(429, text="Too Many Requests")
    return httpx.Response(200, json={})


async def main():
    bus = attempt_bus()
    bus.subscribe(log_attempt)

    async with AsyncMegaverseClient(
        ClientSettings(candidate_id=CANDIDATE, api_root="https://megaverse.demo/api/"),
        dispatch=DispatchSettings(max_retries=6, initial_delay_ms=100, retry_base_delay_ms=50),
        events=bus,
        transport=httpx.MockTransport(handler),
    ) as client:
        grid = await client.read_goal()
        logger.info(f"Goal:\n{grid.render()}")
        result = await client.publish(grid)

    logger.info(f"ok={result.all_succeeded} total={result.total} failed={len(result.failures)}")


if __name__ == "__main__":
    asyncio.run(main())
