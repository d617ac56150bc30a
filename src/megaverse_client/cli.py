from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from loguru import logger

from megaverse.dispatch import (
    AggregatedResult,
    DispatchError,
    DispatchSettings,
    FailureLog,
    attempt_bus,
    log_attempt,
)
from megaverse.metrics.registry import record_attempt
from megaverse.utils import Stopwatch

from .aclient import AsyncMegaverseClient
from .config import DEFAULT_API_ROOT, ClientSettings
from .errors import MegaverseError

app = typer.Typer(help="Megaverse goal publisher")

# ---------------------------
# Common options
# ---------------------------


def candidate_opt() -> str:
    return typer.Option(..., "--candidate-id", envvar="CANDIDATE_ID", help="Candidate id")


def api_root_opt() -> str:
    return typer.Option(
        DEFAULT_API_ROOT, "--api-root", envvar="MEGAVERSE_API_ROOT", help="API root URL"
    )


def max_retries_opt() -> Optional[int]:
    return typer.Option(
        None, "--max-retries", min=0, help="Retries per operation (default: MEGAVERSE_MAX_RETRIES)"
    )


def initial_delay_opt() -> Optional[float]:
    return typer.Option(
        None, "--initial-delay-ms", min=0, help="Delay before each operation's first attempt"
    )


def base_delay_opt() -> Optional[float]:
    return typer.Option(None, "--retry-base-delay-ms", min=0, help="Minimum delay between retries")


def _dispatch_settings(
    max_retries: Optional[int], initial_delay_ms: Optional[float], retry_base_delay_ms: Optional[float]
) -> DispatchSettings:
    overrides = {
        "max_retries": max_retries,
        "initial_delay_ms": initial_delay_ms,
        "retry_base_delay_ms": retry_base_delay_ms,
    }
    return DispatchSettings(**{k: v for k, v in overrides.items() if v is not None})


def _client(candidate_id: str, api_root: str, dispatch: Optional[DispatchSettings] = None):
    bus = attempt_bus()
    bus.subscribe(log_attempt)
    bus.subscribe(record_attempt)
    return AsyncMegaverseClient(
        ClientSettings(candidate_id=candidate_id, api_root=api_root),
        dispatch=dispatch or DispatchSettings(),
        events=bus,
    )


def _report(result: AggregatedResult, elapsed: float) -> None:
    typer.echo(
        json.dumps(
            {
                "ok": result.all_succeeded,
                "total": result.total,
                "succeeded": result.succeeded_count,
                "failed": [f.describe() for f in result.failures],
                "elapsed_s": round(elapsed, 3),
            },
            indent=2,
        )
    )


# ---------------------------
# Commands
# ---------------------------


@app.command("goal")
def goal(candidate_id: str = candidate_opt(), api_root: str = api_root_opt()):
    """Fetch the goal map and print it."""

    async def _run() -> str:
        async with _client(candidate_id, api_root) as client:
            grid = await client.read_goal()
            return grid.render()

    try:
        typer.echo(asyncio.run(_run()))
    except (MegaverseError, DispatchError) as e:
        logger.error(f"Failed to read goal: {e}")
        raise typer.Exit(1)


@app.command("publish")
def publish(
    candidate_id: str = candidate_opt(),
    api_root: str = api_root_opt(),
    max_retries: Optional[int] = max_retries_opt(),
    initial_delay_ms: Optional[float] = initial_delay_opt(),
    retry_base_delay_ms: Optional[float] = base_delay_opt(),
    failures_out: Optional[Path] = typer.Option(
        None, "--failures-out", help="Append failed operations to this NDJSON file"
    ),
):
    """Fetch the goal map and create every entity on it."""
    watch = Stopwatch()
    dispatch = _dispatch_settings(max_retries, initial_delay_ms, retry_base_delay_ms)

    async def _run() -> AggregatedResult:
        async with _client(candidate_id, api_root, dispatch) as client:
            grid = await client.read_goal()
            logger.info(f"Goal map:\n{grid.render()}")
            result = await client.publish(grid)
        if failures_out is not None:
            await FailureLog(failures_out).save(result.failures)
        return result

    try:
        result = asyncio.run(_run())
    except (MegaverseError, DispatchError) as e:
        logger.error(f"Failed to execute the challenge: {e}")
        raise typer.Exit(1)

    _report(result, watch.elapsed)
    if not result.all_succeeded:
        raise typer.Exit(1)
    logger.success("Megaverse published successfully")


@app.command("replay")
def replay(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Failure log to replay"),
    candidate_id: str = candidate_opt(),
    api_root: str = api_root_opt(),
    max_retries: Optional[int] = max_retries_opt(),
    initial_delay_ms: Optional[float] = initial_delay_opt(),
    retry_base_delay_ms: Optional[float] = base_delay_opt(),
    max_records: Optional[int] = typer.Option(None, "--max-records", min=1),
    failures_out: Optional[Path] = typer.Option(
        None, "--failures-out", help="Append operations that still fail to this NDJSON file"
    ),
):
    """Re-dispatch operations recorded by `publish --failures-out`."""
    watch = Stopwatch()
    dispatch = _dispatch_settings(max_retries, initial_delay_ms, retry_base_delay_ms)

    async def _run() -> AggregatedResult:
        ops = await FailureLog(path, mkdirs=False).replay(max_records)
        logger.info(f"Replaying {len(ops)} operations from {path}")
        async with _client(candidate_id, api_root, dispatch) as client:
            result = await client.publish(ops, coord_id="replay")
        if failures_out is not None:
            await FailureLog(failures_out).save(result.failures)
        return result

    try:
        result = asyncio.run(_run())
    except (MegaverseError, DispatchError) as e:
        logger.error(f"Failed to replay {path}: {e}")
        raise typer.Exit(1)

    _report(result, watch.elapsed)
    if not result.all_succeeded:
        raise typer.Exit(1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
