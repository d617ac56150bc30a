"""
File-based failure log (NDJSON).

Terminal failures of a run are appended one JSON object per line so an
operator can inspect them or feed them back through `replay()`.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Sequence

from loguru import logger

from .types import Failed, Operation
from ..utils import utc_now


@dataclass(frozen=True)
class FailureRecord:
    destination: str
    key: str
    payload: dict[str, Any]
    reason: str
    detail: str
    attempts: int
    ts: str

    def __post_init__(self):
        if not isinstance(self.destination, str) or not isinstance(self.key, str):
            raise TypeError("destination and key must be strings")
        if not isinstance(self.payload, dict):
            raise TypeError(f"payload must be an object, got {type(self.payload).__name__}")

    @classmethod
    def from_failed(cls, failed: Failed) -> "FailureRecord":
        op = failed.operation
        return cls(
            destination=op.destination,
            key=op.key,
            payload=op.body(),
            reason=failed.reason,
            detail=failed.cause.describe(),
            attempts=failed.attempts,
            ts=utc_now().isoformat(),
        )

    def to_operation(self) -> Operation:
        return Operation(destination=self.destination, payload=self.payload, key=self.key)


class FailureLog:
    """Append-only NDJSON log of failed operations."""

    def __init__(self, path: str | Path, *, mkdirs: bool = True):
        self._path = Path(path)
        if mkdirs:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def save(self, failures: Sequence[Failed]) -> int:
        """Append failures; returns the number of records written."""
        if not failures:
            return 0
        lines = "".join(
            json.dumps(asdict(FailureRecord.from_failed(f)), default=str) + "\n" for f in failures
        )
        async with self._lock:
            await asyncio.to_thread(self._append, lines)
        logger.info(f"Wrote {len(failures)} failure record(s) to {self._path}")
        return len(failures)

    async def records(self, max_records: int | None = None) -> list[FailureRecord]:
        if not self._path.exists():
            return []
        async with self._lock:
            text = await asyncio.to_thread(self._path.read_text, "utf-8")

        out: list[FailureRecord] = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            if max_records is not None and len(out) >= max_records:
                break
            if not line.strip():
                continue
            try:
                out.append(FailureRecord(**json.loads(line)))
            except (ValueError, TypeError) as exc:
                logger.warning(f"Skipping malformed failure record {self._path}:{lineno}: {exc}")
        return out

    async def replay(self, max_records: int | None = None) -> list[Operation]:
        """Operations recorded in the log, in file order."""
        return [r.to_operation() for r in await self.records(max_records)]

    def _append(self, lines: str) -> None:
        with self._path.open("a", encoding="utf-8") as fh:
            fh.write(lines)
