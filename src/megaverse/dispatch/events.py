"""
Attempt events for the dispatch engine.

Executors publish one AttemptEvent per network attempt on an in-process
pub/sub bus. Subscribers turn them into log lines, metrics, or anything else;
the engine itself never writes to the console.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from loguru import logger


@dataclass(frozen=True)
class AttemptEvent:
    """Immutable record of one send attempt.

    Attributes:
        key: Operation identity (e.g. "polyanets@(2,3)")
        destination: Endpoint the operation targets
        attempt: 0-based attempt index
        result: Attempt result kind ("success", "rate_limited", "transient", "permanent")
        status: HTTP-like status if the attempt got a response
        detail: Human-readable description of the result
        retry_in: Seconds until the next attempt, None when no retry follows
        terminal: True when this attempt ended the operation
    """

    key: str
    destination: str
    attempt: int
    result: str
    status: int | None = None
    detail: str = ""
    retry_in: float | None = None
    terminal: bool = False

    @property
    def outcome(self) -> str | None:
        """Terminal outcome label, None while the operation is still retrying."""
        if not self.terminal:
            return None
        if self.result == "success":
            return "succeeded"
        # a retryable result only ends the operation once retries ran out
        return "failed" if self.result == "permanent" else "exhausted"


class AttemptSubscriber(Protocol):
    """Async callable accepting AttemptEvent."""

    async def __call__(self, event: AttemptEvent) -> None: ...


class AttemptEventBus:
    """In-process pub/sub for attempt events.

    One subscriber's failure does not affect others or the executor that
    published the event.

    Example:
        bus = AttemptEventBus()
        bus.subscribe(log_attempt)
        await bus.publish(AttemptEvent(...))
    """

    def __init__(self) -> None:
        self._subs: list[AttemptSubscriber] = []

    def subscribe(self, callback: AttemptSubscriber) -> None:
        if callback not in self._subs:
            self._subs.append(callback)
            logger.debug(f"Attempt subscriber added (total: {len(self._subs)})")

    def unsubscribe(self, callback: AttemptSubscriber) -> None:
        """No-op if callback is not subscribed."""
        try:
            self._subs.remove(callback)
            logger.debug(f"Attempt subscriber removed (total: {len(self._subs)})")
        except ValueError:
            pass

    async def publish(self, event: AttemptEvent) -> None:
        if not self._subs:
            return

        for callback in list(self._subs):
            try:
                await callback(event)
            except Exception as exc:
                logger.debug(f"Attempt subscriber error (ignored): {type(exc).__name__}: {exc}")

    @property
    def subscriber_count(self) -> int:
        return len(self._subs)


async def log_attempt(event: AttemptEvent) -> None:
    """Loguru subscriber: one line per attempt, level by result."""
    where = f"{event.key} attempt={event.attempt}"
    if event.result == "success":
        logger.debug(f"Published {where} ({event.detail})")
    elif event.retry_in is not None:
        logger.warning(f"Retrying {where} in {event.retry_in:.2f}s: {event.detail}")
    else:
        logger.error(f"Giving up on {where}: {event.detail}")


# --- Singleton accessor for in-process use ---

_bus: Optional[AttemptEventBus] = None


def attempt_bus() -> AttemptEventBus:
    """Process-wide AttemptEventBus, created on first use."""
    global _bus
    if _bus is None:
        _bus = AttemptEventBus()
        logger.debug("AttemptEventBus singleton initialized")
    return _bus
