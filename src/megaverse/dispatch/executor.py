from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from loguru import logger

from .events import AttemptEvent, AttemptEventBus
from .policy import BackoffPolicy
from .types import (
    AttemptResult,
    ExecutorOutcome,
    Failed,
    Operation,
    PermanentFailure,
    SendFn,
    Succeeded,
    Success,
    TransientFailure,
    TransportUnavailableError,
)

DEFAULT_MAX_RETRIES = 5

SleepFn = Callable[[float], Awaitable[None]]


class RetryingExecutor:
    """Drives one Operation through send → evaluate → back off → retry.

    Success ends the run; RateLimited and TransientFailure are retried up to
    `max_retries` times (so at most 1 + max_retries sends); PermanentFailure
    ends the run at once. Every send is reported on the event bus.
    """

    def __init__(
        self,
        operation: Operation,
        send: SendFn,
        *,
        policy: Optional[BackoffPolicy] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        events: Optional[AttemptEventBus] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self._op = operation
        self._send = send
        self._policy = policy or BackoffPolicy()
        self._max_retries = max_retries
        self._events = events
        self._sleep = sleep
        self._attempts = 0

    @property
    def operation(self) -> Operation:
        return self._op

    @property
    def attempts(self) -> int:
        """Number of sends issued so far."""
        return self._attempts

    async def run(self) -> ExecutorOutcome:
        self._attempts = 0
        initial = self._policy.initial_delay
        if initial > 0:
            await self._sleep(initial)

        attempt = 0
        while True:
            result = await self._attempt()

            if isinstance(result, Success):
                await self._emit(attempt, result, terminal=True)
                return Succeeded(self._op, attempts=self._attempts)

            if not result.retryable:
                await self._emit(attempt, result, terminal=True)
                return Failed(self._op, result, attempts=self._attempts, exhausted=False)

            if attempt >= self._max_retries:
                await self._emit(attempt, result, terminal=True)
                return Failed(self._op, result, attempts=self._attempts, exhausted=True)

            delay = self._policy.next_delay(attempt, result)
            await self._emit(attempt, result, retry_in=delay)
            await self._sleep(delay)
            attempt += 1

    async def _attempt(self) -> AttemptResult:
        self._attempts += 1
        try:
            return await self._send(self._op)
        except TransportUnavailableError:
            raise
        except Exception as exc:
            if self._policy.classify_transient(exc):
                return TransientFailure(exc)
            logger.debug(f"Unclassified send error for {self._op.key}: {type(exc).__name__}: {exc}")
            return PermanentFailure(cause=exc)

    async def _emit(
        self,
        attempt: int,
        result: AttemptResult,
        *,
        retry_in: float | None = None,
        terminal: bool = False,
    ) -> None:
        if self._events is None:
            return
        await self._events.publish(
            AttemptEvent(
                key=self._op.key,
                destination=self._op.destination,
                attempt=attempt,
                result=result.kind,
                status=result.status,
                detail=result.describe(),
                retry_in=retry_in,
                terminal=terminal,
            )
        )
