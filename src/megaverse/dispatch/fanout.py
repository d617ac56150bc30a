from __future__ import annotations

import asyncio
from time import monotonic
from typing import Iterable, Optional

from loguru import logger

from .events import AttemptEventBus, attempt_bus
from .executor import DEFAULT_MAX_RETRIES, RetryingExecutor, SleepFn
from .policy import BackoffPolicy
from .settings import DispatchSettings
from .types import AggregatedResult, ExecutorOutcome, Operation, SendFn


class FanoutCoordinator:
    """Runs one RetryingExecutor per Operation concurrently and reduces the outcomes.

    There is no admission control: every executor starts right away and the
    backoff jitter plus the rate-limit retry path absorb server throttling.

    Usage:
        coord = FanoutCoordinator(client.send, policy=BackoffPolicy(), max_retries=5)
        result = await coord.run(operations)
        result.raise_for_failures()
    """

    def __init__(
        self,
        send: SendFn,
        *,
        policy: Optional[BackoffPolicy] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        events: Optional[AttemptEventBus] = None,
        coord_id: str = "fanout",
        sleep: SleepFn = asyncio.sleep,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self._send = send
        self._policy = policy or BackoffPolicy()
        self._max_retries = max_retries
        self._events = events if events is not None else attempt_bus()
        self._coord_id = coord_id
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        send: SendFn,
        settings: DispatchSettings,
        *,
        events: Optional[AttemptEventBus] = None,
        coord_id: str = "fanout",
    ) -> "FanoutCoordinator":
        return cls(
            send,
            policy=settings.to_policy(),
            max_retries=settings.max_retries,
            events=events,
            coord_id=coord_id,
        )

    @property
    def policy(self) -> BackoffPolicy:
        return self._policy

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def _executor(self, op: Operation) -> RetryingExecutor:
        return RetryingExecutor(
            op,
            self._send,
            policy=self._policy,
            max_retries=self._max_retries,
            events=self._events,
            sleep=self._sleep,
        )

    async def run(self, operations: Iterable[Operation]) -> AggregatedResult:
        """Dispatch every operation and wait for all of them.

        Per-operation failures end up in the result. A run-level fault
        (e.g. TransportUnavailableError) cancels the remaining executors
        and propagates.
        """
        ops = list(operations)
        if not ops:
            logger.info(f"[{self._coord_id}] nothing to dispatch")
            return AggregatedResult(total=0)

        t0 = monotonic()
        logger.info(
            f"[{self._coord_id}] dispatching {len(ops)} operations "
            f"(max_retries={self._max_retries}, initial_delay={self._policy.initial_delay:.2f}s)"
        )

        tasks = [
            asyncio.create_task(self._executor(op).run(), name=f"{self._coord_id}:{op.key}")
            for op in ops
        ]
        try:
            outcomes: list[ExecutorOutcome] = await asyncio.gather(*tasks)
        except BaseException as exc:
            pending = [t for t in tasks if not t.done()]
            for t in pending:
                t.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            if not isinstance(exc, asyncio.CancelledError):
                logger.error(
                    f"[{self._coord_id}] run aborted, {len(pending)} operations cancelled: "
                    f"{type(exc).__name__}: {exc}"
                )
            raise

        result = AggregatedResult.from_outcomes(outcomes)
        elapsed = monotonic() - t0
        if result.all_succeeded:
            logger.success(f"[{self._coord_id}] all {result.total} operations succeeded in {elapsed:.2f}s")
        else:
            logger.error(
                f"[{self._coord_id}] {len(result.failures)}/{result.total} operations failed "
                f"in {elapsed:.2f}s"
            )
            for failure in result.failures:
                logger.error(f"[{self._coord_id}]   {failure.describe()}")
        return result
