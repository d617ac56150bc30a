from __future__ import annotations

import math
import random
import sys
from dataclasses import dataclass
from typing import Callable

from .types import AttemptResult

_TRANSIENT_HINTS = (
    "timeout",
    "timed out",
    "temporary",
    "temporarily",
    "connection reset",
    "connection refused",
    "try again",
)


def default_transient_classifier(exc: BaseException) -> bool:
    """True when an exception raised by a send looks like a transient network fault."""
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return True
    if isinstance(exc, OSError):
        return True
    msg = str(exc).lower()
    return any(hint in msg for hint in _TRANSIENT_HINTS)


@dataclass(frozen=True)
class BackoffPolicy:
    """Jittered, exponentially widening delay between retries.

    delay(i) = base + uniform(0, base * growth**i)

    The base is the minimum spacing between two attempts of the same
    operation; the random term grows with every retry so concurrently
    failing operations spread out instead of retrying in lockstep.

    Attributes:
        base_delay_ms: Minimum delay before any retry
        growth: Exponential factor applied to the jitter window (> 1)
        initial_delay_ms: Paid once by each executor before its first attempt
        max_delay_ms: Optional upper cap on a single delay (None = uncapped)
        jitter: When False, returns the upper bound of the window (deterministic)
        classify_transient: Decides which exceptions raised by a send are retryable
    """

    base_delay_ms: float = 1000
    growth: float = 1.2
    initial_delay_ms: float = 500
    max_delay_ms: float | None = None
    jitter: bool = True
    classify_transient: Callable[[BaseException], bool] = default_transient_classifier

    def __post_init__(self) -> None:
        if self.base_delay_ms < 0:
            raise ValueError("base_delay_ms must be >= 0")
        if self.growth <= 1:
            raise ValueError("growth must be > 1")
        if self.initial_delay_ms < 0:
            raise ValueError("initial_delay_ms must be >= 0")
        if self.max_delay_ms is not None and self.max_delay_ms < self.base_delay_ms:
            raise ValueError("max_delay_ms must be >= base_delay_ms")

    @property
    def initial_delay(self) -> float:
        """Initial delay in seconds."""
        return self.initial_delay_ms / 1000.0

    def next_delay_ms(self, attempt_index: int, cause: AttemptResult | None = None) -> float:
        """Delay in ms before retry number `attempt_index` (0-based).

        `cause` is accepted for callers that want to log it; rate limits and
        transient failures are paced identically.
        """
        if attempt_index < 0:
            raise ValueError("attempt_index must be >= 0")

        window = self._window_ms(attempt_index)
        spread = random.uniform(0, window) if self.jitter else window
        delay = self.base_delay_ms + spread
        if self.max_delay_ms is not None:
            delay = min(delay, self.max_delay_ms)
        return delay

    def _window_ms(self, attempt_index: int) -> float:
        """Jitter window for `attempt_index`, kept finite and inside the cap."""
        if self.base_delay_ms == 0:
            return 0.0
        try:
            window = self.base_delay_ms * (self.growth**attempt_index)
        except OverflowError:
            window = math.inf
        if self.max_delay_ms is not None:
            return min(window, self.max_delay_ms - self.base_delay_ms)
        return min(window, sys.float_info.max)

    def next_delay(self, attempt_index: int, cause: AttemptResult | None = None) -> float:
        """Delay in seconds before retry number `attempt_index`."""
        return self.next_delay_ms(attempt_index, cause) / 1000.0
