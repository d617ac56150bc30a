"""
Small shared helpers.
"""

from datetime import datetime, timezone
from time import monotonic


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


class Stopwatch:
    """Wall-clock timer for reporting how long a run took."""

    def __init__(self) -> None:
        self._t0 = monotonic()

    @property
    def elapsed(self) -> float:
        """Seconds since construction."""
        return monotonic() - self._t0
