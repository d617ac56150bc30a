from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Union


class DispatchError(Exception):
    """Base error for the dispatch engine."""

    pass


class TransportUnavailableError(DispatchError):
    """The shared transport cannot be used at all; aborts the whole run."""

    pass


class DispatchFailedError(DispatchError):
    """Raised by AggregatedResult.raise_for_failures() when any operation failed."""

    def __init__(self, result: "AggregatedResult"):
        self.result = result
        keys = ", ".join(f.operation.key for f in result.failures[:5])
        more = "" if len(result.failures) <= 5 else f" (+{len(result.failures) - 5} more)"
        super().__init__(
            f"{len(result.failures)}/{result.total} operations failed: {keys}{more}"
        )


@dataclass(frozen=True)
class Operation:
    """One remote write request: where it goes and what it carries."""

    destination: str
    payload: Mapping[str, Any]
    key: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))
        if not self.key:
            object.__setattr__(self, "key", self.destination)

    def body(self) -> dict[str, Any]:
        """Plain dict copy of the payload, ready for JSON encoding."""
        return dict(self.payload)


# --- attempt results ---


@dataclass(frozen=True)
class Success:
    status: int
    body: str = ""

    retryable = False
    kind = "success"

    def describe(self) -> str:
        return f"HTTP {self.status}"


@dataclass(frozen=True)
class RateLimited:
    status: int = 429
    body: str = ""

    retryable = True
    kind = "rate_limited"

    def describe(self) -> str:
        return f"HTTP {self.status} (rate limited) {self.body}".rstrip()


@dataclass(frozen=True)
class TransientFailure:
    cause: BaseException

    retryable = True
    kind = "transient"
    status = None

    def describe(self) -> str:
        return f"{type(self.cause).__name__}: {self.cause}"


@dataclass(frozen=True)
class PermanentFailure:
    status: int | None = None
    body: str = ""
    cause: BaseException | None = None

    retryable = False
    kind = "permanent"

    def describe(self) -> str:
        if self.cause is not None:
            return f"{type(self.cause).__name__}: {self.cause}"
        return f"HTTP {self.status} {self.body}".rstrip()


AttemptResult = Union[Success, RateLimited, TransientFailure, PermanentFailure]

SendFn = Callable[[Operation], Awaitable[AttemptResult]]


# --- terminal outcomes ---


@dataclass(frozen=True)
class Succeeded:
    operation: Operation
    attempts: int

    succeeded = True


@dataclass(frozen=True)
class Failed:
    operation: Operation
    cause: AttemptResult
    attempts: int
    exhausted: bool = False

    succeeded = False

    @property
    def reason(self) -> str:
        return "retries_exhausted" if self.exhausted else "permanent_failure"

    def describe(self) -> str:
        return f"{self.operation.key}: {self.reason} after {self.attempts} attempt(s) ({self.cause.describe()})"


ExecutorOutcome = Union[Succeeded, Failed]


@dataclass(frozen=True)
class AggregatedResult:
    """Reduction of every executor outcome of one fan-out run."""

    total: int
    failures: tuple[Failed, ...] = field(default_factory=tuple)

    @property
    def all_succeeded(self) -> bool:
        return not self.failures

    @property
    def succeeded_count(self) -> int:
        return self.total - len(self.failures)

    @classmethod
    def from_outcomes(cls, outcomes: list[ExecutorOutcome]) -> "AggregatedResult":
        return cls(
            total=len(outcomes),
            failures=tuple(o for o in outcomes if isinstance(o, Failed)),
        )

    def raise_for_failures(self) -> None:
        if self.failures:
            raise DispatchFailedError(self)
