"""Dispatch engine

Concurrent retry/backoff dispatch of independent remote writes:
- Operation / AttemptResult / ExecutorOutcome / AggregatedResult types
- BackoffPolicy with exponential jitter
- RetryingExecutor (one operation → one terminal outcome)
- FanoutCoordinator (N operations → one aggregated result)
- AttemptEventBus for observability subscribers
- FailureLog (file-based NDJSON) for replaying failures
- Environment-based settings
"""

from .types import (
    Operation,
    Success,
    RateLimited,
    TransientFailure,
    PermanentFailure,
    AttemptResult,
    SendFn,
    Succeeded,
    Failed,
    ExecutorOutcome,
    AggregatedResult,
    DispatchError,
    DispatchFailedError,
    TransportUnavailableError,
)
from .policy import BackoffPolicy, default_transient_classifier
from .events import AttemptEvent, AttemptEventBus, attempt_bus, log_attempt
from .executor import RetryingExecutor, DEFAULT_MAX_RETRIES
from .fanout import FanoutCoordinator
from .settings import DispatchSettings, get_dispatch_settings
from .failures import FailureLog, FailureRecord

__all__ = [
    # types
    "Operation",
    "Success",
    "RateLimited",
    "TransientFailure",
    "PermanentFailure",
    "AttemptResult",
    "SendFn",
    "Succeeded",
    "Failed",
    "ExecutorOutcome",
    "AggregatedResult",
    # errors
    "DispatchError",
    "DispatchFailedError",
    "TransportUnavailableError",
    # policies
    "BackoffPolicy",
    "default_transient_classifier",
    # observability
    "AttemptEvent",
    "AttemptEventBus",
    "attempt_bus",
    "log_attempt",
    # runtime
    "RetryingExecutor",
    "DEFAULT_MAX_RETRIES",
    "FanoutCoordinator",
    "DispatchSettings",
    "get_dispatch_settings",
    # tooling
    "FailureLog",
    "FailureRecord",
]
