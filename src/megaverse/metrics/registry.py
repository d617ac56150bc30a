"""
Prometheus metrics for the dispatch engine.

Subscribe `record_attempt` to an AttemptEventBus to populate them.
"""

from prometheus_client import Counter, Histogram

from megaverse.dispatch.events import AttemptEvent


DISPATCH_ATTEMPTS_TOTAL = Counter(
    "megaverse_dispatch_attempts_total",
    "Total number of send attempts",
    ["destination", "result"],
)

DISPATCH_OUTCOMES_TOTAL = Counter(
    "megaverse_dispatch_outcomes_total",
    "Terminal operation outcomes",
    ["destination", "outcome"],
)

DISPATCH_BACKOFF_SECONDS = Histogram(
    "megaverse_dispatch_backoff_seconds",
    "Backoff delay scheduled before a retry",
    ["destination"],
    buckets=[0.1, 0.25, 0.5, 1, 2, 4, 8, 16, 32, 64],
)


class MetricsRegistry:
    """Centralized access to the dispatch metrics."""

    attempts_total = DISPATCH_ATTEMPTS_TOTAL
    outcomes_total = DISPATCH_OUTCOMES_TOTAL
    backoff_seconds = DISPATCH_BACKOFF_SECONDS


# Singleton instance
metrics_registry = MetricsRegistry()


async def record_attempt(event: AttemptEvent) -> None:
    """AttemptEventBus subscriber that records attempt metrics."""
    metrics_registry.attempts_total.labels(event.destination, event.result).inc()
    if event.retry_in is not None:
        metrics_registry.backoff_seconds.labels(event.destination).observe(event.retry_in)
    if event.terminal:
        metrics_registry.outcomes_total.labels(event.destination, event.outcome).inc()
