"""
Pytest configuration and fixtures for megaverse-sync.

Provides cross-platform event loop configuration and scripted transports.
"""

import asyncio
import sys
from collections import defaultdict, deque

import pytest

from megaverse.dispatch import (
    AttemptEventBus,
    BackoffPolicy,
    Operation,
    Success,
)

# Set policy *before* pytest-asyncio creates any loops
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


@pytest.fixture
def candidate_id():
    """Candidate id used in payloads."""
    return "6b6a6a8a-3e2e-4a8e-9c3d-9ef0ffa4d111"


@pytest.fixture
def fast_policy():
    """Backoff policy with millisecond delays so retries don't slow tests down."""
    return BackoffPolicy(base_delay_ms=1, growth=1.2, initial_delay_ms=0, max_delay_ms=5)


@pytest.fixture
def recording_bus():
    """AttemptEventBus with a subscriber that keeps every event."""
    bus = AttemptEventBus()
    events = []

    async def _record(evt):
        events.append(evt)

    bus.subscribe(_record)
    bus.events = events
    return bus


class ScriptedSend:
    """Fake transport: returns scripted results per operation key, then Success.

    Scripts are sequences of AttemptResult instances or exceptions to raise.
    """

    def __init__(self, scripts=None, default=None):
        self._scripts = {k: deque(v) for k, v in (scripts or {}).items()}
        self._default = default or Success(201)
        self.calls = defaultdict(int)

    async def __call__(self, op: Operation):
        self.calls[op.key] += 1
        await asyncio.sleep(0)
        script = self._scripts.get(op.key)
        if script:
            step = script.popleft()
            if isinstance(step, BaseException):
                raise step
            return step
        return self._default

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())


@pytest.fixture
def scripted_send():
    """Factory for ScriptedSend fakes."""
    return ScriptedSend


@pytest.fixture
def make_ops():
    """Factory building n simple operations keyed op-0..op-(n-1)."""

    def _make(n: int, destination: str = "polyanets"):
        return [
            Operation(destination=destination, payload={"row": i, "column": 0}, key=f"op-{i}")
            for i in range(n)
        ]

    return _make

