"""
Shared pytest fixtures and configuration for rxscope tests.
"""

import pytest

from rxscope import ReactiveRuntime, ReactivityTracker


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        self.now += ms
        return self.now


@pytest.fixture
def clock():
    """Provide a controllable clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def tracker(clock):
    """Provide a fresh tracker on the fake clock."""
    return ReactivityTracker(clock=clock)


@pytest.fixture
def runtime(tracker):
    """Provide a runtime reporting to the fresh tracker."""
    return ReactiveRuntime(tracker=tracker)


@pytest.fixture
def recorded(tracker):
    """Collect every event the tracker emits."""
    events = []
    tracker.subscribe(events.append)
    return events
