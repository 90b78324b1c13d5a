"""
RxScope Tracking Context - Scoped Computation and Owner Stacks
=============================================================

Reads of a signal or memo must be attributed to whatever computation is
executing, and newly created computations must be attributed to whatever
scope owns them. Both are tracked as explicit stacks held by a context
object rather than module globals, so independent runtimes never see each
other's state.

Usage:
    context = TrackingContext()
    with context.computation("memo-1"):
        assert context.current_computation == "memo-1"
    assert context.current_computation is None
"""

from contextlib import contextmanager
from typing import Iterator, List, Optional


class TrackingContext:
    """Push-on-enter, pop-on-exit stacks of executing computations and owners."""

    def __init__(self) -> None:
        self._computations: List[str] = []
        self._owners: List[str] = []

    @property
    def current_computation(self) -> Optional[str]:
        return self._computations[-1] if self._computations else None

    @property
    def current_owner(self) -> Optional[str]:
        return self._owners[-1] if self._owners else None

    @property
    def depth(self) -> int:
        """How many computations are currently nested."""
        return len(self._computations)

    @contextmanager
    def computation(self, node_id: str) -> Iterator[str]:
        self._computations.append(node_id)
        try:
            yield node_id
        finally:
            self._computations.pop()

    @contextmanager
    def owner(self, node_id: str) -> Iterator[str]:
        self._owners.append(node_id)
        try:
            yield node_id
        finally:
            self._owners.pop()

    @contextmanager
    def untracked(self) -> Iterator[None]:
        """Run a block with no current computation, so its reads create no edges."""
        saved = self._computations
        self._computations = []
        try:
            yield
        finally:
            self._computations = saved
