"""
RxScope Types - Nodes, Edges and Their Lifecycle
================================================

This module defines the shared data model of the instrumentation engine: the
reactive nodes held by the tracker registry and the edges that connect them.

Nodes are never removed from the registry by normal operation. Disposal is a
state transition from ``Active`` to ``Disposed(at)`` so that IDs held by other
components stay addressable.

Relationship fields are denormalized views of the edge set:
- ``sources`` / ``observers`` mirror edges of type ``dependency``
- ``owner`` / ``owned`` mirror edges of type ``ownership``
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Union

Clock = Callable[[], float]


def wall_clock() -> float:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time() * 1000


class NodeType(str, Enum):
    """Kinds of reactive nodes."""

    SIGNAL = "signal"
    MEMO = "memo"
    EFFECT = "effect"
    ROOT = "root"


class EdgeType(str, Enum):
    """Kinds of graph edges."""

    DEPENDENCY = "dependency"
    OWNERSHIP = "ownership"


@dataclass(frozen=True)
class Active:
    """Lifecycle tag for a node that has not been disposed."""


@dataclass(frozen=True)
class Disposed:
    """Lifecycle tag for a disposed node."""

    at: float


Lifecycle = Union[Active, Disposed]

ACTIVE = Active()


@dataclass
class ReactiveNode:
    """
    A signal, memo, effect or root registered with the tracker.

    ``id``, ``type``, ``name`` and ``created_at`` are fixed at registration.
    Everything else is updated in place while the node is alive.
    """

    id: str
    type: NodeType
    name: Optional[str]
    value: Any = None
    is_stale: bool = False
    is_executing: bool = False
    execution_count: int = 0
    created_at: float = 0.0
    last_executed_at: Optional[float] = None
    lifecycle: Lifecycle = ACTIVE
    sources: List[str] = field(default_factory=list)
    observers: List[str] = field(default_factory=list)
    owner: Optional[str] = None
    owned: List[str] = field(default_factory=list)

    @property
    def disposed_at(self) -> Optional[float]:
        if isinstance(self.lifecycle, Disposed):
            return self.lifecycle.at
        return None

    @disposed_at.setter
    def disposed_at(self, at: Optional[float]) -> None:
        self.lifecycle = ACTIVE if at is None else Disposed(at)

    @property
    def is_disposed(self) -> bool:
        return isinstance(self.lifecycle, Disposed)


def make_edge_id(edge_type: EdgeType, source: str, target: str) -> str:
    """Derive the edge ID; at most one edge of a type exists per ordered pair."""
    return f"{EdgeType(edge_type).value}-{source}-{target}"


@dataclass
class ReactiveEdge:
    """A dependency or ownership edge between two nodes."""

    type: EdgeType
    source: str
    target: str
    last_triggered_at: Optional[float] = None
    trigger_count: int = 0

    @property
    def id(self) -> str:
        return make_edge_id(self.type, self.source, self.target)
