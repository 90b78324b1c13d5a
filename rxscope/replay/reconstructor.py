"""
RxScope Time Travel - Cached Event Replay
=========================================

Answers "what did the graph look like at time T?" from a complete,
timestamp-sorted event log.

The reconstructor keeps an LRU cache of previously computed snapshots. A query
starts from the latest cached snapshot at or before T (or from an empty graph)
and replays only the events in ``(snapshot.timestamp, T]``, so its cost is
proportional to the events since the nearest snapshot rather than the whole
log.

Algorithm:
1. Exact hit: return a copy of the cached snapshot and refresh its recency
2. Otherwise find the nearest cached snapshot with timestamp <= T
3. Clone it, replay ``(nearest, T]`` and stamp the result with T
4. Cache the result, evicting the least recently used snapshot when full,
   and hand the caller a copy

Events sharing a timestamp are applied in log order, and events at exactly T
are included.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Set

import numpy as np
from cachetools import Cache, LRUCache

from ..errors import EventDataError, EventOrderError
from ..events import (
    ComputationCreate,
    ComputationDispose,
    ComputationExecuteEnd,
    ComputationExecuteStart,
    ReactivityEvent,
    SignalCreate,
    SignalRead,
    SignalWrite,
    SubscriptionAdd,
    SubscriptionRemove,
)
from ..types import EdgeType, NodeType

DEFAULT_CACHE_CAPACITY = 100


# ============================================================================
# HISTORICAL STATE
# ============================================================================


@dataclass(frozen=True)
class NodeSummary:
    id: str
    name: str
    type: str


@dataclass
class HistoricalNode:
    """A node as it existed at a past moment."""

    node: NodeSummary
    value: Any
    last_update_time: float
    created_at: float


@dataclass(frozen=True)
class HistoricalEdge:
    from_id: str
    to_id: str
    type: str = EdgeType.DEPENDENCY.value


@dataclass
class GraphState:
    """The reconstructed graph at ``timestamp``."""

    timestamp: float
    active_nodes: Dict[str, HistoricalNode] = field(default_factory=dict)
    edges: List[HistoricalEdge] = field(default_factory=list)
    disposed_node_ids: Set[str] = field(default_factory=set)

    def clone(self) -> "GraphState":
        """Copy deep enough that replaying into the clone never touches ``self``."""
        return GraphState(
            timestamp=self.timestamp,
            active_nodes={
                node_id: replace(node) for node_id, node in self.active_nodes.items()
            },
            edges=list(self.edges),
            disposed_node_ids=set(self.disposed_node_ids),
        )

    def same_graph(self, other: "GraphState") -> bool:
        """Compare everything except the ``timestamp`` stamp."""
        return (
            self.active_nodes == other.active_nodes
            and self.edges == other.edges
            and self.disposed_node_ids == other.disposed_node_ids
        )


def apply_event(state: GraphState, event: ReactivityEvent) -> None:
    """
    Apply one event to ``state`` in place.

    Raises:
        EventDataError: If the payload is not one of the known variants
    """
    data = event.data

    if isinstance(data, SignalCreate):
        state.active_nodes[event.node_id] = HistoricalNode(
            node=NodeSummary(
                id=event.node_id,
                name=data.name or event.node_id,
                type=NodeType.SIGNAL.value,
            ),
            value=data.value,
            last_update_time=event.timestamp,
            created_at=event.timestamp,
        )
    elif isinstance(data, ComputationCreate):
        state.active_nodes[event.node_id] = HistoricalNode(
            node=NodeSummary(
                id=event.node_id,
                name=data.name or event.node_id,
                type=data.computation_type.value,
            ),
            value=None,
            last_update_time=event.timestamp,
            created_at=event.timestamp,
        )
    elif isinstance(data, SignalWrite):
        node = state.active_nodes.get(event.node_id)
        if node is not None:
            node.value = data.new_value
            node.last_update_time = event.timestamp
    elif isinstance(data, ComputationDispose):
        state.active_nodes.pop(event.node_id, None)
        state.disposed_node_ids.add(event.node_id)
    elif isinstance(data, SubscriptionAdd):
        state.edges.append(HistoricalEdge(from_id=data.source_id, to_id=event.node_id))
    elif isinstance(data, SubscriptionRemove):
        state.edges = [
            edge
            for edge in state.edges
            if not (edge.from_id == data.source_id and edge.to_id == event.node_id)
        ]
    elif isinstance(data, (SignalRead, ComputationExecuteStart, ComputationExecuteEnd)):
        # Reads and execution markers do not change graph shape or values
        pass
    else:
        raise EventDataError(
            f"Cannot replay event {event.id}: unknown payload {type(data).__name__}"
        )


# ============================================================================
# SNAPSHOT CACHE
# ============================================================================


class CacheStats(NamedTuple):
    size: int
    hits: int
    misses: int


class SnapshotCache(LRUCache):
    """
    LRU cache of graph snapshots keyed by timestamp, with hit/miss counters.

    ``peek`` reads an entry without refreshing its recency, which the nearest
    snapshot scan relies on.
    """

    def __init__(self, maxsize: int) -> None:
        super().__init__(maxsize=maxsize)
        self.hits = 0
        self.misses = 0

    def peek(self, key: float) -> GraphState:
        return Cache.__getitem__(self, key)

    def find_nearest(self, timestamp: float) -> Optional[GraphState]:
        """Latest snapshot at or before ``timestamp``, without touching recency."""
        nearest_key = None
        for key in self.keys():
            if key <= timestamp and (nearest_key is None or key > nearest_key):
                nearest_key = key
        return None if nearest_key is None else self.peek(nearest_key)

    def reset(self) -> None:
        self.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> CacheStats:
        return CacheStats(size=len(self), hits=self.hits, misses=self.misses)


# ============================================================================
# RECONSTRUCTOR
# ============================================================================


class StateReconstructor:
    """
    Rebuilds past graph states from an event log.

    Attributes:
        events: The complete event log, sorted by timestamp

    Raises:
        EventOrderError: If ``events`` is not sorted by timestamp or has a
            missing, non-numeric or non-finite timestamp
    """

    def __init__(
        self, events: Sequence[ReactivityEvent], capacity: int = DEFAULT_CACHE_CAPACITY
    ) -> None:
        if capacity < 1:
            raise ValueError(f"Cache capacity must be at least 1, got {capacity}")

        self.events: List[ReactivityEvent] = list(events)
        try:
            self._timestamps = np.asarray(
                [event.timestamp for event in self.events], dtype=np.float64
            )
        except (TypeError, ValueError) as e:
            raise EventOrderError(f"Event log has a non-numeric timestamp: {e}") from e

        # NaN compares false both ways, so it would slip through the order check
        if not np.all(np.isfinite(self._timestamps)):
            position = int(np.argmin(np.isfinite(self._timestamps)))
            raise EventOrderError(
                f"Event log has a non-finite timestamp: event {self.events[position].id} "
                f"at {self.events[position].timestamp}"
            )
        if self._timestamps.size > 1 and np.any(np.diff(self._timestamps) < 0):
            position = int(np.argmax(np.diff(self._timestamps) < 0)) + 1
            raise EventOrderError(
                f"Event log is not sorted by timestamp: event {self.events[position].id} "
                f"at {self.events[position].timestamp} follows "
                f"{self.events[position - 1].timestamp}"
            )

        self._cache = SnapshotCache(capacity)

    def _events_between(self, after: float, up_to: float) -> List[ReactivityEvent]:
        """Events with ``after < timestamp <= up_to``, in log order."""
        start = int(np.searchsorted(self._timestamps, after, side="right"))
        end = int(np.searchsorted(self._timestamps, up_to, side="right"))
        return self.events[start:end]

    def reconstruct_at(self, timestamp: float) -> GraphState:
        """Return the graph as it stood after every event at or before ``timestamp``."""
        cache = self._cache

        # Callers get copies so the cached snapshots stay untouched
        if timestamp in cache:
            cache.hits += 1
            # Indexing refreshes recency
            return cache[timestamp].clone()

        nearest = cache.find_nearest(timestamp)
        if nearest is not None:
            state = nearest.clone()
            start_time = nearest.timestamp
        else:
            state = GraphState(timestamp=0)
            start_time = 0

        for event in self._events_between(start_time, timestamp):
            apply_event(state, event)

        state.timestamp = timestamp
        if len(cache) >= cache.maxsize:
            logging.debug(f"Replay cache full ({cache.maxsize}), evicting oldest snapshot")
        cache[timestamp] = state
        cache.misses += 1
        return state.clone()

    def clear_cache(self) -> None:
        self._cache.reset()

    def get_cache_stats(self) -> CacheStats:
        return self._cache.stats()
