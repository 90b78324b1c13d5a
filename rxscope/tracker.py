"""
RxScope Tracker - Event-Sourced Graph Registry
==============================================

The tracker is the single source of truth for the live reactive graph. It
keeps the node and edge registries, assigns stable IDs and emits an ordered
stream of typed events for every mutation.

Key Responsibilities:
- Assign ``"{type}-{n}"`` node IDs from a per-type counter
- Keep ``sources``/``observers`` and ``owner``/``owned`` in sync with the edge set
- Deliver events synchronously to subscribers in registration order
- Isolate subscriber failures so one bad listener cannot starve the rest

Usage:
    tracker = ReactivityTracker()
    signal_id = tracker.register_node(NodeType.SIGNAL, "count", 0)
    tracker.emit(EventType.SIGNAL_CREATE, signal_id, SignalCreate(value=0))

Nothing in this module is thread-safe. A host that shares a tracker across
threads must serialize ``register_node``/``add_edge``/``emit``/``reset`` itself.
"""

import logging
from collections import defaultdict
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional

from .errors import ImmutableFieldError
from .events import EventData, EventType, ReactivityEvent
from .types import (
    Clock,
    EdgeType,
    NodeType,
    ReactiveEdge,
    ReactiveNode,
    make_edge_id,
    wall_clock,
)

EventCallback = Callable[[ReactivityEvent], None]

_IMMUTABLE_FIELDS = frozenset({"id", "type", "name", "created_at"})
_MUTABLE_FIELDS = frozenset(
    {
        "value",
        "is_stale",
        "is_executing",
        "execution_count",
        "last_executed_at",
        "disposed_at",
        "lifecycle",
        "sources",
        "observers",
        "owner",
        "owned",
    }
)


class ReactivityTracker:
    """
    Registry of reactive nodes and edges plus the event bus describing them.

    Attributes:
        clock: Millisecond clock used for node birth times and event timestamps
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self.clock: Clock = clock or wall_clock
        self._nodes: Dict[str, ReactiveNode] = {}
        self._edges: Dict[str, ReactiveEdge] = {}
        self._subscribers: List[EventCallback] = []
        self._node_counters: Dict[NodeType, int] = defaultdict(int)
        self._event_counter = 0

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def register_node(self, node_type: NodeType, name: Optional[str], value: Any) -> str:
        """
        Create a node and return its ID.

        No event is emitted here; callers emit the matching create event once
        the node exists so listeners can look it up.
        """
        node_type = NodeType(node_type)
        self._node_counters[node_type] += 1
        node_id = f"{node_type.value}-{self._node_counters[node_type]}"
        self._nodes[node_id] = ReactiveNode(
            id=node_id,
            type=node_type,
            name=name,
            value=value,
            created_at=self.clock(),
        )
        return node_id

    def get_node(self, node_id: str) -> Optional[ReactiveNode]:
        return self._nodes.get(node_id)

    def get_nodes(self) -> Mapping[str, ReactiveNode]:
        """Read-only view of every node ever registered, disposed ones included."""
        return MappingProxyType(self._nodes)

    def update_node(self, node_id: str, **updates: Any) -> None:
        """
        Merge ``updates`` into the node in place.

        Unknown node IDs are ignored.

        Raises:
            ImmutableFieldError: If an update names ``id``, ``type``, ``name``,
                ``created_at`` or a field nodes do not have.
        """
        for key in updates:
            if key in _IMMUTABLE_FIELDS:
                raise ImmutableFieldError(f"Node field '{key}' cannot be changed")
            if key not in _MUTABLE_FIELDS:
                raise ImmutableFieldError(f"Nodes have no field '{key}'")

        node = self._nodes.get(node_id)
        if node is None:
            return

        for key, value in updates.items():
            setattr(node, key, value)

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def add_edge(self, edge_type: EdgeType, source: str, target: str) -> str:
        """
        Add an edge and mirror it into the adjacency fields of both nodes.

        Re-adding an existing edge leaves the registry unchanged.

        Returns:
            The derived edge ID
        """
        edge_type = EdgeType(edge_type)
        edge_id = make_edge_id(edge_type, source, target)
        if edge_id in self._edges:
            return edge_id

        self._edges[edge_id] = ReactiveEdge(type=edge_type, source=source, target=target)

        source_node = self._nodes.get(source)
        target_node = self._nodes.get(target)

        if edge_type is EdgeType.DEPENDENCY:
            if source_node is not None and target not in source_node.observers:
                source_node.observers.append(target)
            if target_node is not None and source not in target_node.sources:
                target_node.sources.append(source)
        else:
            if source_node is not None and target not in source_node.owned:
                source_node.owned.append(target)
            # First ownership edge wins; a disposed node keeps its owner as is
            if (
                target_node is not None
                and target_node.owner is None
                and not target_node.is_disposed
            ):
                target_node.owner = source

        return edge_id

    def remove_edge(self, edge_id: str) -> None:
        """Remove an edge and its mirrored adjacency entries. Unknown IDs are ignored."""
        edge = self._edges.pop(edge_id, None)
        if edge is None:
            return

        source_node = self._nodes.get(edge.source)
        target_node = self._nodes.get(edge.target)

        if edge.type is EdgeType.DEPENDENCY:
            if source_node is not None:
                source_node.observers = [
                    node_id for node_id in source_node.observers if node_id != edge.target
                ]
            if target_node is not None:
                target_node.sources = [
                    node_id for node_id in target_node.sources if node_id != edge.source
                ]
        else:
            if source_node is not None:
                source_node.owned = [
                    node_id for node_id in source_node.owned if node_id != edge.target
                ]
            if (
                target_node is not None
                and target_node.owner == edge.source
                and not target_node.is_disposed
            ):
                # Fall back to the earliest ownership edge still pointing here
                target_node.owner = next(
                    (
                        other.source
                        for other in self._edges.values()
                        if other.type is EdgeType.OWNERSHIP and other.target == edge.target
                    ),
                    None,
                )

    def has_edge(self, edge_id: str) -> bool:
        return edge_id in self._edges

    def get_edges(self) -> Mapping[str, ReactiveEdge]:
        return MappingProxyType(self._edges)

    def get_edges_by_type(self, edge_type: EdgeType) -> List[ReactiveEdge]:
        edge_type = EdgeType(edge_type)
        return [edge for edge in self._edges.values() if edge.type is edge_type]

    def get_edges_for_node(self, node_id: str) -> List[ReactiveEdge]:
        return [
            edge
            for edge in self._edges.values()
            if edge.source == node_id or edge.target == node_id
        ]

    def trigger_edges(self, source_id: str) -> int:
        """
        Record that ``source_id`` pushed a change along its dependency edges.

        Returns:
            Number of edges triggered
        """
        now = self.clock()
        triggered = 0
        for edge in self._edges.values():
            if edge.type is EdgeType.DEPENDENCY and edge.source == source_id:
                edge.trigger_count += 1
                edge.last_triggered_at = now
                triggered += 1
        return triggered

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def generate_event_id(self) -> str:
        self._event_counter += 1
        return f"event-{self._event_counter}"

    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        """
        Register ``callback`` for every future event.

        Returns:
            A function that removes the subscription; calling it twice is harmless
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, event_type: EventType, node_id: str, data: EventData) -> ReactivityEvent:
        """
        Build the next event and deliver it to every current subscriber.

        Delivery iterates a snapshot of the subscriber list, so subscribing or
        unsubscribing from inside a callback only affects later emits. A
        subscriber that raises is logged and skipped.

        Raises:
            EventDataError: If ``data`` is not the payload variant for ``event_type``
        """
        event = ReactivityEvent(
            id=self.generate_event_id(),
            type=event_type,
            timestamp=self.clock(),
            node_id=node_id,
            data=data,
        )

        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logging.error(
                    f"Error in reactivity subscriber for {event.type.value} on {node_id}: {e}"
                )

        return event

    def reset(self) -> None:
        """Clear nodes, edges, subscribers and both ID counters."""
        self._nodes.clear()
        self._edges.clear()
        self._subscribers.clear()
        self._node_counters.clear()
        self._event_counter = 0

    def __repr__(self) -> str:
        return (
            f"ReactivityTracker(nodes={len(self._nodes)}, edges={len(self._edges)}, "
            f"subscribers={len(self._subscribers)})"
        )
