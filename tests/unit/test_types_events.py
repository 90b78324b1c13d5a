"""
Tests for the node/edge data model and the event log types.
"""

import dataclasses

import pytest

from rxscope import (
    Active,
    ComputationCreate,
    ComputationExecuteEnd,
    ComputationExecuteStart,
    ComputationType,
    Disposed,
    EdgeType,
    EventDataError,
    EventType,
    NodeType,
    ReactiveEdge,
    ReactiveNode,
    ReactivityEvent,
    SignalCreate,
    SignalWrite,
    SubscriptionAdd,
    make_edge_id,
)
from rxscope.events import PAYLOAD_TYPES, event_from_dict, event_to_dict


@pytest.mark.unit
class TestReactiveNode:
    """Lifecycle tagging on nodes."""

    def test_new_node_is_active(self):
        """Nodes start in the Active state."""
        node = ReactiveNode(id="signal-1", type=NodeType.SIGNAL, name=None)
        assert node.lifecycle == Active()
        assert node.disposed_at is None
        assert not node.is_disposed

    def test_setting_disposed_at_switches_lifecycle(self):
        """disposed_at is a view over the Disposed tag."""
        node = ReactiveNode(id="effect-1", type=NodeType.EFFECT, name=None)
        node.disposed_at = 1234.0

        assert node.lifecycle == Disposed(at=1234.0)
        assert node.disposed_at == 1234.0
        assert node.is_disposed

    def test_adjacency_lists_are_not_shared(self):
        """Each node gets its own lists."""
        a = ReactiveNode(id="memo-1", type=NodeType.MEMO, name=None)
        b = ReactiveNode(id="memo-2", type=NodeType.MEMO, name=None)
        a.sources.append("signal-1")
        assert b.sources == []


@pytest.mark.unit
class TestReactiveEdge:
    """Edge identity."""

    def test_edge_id_is_derived_from_type_and_endpoints(self):
        """The ID encodes type, source and target."""
        edge = ReactiveEdge(type=EdgeType.OWNERSHIP, source="root-1", target="effect-2")
        assert edge.id == "ownership-root-1-effect-2"
        assert make_edge_id("dependency", "signal-1", "memo-1") == "dependency-signal-1-memo-1"


@pytest.mark.unit
class TestReactivityEvent:
    """Construction-time validation of events."""

    def test_every_event_type_has_one_payload(self):
        """The payload table covers all nine event types."""
        assert set(PAYLOAD_TYPES) == set(EventType)
        for event_type, payload in PAYLOAD_TYPES.items():
            assert payload.event_type is event_type

    def test_string_type_is_normalised(self):
        """A plain string type becomes the enum member."""
        event = ReactivityEvent("event-1", "signal-create", 1.0, "signal-1", SignalCreate(value=1))
        assert event.type is EventType.SIGNAL_CREATE

    def test_mismatched_payload_is_rejected(self):
        """A signal-write event must carry a SignalWrite payload."""
        with pytest.raises(EventDataError, match="expected SignalWrite"):
            ReactivityEvent(
                "event-1", EventType.SIGNAL_WRITE, 1.0, "signal-1", SignalCreate(value=1)
            )

    def test_unknown_type_is_rejected(self):
        """Unknown event types raise EventDataError."""
        with pytest.raises(EventDataError):
            ReactivityEvent("event-1", "signal-delete", 1.0, "signal-1", SignalCreate(value=1))

    def test_events_are_immutable(self):
        """Events cannot be modified once built."""
        event = ReactivityEvent(
            "event-1", EventType.SUBSCRIPTION_ADD, 1.0, "memo-1", SubscriptionAdd("signal-1")
        )
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.timestamp = 2.0


@pytest.mark.unit
class TestEventSerialization:
    """Conversion between events and their JSON-ready dict form."""

    def test_to_dict_uses_wire_keys(self):
        """Payload attributes are written under their camelCase keys."""
        event = ReactivityEvent(
            "event-3",
            EventType.SIGNAL_WRITE,
            150.0,
            "signal-1",
            SignalWrite(previous_value=1, new_value=5),
        )
        assert event_to_dict(event) == {
            "id": "event-3",
            "type": "signal-write",
            "timestamp": 150.0,
            "nodeId": "signal-1",
            "data": {"previousValue": 1, "newValue": 5},
        }

    def test_enums_are_written_as_values(self):
        """Computation types are serialized as strings."""
        event = ReactivityEvent(
            "event-1",
            EventType.COMPUTATION_CREATE,
            1.0,
            "memo-1",
            ComputationCreate(computation_type=ComputationType.MEMO, name="double"),
        )
        assert event_to_dict(event)["data"] == {"computationType": "memo", "name": "double"}

    def test_from_dict_restores_payload(self):
        """A dict with wire keys rebuilds the typed payload."""
        event = event_from_dict(
            {
                "id": "event-9",
                "type": "computation-execute-end",
                "timestamp": 10,
                "nodeId": "effect-1",
                "data": {"durationMs": 0.5},
            }
        )
        assert event.data == ComputationExecuteEnd(duration_ms=0.5)
        assert event.node_id == "effect-1"

    def test_from_dict_ignores_unknown_payload_keys(self):
        """Extra keys in data are dropped."""
        event = event_from_dict(
            {
                "id": "event-1",
                "type": "computation-execute-start",
                "timestamp": 1,
                "nodeId": "memo-1",
                "data": {"note": "annotated"},
            }
        )
        assert event.data == ComputationExecuteStart()

    def test_from_dict_reports_missing_fields(self):
        """Missing envelope fields are listed in the error."""
        with pytest.raises(EventDataError, match="nodeId"):
            event_from_dict({"id": "event-1", "type": "signal-read", "timestamp": 1})

    def test_from_dict_reports_malformed_payload(self):
        """A payload missing required attributes is an EventDataError."""
        with pytest.raises(EventDataError, match="Malformed"):
            event_from_dict(
                {
                    "id": "event-1",
                    "type": "subscription-add",
                    "timestamp": 1,
                    "nodeId": "memo-1",
                    "data": {},
                }
            )

    def test_from_dict_rejects_unknown_computation_type(self):
        """Computation types outside memo/effect/root are rejected."""
        with pytest.raises(EventDataError, match="computation type"):
            event_from_dict(
                {
                    "id": "event-1",
                    "type": "computation-create",
                    "timestamp": 1,
                    "nodeId": "memo-1",
                    "data": {"computationType": "selector"},
                }
            )
