"""
RxScope Events - The Append-Only Reactivity Log
===============================================

Every mutation of the tracked graph is described by a ``ReactivityEvent``.
The payload is a closed sum type: exactly one frozen dataclass per event
kind, each carrying its ``EventType`` as a class attribute. Consumers dispatch
on the payload class and must handle all nine variants.

Events are immutable. The live tracker and the replay reconstructor are both
built from the same ordered stream of them.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Type, Union

from .errors import EventDataError


class EventType(str, Enum):
    """The nine kinds of reactivity events."""

    SIGNAL_CREATE = "signal-create"
    SIGNAL_READ = "signal-read"
    SIGNAL_WRITE = "signal-write"
    COMPUTATION_CREATE = "computation-create"
    COMPUTATION_EXECUTE_START = "computation-execute-start"
    COMPUTATION_EXECUTE_END = "computation-execute-end"
    COMPUTATION_DISPOSE = "computation-dispose"
    SUBSCRIPTION_ADD = "subscription-add"
    SUBSCRIPTION_REMOVE = "subscription-remove"


class ComputationType(str, Enum):
    """Kinds of computations announced by ``computation-create``."""

    MEMO = "memo"
    EFFECT = "effect"
    ROOT = "root"


# ============================================================================
# PAYLOAD VARIANTS
# ============================================================================


@dataclass(frozen=True)
class SignalCreate:
    event_type: ClassVar[EventType] = EventType.SIGNAL_CREATE

    value: Any
    name: Any = None


@dataclass(frozen=True)
class SignalRead:
    event_type: ClassVar[EventType] = EventType.SIGNAL_READ

    value: Any


@dataclass(frozen=True)
class SignalWrite:
    event_type: ClassVar[EventType] = EventType.SIGNAL_WRITE

    previous_value: Any
    new_value: Any


@dataclass(frozen=True)
class ComputationCreate:
    event_type: ClassVar[EventType] = EventType.COMPUTATION_CREATE

    computation_type: ComputationType
    name: Any = None


@dataclass(frozen=True)
class ComputationExecuteStart:
    event_type: ClassVar[EventType] = EventType.COMPUTATION_EXECUTE_START


@dataclass(frozen=True)
class ComputationExecuteEnd:
    event_type: ClassVar[EventType] = EventType.COMPUTATION_EXECUTE_END

    duration_ms: float


@dataclass(frozen=True)
class ComputationDispose:
    event_type: ClassVar[EventType] = EventType.COMPUTATION_DISPOSE


@dataclass(frozen=True)
class SubscriptionAdd:
    event_type: ClassVar[EventType] = EventType.SUBSCRIPTION_ADD

    source_id: str


@dataclass(frozen=True)
class SubscriptionRemove:
    event_type: ClassVar[EventType] = EventType.SUBSCRIPTION_REMOVE

    source_id: str


EventData = Union[
    SignalCreate,
    SignalRead,
    SignalWrite,
    ComputationCreate,
    ComputationExecuteStart,
    ComputationExecuteEnd,
    ComputationDispose,
    SubscriptionAdd,
    SubscriptionRemove,
]

PAYLOAD_TYPES: Dict[EventType, Type] = {
    payload.event_type: payload
    for payload in (
        SignalCreate,
        SignalRead,
        SignalWrite,
        ComputationCreate,
        ComputationExecuteStart,
        ComputationExecuteEnd,
        ComputationDispose,
        SubscriptionAdd,
        SubscriptionRemove,
    )
}


@dataclass(frozen=True)
class ReactivityEvent:
    """A single immutable entry of the reactivity log."""

    id: str
    type: EventType
    timestamp: float
    node_id: str
    data: EventData

    def __post_init__(self) -> None:
        try:
            event_type = EventType(self.type)
        except ValueError:
            raise EventDataError(f"Unknown event type: {self.type!r}")
        # Normalise plain strings to the enum so comparisons stay uniform
        object.__setattr__(self, "type", event_type)

        expected = PAYLOAD_TYPES[event_type]
        if not isinstance(self.data, expected):
            raise EventDataError(
                f"Event {self.id} of type '{event_type.value}' carries "
                f"{type(self.data).__name__}, expected {expected.__name__}"
            )


# ============================================================================
# SERIALIZATION
# ============================================================================

# Payload attribute -> camelCase key of the JSON exchange format
_WIRE_KEYS = {
    "value": "value",
    "name": "name",
    "previous_value": "previousValue",
    "new_value": "newValue",
    "computation_type": "computationType",
    "duration_ms": "durationMs",
    "source_id": "sourceId",
}
_ATTR_KEYS = {wire: attr for attr, wire in _WIRE_KEYS.items()}


def event_to_dict(event: ReactivityEvent) -> Dict[str, Any]:
    """Convert an event into a JSON-ready dict."""
    data: Dict[str, Any] = {}
    for attr, value in vars(event.data).items():
        if isinstance(value, Enum):
            value = value.value
        data[_WIRE_KEYS[attr]] = value

    return {
        "id": event.id,
        "type": event.type.value,
        "timestamp": event.timestamp,
        "nodeId": event.node_id,
        "data": data,
    }


def event_from_dict(raw: Dict[str, Any]) -> ReactivityEvent:
    """
    Rebuild an event from its dict form.

    Raises:
        EventDataError: If a required field is missing, the timestamp is not
            a finite number, or the payload does not fit the declared event type.
    """
    if not isinstance(raw, dict):
        raise EventDataError(f"Event must be an object, got {type(raw).__name__}")

    missing = [key for key in ("id", "type", "timestamp", "nodeId") if key not in raw]
    if missing:
        raise EventDataError(f"Event is missing fields: {', '.join(missing)}")

    timestamp = raw["timestamp"]
    # bool is an int subclass but never a timestamp
    if (
        isinstance(timestamp, bool)
        or not isinstance(timestamp, (int, float))
        or not math.isfinite(timestamp)
    ):
        raise EventDataError(
            f"Event {raw['id']} has an invalid timestamp: {timestamp!r}"
        )

    try:
        event_type = EventType(raw["type"])
    except ValueError:
        raise EventDataError(f"Unknown event type: {raw['type']!r}")

    payload_cls = PAYLOAD_TYPES[event_type]
    kwargs = {}
    for wire_key, value in (raw.get("data") or {}).items():
        attr = _ATTR_KEYS.get(wire_key)
        # Unknown keys (e.g. export annotations) are not part of the payload
        if attr is None or attr not in payload_cls.__dataclass_fields__:
            continue
        kwargs[attr] = value

    if "computation_type" in kwargs:
        try:
            kwargs["computation_type"] = ComputationType(kwargs["computation_type"])
        except ValueError:
            raise EventDataError(
                f"Unknown computation type: {kwargs['computation_type']!r}"
            )

    try:
        data = payload_cls(**kwargs)
    except TypeError as e:
        raise EventDataError(
            f"Malformed '{event_type.value}' payload for event {raw['id']}: {e}"
        ) from e

    return ReactivityEvent(
        id=str(raw["id"]),
        type=event_type,
        timestamp=timestamp,
        node_id=raw["nodeId"],
        data=data,
    )
