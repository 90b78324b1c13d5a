"""
RxScope Recordings - Capturing and Exchanging Event Logs
========================================================

A recording is a named, complete, timestamp-sorted event list: exactly the
input the ``StateReconstructor`` needs. This module captures recordings from a
live tracker and converts them to and from a versioned JSON document.

Where recordings are stored is up to the host. ``RecordingStorage`` is the
interface the rest of the package expects; ``InMemoryRecordingStorage`` is a
dict-backed implementation.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

from ..errors import EventDataError, RecordingFormatError
from ..events import ReactivityEvent, event_from_dict, event_to_dict
from ..tracker import ReactivityTracker

FORMAT_VERSION = "1.0.0"

MAX_NAME_LENGTH = 100

_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9 _-]{1,100}$")


@dataclass
class Recording:
    """A named event log."""

    name: str
    events: List[ReactivityEvent] = field(default_factory=list)
    date_created: float = 0.0
    version: str = FORMAT_VERSION
    id: Optional[int] = None

    @property
    def event_count(self) -> int:
        return len(self.events)

    @property
    def duration(self) -> float:
        """Time between the first and last event in milliseconds."""
        if not self.events:
            return 0
        return self.events[-1].timestamp - self.events[0].timestamp

    @property
    def node_types(self) -> List[str]:
        """Distinct node types seen, in order of first appearance."""
        seen: Dict[str, None] = {}
        for event in self.events:
            seen.setdefault(event.node_id.rsplit("-", 1)[0], None)
        return list(seen)


def validate_recording_name(name: str) -> None:
    """
    Check a recording name: 1-100 letters, digits, spaces, dashes or underscores.

    Raises:
        RecordingFormatError: Describing the first rule the name breaks
    """
    if not name.strip():
        raise RecordingFormatError("Recording name cannot be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise RecordingFormatError(
            f"Recording name must be {MAX_NAME_LENGTH} characters or less "
            f"(currently: {len(name)})"
        )
    if not _NAME_PATTERN.match(name):
        raise RecordingFormatError(
            "Recording name can only contain letters, numbers, spaces, dashes, and underscores"
        )


class EventRecorder:
    """
    Collects every event a tracker emits while recording is on.

    Usage:
        recorder = EventRecorder(tracker)
        recorder.start()
        ...  # drive the reactive program
        recording = recorder.stop("checkout flow")
    """

    def __init__(self, tracker: ReactivityTracker) -> None:
        self._tracker = tracker
        self._events: List[ReactivityEvent] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def is_recording(self) -> bool:
        return self._unsubscribe is not None

    @property
    def events(self) -> List[ReactivityEvent]:
        return list(self._events)

    def start(self) -> None:
        if self._unsubscribe is not None:
            return
        self._events = []
        self._unsubscribe = self._tracker.subscribe(self._events.append)

    def to_recording(self, name: str) -> Recording:
        """Package the events captured so far without stopping."""
        validate_recording_name(name)
        return Recording(name=name, events=list(self._events), date_created=self._tracker.clock())

    def stop(self, name: str) -> Recording:
        """Stop collecting and package what was captured."""
        recording = self.to_recording(name)
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        return recording


# ============================================================================
# JSON EXCHANGE FORMAT
# ============================================================================


def export_recording(recording: Recording, indent: Optional[int] = 2) -> str:
    """Serialize a recording to the versioned JSON document."""
    document = {
        "formatVersion": FORMAT_VERSION,
        "metadata": {
            "name": recording.name,
            "dateCreated": recording.date_created,
            "eventCount": recording.event_count,
            "duration": recording.duration,
            "appVersion": recording.version,
            "nodeTypes": recording.node_types,
        },
        "events": [event_to_dict(event) for event in recording.events],
    }
    return json.dumps(document, indent=indent, default=repr)


def import_recording(document: str) -> Recording:
    """
    Parse a JSON document produced by ``export_recording``.

    Raises:
        RecordingFormatError: If the document is not valid JSON, lacks the
            version, metadata or events, or contains a malformed event
    """
    try:
        data = json.loads(document)
    except json.JSONDecodeError as e:
        raise RecordingFormatError(f"Recording is not valid JSON: {e}") from e

    if not isinstance(data, dict) or not data.get("formatVersion"):
        raise RecordingFormatError("Missing formatVersion field in recording file")

    imported_major = str(data["formatVersion"]).split(".")[0]
    current_major = FORMAT_VERSION.split(".")[0]
    if imported_major != current_major:
        logging.warning(
            f"Version mismatch: imported {data['formatVersion']}, current {FORMAT_VERSION}"
        )

    metadata = data.get("metadata")
    if not isinstance(metadata, dict) or not isinstance(data.get("events"), list):
        raise RecordingFormatError("Invalid recording format: missing metadata or events")

    try:
        events = [event_from_dict(raw) for raw in data["events"]]
    except EventDataError as e:
        raise RecordingFormatError(f"Invalid event in recording: {e}") from e

    return Recording(
        name=metadata.get("name", ""),
        events=events,
        date_created=metadata.get("dateCreated", 0),
        version=str(data["formatVersion"]),
    )


# ============================================================================
# STORAGE INTERFACE
# ============================================================================


@runtime_checkable
class RecordingStorage(Protocol):
    """What the package needs from whatever persists recordings."""

    def save(self, recording: Recording) -> int:
        ...

    def load(self, recording_id: int) -> Optional[Recording]:
        ...

    def list(self) -> List[Dict[str, Any]]:
        ...

    def delete(self, recording_id: int) -> None:
        ...


class InMemoryRecordingStorage:
    """Dict-backed ``RecordingStorage`` with unique names and auto-increment IDs."""

    def __init__(self) -> None:
        self._recordings: Dict[int, Recording] = {}
        self._next_id = 1

    def save(self, recording: Recording) -> int:
        validate_recording_name(recording.name)
        for existing_id, existing in self._recordings.items():
            if existing.name == recording.name and existing_id != recording.id:
                raise RecordingFormatError(
                    f"A recording named '{recording.name}' already exists"
                )

        if recording.id is None:
            recording.id = self._next_id
            self._next_id += 1
        self._recordings[recording.id] = recording
        return recording.id

    def load(self, recording_id: int) -> Optional[Recording]:
        return self._recordings.get(recording_id)

    def list(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": recording.id,
                "name": recording.name,
                "dateCreated": recording.date_created,
                "eventCount": recording.event_count,
                "duration": recording.duration,
                "nodeTypes": recording.node_types,
            }
            for recording in sorted(
                self._recordings.values(), key=lambda r: r.date_created, reverse=True
            )
        ]

    def delete(self, recording_id: int) -> None:
        self._recordings.pop(recording_id, None)
