"""
RxScope Replay - Time Travel Over Recorded Event Logs
====================================================

- StateReconstructor: cached point-in-time reconstruction of the graph
- Recording / EventRecorder: capture and exchange of event logs
- timeline helpers: stepping, batching and density of events
"""

from .reconstructor import (
    DEFAULT_CACHE_CAPACITY,
    CacheStats,
    GraphState,
    HistoricalEdge,
    HistoricalNode,
    NodeSummary,
    SnapshotCache,
    StateReconstructor,
    apply_event,
)
from .recording import (
    FORMAT_VERSION,
    EventRecorder,
    InMemoryRecordingStorage,
    Recording,
    RecordingStorage,
    export_recording,
    import_recording,
    validate_recording_name,
)
from .timeline import (
    EventBatch,
    EventDensity,
    batch_events,
    event_density,
    find_next_event,
    find_previous_event,
    jump_to_end,
    jump_to_start,
)

__all__ = [
    "DEFAULT_CACHE_CAPACITY",
    "CacheStats",
    "GraphState",
    "HistoricalEdge",
    "HistoricalNode",
    "NodeSummary",
    "SnapshotCache",
    "StateReconstructor",
    "apply_event",
    "FORMAT_VERSION",
    "EventRecorder",
    "InMemoryRecordingStorage",
    "Recording",
    "RecordingStorage",
    "export_recording",
    "import_recording",
    "validate_recording_name",
    "EventBatch",
    "EventDensity",
    "batch_events",
    "event_density",
    "find_next_event",
    "find_previous_event",
    "jump_to_end",
    "jump_to_start",
]
