"""
RxScope - Reactive Graph Instrumentation and Analysis

Instruments a fine-grained reactive program (signals, memos, effects) and
exposes its live dependency/ownership graph, point-in-time reconstruction of
that graph from the recorded event log, and detection of structural
anti-patterns.
"""

from .analysis import (
    AnalysisResult,
    Pattern,
    PatternDetector,
    PatternDetectorConfig,
    PatternStore,
    PatternThreshold,
    PatternType,
    Severity,
)
from .context import TrackingContext
from .errors import (
    EventDataError,
    EventOrderError,
    ImmutableFieldError,
    InvalidThresholdError,
    RecordingFormatError,
    RxScopeError,
)
from .events import (
    ComputationCreate,
    ComputationDispose,
    ComputationExecuteEnd,
    ComputationExecuteStart,
    ComputationType,
    EventData,
    EventType,
    ReactivityEvent,
    SignalCreate,
    SignalRead,
    SignalWrite,
    SubscriptionAdd,
    SubscriptionRemove,
)
from .primitives import (
    ReactiveRuntime,
    TrackedEffect,
    TrackedMemo,
    TrackedRoot,
    TrackedSignal,
)
from .replay import (
    EventRecorder,
    GraphState,
    Recording,
    StateReconstructor,
    export_recording,
    import_recording,
)
from .tracker import EventCallback, ReactivityTracker
from .types import (
    Active,
    Disposed,
    EdgeType,
    NodeType,
    ReactiveEdge,
    ReactiveNode,
    make_edge_id,
)

__all__ = [
    # Data model
    "NodeType",
    "EdgeType",
    "ReactiveNode",
    "ReactiveEdge",
    "Active",
    "Disposed",
    "make_edge_id",
    # Events
    "EventType",
    "ComputationType",
    "EventData",
    "ReactivityEvent",
    "SignalCreate",
    "SignalRead",
    "SignalWrite",
    "ComputationCreate",
    "ComputationExecuteStart",
    "ComputationExecuteEnd",
    "ComputationDispose",
    "SubscriptionAdd",
    "SubscriptionRemove",
    # Tracker and primitives
    "ReactivityTracker",
    "EventCallback",
    "TrackingContext",
    "ReactiveRuntime",
    "TrackedSignal",
    "TrackedMemo",
    "TrackedEffect",
    "TrackedRoot",
    # Analysis
    "PatternDetector",
    "PatternDetectorConfig",
    "AnalysisResult",
    "Pattern",
    "PatternThreshold",
    "PatternType",
    "Severity",
    "PatternStore",
    # Replay
    "StateReconstructor",
    "GraphState",
    "EventRecorder",
    "Recording",
    "export_recording",
    "import_recording",
    # Exceptions
    "RxScopeError",
    "EventDataError",
    "EventOrderError",
    "ImmutableFieldError",
    "InvalidThresholdError",
    "RecordingFormatError",
]
