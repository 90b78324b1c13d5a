"""
RxScope Exceptions
==================

Validation failures are raised loudly; not-found lookups are silent no-ops
and never appear here.
"""


class RxScopeError(Exception):
    """Base class for all rxscope errors."""

    pass


class EventDataError(RxScopeError, ValueError):
    """Raised when an event payload does not match its event type."""

    pass


class EventOrderError(RxScopeError, ValueError):
    """Raised when a replay log is not sorted by timestamp."""

    pass


class InvalidThresholdError(RxScopeError, ValueError):
    """Raised when a detector threshold override is malformed."""

    pass


class ImmutableFieldError(RxScopeError, AttributeError):
    """Raised when an update targets an immutable or unknown node field."""

    pass


class RecordingFormatError(RxScopeError, ValueError):
    """Raised when a recording or its name cannot be accepted."""

    pass
