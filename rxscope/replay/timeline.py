"""
RxScope Timeline - Navigating and Summarizing an Event Log
=========================================================

Helpers a playback controller needs on top of the reconstructor: stepping to
the next or previous event, jumping to either end, grouping bursts of events
into batches and measuring event density over time.
"""

from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from ..events import ReactivityEvent


def find_next_event(
    events: Sequence[ReactivityEvent], current_time: float
) -> Optional[ReactivityEvent]:
    """First event strictly after ``current_time``."""
    later = [event for event in events if event.timestamp > current_time]
    return min(later, key=lambda event: event.timestamp) if later else None


def find_previous_event(
    events: Sequence[ReactivityEvent], current_time: float
) -> Optional[ReactivityEvent]:
    """Last event strictly before ``current_time``."""
    earlier = [event for event in events if event.timestamp < current_time]
    if not earlier:
        return None
    # max() keeps the first of equal timestamps; the log's last one is wanted
    latest = max(event.timestamp for event in earlier)
    return [event for event in earlier if event.timestamp == latest][-1]


def jump_to_start(events: Sequence[ReactivityEvent]) -> float:
    if not events:
        return 0
    return min(event.timestamp for event in events)


def jump_to_end(events: Sequence[ReactivityEvent]) -> float:
    if not events:
        return 0
    return max(event.timestamp for event in events)


@dataclass(frozen=True)
class EventBatch:
    """Events that happened within ``max_delta`` ms of the batch's first event."""

    id: str
    start_time: float
    end_time: float
    event_ids: Tuple[str, ...]

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def event_count(self) -> int:
        return len(self.event_ids)


def batch_events(
    events: Sequence[ReactivityEvent], max_delta: float = 50, min_events: int = 2
) -> List[EventBatch]:
    """
    Group events into bursts.

    A batch grows while each event is within ``max_delta`` ms of the batch's
    first event; groups smaller than ``min_events`` are not reported.
    """
    ordered = sorted(events, key=lambda event: event.timestamp)
    batches: List[EventBatch] = []
    current: List[ReactivityEvent] = []

    def close(group: List[ReactivityEvent]) -> None:
        if len(group) >= min_events:
            start, end = group[0].timestamp, group[-1].timestamp
            batches.append(
                EventBatch(
                    id=f"batch-{start:g}-{len(group)}",
                    start_time=start,
                    end_time=end,
                    event_ids=tuple(event.id for event in group),
                )
            )

    for event in ordered:
        if current and event.timestamp - current[0].timestamp > max_delta:
            close(current)
            current = []
        current.append(event)

    if current:
        close(current)

    return batches


class EventDensity(NamedTuple):
    counts: np.ndarray
    edges: np.ndarray

    @property
    def peak(self) -> int:
        return int(self.counts.max()) if self.counts.size else 0


def event_density(
    events: Sequence[ReactivityEvent],
    bins: int = 50,
    time_range: Optional[Tuple[float, float]] = None,
) -> EventDensity:
    """
    Histogram of event timestamps.

    Args:
        events: Events to bin
        bins: Number of equal-width time bins
        time_range: ``(start, end)`` in ms; defaults to the span of ``events``

    Returns:
        Per-bin counts and the ``bins + 1`` bin edges
    """
    timestamps = np.asarray([event.timestamp for event in events], dtype=np.float64)
    if timestamps.size == 0 and time_range is None:
        return EventDensity(counts=np.zeros(bins, dtype=np.int64), edges=np.zeros(bins + 1))

    counts, edges = np.histogram(timestamps, bins=bins, range=time_range)
    return EventDensity(counts=counts, edges=edges)
