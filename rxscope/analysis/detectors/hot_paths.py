"""
Hot path detection over a per-node sliding window of update timestamps.
"""

from collections import deque
from typing import Deque, Dict, List

from ...events import EventType, ReactivityEvent
from ..patterns import Pattern, PatternType, Severity, new_pattern

WINDOW_MS = 1000

HIGH_SEVERITY_RATE = 50

RATE_EVENT_TYPES = frozenset({EventType.SIGNAL_WRITE, EventType.COMPUTATION_EXECUTE_END})


class UpdateRateTracker:
    """
    Sliding-window update counter per node.

    Timestamps older than ``window_ms`` before the newest one recorded for a
    node are dropped as new ones arrive.
    """

    def __init__(self, window_ms: float = WINDOW_MS) -> None:
        self.window_ms = window_ms
        self._windows: Dict[str, Deque[float]] = {}

    def record(self, node_id: str, timestamp: float) -> None:
        window = self._windows.setdefault(node_id, deque())
        window.append(timestamp)
        window_start = timestamp - self.window_ms
        while window and window[0] < window_start:
            window.popleft()

    def handle_event(self, event: ReactivityEvent) -> bool:
        """Record ``event`` if it counts as an update. Returns whether it did."""
        if event.type not in RATE_EVENT_TYPES:
            return False
        self.record(event.node_id, event.timestamp)
        return True

    def count(self, node_id: str, now: float) -> int:
        """Updates of ``node_id`` within the window ending at ``now``."""
        window_start = now - self.window_ms
        return sum(1 for timestamp in self._windows.get(node_id, ()) if timestamp >= window_start)

    def rates(self, now: float) -> Dict[str, int]:
        return {node_id: self.count(node_id, now) for node_id in self._windows}

    def clear(self) -> None:
        self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)


def detect_hot_paths(rates: UpdateRateTracker, threshold: float, now: float) -> List[Pattern]:
    """Flag nodes updating more than ``threshold`` times within the window ending at ``now``."""
    per_second = 1000 / rates.window_ms
    patterns = []
    for node_id, update_count in rates.rates(now).items():
        updates_per_second = update_count * per_second
        if updates_per_second <= threshold:
            continue

        severity = Severity.HIGH if updates_per_second > HIGH_SEVERITY_RATE else Severity.MEDIUM
        patterns.append(
            new_pattern(
                PatternType.HOT_PATH,
                severity,
                [node_id],
                now,
                f"Node updating {updates_per_second:g} times per second",
                {
                    "update_count": update_count,
                    "window_duration": rates.window_ms,
                    "updates_per_second": updates_per_second,
                },
            )
        )
    return patterns
