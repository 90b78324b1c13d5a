"""
RxScope Pattern Detector - Structural Anti-Pattern Analysis
===========================================================

Runs the six detectors against a snapshot of the live graph and aggregates
their findings.

The detector pulls nodes and edges through two callables, so it never holds
or mutates the graph itself. It is also meant to be subscribed to a tracker:
``handle_event`` feeds the hot-path sliding windows and re-arms a debounce
deadline that a caller-side scheduler can poll with ``is_analysis_due`` to
decide when to call ``run_analysis`` after a burst of activity. The detector
never triggers an analysis on its own.

Usage:
    detector = PatternDetector.from_tracker(tracker)
    tracker.subscribe(detector.handle_event)
    ...
    if detector.is_analysis_due():
        result = detector.run_analysis()
"""

import logging
import math
import time
from dataclasses import dataclass, field
from numbers import Real
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from ..errors import InvalidThresholdError
from ..events import ReactivityEvent
from ..tracker import ReactivityTracker
from ..types import Clock, ReactiveEdge, ReactiveNode, wall_clock
from .detectors import (
    UpdateRateTracker,
    detect_deep_chains,
    detect_diamond_patterns,
    detect_high_subscriptions,
    detect_hot_paths,
    detect_orphaned_effects,
    detect_stale_memos,
)
from .patterns import Pattern, PatternThreshold, PatternType, default_thresholds


@dataclass
class PatternDetectorConfig:
    """
    Attributes:
        thresholds: Per-detector threshold and enabled flag
        debounce_ms: Quiet period after the last event before analysis is due
        debug: Log analysis timing and debounce activity
        max_analysis_time: Advisory budget in ms; exceeding it only logs a warning
    """

    thresholds: List[PatternThreshold] = field(default_factory=default_thresholds)
    debounce_ms: float = 300
    debug: bool = False
    max_analysis_time: float = 5000

    def threshold_for(self, pattern_type: PatternType) -> Optional[PatternThreshold]:
        for threshold in self.thresholds:
            if threshold.pattern_type == pattern_type:
                return threshold
        return None


@dataclass
class AnalysisResult:
    patterns: List[Pattern]
    duration: float
    timestamp: float
    nodes_analyzed: int
    edges_analyzed: int


def validate_thresholds(overrides: Mapping[str, float]) -> Dict[PatternType, float]:
    """
    Normalise a ``{pattern type: value}`` override mapping.

    Raises:
        InvalidThresholdError: For an unknown pattern type, or a value that is
            not a finite, non-negative number
    """
    validated: Dict[PatternType, float] = {}
    for key, value in overrides.items():
        try:
            pattern_type = PatternType(key)
        except ValueError:
            raise InvalidThresholdError(f"Unknown pattern type in thresholds: {key!r}")

        if isinstance(value, bool) or not isinstance(value, Real):
            raise InvalidThresholdError(
                f"Threshold for {pattern_type.value} must be a number, got {value!r}"
            )
        if not math.isfinite(value) or value < 0:
            raise InvalidThresholdError(
                f"Threshold for {pattern_type.value} must be finite and >= 0, got {value!r}"
            )
        validated[pattern_type] = value
    return validated


class PatternDetector:
    """
    Facade over the individual detectors.

    Attributes:
        config: Thresholds, debounce and advisory timing settings
        clock: Millisecond clock used for detection timestamps and the hot-path window
    """

    def __init__(
        self,
        get_nodes: Callable[[], Iterable[ReactiveNode]],
        get_edges: Callable[[], Iterable[ReactiveEdge]],
        config: Optional[PatternDetectorConfig] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._get_nodes = get_nodes
        self._get_edges = get_edges
        self.config = config or PatternDetectorConfig()
        self.clock: Clock = clock or wall_clock
        self._rates = UpdateRateTracker()
        self._debounce_deadline: Optional[float] = None

    @classmethod
    def from_tracker(
        cls,
        tracker: ReactivityTracker,
        config: Optional[PatternDetectorConfig] = None,
        clock: Optional[Clock] = None,
    ) -> "PatternDetector":
        """Detector reading the tracker's current nodes and edges (and, by default, its clock)."""
        return cls(
            lambda: list(tracker.get_nodes().values()),
            lambda: list(tracker.get_edges().values()),
            config=config,
            clock=clock or tracker.clock,
        )

    def _threshold(self, pattern_type: PatternType, fallback: float) -> float:
        threshold = self.config.threshold_for(pattern_type)
        return fallback if threshold is None else threshold.threshold_value

    # ------------------------------------------------------------------
    # Individual detectors
    # ------------------------------------------------------------------

    def detect_orphaned_effects(self) -> List[Pattern]:
        return detect_orphaned_effects(list(self._get_nodes()), self.clock())

    def detect_deep_chains(self, threshold: float = 5) -> List[Pattern]:
        return detect_deep_chains(
            list(self._get_nodes()), list(self._get_edges()), threshold, self.clock()
        )

    def detect_diamond_patterns(self, min_paths: float = 2) -> List[Pattern]:
        return detect_diamond_patterns(
            list(self._get_nodes()), list(self._get_edges()), min_paths, self.clock()
        )

    def detect_hot_paths(self, threshold: float = 10) -> List[Pattern]:
        return detect_hot_paths(self._rates, threshold, self.clock())

    def detect_high_subscriptions(self, threshold: float = 50) -> List[Pattern]:
        return detect_high_subscriptions(list(self._get_nodes()), threshold, self.clock())

    def detect_stale_memos(self) -> List[Pattern]:
        return detect_stale_memos(list(self._get_nodes()), self.clock())

    # ------------------------------------------------------------------
    # Aggregate analysis
    # ------------------------------------------------------------------

    def run_analysis(self, thresholds: Optional[Mapping[str, float]] = None) -> AnalysisResult:
        """
        Run every enabled detector, cheapest first, against one snapshot.

        Args:
            thresholds: Optional per-call overrides keyed by pattern type

        Raises:
            InvalidThresholdError: If ``thresholds`` is malformed
        """
        overrides = validate_thresholds(thresholds or {})
        start = time.perf_counter()
        nodes = list(self._get_nodes())
        edges = list(self._get_edges())
        now = self.clock()

        def enabled(pattern_type: PatternType) -> bool:
            threshold = self.config.threshold_for(pattern_type)
            return threshold is None or threshold.enabled

        def value(pattern_type: PatternType, fallback: float) -> float:
            if pattern_type in overrides:
                return overrides[pattern_type]
            return self._threshold(pattern_type, fallback)

        steps = [
            (PatternType.ORPHANED_EFFECT, lambda: detect_orphaned_effects(nodes, now)),
            (
                PatternType.HIGH_SUBSCRIPTIONS,
                lambda: detect_high_subscriptions(
                    nodes, value(PatternType.HIGH_SUBSCRIPTIONS, 50), now
                ),
            ),
            (PatternType.STALE_MEMO, lambda: detect_stale_memos(nodes, now)),
            (
                PatternType.DEEP_CHAIN,
                lambda: detect_deep_chains(nodes, edges, value(PatternType.DEEP_CHAIN, 5), now),
            ),
            (
                PatternType.HOT_PATH,
                lambda: detect_hot_paths(self._rates, value(PatternType.HOT_PATH, 10), now),
            ),
            (
                PatternType.DIAMOND_PATTERN,
                lambda: detect_diamond_patterns(
                    nodes, edges, value(PatternType.DIAMOND_PATTERN, 2), now
                ),
            ),
        ]

        patterns: List[Pattern] = []
        for pattern_type, detect in steps:
            if enabled(pattern_type):
                patterns.extend(detect())

        duration = (time.perf_counter() - start) * 1000

        if duration > self.config.max_analysis_time:
            logging.warning(
                f"Pattern analysis took {duration:.1f}ms, over the "
                f"{self.config.max_analysis_time:g}ms budget"
            )
        if self.config.debug:
            logging.debug(
                f"Pattern analysis found {len(patterns)} patterns in {duration:.2f}ms "
                f"({len(nodes)} nodes, {len(edges)} edges)"
            )

        return AnalysisResult(
            patterns=patterns,
            duration=duration,
            timestamp=self.clock(),
            nodes_analyzed=len(nodes),
            edges_analyzed=len(edges),
        )

    # ------------------------------------------------------------------
    # Event stream
    # ------------------------------------------------------------------

    def handle_event(self, event: ReactivityEvent) -> None:
        """Feed the hot-path windows and push the debounce deadline back."""
        self._rates.handle_event(event)
        self._debounce_deadline = self.clock() + self.config.debounce_ms
        if self.config.debug:
            logging.debug(f"Pattern detection debounce re-armed by {event.type.value}")

    @property
    def debounce_deadline(self) -> Optional[float]:
        """When the current burst will be considered over, or None if idle."""
        return self._debounce_deadline

    def is_analysis_due(self, now: Optional[float] = None) -> bool:
        """True once the debounce period has passed since the last event."""
        if self._debounce_deadline is None:
            return False
        now = self.clock() if now is None else now
        return now >= self._debounce_deadline

    def mark_analyzed(self) -> None:
        """Disarm the debounce deadline after the caller has run an analysis."""
        self._debounce_deadline = None

    def reset(self) -> None:
        """Clear the sliding windows and the debounce deadline. The graph is not touched."""
        self._rates.clear()
        self._debounce_deadline = None
