"""
RxScope Pattern Store - Findings, Exceptions and Thresholds
===========================================================

Keeps the patterns reported by successive analyses, the exceptions a
developer has marked as expected, and the thresholds the detector should use.
State can be saved to and loaded from any string key-value mapping as
versioned JSON.

Note:
    Exceptions are keyed by pattern ID, and pattern IDs include the detection
    timestamp. An exception therefore only matches the exact finding it was
    created for, not the same issue reported by a later analysis.
"""

import json
import logging
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, MutableMapping, Optional

from ..types import Clock, wall_clock
from .patterns import Pattern, PatternThreshold, PatternType, Severity, default_thresholds

EXCEPTIONS_KEY = "rxscope:pattern-exceptions"
THRESHOLDS_KEY = "rxscope:pattern-thresholds"
STORAGE_VERSION = 1


class AnalysisStatus(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class PatternException:
    """A developer's note that a pattern is expected."""

    id: str
    pattern_id: str
    reason: str
    created_at: float
    expires_at: Optional[float] = None

    def is_active(self, now: float) -> bool:
        return self.expires_at is None or now < self.expires_at


@dataclass
class NodePatternCount:
    node_id: str
    pattern_count: int


@dataclass
class MetricsSummary:
    total_patterns: int = 0
    by_type: Dict[PatternType, int] = field(
        default_factory=lambda: {pattern_type: 0 for pattern_type in PatternType}
    )
    by_severity: Dict[Severity, int] = field(
        default_factory=lambda: {severity: 0 for severity in Severity}
    )
    most_problematic_nodes: List[NodePatternCount] = field(default_factory=list)
    last_analysis_at: float = 0
    analysis_status: AnalysisStatus = AnalysisStatus.IDLE
    error_message: Optional[str] = None


class PatternStore:
    """
    In-memory store of patterns and their exceptions.

    Attributes:
        storage: String key-value mapping used by ``save``/``load``
        clock: Millisecond clock for exception and metrics timestamps
    """

    TOP_NODES = 5

    def __init__(
        self,
        storage: Optional[MutableMapping[str, str]] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.storage: MutableMapping[str, str] = {} if storage is None else storage
        self.clock: Clock = clock or wall_clock
        self._patterns: List[Pattern] = []
        self._exceptions: List[PatternException] = []
        self._thresholds: List[PatternThreshold] = default_thresholds()
        self._status = AnalysisStatus.IDLE
        self._error_message: Optional[str] = None
        self._metrics = MetricsSummary()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def patterns(self) -> List[Pattern]:
        return list(self._patterns)

    @property
    def exceptions(self) -> List[PatternException]:
        return list(self._exceptions)

    @property
    def thresholds(self) -> List[PatternThreshold]:
        return [replace(threshold) for threshold in self._thresholds]

    @property
    def metrics(self) -> MetricsSummary:
        return self._metrics

    @property
    def status(self) -> AnalysisStatus:
        return self._status

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    def threshold_overrides(self) -> Dict[str, float]:
        """Enabled thresholds as a ``run_analysis`` override mapping."""
        return {
            threshold.pattern_type.value: threshold.threshold_value
            for threshold in self._thresholds
            if threshold.enabled
        }

    # ------------------------------------------------------------------
    # Patterns
    # ------------------------------------------------------------------

    def add_pattern(self, pattern: Pattern) -> None:
        self.add_patterns([pattern])

    def add_patterns(self, patterns: List[Pattern]) -> None:
        """Add patterns whose IDs are not already stored."""
        known = {pattern.id for pattern in self._patterns}
        for pattern in patterns:
            if pattern.id in known:
                continue
            known.add(pattern.id)
            if self.is_expected(pattern.id):
                pattern = replace(pattern, is_expected=True)
            self._patterns.append(pattern)
        self._update_metrics()

    def remove_pattern(self, pattern_id: str) -> None:
        self._patterns = [pattern for pattern in self._patterns if pattern.id != pattern_id]
        self._update_metrics()

    def clear_patterns(self) -> None:
        self._patterns = []
        self._update_metrics()

    def update_pattern(self, pattern_id: str, **updates: Any) -> None:
        self._patterns = [
            replace(pattern, **updates) if pattern.id == pattern_id else pattern
            for pattern in self._patterns
        ]
        self._update_metrics()

    def get_patterns_by_type(self, pattern_type: PatternType) -> List[Pattern]:
        pattern_type = PatternType(pattern_type)
        return [pattern for pattern in self._patterns if pattern.type == pattern_type]

    def get_patterns_by_severity(self, severity: Severity) -> List[Pattern]:
        severity = Severity(severity)
        return [pattern for pattern in self._patterns if pattern.severity == severity]

    def get_patterns_for_node(self, node_id: str) -> List[Pattern]:
        return [pattern for pattern in self._patterns if node_id in pattern.affected_node_ids]

    # ------------------------------------------------------------------
    # Exceptions
    # ------------------------------------------------------------------

    def mark_as_expected(
        self, pattern_id: str, reason: str = "", expires_at: Optional[float] = None
    ) -> PatternException:
        now = self.clock()
        exception = PatternException(
            id=f"exception-{now:.0f}-{len(self._exceptions) + 1}",
            pattern_id=pattern_id,
            reason=reason,
            created_at=now,
            expires_at=expires_at,
        )
        self._exceptions.append(exception)
        self.update_pattern(pattern_id, is_expected=True)
        return exception

    def remove_exception(self, pattern_id: str) -> None:
        self._exceptions = [
            exception for exception in self._exceptions if exception.pattern_id != pattern_id
        ]
        self.update_pattern(pattern_id, is_expected=False)

    def is_expected(self, pattern_id: str) -> bool:
        """Whether an unexpired exception exists for ``pattern_id``."""
        now = self.clock()
        return any(
            exception.pattern_id == pattern_id and exception.is_active(now)
            for exception in self._exceptions
        )

    # ------------------------------------------------------------------
    # Thresholds
    # ------------------------------------------------------------------

    def update_threshold(self, pattern_type: PatternType, value: float) -> None:
        pattern_type = PatternType(pattern_type)
        for threshold in self._thresholds:
            if threshold.pattern_type == pattern_type:
                threshold.threshold_value = value

    def toggle_threshold(self, pattern_type: PatternType, enabled: bool) -> None:
        pattern_type = PatternType(pattern_type)
        for threshold in self._thresholds:
            if threshold.pattern_type == pattern_type:
                threshold.enabled = enabled

    def reset_thresholds(self) -> None:
        """Back to the saved thresholds, or the defaults if none were saved."""
        self._thresholds = default_thresholds()
        self.load()

    # ------------------------------------------------------------------
    # Status and metrics
    # ------------------------------------------------------------------

    def set_status(self, status: AnalysisStatus, error: Optional[str] = None) -> None:
        self._status = AnalysisStatus(status)
        self._error_message = error
        self._metrics = replace(
            self._metrics, analysis_status=self._status, error_message=error
        )

    def _update_metrics(self) -> None:
        by_type = {pattern_type: 0 for pattern_type in PatternType}
        by_severity = {severity: 0 for severity in Severity}
        node_counts: Dict[str, int] = {}

        for pattern in self._patterns:
            by_type[pattern.type] += 1
            by_severity[pattern.severity] += 1
            for node_id in pattern.affected_node_ids:
                node_counts[node_id] = node_counts.get(node_id, 0) + 1

        ranked = sorted(node_counts.items(), key=lambda item: item[1], reverse=True)
        self._metrics = MetricsSummary(
            total_patterns=len(self._patterns),
            by_type=by_type,
            by_severity=by_severity,
            most_problematic_nodes=[
                NodePatternCount(node_id, count) for node_id, count in ranked[: self.TOP_NODES]
            ],
            last_analysis_at=self.clock(),
            analysis_status=self._status,
            error_message=self._error_message,
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> None:
        now = self.clock()
        self.storage[EXCEPTIONS_KEY] = json.dumps(
            {
                "version": STORAGE_VERSION,
                "exceptions": [asdict(exception) for exception in self._exceptions],
                "lastUpdated": now,
            }
        )
        self.storage[THRESHOLDS_KEY] = json.dumps(
            {
                "version": STORAGE_VERSION,
                "thresholds": [
                    {
                        "pattern_type": threshold.pattern_type.value,
                        "threshold_value": threshold.threshold_value,
                        "enabled": threshold.enabled,
                    }
                    for threshold in self._thresholds
                ],
                "lastUpdated": now,
            }
        )

    def load(self) -> None:
        """Restore exceptions and thresholds. Unreadable entries are logged and skipped."""
        try:
            raw = self.storage.get(EXCEPTIONS_KEY)
            if raw:
                stored = json.loads(raw)
                if stored.get("version") == STORAGE_VERSION:
                    self._exceptions = [
                        PatternException(**item) for item in stored["exceptions"]
                    ]

            raw = self.storage.get(THRESHOLDS_KEY)
            if raw:
                stored = json.loads(raw)
                if stored.get("version") == STORAGE_VERSION:
                    self._thresholds = [
                        PatternThreshold(
                            pattern_type=PatternType(item["pattern_type"]),
                            threshold_value=item["threshold_value"],
                            enabled=item["enabled"],
                        )
                        for item in stored["thresholds"]
                    ]
        except (ValueError, KeyError, TypeError) as e:
            logging.error(f"Failed to load pattern data from storage: {e}")

    def reset(self) -> None:
        self._exceptions = []
        self._status = AnalysisStatus.IDLE
        self._error_message = None
        self.clear_patterns()
