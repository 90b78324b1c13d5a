"""
RxScope Analysis - Anti-Pattern Detection
========================================

- PatternDetector: runs the six detectors over a graph snapshot
- PatternStore: keeps findings, expected-pattern exceptions and thresholds
- patterns: the Pattern record, its IDs and its descriptive text
"""

from .detector import (
    AnalysisResult,
    PatternDetector,
    PatternDetectorConfig,
    validate_thresholds,
)
from .patterns import (
    DEFAULT_THRESHOLDS,
    Pattern,
    PatternThreshold,
    PatternType,
    Severity,
    default_thresholds,
    generate_pattern_id,
    get_pattern_age,
    get_pattern_description,
    get_pattern_remediation,
    is_pattern_visible,
)
from .store import AnalysisStatus, MetricsSummary, PatternException, PatternStore

__all__ = [
    "AnalysisResult",
    "PatternDetector",
    "PatternDetectorConfig",
    "validate_thresholds",
    "DEFAULT_THRESHOLDS",
    "Pattern",
    "PatternThreshold",
    "PatternType",
    "Severity",
    "default_thresholds",
    "generate_pattern_id",
    "get_pattern_age",
    "get_pattern_description",
    "get_pattern_remediation",
    "is_pattern_visible",
    "AnalysisStatus",
    "MetricsSummary",
    "PatternException",
    "PatternStore",
]
