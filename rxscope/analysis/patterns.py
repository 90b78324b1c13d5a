"""
RxScope Patterns - Anti-Pattern Records and Their Vocabulary
============================================================

A ``Pattern`` is one finding of a detector: what kind of issue, how severe,
which nodes, and what to do about it. Pattern IDs are derived from the type,
the sorted affected node IDs and the detection timestamp, so the same finding
reported at the same instant gets the same ID.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..types import wall_clock


class PatternType(str, Enum):
    ORPHANED_EFFECT = "orphaned-effect"
    DEEP_CHAIN = "deep-chain"
    DIAMOND_PATTERN = "diamond-pattern"
    HOT_PATH = "hot-path"
    HIGH_SUBSCRIPTIONS = "high-subscriptions"
    STALE_MEMO = "stale-memo"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class Pattern:
    """A detected structural anti-pattern."""

    id: str
    type: PatternType
    severity: Severity
    affected_node_ids: List[str]
    timestamp: float
    description: str
    remediation: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    is_expected: bool = False


@dataclass
class PatternThreshold:
    pattern_type: PatternType
    threshold_value: float
    enabled: bool = True


def default_thresholds() -> List[PatternThreshold]:
    """Fresh copies of the default detector thresholds."""
    return [
        PatternThreshold(PatternType.ORPHANED_EFFECT, 0),
        PatternThreshold(PatternType.DEEP_CHAIN, 5),
        PatternThreshold(PatternType.DIAMOND_PATTERN, 2),
        PatternThreshold(PatternType.HOT_PATH, 10),
        PatternThreshold(PatternType.HIGH_SUBSCRIPTIONS, 50),
        PatternThreshold(PatternType.STALE_MEMO, 0),
    ]


DEFAULT_THRESHOLDS = default_thresholds()

_DESCRIPTIONS = {
    PatternType.ORPHANED_EFFECT: "Effect created without ownership context",
    PatternType.DEEP_CHAIN: "Dependency chain exceeds depth threshold",
    PatternType.DIAMOND_PATTERN: "Multiple dependency paths converge to same node",
    PatternType.HOT_PATH: "Node updating excessively per second",
    PatternType.HIGH_SUBSCRIPTIONS: "Node has excessive observer count",
    PatternType.STALE_MEMO: "Memo computed but never read",
}

_REMEDIATIONS = {
    PatternType.ORPHANED_EFFECT: (
        "Create the effect inside a root or another effect so it is disposed with its owner"
    ),
    PatternType.DEEP_CHAIN: (
        "Flatten dependency chain or add batching to reduce propagation overhead"
    ),
    PatternType.DIAMOND_PATTERN: (
        "Informational - convergent updates are recomputed once per change"
    ),
    PatternType.HOT_PATH: "Consider debouncing or throttling updates to reduce computation",
    PatternType.HIGH_SUBSCRIPTIONS: (
        "Verify fan-out is intentional, or refactor to reduce observer count"
    ),
    PatternType.STALE_MEMO: "Remove unused memo or add consumers to make it useful",
}


def get_pattern_description(pattern_type: PatternType) -> str:
    return _DESCRIPTIONS[PatternType(pattern_type)]


def get_pattern_remediation(pattern_type: PatternType) -> str:
    return _REMEDIATIONS[PatternType(pattern_type)]


def simple_hash(text: str) -> str:
    """Hex digest of the classic 31-multiplier string hash, in 32-bit signed arithmetic."""
    value = 0
    for char in text:
        value = ((value << 5) - value + ord(char)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return format(abs(value), "x")


def generate_pattern_id(
    pattern_type: PatternType, affected_node_ids: List[str], timestamp: float
) -> str:
    """``"{type}-{timestamp}-{hash}"`` with the hash taken over the sorted node IDs."""
    digest = simple_hash(",".join(sorted(affected_node_ids)))
    return f"{PatternType(pattern_type).value}-{timestamp:.0f}-{digest[:8]}"


def is_pattern_visible(pattern: Pattern, show_expected: bool) -> bool:
    return show_expected or not pattern.is_expected


def get_pattern_age(pattern: Pattern, now: Optional[float] = None) -> str:
    """Human readable age such as ``"just now"``, ``"42s ago"`` or ``"3h ago"``."""
    now = wall_clock() if now is None else now
    age_sec = int((now - pattern.timestamp) // 1000)

    if age_sec < 5:
        return "just now"
    if age_sec < 60:
        return f"{age_sec}s ago"
    age_min = age_sec // 60
    if age_min < 60:
        return f"{age_min}m ago"
    return f"{age_min // 60}h ago"


def new_pattern(
    pattern_type: PatternType,
    severity: Severity,
    affected_node_ids: List[str],
    timestamp: float,
    description: str,
    metadata: Dict[str, Any],
) -> Pattern:
    """Build a pattern with its derived ID and the standard remediation text."""
    return Pattern(
        id=generate_pattern_id(pattern_type, affected_node_ids, timestamp),
        type=PatternType(pattern_type),
        severity=severity,
        affected_node_ids=list(affected_node_ids),
        timestamp=timestamp,
        description=description,
        remediation=get_pattern_remediation(pattern_type),
        metadata=metadata,
    )
