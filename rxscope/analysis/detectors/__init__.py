"""
RxScope Detectors - One Graph Analysis Per Module
================================================

Each detector is a pure function of a node/edge snapshot (hot-path reads the
sliding windows of an ``UpdateRateTracker`` instead) plus the detection time.
"""

from .deep_chains import detect_deep_chains
from .diamond_patterns import detect_diamond_patterns, find_paths
from .high_subscriptions import detect_high_subscriptions
from .hot_paths import UpdateRateTracker, detect_hot_paths
from .orphaned_effects import detect_orphaned_effects
from .stale_memos import detect_stale_memos

__all__ = [
    "detect_deep_chains",
    "detect_diamond_patterns",
    "detect_high_subscriptions",
    "detect_hot_paths",
    "detect_orphaned_effects",
    "detect_stale_memos",
    "find_paths",
    "UpdateRateTracker",
]
