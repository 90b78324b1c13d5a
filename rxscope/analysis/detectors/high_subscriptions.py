from typing import Iterable, List

from ...types import ReactiveNode
from ..patterns import Pattern, PatternType, Severity, new_pattern

HIGH_SEVERITY_OBSERVERS = 100


def detect_high_subscriptions(
    nodes: Iterable[ReactiveNode], threshold: float, now: float
) -> List[Pattern]:
    """Flag nodes whose observer count exceeds ``threshold``."""
    patterns = []
    for node in nodes:
        observer_count = len(node.observers)
        if observer_count <= threshold:
            continue

        severity = Severity.HIGH if observer_count > HIGH_SEVERITY_OBSERVERS else Severity.MEDIUM
        patterns.append(
            new_pattern(
                PatternType.HIGH_SUBSCRIPTIONS,
                severity,
                [node.id],
                now,
                f"Node has {observer_count} observers (threshold: {threshold:g})",
                {
                    "subscriber_count": observer_count,
                    "subscriber_ids": list(node.observers),
                },
            )
        )
    return patterns
