from typing import Iterable, List

from ...types import NodeType, ReactiveNode
from ..patterns import Pattern, PatternType, Severity, new_pattern


def detect_orphaned_effects(nodes: Iterable[ReactiveNode], now: float) -> List[Pattern]:
    """Flag every effect that was created with no owner to dispose it."""
    patterns = []
    for node in nodes:
        if node.type == NodeType.EFFECT and node.owner is None:
            patterns.append(
                new_pattern(
                    PatternType.ORPHANED_EFFECT,
                    Severity.HIGH,
                    [node.id],
                    now,
                    "Effect created without ownership context",
                    {
                        "effect_id": node.id,
                        "created_at": node.created_at,
                        "last_run_at": node.last_executed_at,
                    },
                )
            )
    return patterns
