from typing import Iterable, List

from ...types import NodeType, ReactiveNode
from ..patterns import Pattern, PatternType, Severity, new_pattern


def detect_stale_memos(nodes: Iterable[ReactiveNode], now: float) -> List[Pattern]:
    """Flag memos nobody reads."""
    patterns = []
    for node in nodes:
        if node.type != NodeType.MEMO or node.observers:
            continue

        last_computed_at = node.last_executed_at
        patterns.append(
            new_pattern(
                PatternType.STALE_MEMO,
                Severity.LOW,
                [node.id],
                now,
                f"Memo {node.name or node.id} is never read (0 observers)",
                {
                    "stale_since": last_computed_at if last_computed_at is not None else node.created_at,
                    "last_computed_at": last_computed_at,
                    "observer_count": 0,
                },
            )
        )
    return patterns
