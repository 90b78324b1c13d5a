"""
Deep dependency chains.

Each root (a node with no incoming dependency edge) is walked breadth-first
on its own, with a visited set private to that walk. A node reachable from
several roots is therefore reported once per root that reaches it past the
threshold.
"""

from collections import deque
from typing import Deque, Iterable, List, Sequence, Tuple

from ...types import ReactiveEdge, ReactiveNode
from ..patterns import Pattern, PatternType, Severity, new_pattern
from .graph import dependency_adjacency

HIGH_SEVERITY_DEPTH = 8


def detect_deep_chains(
    nodes: Sequence[ReactiveNode],
    edges: Iterable[ReactiveEdge],
    threshold: float,
    now: float,
) -> List[Pattern]:
    adjacency = dependency_adjacency(edges)
    has_incoming = {target for targets in adjacency.values() for target in targets}
    roots = [node.id for node in nodes if node.id not in has_incoming]

    patterns: List[Pattern] = []
    for root in roots:
        queue: Deque[Tuple[str, int, List[str]]] = deque([(root, 0, [root])])
        visited = set()

        while queue:
            node_id, depth, path = queue.popleft()
            if node_id in visited:
                continue
            visited.add(node_id)

            if depth > threshold:
                severity = Severity.HIGH if depth > HIGH_SEVERITY_DEPTH else Severity.MEDIUM
                patterns.append(
                    new_pattern(
                        PatternType.DEEP_CHAIN,
                        severity,
                        path,
                        now,
                        f"Dependency chain depth {depth} exceeds threshold {threshold:g}",
                        {"depth": depth, "chain_path": list(path)},
                    )
                )

            for neighbor in adjacency.get(node_id, ()):
                if neighbor not in visited:
                    queue.append((neighbor, depth + 1, path + [neighbor]))

    return patterns
