"""
Diamond (convergent path) detection.

For every node with at least ``min_paths`` distinct direct sources, all simple
paths from each of those sources to the node are enumerated depth-first. This
is the only detector whose worst case is super-linear, so it runs last.
"""

from typing import Dict, Iterable, List, Sequence, Set

from ...types import ReactiveEdge, ReactiveNode
from ..patterns import Pattern, PatternType, Severity, new_pattern
from .graph import dependency_adjacency, incoming_sources

MEDIUM_SEVERITY_PATHS = 3


def find_paths(
    adjacency: Dict[str, List[str]], start: str, end: str, visited: Set[str]
) -> List[List[str]]:
    """All simple paths from ``start`` to ``end`` that avoid ``visited``."""
    if start == end:
        return [[start]]

    visited = visited | {start}
    paths = []
    for neighbor in adjacency.get(start, ()):
        if neighbor in visited:
            continue
        for sub_path in find_paths(adjacency, neighbor, end, visited):
            paths.append([start] + sub_path)
    return paths


def detect_diamond_patterns(
    nodes: Sequence[ReactiveNode],
    edges: Iterable[ReactiveEdge],
    min_paths: float,
    now: float,
) -> List[Pattern]:
    edges = list(edges)
    adjacency = dependency_adjacency(edges)
    incoming = incoming_sources(edges)

    patterns: List[Pattern] = []
    for node in nodes:
        sources = incoming.get(node.id, [])
        if len(sources) < min_paths:
            continue

        all_paths: List[List[str]] = []
        for source in sources:
            all_paths.extend(find_paths(adjacency, source, node.id, set()))

        path_count = len(all_paths)
        if path_count < min_paths:
            continue

        severity = Severity.MEDIUM if path_count > MEDIUM_SEVERITY_PATHS else Severity.LOW
        patterns.append(
            new_pattern(
                PatternType.DIAMOND_PATTERN,
                severity,
                [node.id],
                now,
                f"{path_count} convergent paths to node {node.name or node.id}",
                {
                    "convergence_node_id": node.id,
                    "input_paths": all_paths,
                    "path_count": path_count,
                },
            )
        )

    return patterns
