"""Adjacency helpers shared by the graph-walking detectors."""

from typing import Dict, Iterable, List

from ...types import EdgeType, ReactiveEdge


def dependency_adjacency(edges: Iterable[ReactiveEdge]) -> Dict[str, List[str]]:
    """source -> targets over dependency edges, in edge insertion order."""
    adjacency: Dict[str, List[str]] = {}
    for edge in edges:
        if edge.type != EdgeType.DEPENDENCY:
            continue
        targets = adjacency.setdefault(edge.source, [])
        if edge.target not in targets:
            targets.append(edge.target)
    return adjacency


def incoming_sources(edges: Iterable[ReactiveEdge]) -> Dict[str, List[str]]:
    """target -> distinct sources over dependency edges."""
    incoming: Dict[str, List[str]] = {}
    for edge in edges:
        if edge.type != EdgeType.DEPENDENCY:
            continue
        sources = incoming.setdefault(edge.target, [])
        if edge.source not in sources:
            sources.append(edge.source)
    return incoming
