"""Read-only analytics over a board snapshot."""

from __future__ import annotations

import re
from collections import Counter
from typing import Any

from board.models import BoardNode, GraphState
from detection.context import board_density
from detection.text_analysis import STOP_WORDS

HUB_DEGREE = 3
MAX_THEMES = 5
WEAK_THEME_COUNT = 1


def node_words(node: BoardNode) -> set[str]:
    text = f"{node.label} {node.content}".lower()
    return {w for w in re.findall(r"[a-z0-9]+", text) if len(w) > 2 and w not in STOP_WORDS}


def jaccard(left: set[str], right: set[str]) -> float:
    if not left or not right:
        return 0.0
    return len(left & right) / len(left | right)


def degrees(state: GraphState) -> dict[str, int]:
    counts = {node.id: 0 for node in state.nodes}
    for edge in state.edges:
        if edge.source in counts:
            counts[edge.source] += 1
        if edge.target in counts:
            counts[edge.target] += 1
    return counts


def themes(state: GraphState, limit: int = MAX_THEMES) -> list[tuple[str, int]]:
    """Most frequent words across nodes, counted once per node."""
    counter: Counter[str] = Counter()
    for node in state.nodes:
        counter.update(node_words(node))
    return counter.most_common(limit)


def analyze_board(state: GraphState, document_count: int = 0) -> dict[str, Any]:
    degree = degrees(state)
    labels = {node.id: node.label for node in state.nodes}
    return {
        "node_count": state.node_count,
        "edge_count": state.edge_count,
        "document_count": document_count,
        "density": board_density(state.node_count).value,
        "isolated_nodes": [labels[n] for n, d in degree.items() if d == 0],
        "hubs": [labels[n] for n, d in degree.items() if d >= HUB_DEGREE],
        "themes": [word for word, _ in themes(state)],
    }


def analyze_node(state: GraphState, node_id: str) -> dict[str, Any]:
    """Degree and neighbourhood of one node; ``KeyError`` if it is not on the board."""
    nodes = {node.id: node for node in state.nodes}
    if node_id not in nodes:
        raise KeyError(f"Unknown node id(s): {node_id}")
    outgoing = [e.target for e in state.edges if e.source == node_id]
    incoming = [e.source for e in state.edges if e.target == node_id]
    node = nodes[node_id]
    return {
        "node_id": node_id,
        "label": node.label,
        "degree": len(outgoing) + len(incoming),
        "outgoing": [nodes[n].label for n in outgoing if n in nodes],
        "incoming": [nodes[n].label for n in incoming if n in nodes],
        "keywords": sorted(node_words(node)),
    }


def analyze_gaps(state: GraphState) -> dict[str, Any]:
    degree = degrees(state)
    labels = {node.id: node.label for node in state.nodes}
    sources = {edge.source for edge in state.edges}
    isolated = [labels[n] for n, d in degree.items() if d == 0]
    dead_ends = [labels[n] for n, d in degree.items() if d > 0 and n not in sources]
    weak = [word for word, count in themes(state, limit=20) if count <= WEAK_THEME_COUNT][:MAX_THEMES]

    suggestions = []
    if not state.nodes:
        suggestions.append("Start by adding a few nodes that capture the main topic")
    if isolated:
        suggestions.append(f"Connect {len(isolated)} isolated node(s) to related ideas")
    if dead_ends:
        suggestions.append("Expand dead-end nodes with follow-up steps")
    if weak:
        suggestions.append(f"Develop under-covered themes: {', '.join(weak)}")
    return {
        "isolated_nodes": isolated,
        "dead_ends": dead_ends,
        "under_covered_themes": weak,
        "suggestions": suggestions,
    }


def connection_candidates(
    state: GraphState,
    threshold: float,
    preferred_source: str | None = None,
) -> list[tuple[str, str, float]]:
    """Unconnected node pairs whose word overlap reaches ``threshold``, best first.

    Pairs touching ``preferred_source`` sort ahead of the rest and use it as
    the source.
    """
    connected = {frozenset((e.source, e.target)) for e in state.edges}
    words = {node.id: node_words(node) for node in state.nodes}
    ids = [node.id for node in state.nodes]
    pairs = []
    for i, left in enumerate(ids):
        for right in ids[i + 1:]:
            if frozenset((left, right)) in connected:
                continue
            score = jaccard(words[left], words[right])
            if score < threshold:
                continue
            source, target = left, right
            if right == preferred_source:
                source, target = right, left
            pairs.append((source, target, score))
    pairs.sort(key=lambda p: (p[0] != preferred_source, -p[2]))
    return pairs
