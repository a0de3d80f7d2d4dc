#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ****************************************************************************************************************************************************
# * BSD 3-Clause License
# *
# * Copyright (c) 2025, Mana Battery
# * All rights reserved.
# *
# * Redistribution and use in source and binary forms, with or without modification, are permitted provided that the following conditions are met:
# *
# * 1. Redistributions of source code must retain the above copyright notice, this list of conditions and the following disclaimer.
# * 2. Redistributions in binary form must reproduce the above copyright notice, this list of conditions and the following disclaimer in the
# *    documentation and/or other materials provided with the distribution.
# * 3. Neither the name of the copyright holder nor the names of its contributors may be used to endorse or promote products derived from this
# *    software without specific prior written permission.
# *
# * THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO,
# * THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR
# * CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO,
# * PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF
# * LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE,
# * EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
# ****************************************************************************************************************************************************
"""Dependency diagram data and DOT export.

Builds an attributed networkx graph from the analysis results: nodes carry
their band color (or the default fill when unscored), edges carry the
classification used for styling. When several classes apply to one edge,
the suggested break wins over cyclic, cyclic over cross-collection.
"""

import logging
from typing import Dict, FrozenSet, Iterable, Optional, Sequence, Set, Tuple

import networkx as nx

from depmap.candidate_ranker import DifficultyBand, classify_band
from depmap.constants import COLLECTION_PALETTE, DEFAULT_MAX_BREAK_POINTS, DIAGRAM_NODE_FILL
from depmap.cycle_breaking import CycleBreakingSuggestion, top_suggestions
from depmap.cycle_detector import CycleInfo
from depmap.graph_model import DependencyEdge, DependencyGraph
from depmap.metric_types import ExtractionScore

logger = logging.getLogger(__name__)

EDGE_SUGGESTED_BREAK = "suggested-break"
EDGE_CYCLIC = "cyclic"
EDGE_CROSS_COLLECTION = "cross-collection"
EDGE_DEFAULT = "default"

BAND_FILL_COLORS = {
    DifficultyBand.EASY: "lightgreen",
    DifficultyBand.MEDIUM: "khaki",
    DifficultyBand.HARD: "lightcoral",
}

EDGE_STYLES = {
    EDGE_SUGGESTED_BREAK: {"color": "darkorange", "style": "bold,dashed", "penwidth": "3.0"},
    EDGE_CYCLIC: {"color": "red", "style": "bold", "penwidth": "2.0"},
    EDGE_DEFAULT: {"color": "black"},
}

DOT_GRAPH_ATTRIBUTES = {"rankdir": "LR", "nodesep": "0.5", "ranksep": "1.0"}
DOT_NODE_ATTRIBUTES = {"shape": "box", "style": "filled", "fillcolor": DIAGRAM_NODE_FILL}
DOT_EDGE_ATTRIBUTES = {"color": "black", "arrowhead": "normal"}

Pair = Tuple[str, str]


def collection_color(collection: str) -> str:
    """Stable palette color for a collection name.

    Uses a fixed string hash (not Python's randomized hash()) so a collection
    keeps its color between runs.
    """
    value = 0
    for char in collection:
        value = (value * 31 + ord(char.upper())) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return COLLECTION_PALETTE[abs(value) % len(COLLECTION_PALETTE)]


def cyclic_edge_pairs(cycles: Iterable[CycleInfo]) -> Set[Pair]:
    """(source, target) key pairs of edges inside any cycle.

    Only pairs of members of the same cycle qualify; callers intersect this
    with the actual edges.
    """
    return {(a, b) for cycle in cycles for a in cycle.member_keys for b in cycle.member_keys if a != b}


def classify_edge(edge: DependencyEdge, cyclic_pairs: FrozenSet[Pair], break_pairs: FrozenSet[Pair]) -> str:
    """Classify an edge for rendering.

    Precedence: suggested-break > cyclic > cross-collection > default.
    """
    if edge.pair in break_pairs:
        return EDGE_SUGGESTED_BREAK
    if edge.pair in cyclic_pairs:
        return EDGE_CYCLIC
    if edge.is_cross_collection:
        return EDGE_CROSS_COLLECTION
    return EDGE_DEFAULT


def build_diagram_graph(
    graph: DependencyGraph,
    cycles: Sequence[CycleInfo] = (),
    suggestions: Sequence[CycleBreakingSuggestion] = (),
    scores: Sequence[ExtractionScore] = (),
    max_break_points: int = DEFAULT_MAX_BREAK_POINTS,
    include_isolated: bool = False,
) -> nx.DiGraph:
    """Build an attributed DiGraph ready for DOT rendering.

    Args:
        graph: Filtered dependency graph
        cycles: Detected cycles
        suggestions: Ranked cycle-breaking suggestions
        scores: Extraction scores used for node band colors
        max_break_points: Number of top suggestions highlighted as breaks
        include_isolated: Keep modules without any remaining edge

    Returns:
        DiGraph with node attributes (label, group, band, fillcolor) and
        edge attributes (classification, color, style, ...)
    """
    cyclic_pairs = frozenset(cyclic_edge_pairs(cycles))
    break_pairs = frozenset(s.pair for s in top_suggestions(suggestions, max_break_points))
    score_by_key: Dict[str, ExtractionScore] = {score.module.key: score for score in scores}

    diagram = nx.DiGraph()
    diagram.graph["graph"] = dict(DOT_GRAPH_ATTRIBUTES)
    diagram.graph["node"] = dict(DOT_NODE_ATTRIBUTES)
    diagram.graph["edge"] = dict(DOT_EDGE_ATTRIBUTES)

    connected = {edge.source.key for edge in graph.edges} | {edge.target.key for edge in graph.edges}
    for node in graph.nodes:
        if not include_isolated and node.key not in connected:
            continue
        attributes = {"label": node.name, "group": node.collection or "default"}
        score = score_by_key.get(node.key)
        if score is not None:
            band = classify_band(score.final_score)
            attributes["band"] = band.label
            attributes["fillcolor"] = BAND_FILL_COLORS[band]
            attributes["tooltip"] = f"{node.name}: {score.final_score:.1f} ({band.label})"
        diagram.add_node(node.name, **attributes)

    counts = {EDGE_SUGGESTED_BREAK: 0, EDGE_CYCLIC: 0, EDGE_CROSS_COLLECTION: 0, EDGE_DEFAULT: 0}
    for edge in graph.edges:
        classification = classify_edge(edge, cyclic_pairs, break_pairs)
        if diagram.has_edge(edge.source.name, edge.target.name):
            # Parallel references collapse to one arrow; keep the strongest class
            current = diagram.edges[edge.source.name, edge.target.name]["classification"]
            if list(counts).index(current) <= list(counts).index(classification):
                continue
            counts[current] -= 1
        counts[classification] += 1
        style = dict(EDGE_STYLES.get(classification, {}))
        if classification == EDGE_CROSS_COLLECTION:
            style = {"color": collection_color(edge.source.collection)}
        if classification == EDGE_SUGGESTED_BREAK and edge.coupling_score is not None:
            style["label"] = f"{edge.coupling_score} calls" if edge.coupling_score != 1 else "1 call"
        diagram.add_edge(edge.source.name, edge.target.name, classification=classification, **style)

    logger.debug("Diagram edges by classification: %s", counts)
    return diagram


def write_dot_file(diagram: nx.DiGraph, filename: str, graph_name: Optional[str] = None) -> None:
    """Write a diagram graph as Graphviz DOT.

    Raises:
        OSError: If the file cannot be written
    """
    if graph_name:
        diagram.graph["name"] = graph_name
    nx.drawing.nx_pydot.write_dot(diagram, filename)
    logger.info("Wrote DOT diagram to %s", filename)
