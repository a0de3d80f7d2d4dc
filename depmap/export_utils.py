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
"""Export utilities for writing analysis results to various file formats."""

import os
import re
import csv
import json
import logging
from typing import Dict, List, Optional, Sequence

import networkx as nx
from networkx.readwrite import json_graph

from depmap.color_utils import print_error, print_success
from depmap.constants import DEFAULT_GRAPH_FORMAT, SUPPORTED_GRAPH_FORMATS
from depmap.cycle_breaking import CycleBreakingSuggestion, best_suggestion_per_cycle
from depmap.cycle_detector import CycleInfo
from depmap.graph_model import DependencyGraph, DependencyKind
from depmap.metric_types import ExtractionScore

logger = logging.getLogger(__name__)

# Characters invalid in file names on at least one supported platform
_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

# Excel opens UTF-8 with BOM correctly; csv.writer uses CRLF line endings
CSV_ENCODING = "utf-8-sig"

EXTRACTION_SCORE_COLUMNS = ["Project Name", "Extraction Score", "Coupling Metric", "Complexity Metric", "Tech Debt Score", "External APIs"]
CYCLE_ANALYSIS_COLUMNS = ["Cycle ID", "Cycle Size", "Projects Involved", "Suggested Break Point", "Coupling Score"]
DEPENDENCY_MATRIX_COLUMNS = ["Source Project", "Target Project", "Dependency Type", "Coupling Score"]

DEPENDENCY_TYPE_LABELS = {
    DependencyKind.PROJECT_REFERENCE: "Project Reference",
    DependencyKind.BINARY_REFERENCE: "Binary Reference",
}


def sanitize_filename(name: str) -> str:
    """Replace characters that are invalid in file names with underscores."""
    sanitized = _INVALID_FILENAME_CHARS.sub("_", name).strip()
    return sanitized or "analysis"


def _write_csv(filename: str, columns: List[str], rows: List[List[object]], description: str) -> Optional[str]:
    try:
        os.makedirs(os.path.dirname(filename) or ".", exist_ok=True)
        with open(filename, "w", newline="", encoding=CSV_ENCODING) as f:
            writer = csv.writer(f)
            writer.writerow(columns)
            writer.writerows(rows)
    except OSError as e:
        logger.error("Failed to export %s: %s", description, e)
        print_error(f"Failed to export {description}: {e}")
        return None

    logger.info("Exported %s (%d rows) to %s", description, len(rows), filename)
    print_success(f"Exported {description} to {filename}")
    return filename


def export_extraction_scores_csv(scores: Sequence[ExtractionScore], output_dir: str, name: str) -> Optional[str]:
    """Export extraction scores, easiest first.

    Args:
        scores: Extraction scores
        output_dir: Output directory (created if missing)
        name: Analysis name used as file name prefix

    Returns:
        Written file path, or None if writing failed
    """
    rows: List[List[object]] = [
        [
            score.module_name,
            f"{score.final_score:.1f}",
            f"{score.coupling.normalized_score:.1f}",
            f"{score.complexity.normalized_score:.1f}",
            f"{score.version_debt.normalized_score:.1f}",
            score.exposure.endpoint_count,
        ]
        for score in sorted(scores, key=lambda s: s.final_score)
    ]
    filename = os.path.join(output_dir, f"{sanitize_filename(name)}-extraction-scores.csv")
    return _write_csv(filename, EXTRACTION_SCORE_COLUMNS, rows, "extraction scores")


def export_cycle_analysis_csv(
    cycles: Sequence[CycleInfo], suggestions: Sequence[CycleBreakingSuggestion], output_dir: str, name: str
) -> Optional[str]:
    """Export one row per cycle with its best break suggestion.

    Cycles without a suggestion are exported with "N/A" and coupling 0.
    """
    best = best_suggestion_per_cycle(suggestions)
    rows: List[List[object]] = []
    for cycle in sorted(cycles, key=lambda c: c.cycle_id):
        suggestion = best.get(cycle.cycle_id)
        if suggestion is None:
            logger.warning("Cycle %d has no breaking suggestion, exporting with N/A", cycle.cycle_id)
            break_point, coupling = "N/A", 0
        else:
            break_point, coupling = f"{suggestion.source.name} → {suggestion.target.name}", suggestion.coupling_score
        rows.append([cycle.cycle_id, cycle.size, ", ".join(cycle.member_names), break_point, coupling])

    filename = os.path.join(output_dir, f"{sanitize_filename(name)}-cycle-analysis.csv")
    return _write_csv(filename, CYCLE_ANALYSIS_COLUMNS, rows, "cycle analysis")


def export_dependency_matrix_csv(graph: DependencyGraph, output_dir: str, name: str) -> Optional[str]:
    """Export every remaining edge, sorted by source then target name."""
    edges = sorted(graph.edges, key=lambda e: (e.source.name.casefold(), e.target.name.casefold()))
    rows: List[List[object]] = [
        [edge.source.name, edge.target.name, DEPENDENCY_TYPE_LABELS[edge.kind], edge.coupling_score if edge.coupling_score is not None else 0]
        for edge in edges
    ]
    filename = os.path.join(output_dir, f"{sanitize_filename(name)}-dependency-matrix.csv")
    return _write_csv(filename, DEPENDENCY_MATRIX_COLUMNS, rows, "dependency matrix")


def export_dependency_graph(filename: str, graph: DependencyGraph, scores: Sequence[ExtractionScore] = (), cycles: Sequence[CycleInfo] = ()) -> bool:
    """Export the dependency graph for external tools.

    Supports: GraphML (.graphml), DOT (.dot), JSON node-link (.json).
    GraphML output can be loaded again as an analysis input.

    Node attributes: path, platform, collection, extraction_score, in_cycle
    Edge attributes: kind, coupling

    Returns:
        True if the file was written
    """
    exported = graph.to_networkx()
    score_by_name: Dict[str, float] = {score.module_name: round(score.final_score, 1) for score in scores}
    in_cycle = {name for cycle in cycles for name in cycle.member_names}
    for node in exported.nodes():
        if node in score_by_name:
            exported.nodes[node]["extraction_score"] = score_by_name[node]
        exported.nodes[node]["in_cycle"] = node in in_cycle

    ext = os.path.splitext(filename)[1].lower()
    if ext not in SUPPORTED_GRAPH_FORMATS:
        logger.warning("Unsupported graph format: %s. Defaulting to %s.", ext, DEFAULT_GRAPH_FORMAT)
        filename = f"{filename}.{DEFAULT_GRAPH_FORMAT}"
        ext = f".{DEFAULT_GRAPH_FORMAT}"
    try:
        if ext == ".graphml":
            nx.write_graphml(exported, filename)
        elif ext == ".dot":
            nx.drawing.nx_pydot.write_dot(exported, filename)
        else:
            data = json_graph.node_link_data(exported)
            with open(filename, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
    except OSError as e:
        logger.error("Failed to export graph: %s", e)
        print_error(f"Failed to export graph: {e}")
        return False

    logger.info("Exported dependency graph to %s", filename)
    print_success(f"Exported dependency graph to {filename}")
    return True
