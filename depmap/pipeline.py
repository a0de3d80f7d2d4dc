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
"""End-to-end analysis pipeline.

Runs the analysis stages in order on a single thread that owns the graph:

    build -> filter -> detect cycles -> analyze coupling -> recommend
          -> metrics (parallel) -> score -> rank

Only the metric stage fans out to worker threads, and it only reads the
graph. Framework modules removed by the filter stay in the graph so the
totals in reports are stable, but they are not scored.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from depmap.candidate_ranker import RankedCandidates, rank_candidates
from depmap.config import AnalysisSettings
from depmap.coupling_analyzer import CouplingAnalysisSummary, analyze_coupling
from depmap.cycle_breaking import CycleBreakingSuggestion, generate_suggestions, identify_weak_edges
from depmap.cycle_detector import CycleDetectionResult, detect_cycles
from depmap.extraction_scoring import calculate_extraction_scores
from depmap.framework_filter import FilterStatistics, filter_graph
from depmap.graph_model import DependencyGraph, GraphDescription, ModuleNode, build_graph
from depmap.metric_types import ExtractionScore
from depmap.metrics_runner import CancellationToken, MetricsBatch, run_metric_calculators
from depmap.source_analysis import SourceProvider

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResults:
    """Everything one analysis run produced.

    Attributes:
        graph: Filtered dependency graph with coupling scores on its edges
        filter_statistics: Outcome of the framework filter
        cycles: Detected cycles, annotated with their weak edges
        suggestions: Ranked cycle-breaking suggestions
        coupling: Coupling analysis diagnostics
        metrics: Per-module metrics (possibly partial)
        scores: Extraction scores of the modules with completed metrics
        ranking: Ranked and banded candidates
        partial: True if metric calculation was cancelled
    """

    graph: DependencyGraph
    filter_statistics: FilterStatistics
    cycles: CycleDetectionResult
    suggestions: List[CycleBreakingSuggestion] = field(default_factory=list)
    coupling: CouplingAnalysisSummary = field(default_factory=CouplingAnalysisSummary)
    metrics: MetricsBatch = field(default_factory=MetricsBatch)
    scores: List[ExtractionScore] = field(default_factory=list)
    ranking: RankedCandidates = field(default_factory=RankedCandidates)
    partial: bool = False

    @property
    def cross_collection_edges(self) -> int:
        return sum(1 for edge in self.graph.edges if edge.is_cross_collection)


def scorable_modules(graph: DependencyGraph, filter_statistics: FilterStatistics) -> List[ModuleNode]:
    """Modules that get metrics: every module the framework filter kept."""
    excluded = {name.casefold() for name in filter_statistics.excluded_modules}
    return [node for node in graph.nodes if node.key not in excluded]


def run_analysis(
    description: GraphDescription,
    settings: AnalysisSettings,
    source_provider: Optional[SourceProvider] = None,
    cancellation: Optional[CancellationToken] = None,
) -> AnalysisResults:
    """Run the complete analysis on a graph description.

    Args:
        description: Modules and dependencies to analyze
        settings: Validated analysis settings
        source_provider: Source access for coupling, complexity and exposure;
            None runs a graph-only analysis with documented fallbacks
        cancellation: Optional token to stop metric calculation early

    Returns:
        AnalysisResults; `partial` is set if the run was cancelled

    Raises:
        GraphBuildError: If the description is structurally invalid
    """
    graph = build_graph(description)

    filter_statistics = filter_graph(graph, settings.filters.block_patterns, settings.filters.allow_patterns)
    cycles = detect_cycles(graph)
    coupling = analyze_coupling(graph, source_provider)

    identify_weak_edges(graph, cycles.cycles)
    suggestions = generate_suggestions(cycles.cycles, settings.tiebreak)

    modules = scorable_modules(graph, filter_statistics)
    metrics = run_metric_calculators(
        graph,
        modules,
        provider=source_provider,
        max_workers=settings.max_workers,
        cancellation=cancellation,
    )
    if metrics.degraded_modules:
        logger.info("%d module(s) scored with fallback metrics: %s", len(metrics.degraded_modules), ", ".join(metrics.degraded_modules))

    scores = calculate_extraction_scores(metrics.ordered(modules), settings.weights)
    ranking = rank_candidates(scores, settings.top_n)

    return AnalysisResults(
        graph=graph,
        filter_statistics=filter_statistics,
        cycles=cycles,
        suggestions=suggestions,
        coupling=coupling,
        metrics=metrics,
        scores=scores,
        ranking=ranking,
        partial=metrics.cancelled,
    )
