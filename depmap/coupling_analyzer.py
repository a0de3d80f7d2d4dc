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
"""Edge coupling strength analysis.

Every dependency edge gets a coupling score: the number of call sites in
the source module that resolve into the target module. When the source
cannot be analyzed, or no call site is found, the edge gets the minimal
score of 1 and is flagged as fallback-derived.
"""

import re
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Dict, List, Optional, Set

from depmap.constants import FALLBACK_COUPLING_SCORE, MEDIUM_COUPLING_MAX, WEAK_COUPLING_MAX
from depmap.graph_model import DependencyGraph, ModuleNode
from depmap.source_analysis import SourceProvider

logger = logging.getLogger(__name__)

COUPLING_WEAK = "weak"
COUPLING_MEDIUM = "medium"
COUPLING_STRONG = "strong"

_IMPORT_NAME_SEPARATORS = re.compile(r"[.\-\s]+")


@dataclass
class CouplingAnalysisSummary:
    """Diagnostics of one coupling analysis pass.

    Attributes:
        analyzed_edges: Number of edges scored
        measured_edges: Edges scored from call-site evidence
        fallback_edges: Edges that received the default score
        failed_modules: Modules whose source could not be analyzed
        strength_counts: Edge count per strength class
    """

    analyzed_edges: int = 0
    measured_edges: int = 0
    fallback_edges: int = 0
    failed_modules: List[str] = field(default_factory=list)
    strength_counts: Dict[str, int] = field(default_factory=lambda: {COUPLING_WEAK: 0, COUPLING_MEDIUM: 0, COUPLING_STRONG: 0})


def classify_coupling_strength(score: int) -> str:
    """Classify a coupling score: 1-5 weak, 6-20 medium, 21+ strong."""
    if score <= WEAK_COUPLING_MAX:
        return COUPLING_WEAK
    if score <= MEDIUM_COUPLING_MAX:
        return COUPLING_MEDIUM
    return COUPLING_STRONG


def import_name_key(name: str) -> str:
    """Normalize a module or import name ("Orders.Core" and "orders_core" match)."""
    return _IMPORT_NAME_SEPARATORS.sub("_", name.strip()).casefold()


def import_keys_for(module: ModuleNode) -> Set[str]:
    """Import names a module may be referenced by: its name and its path stem."""
    keys = {import_name_key(module.name)}
    if module.path:
        stem = PurePath(module.path).stem
        if stem:
            keys.add(import_name_key(stem))
    return keys


def analyze_coupling(graph: DependencyGraph, provider: Optional[SourceProvider] = None) -> CouplingAnalysisSummary:
    """Assign a coupling score to every edge of the graph.

    Args:
        graph: Filtered dependency graph, edges are updated in place
        provider: Source access; None scores every edge with the fallback

    Returns:
        CouplingAnalysisSummary
    """
    summary = CouplingAnalysisSummary()
    call_counts: Dict[str, Optional[Counter]] = {}

    def calls_of(module: ModuleNode) -> Optional[Counter]:
        if module.key in call_counts:
            return call_counts[module.key]
        counts: Optional[Counter] = None
        if provider is not None:
            try:
                counts = Counter()
                for unit in provider.get_units(module):
                    counts.update(import_name_key(target) for target in unit.call_targets)
            except Exception as e:
                logger.warning("Coupling analysis unavailable for %s, using fallback score: %s", module.name, e)
                summary.failed_modules.append(module.name)
                counts = None
        call_counts[module.key] = counts
        return counts

    for edge in graph.edges:
        counts = calls_of(edge.source)
        measured = sum(counts[key] for key in import_keys_for(edge.target)) if counts is not None else 0

        if measured > 0:
            edge.coupling_score = measured
            edge.fallback_derived = False
            summary.measured_edges += 1
        else:
            edge.coupling_score = FALLBACK_COUPLING_SCORE
            edge.fallback_derived = True
            summary.fallback_edges += 1

        summary.analyzed_edges += 1
        summary.strength_counts[classify_coupling_strength(edge.coupling_score)] += 1

    logger.info(
        "Coupling analysis: %d edges, %d measured, %d fallback-derived",
        summary.analyzed_edges,
        summary.measured_edges,
        summary.fallback_edges,
    )
    return summary
