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
"""Cycle-breaking recommendations.

Within every cycle the edges with the lowest coupling score are the
cheapest cut points. All edges tied at the minimum are flagged as weak and
become suggestions; suggestions from all cycles are then ranked globally.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, List, Sequence, Tuple

from depmap.constants import FALLBACK_COUPLING_SCORE
from depmap.cycle_detector import CycleInfo
from depmap.graph_model import DependencyEdge, DependencyGraph, ModuleNode

logger = logging.getLogger(__name__)


class SuggestionTiebreak(Enum):
    """Final ordering key for suggestions with equal coupling and cycle size."""

    SOURCE_NAME = "source"
    TARGET_NAME = "target"
    CYCLE_ID = "cycle"


@dataclass(frozen=True)
class CycleBreakingSuggestion:
    """One recommended edge removal.

    Attributes:
        cycle_id: Cycle the edge belongs to
        source: Depending module
        target: Module depended upon
        coupling_score: Coupling of the edge
        cycle_size: Member count of the cycle
        rationale: Human readable explanation
        rank: Global 1-based rank, lower is better
    """

    cycle_id: int
    source: ModuleNode
    target: ModuleNode
    coupling_score: int
    cycle_size: int
    rationale: str
    rank: int = 0

    @property
    def pair(self) -> Tuple[str, str]:
        return (self.source.key, self.target.key)


def effective_coupling(edge: DependencyEdge) -> int:
    """Coupling score of an edge; unscored edges count as minimal coupling."""
    return edge.coupling_score if edge.coupling_score is not None else FALLBACK_COUPLING_SCORE


def format_rationale(cycle_size: int, coupling_score: int) -> str:
    """Explain why an edge is a good cut point.

    >>> format_rationale(3, 1)
    'Weakest link in 3-project cycle, only 1 method call'
    """
    noun = "method call" if coupling_score == 1 else "method calls"
    return f"Weakest link in {cycle_size}-project cycle, only {coupling_score} {noun}"


def cycle_internal_edges(graph: DependencyGraph, cycle: CycleInfo) -> List[DependencyEdge]:
    """Edges whose source and target are both members of the cycle.

    Parallel edges between the same two modules are reported once, as the
    first edge of that pair.
    """
    keys = cycle.member_keys
    edges: Dict[Tuple[str, str], DependencyEdge] = {}
    for member in cycle.members:
        for edge in graph.out_edges(member):
            if edge.target.key in keys and not edge.is_self_loop:
                edges.setdefault(edge.pair, edge)
    return list(edges.values())


def identify_weak_edges(graph: DependencyGraph, cycles: Sequence[CycleInfo]) -> None:
    """Annotate each cycle with its internal edges tied for the lowest coupling.

    Args:
        graph: Graph the cycles were detected on (edges carry coupling scores)
        cycles: Cycles to annotate in place
    """
    for cycle in cycles:
        internal = cycle_internal_edges(graph, cycle)
        # Membership is derived from edges, so every cycle has internal edges
        minimum = min(effective_coupling(edge) for edge in internal)
        cycle.weak_coupling_score = minimum
        cycle.weak_edges = [edge for edge in internal if effective_coupling(edge) == minimum]
        logger.debug(
            "Cycle %d (%d modules): %d weak edge(s) at coupling %d",
            cycle.cycle_id,
            cycle.size,
            len(cycle.weak_edges),
            minimum,
        )


def _tiebreak_key(tiebreak: SuggestionTiebreak) -> Callable[[CycleBreakingSuggestion], tuple]:
    if tiebreak is SuggestionTiebreak.TARGET_NAME:
        return lambda s: (s.target.name.casefold(), s.source.name.casefold())
    if tiebreak is SuggestionTiebreak.CYCLE_ID:
        return lambda s: (s.cycle_id, s.source.name.casefold(), s.target.name.casefold())
    return lambda s: (s.source.name.casefold(), s.target.name.casefold())


def generate_suggestions(
    cycles: Sequence[CycleInfo], tiebreak: SuggestionTiebreak = SuggestionTiebreak.SOURCE_NAME
) -> List[CycleBreakingSuggestion]:
    """Turn every weak edge into a ranked suggestion.

    Suggestions are sorted by coupling score ascending, then cycle size
    descending, then the tiebreak, and ranked 1..N in that order.

    Args:
        cycles: Cycles annotated by identify_weak_edges()
        tiebreak: Final ordering key

    Returns:
        All suggestions in rank order
    """
    suggestions: List[CycleBreakingSuggestion] = []
    for cycle in cycles:
        if cycle.weak_edges is None:
            raise ValueError(f"Cycle {cycle.cycle_id} has not been annotated with weak edges")
        for edge in cycle.weak_edges:
            score = effective_coupling(edge)
            suggestions.append(
                CycleBreakingSuggestion(
                    cycle_id=cycle.cycle_id,
                    source=edge.source,
                    target=edge.target,
                    coupling_score=score,
                    cycle_size=cycle.size,
                    rationale=format_rationale(cycle.size, score),
                )
            )

    tiebreak_key = _tiebreak_key(tiebreak)
    suggestions.sort(key=lambda s: (s.coupling_score, -s.cycle_size) + tiebreak_key(s))
    ranked = [replace(s, rank=rank) for rank, s in enumerate(suggestions, start=1)]

    logger.info("Generated %d cycle-breaking suggestions for %d cycles", len(ranked), len(cycles))
    return ranked


def top_suggestions(suggestions: Sequence[CycleBreakingSuggestion], limit: int) -> List[CycleBreakingSuggestion]:
    """The best `limit` suggestions by rank."""
    return sorted(suggestions, key=lambda s: s.rank)[: max(0, limit)]


def best_suggestion_per_cycle(suggestions: Sequence[CycleBreakingSuggestion]) -> Dict[int, CycleBreakingSuggestion]:
    """Lowest-ranked suggestion of each cycle, keyed by cycle id."""
    best: Dict[int, CycleBreakingSuggestion] = {}
    for suggestion in sorted(suggestions, key=lambda s: s.rank):
        best.setdefault(suggestion.cycle_id, suggestion)
    return best
