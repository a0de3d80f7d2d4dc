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
"""Circular dependency detection.

Cycles are the strongly connected components (SCCs) of the dependency graph
with more than one member. SCCs are found with an iterative formulation of
Tarjan's algorithm so that deep dependency chains cannot exhaust the Python
recursion limit. Visiting nodes in graph insertion order makes cycle ids
reproducible between runs.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterator, List, Optional, Tuple

from depmap.graph_model import DependencyEdge, DependencyGraph, ModuleNode

logger = logging.getLogger(__name__)


@dataclass
class CycleInfo:
    """One circular dependency (an SCC with more than one member).

    Attributes:
        cycle_id: 1-based identifier in detection order
        members: Member modules in graph insertion order
        weak_edges: Internal edges tied for the lowest coupling score,
            None until identify_weak_edges() annotates the cycle
        weak_coupling_score: Coupling score shared by the weak edges
    """

    cycle_id: int
    members: Tuple[ModuleNode, ...]
    weak_edges: Optional[List[DependencyEdge]] = None
    weak_coupling_score: Optional[int] = None

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def member_keys(self) -> FrozenSet[str]:
        return frozenset(member.key for member in self.members)

    @property
    def member_names(self) -> List[str]:
        return [member.name for member in self.members]

    def contains(self, node: ModuleNode) -> bool:
        return node.key in self.member_keys

    def contains_edge(self, edge: DependencyEdge) -> bool:
        """True if both endpoints of the edge are cycle members."""
        keys = self.member_keys
        return edge.source.key in keys and edge.target.key in keys


@dataclass
class CycleStatistics:
    """Aggregate cycle statistics.

    Attributes:
        total_cycles: Number of detected cycles
        modules_in_cycles: Distinct modules appearing in any cycle
        total_modules: Number of modules in the analyzed graph
        participation_rate: modules_in_cycles / total_modules in percent, one decimal
        largest_cycle_size: Member count of the largest cycle (0 without cycles)
    """

    total_cycles: int = 0
    modules_in_cycles: int = 0
    total_modules: int = 0
    participation_rate: float = 0.0
    largest_cycle_size: int = 0


@dataclass
class CycleDetectionResult:
    """Cycles in detection order plus statistics and diagnostics."""

    cycles: List[CycleInfo] = field(default_factory=list)
    statistics: CycleStatistics = field(default_factory=CycleStatistics)
    self_loops: List[ModuleNode] = field(default_factory=list)

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycles)


def find_strongly_connected_components(graph: DependencyGraph) -> Iterator[List[str]]:
    """Yield the strongly connected components of the graph as lists of node keys.

    Iterative Tarjan: an explicit work stack of (node, successor iterator)
    frames replaces recursion. Components are yielded in the order Tarjan's
    algorithm completes them.

    Args:
        graph: Dependency graph to analyze

    Yields:
        One list of node keys per SCC, including singletons
    """
    index: Dict[str, int] = {}
    lowlink: Dict[str, int] = {}
    on_stack = set()
    scc_stack: List[str] = []
    counter = 0

    def successors(key: str) -> Iterator[str]:
        return iter([node.key for node in graph.successors(key)])

    for root in graph.nodes:
        if root.key in index:
            continue

        index[root.key] = lowlink[root.key] = counter
        counter += 1
        scc_stack.append(root.key)
        on_stack.add(root.key)
        work = [(root.key, successors(root.key))]

        while work:
            current, neighbors = work[-1]
            descended = False
            for neighbor in neighbors:
                if neighbor not in index:
                    index[neighbor] = lowlink[neighbor] = counter
                    counter += 1
                    scc_stack.append(neighbor)
                    on_stack.add(neighbor)
                    work.append((neighbor, successors(neighbor)))
                    descended = True
                    break
                if neighbor in on_stack:
                    lowlink[current] = min(lowlink[current], index[neighbor])
            if descended:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[current])

            if lowlink[current] == index[current]:
                component = []
                while True:
                    member = scc_stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == current:
                        break
                yield component


def calculate_cycle_statistics(cycles: List[CycleInfo], total_modules: int) -> CycleStatistics:
    """Compute aggregate statistics for a list of cycles.

    A module that belongs to several cycles is counted once.
    """
    distinct = set()
    for cycle in cycles:
        distinct.update(cycle.member_keys)

    participation = round(len(distinct) / total_modules * 100, 1) if total_modules > 0 else 0.0
    return CycleStatistics(
        total_cycles=len(cycles),
        modules_in_cycles=len(distinct),
        total_modules=total_modules,
        participation_rate=participation,
        largest_cycle_size=max((cycle.size for cycle in cycles), default=0),
    )


def detect_cycles(graph: DependencyGraph) -> CycleDetectionResult:
    """Detect circular dependencies.

    Args:
        graph: Filtered dependency graph

    Returns:
        CycleDetectionResult with cycles numbered from 1 in discovery order
    """
    position = {node.key: i for i, node in enumerate(graph.nodes)}
    nodes = {node.key: node for node in graph.nodes}

    cycles: List[CycleInfo] = []
    for component in find_strongly_connected_components(graph):
        if len(component) < 2:
            continue
        members = tuple(nodes[key] for key in sorted(component, key=position.__getitem__))
        cycles.append(CycleInfo(cycle_id=len(cycles) + 1, members=members))

    self_loops: List[ModuleNode] = []
    for edge in graph.edges:
        if edge.is_self_loop and edge.source not in self_loops:
            self_loops.append(edge.source)

    statistics = calculate_cycle_statistics(cycles, graph.node_count)
    logger.info(
        "Detected %d cycles covering %d of %d modules (%.1f%%), largest cycle: %d",
        statistics.total_cycles,
        statistics.modules_in_cycles,
        statistics.total_modules,
        statistics.participation_rate,
        statistics.largest_cycle_size,
    )
    if self_loops:
        logger.debug("Ignoring %d self-referencing modules: %s", len(self_loops), ", ".join(node.name for node in self_loops))

    return CycleDetectionResult(cycles=cycles, statistics=statistics, self_loops=self_loops)
