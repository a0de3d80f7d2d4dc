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
"""Framework reference filtering.

Removes dependency edges that touch framework/runtime modules (System.*,
Microsoft.*, ...) so the analysis focuses on the codebase's own modules.
Matching is glob-style, case-insensitive and anchored on the full name.
"""

import fnmatch
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import DefaultDict, Dict, Iterable, List, Sequence

from depmap.color_utils import Colors
from depmap.constants import ConfigurationError
from depmap.graph_model import DependencyEdge, DependencyGraph

logger = logging.getLogger(__name__)

# Character classes are not part of the supported pattern syntax
_UNSUPPORTED_PATTERN_CHARS = "[]"


@dataclass
class FilterStatistics:
    """Outcome of a framework filter pass.

    Attributes:
        removed_edges: Number of edges removed
        retained_edges: Number of edges left in the graph
        excluded_modules: Names of modules classified as excluded
        by_pattern: Block pattern -> number of excluded modules it matched
        unused_patterns: Block patterns that matched nothing
    """

    removed_edges: int = 0
    retained_edges: int = 0
    excluded_modules: List[str] = field(default_factory=list)
    by_pattern: Dict[str, int] = field(default_factory=dict)
    unused_patterns: List[str] = field(default_factory=list)

    @property
    def total_edges(self) -> int:
        return self.removed_edges + self.retained_edges

    @property
    def removed_percentage(self) -> float:
        return self.removed_edges / self.total_edges * 100 if self.total_edges else 0.0

    @property
    def retained_percentage(self) -> float:
        return self.retained_edges / self.total_edges * 100 if self.total_edges else 0.0

    def format_concise(self) -> str:
        """Format concise single-line summary.

        Returns:
            Formatted string like "120 → 45 edges | Removed: 75 framework (62.5%)"
        """
        line = f"{Colors.CYAN}{self.total_edges:,}{Colors.RESET} → {Colors.CYAN}{self.retained_edges:,}{Colors.RESET} edges"
        if self.removed_edges:
            line += f" | {Colors.DIM}Removed:{Colors.RESET} {Colors.CYAN}{self.removed_edges}{Colors.RESET} framework ({self.removed_percentage:.1f}%)"
        return line


def validate_patterns(patterns: Iterable[object], label: str = "pattern") -> List[str]:
    """Validate a list of glob patterns.

    Args:
        patterns: Candidate patterns
        label: Name used in error messages (e.g. "BlockList")

    Returns:
        The patterns as a list of strings

    Raises:
        ConfigurationError: If a pattern is not a non-empty string or uses
            unsupported character-class syntax
    """
    validated = []
    for pattern in patterns:
        if not isinstance(pattern, str) or not pattern.strip():
            raise ConfigurationError(f"Malformed {label} entry: {pattern!r} (expected a non-empty string)")
        if any(char in pattern for char in _UNSUPPORTED_PATTERN_CHARS):
            raise ConfigurationError(f"Malformed {label} entry: {pattern!r} (only '*' and '?' wildcards are supported)")
        validated.append(pattern.strip())
    return validated


def matches_pattern(name: str, pattern: str) -> bool:
    """Check whether a module name matches a glob pattern.

    The match is case-insensitive and covers the whole name:
    "System.*" matches "System.Core" but not "MySystem.Core".
    Besides "*", a "?" matches exactly one character.
    """
    return fnmatch.fnmatchcase(name.casefold(), pattern.casefold())


def is_excluded(name: str, block_patterns: Sequence[str], allow_patterns: Sequence[str]) -> bool:
    """Decide whether a module is a filtered-out framework module.

    A module is excluded if it matches any block pattern and no allow
    pattern. Allow patterns always win.
    """
    if not any(matches_pattern(name, pattern) for pattern in block_patterns):
        return False
    return not any(matches_pattern(name, pattern) for pattern in allow_patterns)


def filter_graph(graph: DependencyGraph, block_patterns: Sequence[str], allow_patterns: Sequence[str]) -> FilterStatistics:
    """Remove all edges touching excluded modules.

    Modules stay in the graph so node counts remain stable for reporting.

    Args:
        graph: Graph to filter in place
        block_patterns: Glob patterns of modules to exclude
        allow_patterns: Glob patterns that override block patterns

    Returns:
        FilterStatistics with removed/retained edge counts
    """
    stats = FilterStatistics()
    if not block_patterns:
        stats.retained_edges = graph.edge_count
        return stats

    pattern_counts: DefaultDict[str, int] = defaultdict(int)
    excluded_keys = set()
    for node in graph.nodes:
        if not is_excluded(node.name, block_patterns, allow_patterns):
            continue
        excluded_keys.add(node.key)
        stats.excluded_modules.append(node.name)
        for pattern in block_patterns:
            if matches_pattern(node.name, pattern):
                pattern_counts[pattern] += 1

    def touches_excluded(edge: DependencyEdge) -> bool:
        return edge.source.key in excluded_keys or edge.target.key in excluded_keys

    stats.removed_edges = graph.remove_edges(touches_excluded)
    stats.retained_edges = graph.edge_count
    stats.by_pattern = {pattern: pattern_counts[pattern] for pattern in block_patterns if pattern_counts[pattern] > 0}
    stats.unused_patterns = [pattern for pattern in block_patterns if pattern_counts[pattern] == 0]

    logger.info(
        "Framework filter removed %d edges (%.1f%%), retained %d edges (%.1f%%)",
        stats.removed_edges,
        stats.removed_percentage,
        stats.retained_edges,
        stats.retained_percentage,
    )
    for pattern, count in stats.by_pattern.items():
        logger.debug("Pattern '%s' excluded %d modules", pattern, count)

    return stats
