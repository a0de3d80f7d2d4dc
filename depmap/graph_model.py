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
"""Dependency graph model for module-level analysis.

The graph is a directed multigraph of ModuleNode values connected by
DependencyEdge records. Storage and adjacency are delegated to a
networkx.MultiDiGraph keyed by the case-insensitive module key, so node
iteration follows insertion order and in/out edge queries are served from
the adjacency index networkx maintains on every add/remove.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, List, Optional, Tuple, Union

import networkx as nx

from depmap.constants import DanglingEdgeError, DuplicateNodeError

logger = logging.getLogger(__name__)

# Node/edge attribute names used on the backing networkx graph
NODE_ATTR = "module"
EDGE_ATTR = "dependency"


class DependencyKind(Enum):
    """Kind of reference an edge represents."""

    PROJECT_REFERENCE = "project"
    BINARY_REFERENCE = "binary"

    @classmethod
    def parse(cls, value: Union[str, "DependencyKind"]) -> "DependencyKind":
        """Parse a kind tag from a description file.

        Accepts the enum value ("project"/"binary"), the enum name, or the
        long spellings "ProjectReference"/"BinaryReference".
        """
        if isinstance(value, DependencyKind):
            return value
        normalized = str(value).strip().lower().replace("_", "").replace("-", "")
        if normalized in ("project", "projectreference", "module", "modulereference"):
            return cls.PROJECT_REFERENCE
        if normalized in ("binary", "binaryreference", "external", "externalreference", "assembly"):
            return cls.BINARY_REFERENCE
        raise ValueError(f"Unknown dependency kind: {value!r}")


@dataclass(frozen=True)
class ModuleNode:
    """One analyzable unit (a project) in the dependency graph.

    Attributes:
        name: Module name, compared case-insensitively
        path: Filesystem path of the module
        platform: Declared platform/version tag (e.g. "net472", "python3.8")
        collection: Owning collection identifier (e.g. solution or workspace name)
    """

    name: str
    path: str = ""
    platform: str = ""
    collection: str = ""

    @property
    def key(self) -> str:
        """Case-insensitive comparison key."""
        return self.name.casefold()


@dataclass(eq=False)
class DependencyEdge:
    """Directed dependency source -> target.

    Attributes:
        source: Depending module
        target: Module depended upon
        kind: Reference kind
        coupling_score: Call-site count, None until the coupling analyzer runs
        fallback_derived: True when coupling_score is a default, not measured
        collection: Owning collection marker for cross-collection edges
    """

    source: ModuleNode
    target: ModuleNode
    kind: DependencyKind = DependencyKind.PROJECT_REFERENCE
    coupling_score: Optional[int] = None
    fallback_derived: bool = False
    collection: Optional[str] = None

    @property
    def pair(self) -> Tuple[str, str]:
        return (self.source.key, self.target.key)

    @property
    def is_self_loop(self) -> bool:
        return self.source.key == self.target.key

    @property
    def is_cross_collection(self) -> bool:
        source_collection = self.source.collection.casefold()
        target_collection = self.target.collection.casefold()
        return bool(source_collection) and bool(target_collection) and source_collection != target_collection

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DependencyEdge):
            return NotImplemented
        return self.pair == other.pair

    def __hash__(self) -> int:
        return hash(self.pair)

    def __repr__(self) -> str:
        return f"DependencyEdge({self.source.name!r} -> {self.target.name!r}, {self.kind.value}, coupling={self.coupling_score})"


NodeRef = Union[ModuleNode, str]


def _key_of(node: NodeRef) -> str:
    return node.key if isinstance(node, ModuleNode) else node.casefold()


class DependencyGraph:
    """Directed multigraph of modules and dependency edges.

    Built once per analysis run, then progressively filtered. Nodes are never
    removed; edge removal keeps node identity intact so node counts stay
    stable for reporting.
    """

    def __init__(self) -> None:
        self._graph = nx.MultiDiGraph()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def add_node(self, node: ModuleNode) -> None:
        """Add a module node.

        Args:
            node: Module to add

        Raises:
            DuplicateNodeError: If a different module with the same
                case-insensitive name already exists
        """
        existing = self._graph.nodes.get(node.key)
        if existing is not None:
            if existing[NODE_ATTR] == node:
                logger.debug("Ignoring idempotent re-add of module %s", node.name)
                return
            raise DuplicateNodeError(f"Duplicate module name '{node.name}' (collides with '{existing[NODE_ATTR].name}')")
        self._graph.add_node(node.key, **{NODE_ATTR: node})

    def add_edge(self, edge: DependencyEdge) -> None:
        """Add a dependency edge between two existing modules.

        Raises:
            DanglingEdgeError: If either endpoint is not in the graph
        """
        for endpoint in (edge.source, edge.target):
            if endpoint.key not in self._graph:
                raise DanglingEdgeError(f"Edge {edge.source.name} -> {edge.target.name} references unknown module '{endpoint.name}'")
        # Edges always point at the stored node instances
        edge.source = self._graph.nodes[edge.source.key][NODE_ATTR]
        edge.target = self._graph.nodes[edge.target.key][NODE_ATTR]
        self._graph.add_edge(edge.source.key, edge.target.key, **{EDGE_ATTR: edge})

    def remove_edges(self, predicate: Callable[[DependencyEdge], bool]) -> int:
        """Remove all edges matching predicate.

        Args:
            predicate: Called with each edge, True means remove

        Returns:
            Number of edges removed
        """
        doomed = [(u, v, k) for u, v, k, edge in self._graph.edges(keys=True, data=EDGE_ATTR) if predicate(edge)]
        self._graph.remove_edges_from(doomed)
        return len(doomed)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> List[ModuleNode]:
        """All modules in insertion order."""
        return [data for _, data in self._graph.nodes(data=NODE_ATTR)]

    @property
    def edges(self) -> List[DependencyEdge]:
        """All edges, grouped by source in node insertion order."""
        return [edge for _, _, edge in self._graph.edges(data=EDGE_ATTR)]

    @property
    def node_count(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def __len__(self) -> int:
        return self.node_count

    def __contains__(self, node: object) -> bool:
        if not isinstance(node, (ModuleNode, str)):
            return False
        return _key_of(node) in self._graph

    def __iter__(self) -> Iterator[ModuleNode]:
        return iter(self.nodes)

    def has_node(self, node: NodeRef) -> bool:
        return _key_of(node) in self._graph

    def get_node(self, name: str) -> ModuleNode:
        """Look up a module by name (case-insensitive).

        Raises:
            KeyError: If no such module exists
        """
        key = name.casefold()
        if key not in self._graph:
            raise KeyError(name)
        return self._graph.nodes[key][NODE_ATTR]

    def has_edge(self, source: NodeRef, target: NodeRef) -> bool:
        """True if at least one edge source -> target exists, of any kind."""
        return self._graph.has_edge(_key_of(source), _key_of(target))

    def out_edges(self, node: NodeRef) -> List[DependencyEdge]:
        key = _key_of(node)
        if key not in self._graph:
            return []
        return [edge for _, _, edge in self._graph.out_edges(key, data=EDGE_ATTR)]

    def in_edges(self, node: NodeRef) -> List[DependencyEdge]:
        key = _key_of(node)
        if key not in self._graph:
            return []
        return [edge for _, _, edge in self._graph.in_edges(key, data=EDGE_ATTR)]

    def successors(self, node: NodeRef) -> List[ModuleNode]:
        """Distinct direct dependencies of a module, in edge insertion order."""
        key = _key_of(node)
        if key not in self._graph:
            return []
        return [self._graph.nodes[succ][NODE_ATTR] for succ in self._graph.successors(key)]

    def find_orphaned_nodes(self) -> List[ModuleNode]:
        """Modules with neither incoming nor outgoing edges."""
        return [data for key, data in self._graph.nodes(data=NODE_ATTR) if self._graph.degree(key) == 0]

    def to_networkx(self) -> nx.DiGraph:
        """Collapse to a simple DiGraph with plain attributes for export.

        Parallel edges between the same pair are merged; the kept coupling
        score is the sum of their scores.
        """
        simple = nx.DiGraph()
        for node in self.nodes:
            simple.add_node(node.name, path=node.path, platform=node.platform, collection=node.collection)
        for edge in self.edges:
            score = edge.coupling_score or 0
            if simple.has_edge(edge.source.name, edge.target.name):
                simple[edge.source.name][edge.target.name]["coupling"] += score
            else:
                simple.add_edge(edge.source.name, edge.target.name, kind=edge.kind.value, coupling=score)
        return simple


# ----------------------------------------------------------------------
# Graph descriptions
# ----------------------------------------------------------------------


@dataclass
class GraphDescription:
    """Unordered bag of module and edge tuples handed over by ingestion.

    Attributes:
        modules: (name, path, platform, collection) tuples
        dependencies: (source name, target name, kind) tuples
    """

    modules: List[Tuple[str, str, str, str]]
    dependencies: List[Tuple[str, str, str]]


def build_graph(description: GraphDescription) -> DependencyGraph:
    """Build a dependency graph from a loaded description.

    Args:
        description: Module and edge tuples

    Returns:
        Populated DependencyGraph

    Raises:
        DuplicateNodeError: On conflicting module names
        DanglingEdgeError: On edges that reference unknown modules
    """
    graph = DependencyGraph()
    for name, path, platform, collection in description.modules:
        graph.add_node(ModuleNode(name=name, path=path, platform=platform, collection=collection))

    for source_name, target_name, kind in description.dependencies:
        source = _lookup_endpoint(graph, source_name, source_name, target_name)
        target = _lookup_endpoint(graph, target_name, source_name, target_name)
        edge = DependencyEdge(source=source, target=target, kind=DependencyKind.parse(kind))
        if edge.is_cross_collection:
            edge.collection = source.collection
        graph.add_edge(edge)

    logger.info("Built dependency graph: %d modules, %d edges", graph.node_count, graph.edge_count)
    return graph


def _lookup_endpoint(graph: DependencyGraph, name: str, source_name: str, target_name: str) -> ModuleNode:
    try:
        return graph.get_node(name)
    except KeyError:
        raise DanglingEdgeError(f"Edge {source_name} -> {target_name} references unknown module '{name}'") from None

