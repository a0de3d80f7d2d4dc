#!/usr/bin/env python3
"""Tests for depmap/graph_model.py"""

import pytest

from depmap.constants import DanglingEdgeError, DuplicateNodeError, GraphBuildError
from depmap.graph_model import DependencyEdge, DependencyGraph, DependencyKind, GraphDescription, ModuleNode, build_graph


class TestModuleNode:
    """Tests for ModuleNode value semantics."""

    def test_key_is_case_insensitive(self) -> None:
        """Test that names differing only in case share a key."""
        assert ModuleNode("MyApp.Core").key == ModuleNode("myapp.core").key

    def test_is_immutable(self) -> None:
        """Test that nodes cannot be modified."""
        node = ModuleNode("A")
        with pytest.raises(AttributeError):
            node.name = "B"  # type: ignore[misc]


class TestDependencyKind:
    """Tests for DependencyKind.parse."""

    @pytest.mark.parametrize("value", ["project", "ProjectReference", "PROJECT_REFERENCE", "module"])
    def test_project_spellings(self, value: str) -> None:
        """Test the accepted project reference spellings."""
        assert DependencyKind.parse(value) is DependencyKind.PROJECT_REFERENCE

    @pytest.mark.parametrize("value", ["binary", "BinaryReference", "assembly"])
    def test_binary_spellings(self, value: str) -> None:
        """Test the accepted binary reference spellings."""
        assert DependencyKind.parse(value) is DependencyKind.BINARY_REFERENCE

    def test_unknown_kind(self) -> None:
        """Test that unknown kinds are rejected."""
        with pytest.raises(ValueError):
            DependencyKind.parse("nuget")


class TestDependencyEdge:
    """Tests for edge identity and properties."""

    def test_equality_ignores_kind_and_coupling(self) -> None:
        """Test that edges compare by endpoints only."""
        a, b = ModuleNode("A"), ModuleNode("B")
        first = DependencyEdge(a, b, DependencyKind.PROJECT_REFERENCE, coupling_score=3)
        second = DependencyEdge(a, b, DependencyKind.BINARY_REFERENCE)
        assert first == second
        assert hash(first) == hash(second)

    def test_cross_collection(self) -> None:
        """Test cross-collection detection."""
        a = ModuleNode("A", collection="Backend")
        b = ModuleNode("B", collection="backend")
        c = ModuleNode("C", collection="Frontend")
        d = ModuleNode("D")
        assert not DependencyEdge(a, b).is_cross_collection
        assert DependencyEdge(a, c).is_cross_collection
        assert not DependencyEdge(a, d).is_cross_collection

    def test_self_loop(self) -> None:
        """Test self-loop detection is case-insensitive."""
        assert DependencyEdge(ModuleNode("A"), ModuleNode("a")).is_self_loop


class TestDependencyGraph:
    """Tests for DependencyGraph construction and queries."""

    def test_duplicate_node_raises(self) -> None:
        """Test that a different node with a colliding name is rejected."""
        graph = DependencyGraph()
        graph.add_node(ModuleNode("Core", path="a"))
        with pytest.raises(DuplicateNodeError):
            graph.add_node(ModuleNode("core", path="b"))

    def test_identical_readd_is_noop(self) -> None:
        """Test that re-adding the identical node is idempotent."""
        graph = DependencyGraph()
        graph.add_node(ModuleNode("Core", path="a"))
        graph.add_node(ModuleNode("Core", path="a"))
        assert graph.node_count == 1

    def test_dangling_edge_raises(self) -> None:
        """Test that edges must reference existing nodes."""
        graph = DependencyGraph()
        graph.add_node(ModuleNode("A"))
        with pytest.raises(DanglingEdgeError):
            graph.add_edge(DependencyEdge(ModuleNode("A"), ModuleNode("Missing")))

    def test_structural_errors_are_graph_build_errors(self) -> None:
        """Test the error hierarchy."""
        assert issubclass(DuplicateNodeError, GraphBuildError)
        assert issubclass(DanglingEdgeError, GraphBuildError)

    def test_parallel_edges_are_kept(self, make_graph) -> None:
        """Test that the multigraph keeps parallel references."""
        graph = make_graph(["A", "B"], [("A", "B"), ("A", "B")])
        assert graph.edge_count == 2
        assert graph.successors("A") == [graph.get_node("B")]

    def test_nodes_in_insertion_order(self, make_graph) -> None:
        """Test that node iteration follows insertion order."""
        graph = make_graph(["Zeta", "Alpha", "Mid"], [])
        assert [node.name for node in graph.nodes] == ["Zeta", "Alpha", "Mid"]

    def test_in_and_out_edges(self, make_graph) -> None:
        """Test adjacency queries."""
        graph = make_graph(["A", "B", "C"], [("A", "B"), ("C", "B")])
        assert len(graph.in_edges("B")) == 2
        assert len(graph.out_edges("B")) == 0
        assert graph.has_edge("a", "b")
        assert not graph.has_edge("B", "A")
        assert graph.in_edges("Unknown") == []

    def test_remove_edges_keeps_nodes(self, make_graph) -> None:
        """Test that removing edges never removes nodes."""
        graph = make_graph(["A", "B", "C"], [("A", "B"), ("B", "C")])
        removed = graph.remove_edges(lambda edge: edge.target.name == "C")
        assert removed == 1
        assert graph.node_count == 3
        assert graph.edge_count == 1
        assert graph.find_orphaned_nodes() == [graph.get_node("C")]

    def test_contains_and_get_node(self, make_graph) -> None:
        """Test membership and lookup by name."""
        graph = make_graph(["A"], [])
        assert "a" in graph
        assert ModuleNode("A") in graph
        assert 42 not in graph
        assert graph.has_node("A") and not graph.has_node("B")
        with pytest.raises(KeyError):
            graph.get_node("B")

    def test_to_networkx_sums_parallel_coupling(self, make_graph) -> None:
        """Test that export collapses parallel edges."""
        graph = make_graph(["A", "B"], [("A", "B"), ("A", "B")], {("A", "B"): 2})
        simple = graph.to_networkx()
        assert simple.number_of_edges() == 1
        assert simple["A"]["B"]["coupling"] == 4
        assert simple["A"]["B"]["kind"] == "project"


class TestBuildGraph:
    """Tests for build_graph."""

    def test_builds_from_description(self) -> None:
        """Test node and edge creation from tuples."""
        description = GraphDescription(
            modules=[("A", "src/a", "net8.0", "S"), ("B", "", "", "S")],
            dependencies=[("A", "b", "binary")],
        )
        graph = build_graph(description)
        assert graph.node_count == 2
        edge = graph.edges[0]
        assert edge.kind is DependencyKind.BINARY_REFERENCE
        assert edge.target.name == "B"
        assert edge.coupling_score is None

    def test_unknown_endpoint(self) -> None:
        """Test that descriptions with dangling references fail."""
        description = GraphDescription(modules=[("A", "", "", "")], dependencies=[("A", "Nope", "project")])
        with pytest.raises(DanglingEdgeError):
            build_graph(description)
