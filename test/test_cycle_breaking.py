#!/usr/bin/env python3
"""Tests for depmap/cycle_breaking.py"""

import pytest

from depmap.cycle_breaking import (
    SuggestionTiebreak,
    best_suggestion_per_cycle,
    format_rationale,
    generate_suggestions,
    identify_weak_edges,
    top_suggestions,
)
from depmap.cycle_detector import detect_cycles
from depmap.graph_model import DependencyEdge, DependencyKind


def _suggest(graph, tiebreak=SuggestionTiebreak.SOURCE_NAME):
    cycles = detect_cycles(graph).cycles
    identify_weak_edges(graph, cycles)
    return cycles, generate_suggestions(cycles, tiebreak)


class TestFormatRationale:
    """Tests for the rationale text."""

    def test_plural(self) -> None:
        """Test the plural wording."""
        assert format_rationale(3, 3) == "Weakest link in 3-project cycle, only 3 method calls"

    def test_singular(self) -> None:
        """Test the singular wording for one call."""
        assert format_rationale(2, 1) == "Weakest link in 2-project cycle, only 1 method call"


class TestWeakEdges:
    """Tests for identify_weak_edges."""

    def test_all_tied_edges_are_weak(self, triangle_graph) -> None:
        """Test that every edge tied at the minimum is flagged."""
        cycles, suggestions = _suggest(triangle_graph)
        assert len(cycles[0].weak_edges) == 3
        assert cycles[0].weak_coupling_score == 3
        assert len(suggestions) == 3
        assert all(s.coupling_score == 3 for s in suggestions)
        assert all(s.rationale == "Weakest link in 3-project cycle, only 3 method calls" for s in suggestions)

    def test_single_minimum(self, make_graph) -> None:
        """Test that only the weakest edge is suggested."""
        graph = make_graph(["X", "Y"], [("X", "Y"), ("Y", "X")], {("X", "Y"): 1, ("Y", "X"): 12})
        cycles, suggestions = _suggest(graph)
        assert [(s.source.name, s.target.name) for s in suggestions] == [("X", "Y")]
        assert suggestions[0].rationale.endswith("only 1 method call")

    def test_unscored_edges_count_as_one(self, make_graph) -> None:
        """Test that edges without a coupling score use the minimal score."""
        graph = make_graph(["X", "Y"], [("X", "Y"), ("Y", "X")], {("X", "Y"): 4})
        _, suggestions = _suggest(graph)
        assert [(s.source.name, s.coupling_score) for s in suggestions] == [("Y", 1)]

    def test_edges_leaving_the_cycle_are_ignored(self, make_graph) -> None:
        """Test that only internal edges are candidates."""
        graph = make_graph(
            ["A", "B", "Out"],
            [("A", "B"), ("B", "A"), ("A", "Out")],
            {("A", "B"): 5, ("B", "A"): 6, ("A", "Out"): 1},
        )
        _, suggestions = _suggest(graph)
        assert [(s.source.name, s.target.name) for s in suggestions] == [("A", "B")]

    def test_parallel_edges_suggested_once(self, make_graph) -> None:
        """Test that a project and a binary reference between two modules yield one suggestion."""
        graph = make_graph(["A", "B"], [("A", "B"), ("B", "A")], {("A", "B"): 2, ("B", "A"): 2})
        graph.add_edge(DependencyEdge(source=graph.get_node("A"), target=graph.get_node("B"), kind=DependencyKind.BINARY_REFERENCE, coupling_score=2))
        assert graph.edge_count == 3

        cycles, suggestions = _suggest(graph)
        assert len(cycles[0].weak_edges) == 2
        assert [(s.source.name, s.target.name) for s in suggestions] == [("A", "B"), ("B", "A")]
        assert [s.rank for s in suggestions] == [1, 2]

    def test_unannotated_cycles_rejected(self, triangle_graph) -> None:
        """Test that suggestions require annotated cycles."""
        cycles = detect_cycles(triangle_graph).cycles
        with pytest.raises(ValueError):
            generate_suggestions(cycles)


class TestRanking:
    """Tests for global suggestion ranking."""

    def _two_cycles(self, make_graph):
        return make_graph(
            ["P", "Q", "A", "B", "C"],
            [("P", "Q"), ("Q", "P"), ("A", "B"), ("B", "C"), ("C", "A")],
            {("P", "Q"): 2, ("Q", "P"): 9, ("A", "B"): 2, ("B", "C"): 7, ("C", "A"): 1},
        )

    def test_lower_coupling_ranks_first(self, make_graph) -> None:
        """Test ordering by coupling, then by larger cycle."""
        _, suggestions = _suggest(self._two_cycles(make_graph))
        assert [(s.source.name, s.target.name) for s in suggestions] == [("C", "A"), ("P", "Q")]
        assert [s.rank for s in suggestions] == [1, 2]

    def test_larger_cycle_wins_ties(self, make_graph) -> None:
        """Test that equal coupling prefers the larger cycle."""
        graph = make_graph(
            ["P", "Q", "A", "B", "C"],
            [("P", "Q"), ("Q", "P"), ("A", "B"), ("B", "C"), ("C", "A")],
            {("P", "Q"): 2, ("Q", "P"): 9, ("A", "B"): 2, ("B", "C"): 7, ("C", "A"): 5},
        )
        _, suggestions = _suggest(graph)
        assert [s.cycle_size for s in suggestions] == [3, 2]

    def test_source_name_tiebreak(self, triangle_graph) -> None:
        """Test the default alphabetical tiebreak by source."""
        _, suggestions = _suggest(triangle_graph)
        assert [s.source.name for s in suggestions] == ["A", "B", "C"]

    def test_target_name_tiebreak(self, triangle_graph) -> None:
        """Test the tiebreak by target name."""
        _, suggestions = _suggest(triangle_graph, SuggestionTiebreak.TARGET_NAME)
        assert [s.target.name for s in suggestions] == ["A", "B", "C"]

    def test_top_and_best(self, make_graph) -> None:
        """Test top-N selection and best suggestion per cycle."""
        _, suggestions = _suggest(self._two_cycles(make_graph))
        assert len(top_suggestions(suggestions, 1)) == 1
        assert top_suggestions(suggestions, 0) == []
        best = best_suggestion_per_cycle(suggestions)
        assert set(best) == {1, 2}
        assert all(best[s.cycle_id].rank <= s.rank for s in suggestions)
