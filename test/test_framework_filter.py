#!/usr/bin/env python3
"""Tests for depmap/framework_filter.py"""

import pytest

from depmap.constants import ConfigurationError
from depmap.framework_filter import filter_graph, is_excluded, matches_pattern, validate_patterns
from depmap.graph_model import build_graph


class TestMatchesPattern:
    """Tests for glob matching of module names."""

    def test_prefix_wildcard(self) -> None:
        """Test that 'System.*' matches System modules."""
        assert matches_pattern("System.Core", "System.*")
        assert matches_pattern("System.Collections.Generic", "System.*")

    def test_anchored_on_full_name(self) -> None:
        """Test that a pattern does not match inside another name."""
        assert not matches_pattern("MySystem.Core", "System.*")

    def test_case_insensitive(self) -> None:
        """Test case-insensitive matching."""
        assert matches_pattern("system.core", "System.*")
        assert matches_pattern("MSCORLIB", "mscorlib")

    def test_question_mark(self) -> None:
        """Test single character wildcard."""
        assert matches_pattern("Lib1", "Lib?")
        assert not matches_pattern("Lib12", "Lib?")
        assert matches_pattern("netstandard", "netstandar?")
        assert not matches_pattern("Lib", "Lib?")


class TestIsExcluded:
    """Tests for block/allow precedence."""

    def test_allow_overrides_block(self) -> None:
        """Test that allow patterns win over block patterns."""
        assert not is_excluded("System.MyCompany.Tools", ["System.*"], ["System.MyCompany.*"])
        assert is_excluded("System.Core", ["System.*"], ["System.MyCompany.*"])

    def test_not_blocked(self) -> None:
        """Test that unmatched modules are kept."""
        assert not is_excluded("MyApp.Core", ["System.*"], [])


class TestValidatePatterns:
    """Tests for pattern validation."""

    @pytest.mark.parametrize("pattern", ["", "   ", 42, None, "System.[ab]*"])
    def test_malformed(self, pattern: object) -> None:
        """Test that malformed patterns raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            validate_patterns([pattern], "BlockList")

    def test_strips_whitespace(self) -> None:
        """Test that valid patterns are returned trimmed."""
        assert validate_patterns([" System.* "]) == ["System.*"]


class TestFilterGraph:
    """Tests for filter_graph."""

    def test_system_references_removed(self, framework_description) -> None:
        """Test that edges touching System.Core are removed and custom edges kept."""
        graph = build_graph(framework_description)
        stats = filter_graph(graph, ["System.*"], [])

        assert stats.removed_edges == 2
        assert stats.retained_edges == 3
        assert stats.excluded_modules == ["System.Core"]
        assert all("System.Core" not in (edge.source.name, edge.target.name) for edge in graph.edges)
        assert graph.has_edge("MyApp.Web", "MyApp.Core")
        assert graph.has_edge("MyApp.Core", "MyApp.Data")

    def test_nodes_are_kept(self, framework_description) -> None:
        """Test that excluded modules stay in the graph."""
        graph = build_graph(framework_description)
        filter_graph(graph, ["System.*", "Microsoft.*"], [])
        assert graph.node_count == 5
        assert graph.edge_count == 2

    def test_statistics(self, framework_description) -> None:
        """Test percentages and per-pattern counts."""
        graph = build_graph(framework_description)
        stats = filter_graph(graph, ["System.*", "Microsoft.*", "mscorlib"], [])

        assert stats.total_edges == 5
        assert stats.removed_percentage == pytest.approx(60.0)
        assert stats.retained_percentage == pytest.approx(40.0)
        assert stats.by_pattern == {"System.*": 1, "Microsoft.*": 1}
        assert stats.unused_patterns == ["mscorlib"]

    def test_overlapping_patterns_all_counted(self, framework_description) -> None:
        """Test that a module matching several block patterns counts for each."""
        graph = build_graph(framework_description)
        stats = filter_graph(graph, ["System.*", "System.Core"], [])

        assert stats.excluded_modules == ["System.Core"]
        assert stats.by_pattern == {"System.*": 1, "System.Core": 1}
        assert stats.unused_patterns == []

    def test_empty_block_list(self, framework_description) -> None:
        """Test that no patterns means nothing is removed."""
        graph = build_graph(framework_description)
        stats = filter_graph(graph, [], [])
        assert stats.removed_edges == 0
        assert stats.retained_edges == 5
        assert stats.retained_percentage == pytest.approx(100.0)

    def test_allow_list_keeps_edges(self, framework_description) -> None:
        """Test that allow-listed framework modules keep their edges."""
        graph = build_graph(framework_description)
        stats = filter_graph(graph, ["System.*"], ["System.Core"])
        assert stats.removed_edges == 0

    def test_concise_format(self, framework_description) -> None:
        """Test the concise summary line mentions the edge counts."""
        graph = build_graph(framework_description)
        stats = filter_graph(graph, ["System.*"], [])
        line = stats.format_concise()
        assert "5" in line and "3" in line and "40.0%" in line
