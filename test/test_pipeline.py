#!/usr/bin/env python3
"""Tests for depmap/pipeline.py"""

import pytest

from depmap.config import AnalysisSettings, FilterConfig, ScoringWeights
from depmap.constants import DanglingEdgeError
from depmap.graph_model import GraphDescription
from depmap.metrics_runner import CancellationToken
from depmap.pipeline import run_analysis, scorable_modules


class TestRunAnalysis:
    """End-to-end tests of the analysis pipeline."""

    def test_cyclic(self, cyclic_description: GraphDescription) -> None:
        """Test cycles, suggestions and scores on the cyclic fixture."""
        results = run_analysis(cyclic_description, AnalysisSettings())

        assert not results.partial
        assert results.filter_statistics.excluded_modules == ["System.Data"]
        assert results.graph.node_count == 7
        assert results.graph.edge_count == 7
        assert sorted(c.size for c in results.cycles.cycles) == [2, 3]
        assert len(results.suggestions) == 5
        assert [s.rank for s in results.suggestions] == [1, 2, 3, 4, 5]
        assert {s.cycle_size for s in results.suggestions[:3]} == {3}
        assert sorted(s.module_name for s in results.scores) == ["Billing", "Catalog", "Orders", "Pricing", "Reporting", "Stock"]
        assert results.ranking.statistics_consistent()
        assert results.cross_collection_edges == 1
        cross = next(edge for edge in results.graph.edges if edge.is_cross_collection)
        assert (cross.source.name, cross.target.name, cross.collection) == ("Reporting", "Catalog", "Sales")
        assert all(0.0 <= s.final_score <= 100.0 for s in results.scores)

    def test_acyclic(self, framework_description: GraphDescription) -> None:
        """Test that framework references are removed and no cycles found."""
        results = run_analysis(framework_description, AnalysisSettings())

        assert not results.cycles.has_cycles
        assert results.suggestions == []
        assert results.filter_statistics.removed_edges == 3
        assert results.filter_statistics.retained_edges == 2
        assert sorted(s.module_name for s in results.scores) == ["MyApp.Core", "MyApp.Data", "MyApp.Web"]

    def test_version_debt_ordering(self, framework_description: GraphDescription) -> None:
        """Test that older platforms carry more version debt."""
        results = run_analysis(framework_description, AnalysisSettings())
        debt = {s.module_name: s.version_debt.normalized_score for s in results.scores}
        assert debt["MyApp.Core"] > debt["MyApp.Web"]

    def test_allow_list(self, framework_description: GraphDescription) -> None:
        """Test that allow patterns keep blocked modules."""
        settings = AnalysisSettings(filters=FilterConfig(block_patterns=("System.*", "Microsoft.*"), allow_patterns=("Microsoft.Extensions.*",)))
        results = run_analysis(framework_description, settings)
        assert results.filter_statistics.excluded_modules == ["System.Core"]
        assert "Microsoft.Extensions.Logging" in {s.module_name for s in results.scores}

    def test_weights_applied(self, cyclic_description: GraphDescription) -> None:
        """Test that coupling-only weights reproduce the coupling scores."""
        settings = AnalysisSettings(weights=ScoringWeights(1.0, 0.0, 0.0, 0.0))
        results = run_analysis(cyclic_description, settings)
        for score in results.scores:
            assert score.final_score == pytest.approx(score.coupling.normalized_score)

    def test_cancelled(self, cyclic_description: GraphDescription) -> None:
        """Test that a cancelled run is flagged partial."""
        token = CancellationToken()
        token.cancel()
        results = run_analysis(cyclic_description, AnalysisSettings(), cancellation=token)

        assert results.partial
        assert results.scores == []
        assert len(results.metrics.pending) == 6
        assert results.cycles.has_cycles

    def test_invalid_description(self) -> None:
        """Test that dangling dependencies fail the build."""
        description = GraphDescription(modules=[("A", "", "", "")], dependencies=[("A", "Missing", "project")])
        with pytest.raises(DanglingEdgeError):
            run_analysis(description, AnalysisSettings())

    def test_scorable_modules(self, cyclic_description: GraphDescription) -> None:
        """Test that excluded modules are not scored."""
        results = run_analysis(cyclic_description, AnalysisSettings())
        names = [node.name for node in scorable_modules(results.graph, results.filter_statistics)]
        assert "System.Data" not in names
        assert len(names) == 6
