#!/usr/bin/env python3
"""Tests for depmap/metric_calculators.py and depmap/platform_versions.py"""

import logging

import pytest

from depmap.constants import COMPLEXITY_FALLBACK_SCORE, VERSION_DEBT_FALLBACK_SCORE
from depmap.graph_model import ModuleNode
from depmap.metric_calculators import (
    EXPOSURE_HTTP_ROUTE,
    EXPOSURE_RPC_SERVICE,
    EXPOSURE_WEB_METHOD,
    calculate_complexity_metric,
    calculate_coupling_metrics,
    calculate_exposure_metric,
    calculate_version_debt_metric,
    classify_exposure,
    exposure_score,
    normalize_complexity,
)
from depmap.platform_versions import lookup_version_debt, normalize_platform_tag, parse_platform_tag
from depmap.source_analysis import UNIT_METHOD, UNIT_MODULE, AnalyzableUnit, StaticSourceProvider


class TestCouplingMetric:
    """Tests for calculate_coupling_metrics."""

    def test_incoming_weighted_double(self, make_graph) -> None:
        """Test raw scores and normalization against the maximum."""
        graph = make_graph(["Hub", "A", "B", "Leaf"], [("A", "Hub"), ("B", "Hub"), ("Hub", "Leaf")])
        metrics = calculate_coupling_metrics(graph)

        hub = metrics["hub"]
        assert (hub.incoming_count, hub.outgoing_count, hub.raw_score) == (2, 1, 5)
        assert hub.normalized_score == pytest.approx(100.0)
        assert metrics["a"].raw_score == 1
        assert metrics["a"].normalized_score == pytest.approx(20.0)
        assert metrics["leaf"].normalized_score == pytest.approx(40.0)

    def test_no_edges(self, make_graph) -> None:
        """Test that isolated modules score zero."""
        metrics = calculate_coupling_metrics(make_graph(["A", "B"], []))
        assert all(metric.normalized_score == 0.0 for metric in metrics.values())


class TestComplexity:
    """Tests for the complexity metric."""

    @pytest.mark.parametrize(
        "average,expected",
        [(0, 0.0), (7, 33.0), (15, 66.0), (25, 90.0), (35, 100.0), (100, 100.0), (3.5, 16.5), (11, 49.5)],
    )
    def test_piecewise_scale(self, average: float, expected: float) -> None:
        """Test the fixed complexity scale."""
        assert normalize_complexity(average) == pytest.approx(expected)

    def test_average_over_executable_units(self) -> None:
        """Test that module-level units are not averaged."""
        module = ModuleNode("A")
        provider = StaticSourceProvider(
            {"A": [AnalyzableUnit("f", complexity=3), AnalyzableUnit("g", complexity=11), AnalyzableUnit("<module>", kind=UNIT_MODULE, complexity=0)]}
        )
        metric = calculate_complexity_metric(module, provider)
        assert metric.unit_count == 2
        assert metric.average_complexity == pytest.approx(7.0)
        assert metric.normalized_score == pytest.approx(33.0)
        assert not metric.fallback_used

    def test_fallback_on_failure(self) -> None:
        """Test the neutral fallback when analysis fails."""
        metric = calculate_complexity_metric(ModuleNode("Unknown"), StaticSourceProvider({}))
        assert metric.normalized_score == COMPLEXITY_FALLBACK_SCORE
        assert metric.fallback_used

    def test_fallback_without_provider(self) -> None:
        """Test the neutral fallback without source access."""
        assert calculate_complexity_metric(ModuleNode("A"), None).normalized_score == COMPLEXITY_FALLBACK_SCORE


class TestPlatformTags:
    """Tests for platform tag parsing and version debt."""

    @pytest.mark.parametrize(
        "tag,expected",
        [
            ("net35", 100.0),
            ("net472", 40.0),
            ("net48", 40.0),
            ("v4.7.2", 40.0),
            ("netstandard2.0", 50.0),
            ("netstandard2.1", 35.0),
            ("netcoreapp3.1", 30.0),
            ("net5.0", 20.0),
            ("net6.0-windows", 10.0),
            ("net8.0", 0.0),
            ("net8", 0.0),
            ("NET8.0", 0.0),
            ("net48;net8.0", 40.0),
            ("python2.7", 100.0),
            ("python3.8", 50.0),
            ("py311", 10.0),
            (">=3.12", 0.0),
        ],
    )
    def test_known_tags(self, tag: str, expected: float) -> None:
        """Test debt scores of known monikers."""
        assert lookup_version_debt(tag) == pytest.approx(expected)

    def test_interpolation_between_points(self) -> None:
        """Test that unlisted versions fall between their neighbours."""
        score = lookup_version_debt("netcoreapp2.1")
        assert 30.0 < score < 40.0

    def test_clamped_at_ends(self) -> None:
        """Test that versions beyond the timeline clamp."""
        assert lookup_version_debt("net10.0") == pytest.approx(0.0)
        assert lookup_version_debt("net20") == pytest.approx(100.0)

    @pytest.mark.parametrize("tag", ["", "java11", "unknown", "netfoo"])
    def test_unknown_tags(self, tag: str) -> None:
        """Test that unrecognized tags have no score."""
        assert lookup_version_debt(tag) is None

    def test_normalization(self) -> None:
        """Test tag normalization rules."""
        assert normalize_platform_tag(" v4.8 ") == "net48"
        assert normalize_platform_tag("net9") == "net9.0"
        assert normalize_platform_tag("net48") == "net48"
        assert parse_platform_tag("net6.0").family == "net"
        assert parse_platform_tag("net4.8").family == "netframework"

    def test_metric_fallback(self) -> None:
        """Test the version debt fallback for unknown tags."""
        metric = calculate_version_debt_metric(ModuleNode("A", platform="cobol85"))
        assert metric.normalized_score == VERSION_DEBT_FALLBACK_SCORE
        assert metric.fallback_used
        assert not calculate_version_debt_metric(ModuleNode("B", platform="net8.0")).fallback_used

    def test_unknown_platform_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that an unrecognized platform tag is logged as a warning."""
        with caplog.at_level(logging.WARNING, logger="depmap.metric_calculators"):
            metric = calculate_version_debt_metric(ModuleNode("X", platform="foo99"))
        assert metric.fallback_used
        assert any(record.levelno == logging.WARNING and "foo99" in record.getMessage() for record in caplog.records)

    def test_missing_platform_does_not_warn(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that a module without a platform tag falls back quietly."""
        with caplog.at_level(logging.WARNING, logger="depmap.metric_calculators"):
            metric = calculate_version_debt_metric(ModuleNode("Y"))
        assert metric.fallback_used
        assert metric.normalized_score == VERSION_DEBT_FALLBACK_SCORE
        assert not [record for record in caplog.records if record.levelno >= logging.WARNING]


class TestExposure:
    """Tests for the external exposure metric."""

    @pytest.mark.parametrize("count,expected", [(0, 0.0), (1, 33.0), (5, 33.0), (6, 66.0), (15, 66.0), (16, 100.0), (200, 100.0)])
    def test_steps(self, count: int, expected: float) -> None:
        """Test the stepped exposure scale."""
        assert exposure_score(count) == expected

    def test_decorator_routes(self) -> None:
        """Test route decorators in their common spellings."""
        assert classify_exposure(AnalyzableUnit("f", markers=frozenset({"app.get"}))) == EXPOSURE_HTTP_ROUTE
        assert classify_exposure(AnalyzableUnit("f", markers=frozenset({"HttpPostAttribute"}))) == EXPOSURE_HTTP_ROUTE
        assert classify_exposure(AnalyzableUnit("f", markers=frozenset({"WebMethod"}))) == EXPOSURE_WEB_METHOD
        assert classify_exposure(AnalyzableUnit("f", markers=frozenset({"celery.shared_task"}))) == EXPOSURE_RPC_SERVICE
        assert classify_exposure(AnalyzableUnit("f", markers=frozenset({"staticmethod"}))) is None

    def test_class_based_views(self) -> None:
        """Test verb methods of view classes."""
        view = frozenset({"views.APIView"})
        assert classify_exposure(AnalyzableUnit("V.get", kind=UNIT_METHOD, container_markers=view)) == EXPOSURE_HTTP_ROUTE
        assert classify_exposure(AnalyzableUnit("V.helper", kind=UNIT_METHOD, container_markers=view)) is None

    def test_grpc_servicer(self) -> None:
        """Test public methods of generated gRPC servicers."""
        bases = frozenset({"orders_pb2_grpc.OrdersServicer"})
        assert classify_exposure(AnalyzableUnit("S.Place", kind=UNIT_METHOD, container_markers=bases)) == EXPOSURE_RPC_SERVICE
        assert classify_exposure(AnalyzableUnit("S._private", kind=UNIT_METHOD, container_markers=bases)) is None

    def test_metric_counts_endpoints(self) -> None:
        """Test endpoint counting and breakdown."""
        units = [AnalyzableUnit(f"r{i}", markers=frozenset({"router.post"})) for i in range(6)]
        units.append(AnalyzableUnit("plain"))
        metric = calculate_exposure_metric(ModuleNode("Api"), StaticSourceProvider({"Api": units}))
        assert metric.endpoint_count == 6
        assert metric.normalized_score == 66.0
        assert metric.breakdown[EXPOSURE_HTTP_ROUTE] == 6

    def test_fallback_is_zero(self) -> None:
        """Test that failed exposure analysis assumes no endpoints."""
        metric = calculate_exposure_metric(ModuleNode("Api"), StaticSourceProvider({}))
        assert metric.normalized_score == 0.0
        assert metric.fallback_used
