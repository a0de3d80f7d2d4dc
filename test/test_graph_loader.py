#!/usr/bin/env python3
"""Tests for depmap/graph_loader.py"""

import json
from pathlib import Path

import pytest

from depmap.constants import GraphLoadError
from depmap.export_utils import export_dependency_graph
from depmap.graph_loader import GraphMLStrategy, JsonDescriptionStrategy, load_graph_description, merge_descriptions, try_strategies
from depmap.graph_model import GraphDescription, build_graph


def _write_json(path: Path, data: object) -> str:
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


class TestJsonStrategy:
    """Tests for the JSON description format."""

    def test_load(self, tmp_path: Path) -> None:
        """Test modules, dependency kinds and path resolution."""
        filename = _write_json(
            tmp_path / "backend.json",
            {
                "modules": [
                    {"name": "Orders.Api", "path": "src/api", "platform": "net8.0"},
                    {"name": "Orders.Core", "path": "/abs/core", "collection": "Shared"},
                    "Orders.Tools",
                ],
                "dependencies": [
                    {"source": "Orders.Api", "target": "Orders.Core"},
                    {"source": "Orders.Api", "target": "Orders.Tools", "kind": "BinaryReference"},
                ],
            },
        )
        description = load_graph_description([filename])

        assert description.modules[0] == ("Orders.Api", str(tmp_path / "src/api"), "net8.0", "backend")
        assert description.modules[1] == ("Orders.Core", "/abs/core", "", "Shared")
        assert description.modules[2] == ("Orders.Tools", "", "", "backend")
        assert description.dependencies == [("Orders.Api", "Orders.Core", "project"), ("Orders.Api", "Orders.Tools", "binary")]

    def test_collection_key(self, tmp_path: Path) -> None:
        """Test that a top-level collection overrides the file name."""
        filename = _write_json(tmp_path / "x.json", {"collection": "Backend", "modules": ["A"]})
        assert load_graph_description([filename]).modules == [("A", "", "", "Backend")]

    def test_rejects_other_suffix(self, tmp_path: Path) -> None:
        """Test that the strategy declines non-JSON files."""
        path = tmp_path / "graph.graphml"
        path.write_text("<graphml/>", encoding="utf-8")
        attempt = JsonDescriptionStrategy().attempt(path)
        assert not attempt.ok
        assert "not a .json file" in attempt.reason

    def test_unknown_kind(self, tmp_path: Path) -> None:
        """Test that an unknown dependency kind fails the load."""
        filename = _write_json(
            tmp_path / "bad.json", {"modules": ["A", "B"], "dependencies": [{"source": "A", "target": "B", "kind": "weird"}]}
        )
        with pytest.raises(GraphLoadError, match="weird"):
            load_graph_description([filename])


class TestGraphMLStrategy:
    """Tests for loading exported GraphML."""

    def test_roundtrip(self, tmp_path: Path, framework_description: GraphDescription) -> None:
        """Test that an exported graph loads back with its attributes."""
        graph = build_graph(framework_description)
        filename = str(tmp_path / "graph.graphml")
        assert export_dependency_graph(filename, graph)

        description = load_graph_description([filename])

        assert sorted(m[0] for m in description.modules) == sorted(m[0] for m in framework_description.modules)
        web = next(m for m in description.modules if m[0] == "MyApp.Web")
        assert web[2] == "net8.0"
        assert web[3] == "Backend"
        assert sorted(description.dependencies) == sorted(framework_description.dependencies)

    def test_invalid_xml(self, tmp_path: Path) -> None:
        """Test that broken GraphML is reported as a failed attempt."""
        path = tmp_path / "broken.graphml"
        path.write_text("<graphml><node", encoding="utf-8")
        attempt = GraphMLStrategy().attempt(path)
        assert not attempt.ok


class TestLoadGraphDescription:
    """Tests for strategy selection and merging."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing input raises GraphLoadError."""
        with pytest.raises(GraphLoadError, match="not found"):
            load_graph_description([str(tmp_path / "missing.json")])

    def test_unknown_format_lists_reasons(self, tmp_path: Path) -> None:
        """Test that the error names every failed strategy."""
        path = tmp_path / "graph.txt"
        path.write_text("A -> B", encoding="utf-8")
        with pytest.raises(GraphLoadError) as info:
            load_graph_description([str(path)])
        assert "json:" in str(info.value)
        assert "graphml:" in str(info.value)

    def test_first_success_wins(self, tmp_path: Path) -> None:
        """Test that strategies after a success are not tried."""
        filename = _write_json(tmp_path / "a.json", {"modules": ["A"]})
        attempts = try_strategies(Path(filename), [JsonDescriptionStrategy(), GraphMLStrategy()])
        assert [a.strategy for a in attempts] == ["json"]
        assert attempts[0].ok

    def test_no_strategies(self, tmp_path: Path) -> None:
        """Test loading with an empty strategy list."""
        filename = _write_json(tmp_path / "a.json", {"modules": ["A"]})
        with pytest.raises(GraphLoadError, match="no strategies"):
            load_graph_description([filename], strategies=[])

    def test_merge_deduplicates(self) -> None:
        """Test that repeated modules and dependencies are kept once."""
        first = GraphDescription(modules=[("A", "p/a", "", "one"), ("B", "", "", "one")], dependencies=[("A", "B", "project")])
        second = GraphDescription(modules=[("a", "p/a", "", "two"), ("C", "", "", "two")], dependencies=[("a", "b", "project"), ("C", "A", "project")])

        merged = merge_descriptions([first, second])

        assert merged.modules == [("A", "p/a", "", "one"), ("B", "", "", "one"), ("C", "", "", "two")]
        assert merged.dependencies == [("A", "B", "project"), ("C", "A", "project")]
