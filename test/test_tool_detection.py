#!/usr/bin/env python3
"""Tests for depmap/tool_detection.py"""

from pathlib import Path

import pytest

from depmap import tool_detection
from depmap.tool_detection import ToolInfo, clear_cache, find_graphviz, render_dot


@pytest.fixture(autouse=True)
def fresh_cache():
    """Clear the detection cache around every test."""
    clear_cache()
    yield
    clear_cache()


class TestFindGraphviz:
    """Tests for find_graphviz."""

    def test_not_found(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test detection without dot on PATH."""
        monkeypatch.setattr(tool_detection.shutil, "which", lambda name: None)
        info = find_graphviz()
        assert not info.is_found()
        assert info.version is None

    def test_found_and_cached(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that a detected tool is cached for the session."""
        calls = []

        def fake_version(command: str, timeout: int = 5) -> str:
            calls.append(command)
            return "dot - graphviz version 9.0.0"

        monkeypatch.setattr(tool_detection.shutil, "which", lambda name: "/usr/bin/dot")
        monkeypatch.setattr(tool_detection, "_try_version", fake_version)

        first = find_graphviz()
        second = find_graphviz()

        assert first == ToolInfo(command="/usr/bin/dot", version="dot - graphviz version 9.0.0")
        assert second is first
        assert calls == ["/usr/bin/dot"]


class TestRenderDot:
    """Tests for render_dot."""

    def test_unsupported_format(self, tmp_path: Path) -> None:
        """Test that unknown formats are rejected."""
        with pytest.raises(ValueError, match="pdf"):
            render_dot(str(tmp_path / "a.dot"), ["pdf"])

    def test_missing_graphviz_skips(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that rendering is skipped without Graphviz."""
        monkeypatch.setattr(tool_detection.shutil, "which", lambda name: None)
        assert render_dot(str(tmp_path / "a.dot"), ["png", "svg"]) == []
