#!/usr/bin/env python3
"""Tests for depmap/config.py"""

import json
from pathlib import Path

import pytest

from depmap.config import AnalysisSettings, FilterConfig, ScoringWeights, load_filter_config, load_scoring_weights, load_settings
from depmap.constants import DEFAULT_BLOCK_PATTERNS, EXIT_INVALID_ARGS, ConfigurationError
from depmap.cycle_breaking import SuggestionTiebreak


def _write(path: Path, data: object) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestScoringWeights:
    """Tests for weight validation."""

    def test_defaults(self) -> None:
        """Test the default weights."""
        weights = ScoringWeights()
        assert weights.as_dict() == {"coupling": 0.40, "complexity": 0.30, "tech_debt": 0.20, "external_exposure": 0.10}
        assert weights.total == pytest.approx(1.0)

    def test_sum_within_tolerance(self) -> None:
        """Test that rounding differences within tolerance are accepted."""
        ScoringWeights(0.3333, 0.3333, 0.3334, 0.0)
        ScoringWeights(0.4005, 0.3, 0.2, 0.1)

    def test_sum_outside_tolerance(self) -> None:
        """Test that weights not summing to 1.0 are rejected."""
        with pytest.raises(ConfigurationError):
            ScoringWeights(0.5, 0.3, 0.2, 0.1)

    @pytest.mark.parametrize("bad", [-0.1, 1.5])
    def test_range(self, bad: float) -> None:
        """Test that weights outside [0, 1] are rejected."""
        with pytest.raises(ConfigurationError):
            ScoringWeights(bad, 0.5, 0.5, 0.1)

    def test_non_numeric(self) -> None:
        """Test that non-numeric weights are rejected."""
        with pytest.raises(ConfigurationError):
            ScoringWeights("0.4", 0.3, 0.2, 0.1)  # type: ignore[arg-type]

    def test_error_exit_code(self) -> None:
        """Test that configuration errors map to invalid arguments."""
        with pytest.raises(ConfigurationError) as info:
            ScoringWeights(1.0, 1.0, 0.0, 0.0)
        assert info.value.exit_code == EXIT_INVALID_ARGS


class TestLoading:
    """Tests for loading configuration files."""

    def test_missing_files_use_defaults(self, tmp_path: Path) -> None:
        """Test that absent config files fall back to defaults."""
        settings = load_settings(str(tmp_path))
        assert settings.filters.block_patterns == tuple(DEFAULT_BLOCK_PATTERNS)
        assert settings.weights == ScoringWeights()

    def test_load_filter_config(self, tmp_path: Path) -> None:
        """Test reading block and allow lists."""
        path = _write(tmp_path / "filter-config.json", {"FrameworkFilters": {"BlockList": ["System.*"], "AllowList": ["System.MyCo.*"]}})
        config = load_filter_config(path)
        assert config.block_patterns == ("System.*",)
        assert config.allow_patterns == ("System.MyCo.*",)

    def test_malformed_pattern(self, tmp_path: Path) -> None:
        """Test that malformed patterns fail at load time."""
        path = _write(tmp_path / "filter-config.json", {"FrameworkFilters": {"BlockList": ["System.*", ""]}})
        with pytest.raises(ConfigurationError):
            load_filter_config(path)

    def test_block_list_must_be_list(self, tmp_path: Path) -> None:
        """Test that a string block list is rejected."""
        path = _write(tmp_path / "filter-config.json", {"FrameworkFilters": {"BlockList": "System.*"}})
        with pytest.raises(ConfigurationError):
            load_filter_config(path)

    def test_load_scoring_weights(self, tmp_path: Path) -> None:
        """Test reading weights with the documented keys."""
        path = _write(
            tmp_path / "scoring-config.json",
            {"ScoringWeights": {"Coupling": 0.25, "Complexity": 0.25, "TechDebt": 0.25, "ExternalExposure": 0.25}},
        )
        assert load_scoring_weights(path) == ScoringWeights(0.25, 0.25, 0.25, 0.25)

    def test_partial_weights_must_still_sum(self, tmp_path: Path) -> None:
        """Test that overriding one weight breaks the sum."""
        path = _write(tmp_path / "scoring-config.json", {"ScoringWeights": {"Coupling": 0.9}})
        with pytest.raises(ConfigurationError):
            load_scoring_weights(path)

    def test_unknown_weight_key(self, tmp_path: Path) -> None:
        """Test that misspelled keys are reported."""
        path = _write(tmp_path / "scoring-config.json", {"ScoringWeights": {"Coupeling": 0.4}})
        with pytest.raises(ConfigurationError, match="Coupeling"):
            load_scoring_weights(path)

    def test_invalid_json(self, tmp_path: Path) -> None:
        """Test that unparsable files raise ConfigurationError."""
        path = tmp_path / "scoring-config.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_scoring_weights(path)

    def test_missing_directory(self, tmp_path: Path) -> None:
        """Test that a missing config directory is an error."""
        with pytest.raises(ConfigurationError):
            load_settings(str(tmp_path / "nope"))

    def test_overrides(self, tmp_path: Path) -> None:
        """Test that explicit settings override defaults."""
        settings = load_settings(str(tmp_path), top_n=3, tiebreak=SuggestionTiebreak.CYCLE_ID, max_workers=2)
        assert settings.top_n == 3
        assert settings.tiebreak is SuggestionTiebreak.CYCLE_ID
        assert settings.max_workers == 2


class TestAnalysisSettings:
    """Tests for AnalysisSettings validation."""

    def test_negative_values(self) -> None:
        """Test that negative limits are rejected."""
        with pytest.raises(ConfigurationError):
            AnalysisSettings(top_n=-1)
        with pytest.raises(ConfigurationError):
            AnalysisSettings(max_workers=0)

    def test_filter_config_is_frozen(self) -> None:
        """Test that configuration objects are immutable."""
        config = FilterConfig()
        with pytest.raises(AttributeError):
            config.block_patterns = ()  # type: ignore[misc]
