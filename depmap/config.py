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
"""Analysis configuration.

Immutable configuration objects are validated when they are created, so an
invalid configuration fails at load time before any module is analyzed.

Configuration files (both optional, defaults are used when absent):

    filter-config.json
        {"FrameworkFilters": {"BlockList": ["System.*"], "AllowList": ["System.MyCompany.*"]}}

    scoring-config.json
        {"ScoringWeights": {"Coupling": 0.4, "Complexity": 0.3, "TechDebt": 0.2, "ExternalExposure": 0.1}}

Example usage:
    from depmap.config import load_settings

    settings = load_settings("config/")
    print(settings.weights.coupling)
"""

import json
import math
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from depmap.constants import (
    DEFAULT_ALLOW_PATTERNS,
    DEFAULT_BLOCK_PATTERNS,
    DEFAULT_COMPLEXITY_WEIGHT,
    DEFAULT_COUPLING_WEIGHT,
    DEFAULT_EXPOSURE_WEIGHT,
    DEFAULT_MAX_BREAK_POINTS,
    DEFAULT_MAX_WORKERS,
    DEFAULT_TECH_DEBT_WEIGHT,
    DEFAULT_TOP_N,
    FILTER_CONFIG_FILE,
    FILTER_CONFIG_SECTION,
    SCORING_CONFIG_FILE,
    SCORING_CONFIG_SECTION,
    WEIGHT_SUM_TOLERANCE,
    ConfigurationError,
)
from depmap.cycle_breaking import SuggestionTiebreak
from depmap.framework_filter import validate_patterns

logger = logging.getLogger(__name__)

# JSON key -> ScoringWeights field
WEIGHT_KEYS = {
    "Coupling": "coupling",
    "Complexity": "complexity",
    "TechDebt": "tech_debt",
    "ExternalExposure": "external_exposure",
}


@dataclass(frozen=True)
class FilterConfig:
    """Framework filter patterns.

    Attributes:
        block_patterns: Glob patterns of modules to exclude
        allow_patterns: Glob patterns that override block patterns
    """

    block_patterns: Tuple[str, ...] = tuple(DEFAULT_BLOCK_PATTERNS)
    allow_patterns: Tuple[str, ...] = tuple(DEFAULT_ALLOW_PATTERNS)

    def __post_init__(self) -> None:
        """Validate patterns and freeze them as tuples."""
        object.__setattr__(self, "block_patterns", tuple(validate_patterns(self.block_patterns, "BlockList")))
        object.__setattr__(self, "allow_patterns", tuple(validate_patterns(self.allow_patterns, "AllowList")))


@dataclass(frozen=True)
class ScoringWeights:
    """Weights of the four extraction metrics.

    Each weight must lie in [0, 1] and the weights must sum to 1.0
    (within WEIGHT_SUM_TOLERANCE).

    Example:
        >>> ScoringWeights(0.25, 0.25, 0.25, 0.25).total
        1.0
    """

    coupling: float = DEFAULT_COUPLING_WEIGHT
    complexity: float = DEFAULT_COMPLEXITY_WEIGHT
    tech_debt: float = DEFAULT_TECH_DEBT_WEIGHT
    external_exposure: float = DEFAULT_EXPOSURE_WEIGHT

    def __post_init__(self) -> None:
        """Validate weight ranges and their sum."""
        for name, value in self.as_dict().items():
            if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
                raise ConfigurationError(f"Scoring weight '{name}' must be a number, got {value!r}")
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"Scoring weight '{name}' must be between 0.0 and 1.0, got {value}")
        if abs(self.total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ConfigurationError(f"Scoring weights must sum to 1.0 (±{WEIGHT_SUM_TOLERANCE}), got {self.total:.4f}")

    @property
    def total(self) -> float:
        return self.coupling + self.complexity + self.tech_debt + self.external_exposure

    def as_dict(self) -> Dict[str, float]:
        return {
            "coupling": self.coupling,
            "complexity": self.complexity,
            "tech_debt": self.tech_debt,
            "external_exposure": self.external_exposure,
        }


@dataclass(frozen=True)
class AnalysisSettings:
    """Everything a single analysis run is parameterized by.

    Attributes:
        filters: Framework filter patterns
        weights: Extraction scoring weights
        top_n: Number of easiest/hardest candidates to list
        max_break_points: Number of cycle-break suggestions to show and highlight
        tiebreak: Final suggestion ordering key
        max_workers: Worker threads for metric calculation (None = executor default)
    """

    filters: FilterConfig = field(default_factory=FilterConfig)
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    top_n: int = DEFAULT_TOP_N
    max_break_points: int = DEFAULT_MAX_BREAK_POINTS
    tiebreak: SuggestionTiebreak = SuggestionTiebreak.SOURCE_NAME
    max_workers: Optional[int] = DEFAULT_MAX_WORKERS

    def __post_init__(self) -> None:
        if self.top_n < 0:
            raise ConfigurationError(f"top_n must not be negative, got {self.top_n}")
        if self.max_break_points < 0:
            raise ConfigurationError(f"max_break_points must not be negative, got {self.max_break_points}")
        if self.max_workers is not None and self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be at least 1, got {self.max_workers}")


def _read_section(path: Path, section: str) -> Optional[Dict[str, Any]]:
    """Read one top-level section of a JSON config file.

    Returns:
        The section, or None if the file does not exist

    Raises:
        ConfigurationError: If the file is unreadable, not valid JSON or the
            section is not an object
    """
    if not path.exists():
        logger.debug("Config file %s not found, using defaults", path)
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a JSON object")
    content = data.get(section, {})
    if not isinstance(content, dict):
        raise ConfigurationError(f"Section '{section}' in {path} must be a JSON object")
    return content


def load_filter_config(path: Path) -> FilterConfig:
    """Load framework filter patterns from filter-config.json."""
    section = _read_section(path, FILTER_CONFIG_SECTION)
    if section is None:
        return FilterConfig()

    block = section.get("BlockList", list(DEFAULT_BLOCK_PATTERNS))
    allow = section.get("AllowList", list(DEFAULT_ALLOW_PATTERNS))
    for label, value in (("BlockList", block), ("AllowList", allow)):
        if not isinstance(value, list):
            raise ConfigurationError(f"{FILTER_CONFIG_SECTION}.{label} in {path} must be a list of patterns")

    config = FilterConfig(block_patterns=tuple(block), allow_patterns=tuple(allow))
    logger.info("Loaded %d block and %d allow patterns from %s", len(config.block_patterns), len(config.allow_patterns), path)
    return config


def load_scoring_weights(path: Path) -> ScoringWeights:
    """Load extraction scoring weights from scoring-config.json.

    Missing keys keep their default weight; the resulting set must still
    sum to 1.0.
    """
    section = _read_section(path, SCORING_CONFIG_SECTION)
    if section is None:
        return ScoringWeights()

    unknown = sorted(set(section) - set(WEIGHT_KEYS))
    if unknown:
        raise ConfigurationError(f"Unknown scoring weight(s) in {path}: {', '.join(unknown)}")

    values = ScoringWeights().as_dict()
    for key, attr in WEIGHT_KEYS.items():
        if key in section:
            values[attr] = section[key]
    weights = ScoringWeights(**values)
    logger.info("Loaded scoring weights from %s: %s", path, weights.as_dict())
    return weights


def load_settings(config_dir: Optional[str] = None, **overrides: Any) -> AnalysisSettings:
    """Load analysis settings from a configuration directory.

    Args:
        config_dir: Directory holding filter-config.json / scoring-config.json
            (default: current directory)
        **overrides: AnalysisSettings fields that take precedence (e.g. top_n)

    Returns:
        Validated AnalysisSettings

    Raises:
        ConfigurationError: If any configuration value is invalid
    """
    base = Path(config_dir) if config_dir else Path.cwd()
    if config_dir and not base.is_dir():
        raise ConfigurationError(f"Configuration directory does not exist: {base}")

    return AnalysisSettings(
        filters=load_filter_config(base / FILTER_CONFIG_FILE),
        weights=load_scoring_weights(base / SCORING_CONFIG_FILE),
        **overrides,
    )
