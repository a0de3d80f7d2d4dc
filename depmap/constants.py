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
"""Shared constants for depmap tools.

This module provides centralized constants used across the analysis pipeline
to ensure consistency and make it easy to adjust thresholds and defaults.
"""

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_SUCCESS = 0
EXIT_INVALID_ARGS = 1
EXIT_RUNTIME_ERROR = 2
EXIT_PARTIAL_RESULTS = 3  # Analysis was cancelled, partial results were written
EXIT_KEYBOARD_INTERRUPT = 130

# =============================================================================
# Coupling Strength Classification
# =============================================================================

WEAK_COUPLING_MAX = 5  # 1-5 method calls
MEDIUM_COUPLING_MAX = 20  # 6-20 method calls, above is strong
FALLBACK_COUPLING_SCORE = 1  # Used when no call-site evidence is available

# =============================================================================
# Metric Normalization
# =============================================================================

INCOMING_EDGE_WEIGHT = 2  # Being depended upon blocks extraction more than depending on others
OUTGOING_EDGE_WEIGHT = 1

COMPLEXITY_FALLBACK_SCORE = 50.0
VERSION_DEBT_FALLBACK_SCORE = 50.0
EXPOSURE_FALLBACK_SCORE = 0.0

# Stepped exposure scoring: (max endpoint count, score)
EXPOSURE_STEPS = [(0, 0.0), (5, 33.0), (15, 66.0)]
EXPOSURE_MAX_SCORE = 100.0

# =============================================================================
# Extraction Scoring
# =============================================================================

DEFAULT_COUPLING_WEIGHT = 0.40
DEFAULT_COMPLEXITY_WEIGHT = 0.30
DEFAULT_TECH_DEBT_WEIGHT = 0.20
DEFAULT_EXPOSURE_WEIGHT = 0.10
WEIGHT_SUM_TOLERANCE = 0.001

# Difficulty band boundaries (inclusive upper bound for Easy, inclusive lower bound for Hard)
EASY_BAND_MAX = 33.0
HARD_BAND_MIN = 67.0

# =============================================================================
# Framework Filter Defaults
# =============================================================================

DEFAULT_BLOCK_PATTERNS = ["Microsoft.*", "System.*", "mscorlib", "netstandard"]
DEFAULT_ALLOW_PATTERNS: list = []

# =============================================================================
# Configuration Files
# =============================================================================

FILTER_CONFIG_FILE = "filter-config.json"
SCORING_CONFIG_FILE = "scoring-config.json"
FILTER_CONFIG_SECTION = "FrameworkFilters"
SCORING_CONFIG_SECTION = "ScoringWeights"

# =============================================================================
# Display Limits
# =============================================================================

DEFAULT_TOP_N = 10  # Easiest/hardest candidates to show
DEFAULT_MAX_BREAK_POINTS = 10  # Cycle-break suggestions to show and highlight
MAX_CYCLES_DISPLAY = 20
REPORT_WIDTH = 80

# =============================================================================
# Performance Constants
# =============================================================================

DEFAULT_MAX_WORKERS = None  # None = ThreadPoolExecutor default
GRAPHVIZ_VERSION_TIMEOUT = 5  # Timeout for `dot -V`
GRAPHVIZ_RENDER_TIMEOUT = 120  # Timeout for rendering a diagram

# =============================================================================
# Graph Export Constants
# =============================================================================

SUPPORTED_GRAPH_FORMATS = [".graphml", ".dot", ".json"]
DEFAULT_GRAPH_FORMAT = "graphml"
DIAGRAM_NODE_FILL = "lightblue"
COLLECTION_PALETTE = ["red", "blue", "green", "purple", "orange", "brown"]

# =============================================================================
# Exception Classes
# =============================================================================


class DepMapError(Exception):
    """Base exception for all depmap errors.

    All depmap exceptions carry an exit_code attribute that indicates
    what exit code the program should use when this error is caught at the
    main entry point.
    """

    def __init__(self, message: str, exit_code: int = EXIT_RUNTIME_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


# Validation errors (EXIT_INVALID_ARGS)
class ValidationError(DepMapError):
    """Raised when input validation fails (arguments, paths, etc)."""

    def __init__(self, message: str):
        super().__init__(message, EXIT_INVALID_ARGS)


class ConfigurationError(ValidationError):
    """Raised when scoring weights or filter patterns are invalid."""


class GraphLoadError(ValidationError):
    """Raised when no ingestion strategy could load a graph description."""


# Analysis/processing errors (EXIT_RUNTIME_ERROR)
class AnalysisError(DepMapError):
    """Raised when analysis or processing operations fail."""


class GraphBuildError(AnalysisError):
    """Raised when dependency graph construction fails."""


class DuplicateNodeError(GraphBuildError):
    """Raised when a module name collides with an existing, different module."""


class DanglingEdgeError(GraphBuildError):
    """Raised when an edge references a module that is not in the graph."""


class AnalysisCancelledError(AnalysisError):
    """Raised inside workers when a cancellation request is observed."""

    def __init__(self, message: str = "Analysis cancelled"):
        super().__init__(message, EXIT_PARTIAL_RESULTS)


class SourceAnalysisError(AnalysisError):
    """Raised by source providers when a module's source cannot be analyzed."""
