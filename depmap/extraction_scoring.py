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
"""Extraction difficulty scoring.

Combines the four metric sub-scores into one weighted 0-100 score per
module. Lower scores mean the module is easier to extract. Fallback
handling belongs to the metric calculators; this module only weighs what
it is given.
"""

import logging
from typing import Iterable, List

import numpy as np

from depmap.config import ScoringWeights
from depmap.metric_types import ExtractionScore, ModuleMetrics

logger = logging.getLogger(__name__)


def weighted_score(coupling: float, complexity: float, version_debt: float, exposure: float, weights: ScoringWeights) -> float:
    """Weighted sum of the four sub-scores, clamped to [0, 100].

    Example:
        >>> weighted_score(50, 50, 50, 50, ScoringWeights(0.25, 0.25, 0.25, 0.25))
        50.0
    """
    values = np.array([coupling, complexity, version_debt, exposure], dtype=float)
    factors = np.array([weights.coupling, weights.complexity, weights.tech_debt, weights.external_exposure], dtype=float)
    return float(np.clip(np.dot(values, factors), 0.0, 100.0))


def calculate_extraction_score(metrics: ModuleMetrics, weights: ScoringWeights) -> ExtractionScore:
    """Calculate the extraction score of one module.

    Args:
        metrics: All four metrics of the module
        weights: Validated scoring weights

    Returns:
        ExtractionScore referencing the metrics it was computed from
    """
    final = weighted_score(
        metrics.coupling.normalized_score,
        metrics.complexity.normalized_score,
        metrics.version_debt.normalized_score,
        metrics.exposure.normalized_score,
        weights,
    )
    return ExtractionScore(
        module=metrics.module,
        final_score=final,
        coupling=metrics.coupling,
        complexity=metrics.complexity,
        version_debt=metrics.version_debt,
        exposure=metrics.exposure,
    )


def calculate_extraction_scores(all_metrics: Iterable[ModuleMetrics], weights: ScoringWeights) -> List[ExtractionScore]:
    """Score every module, preserving input order."""
    scores = [calculate_extraction_score(metrics, weights) for metrics in all_metrics]
    if scores:
        finals = np.array([score.final_score for score in scores])
        logger.info(
            "Scored %d modules: mean %.1f, min %.1f, max %.1f",
            len(scores),
            float(np.mean(finals)),
            float(np.min(finals)),
            float(np.max(finals)),
        )
    return scores
