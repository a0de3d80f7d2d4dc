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
"""Extraction candidate ranking.

Sorts modules by extraction score and partitions them into difficulty
bands. classify_band() is the single source of the band boundaries; every
consumer (terminal colors, diagrams, reports) goes through it.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Sequence

from depmap.constants import DEFAULT_TOP_N, EASY_BAND_MAX, HARD_BAND_MIN
from depmap.metric_types import ExtractionScore

logger = logging.getLogger(__name__)


class DifficultyBand(Enum):
    """Extraction difficulty band."""

    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"

    @property
    def label(self) -> str:
        return self.value


def classify_band(score: float) -> DifficultyBand:
    """Classify a 0-100 extraction score.

    Easy is score <= 33, Hard is score >= 67, everything between is Medium.

    Example:
        >>> classify_band(33.0), classify_band(33.1), classify_band(67.0)
        (<DifficultyBand.EASY: 'Easy'>, <DifficultyBand.MEDIUM: 'Medium'>, <DifficultyBand.HARD: 'Hard'>)
    """
    if score <= EASY_BAND_MAX:
        return DifficultyBand.EASY
    if score >= HARD_BAND_MIN:
        return DifficultyBand.HARD
    return DifficultyBand.MEDIUM


@dataclass
class RankedCandidates:
    """Ranked and banded view of extraction scores.

    Attributes:
        ranked: All scores, easiest first
        easiest: Up to top_n Easy-band modules, easiest first
        hardest: Up to top_n Hard-band modules, hardest first
        band_counts: Number of modules per band
    """

    ranked: List[ExtractionScore] = field(default_factory=list)
    easiest: List[ExtractionScore] = field(default_factory=list)
    hardest: List[ExtractionScore] = field(default_factory=list)
    band_counts: Dict[DifficultyBand, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.ranked)

    def band_of(self, band: DifficultyBand) -> List[ExtractionScore]:
        return [score for score in self.ranked if classify_band(score.final_score) is band]

    def statistics_consistent(self) -> bool:
        """True if the band counts add up to the number of ranked modules."""
        return sum(self.band_counts.values()) == self.total


def rank_candidates(scores: Sequence[ExtractionScore], top_n: int = DEFAULT_TOP_N) -> RankedCandidates:
    """Rank modules by extraction difficulty.

    The sort is stable: modules with equal scores keep their input order,
    so ranking the same list twice gives identical results.

    Args:
        scores: Extraction scores in module order
        top_n: Number of easiest and hardest candidates to select

    Returns:
        RankedCandidates
    """
    if top_n < 0:
        raise ValueError(f"top_n must not be negative, got {top_n}")

    ranked = sorted(scores, key=lambda score: score.final_score)
    band_counts = {band: 0 for band in DifficultyBand}
    for score in ranked:
        band_counts[classify_band(score.final_score)] += 1

    easiest = [score for score in ranked if classify_band(score.final_score) is DifficultyBand.EASY][:top_n]
    hard = [score for score in ranked if classify_band(score.final_score) is DifficultyBand.HARD]
    hardest = sorted(hard, key=lambda score: score.final_score, reverse=True)[:top_n]

    logger.info(
        "Ranked %d candidates: %d easy, %d medium, %d hard",
        len(ranked),
        band_counts[DifficultyBand.EASY],
        band_counts[DifficultyBand.MEDIUM],
        band_counts[DifficultyBand.HARD],
    )
    return RankedCandidates(ranked=ranked, easiest=easiest, hardest=hardest, band_counts=band_counts)
