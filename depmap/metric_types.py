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
"""Type definitions for extraction metrics.

This module contains the per-module metric records produced by the metric
calculators and the final ExtractionScore that combines them.
"""

from typing import Dict
from dataclasses import dataclass, field

from depmap.graph_model import ModuleNode


@dataclass(frozen=True)
class CouplingMetric:
    """Graph coupling of one module.

    Attributes:
        module_name: Module the metric belongs to
        incoming_count: Edges pointing at the module
        outgoing_count: Edges leaving the module
        raw_score: incoming * 2 + outgoing
        normalized_score: raw_score relative to the run maximum, 0-100
    """

    module_name: str
    incoming_count: int
    outgoing_count: int
    raw_score: int
    normalized_score: float


@dataclass(frozen=True)
class ComplexityMetric:
    """Average cyclomatic complexity of one module.

    Attributes:
        module_name: Module the metric belongs to
        unit_count: Number of executable units analyzed
        total_complexity: Sum of unit complexities
        average_complexity: total_complexity / unit_count (0 without units)
        normalized_score: Fixed-scale score, 0-100
        fallback_used: True if source analysis failed and the neutral value was used
    """

    module_name: str
    unit_count: int
    total_complexity: int
    average_complexity: float
    normalized_score: float
    fallback_used: bool = False


@dataclass(frozen=True)
class VersionDebtMetric:
    """Platform version debt of one module.

    Attributes:
        module_name: Module the metric belongs to
        platform: Declared platform tag as found in the description
        normalized_score: Timeline score, 0 (current) - 100 (oldest)
        fallback_used: True if the tag was unknown or unparseable
    """

    module_name: str
    platform: str
    normalized_score: float
    fallback_used: bool = False


@dataclass(frozen=True)
class ExposureMetric:
    """Externally callable surface of one module.

    Attributes:
        module_name: Module the metric belongs to
        endpoint_count: Units exposed outside the process boundary
        breakdown: Endpoint count per exposure mechanism
        normalized_score: Stepped score (0/33/66/100)
        fallback_used: True if source analysis failed
    """

    module_name: str
    endpoint_count: int
    normalized_score: float
    breakdown: Dict[str, int] = field(default_factory=dict)
    fallback_used: bool = False


@dataclass(frozen=True)
class ModuleMetrics:
    """The per-module metrics computed by one worker.

    Coupling is graph-relative and computed up front, so a ModuleMetrics is
    complete once the three source-dependent metrics are filled in.
    """

    module: ModuleNode
    coupling: CouplingMetric
    complexity: ComplexityMetric
    version_debt: VersionDebtMetric
    exposure: ExposureMetric

    @property
    def degraded(self) -> bool:
        """True if any metric fell back to its documented default."""
        return self.complexity.fallback_used or self.version_debt.fallback_used or self.exposure.fallback_used


@dataclass(frozen=True)
class ExtractionScore:
    """Final extraction difficulty of one module (lower is easier).

    Attributes:
        module: Scored module
        final_score: Weighted score in [0, 100]
        coupling: Coupling metric used
        complexity: Complexity metric used
        version_debt: Version debt metric used
        exposure: External exposure metric used
    """

    module: ModuleNode
    final_score: float
    coupling: CouplingMetric
    complexity: ComplexityMetric
    version_debt: VersionDebtMetric
    exposure: ExposureMetric

    @property
    def module_name(self) -> str:
        return self.module.name

    @property
    def module_path(self) -> str:
        return self.module.path

    def metric_summary(self) -> Dict[str, float]:
        return {
            "coupling": self.coupling.normalized_score,
            "complexity": self.complexity.normalized_score,
            "version_debt": self.version_debt.normalized_score,
            "exposure": self.exposure.normalized_score,
        }
