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
"""Extraction difficulty metric calculators.

Four independent calculators, each producing a normalized 0-100 sub-score
per module:

- coupling: how entangled the module is in the dependency graph
- complexity: average cyclomatic complexity of its functions and methods
- version debt: how old its declared platform version is
- external exposure: how many externally callable endpoints it defines

The source-dependent calculators never raise for analysis failures; they
log a warning and return their documented fallback value instead.
"""

import logging
from typing import Dict, FrozenSet, Iterable, List, Optional

import numpy as np

from depmap.constants import (
    COMPLEXITY_FALLBACK_SCORE,
    EXPOSURE_FALLBACK_SCORE,
    EXPOSURE_MAX_SCORE,
    EXPOSURE_STEPS,
    INCOMING_EDGE_WEIGHT,
    OUTGOING_EDGE_WEIGHT,
    VERSION_DEBT_FALLBACK_SCORE,
)
from depmap.graph_model import DependencyGraph, ModuleNode
from depmap.metric_types import ComplexityMetric, CouplingMetric, ExposureMetric, VersionDebtMetric
from depmap.platform_versions import lookup_version_debt
from depmap.source_analysis import (
    UNIT_METHOD,
    AnalyzableUnit,
    SourceProvider,
    has_container_marker,
    has_marker,
    marker_set,
    normalize_marker,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Exposure markers
# =============================================================================

EXPOSURE_HTTP_ROUTE = "http_route"
EXPOSURE_WEB_METHOD = "web_method"
EXPOSURE_RPC_SERVICE = "rpc_service"

# Checked in order; a unit counts once, for the first mechanism it matches
EXPOSURE_MARKERS: Dict[str, FrozenSet[str]] = {
    EXPOSURE_HTTP_ROUTE: marker_set(
        "route", "get", "post", "put", "delete", "patch", "websocket", "api_view", "action",
        "HttpGet", "HttpPost", "HttpPut", "HttpDelete", "HttpPatch", "Route",
    ),
    EXPOSURE_WEB_METHOD: marker_set("WebMethod", "expose", "xmlrpc_method"),
    EXPOSURE_RPC_SERVICE: marker_set("OperationContract", "rpc", "rpc_method", "jsonrpc_method", "task", "shared_task"),
}

# Class-based views: verb-named methods of these classes are routes
HTTP_VERB_METHODS = frozenset({"get", "post", "put", "delete", "patch", "head", "options"})
VIEW_CONTAINER_MARKERS = marker_set(
    "View", "MethodView", "APIView", "GenericAPIView", "ViewSet", "ModelViewSet", "Resource", "HTTPEndpoint",
    "ApiController", "ControllerBase",
)
RPC_CONTAINER_MARKERS = marker_set("ServiceContract")


# =============================================================================
# Coupling
# =============================================================================


def calculate_coupling_metrics(graph: DependencyGraph, modules: Optional[Iterable[ModuleNode]] = None) -> Dict[str, CouplingMetric]:
    """Calculate the coupling metric for every module.

    The raw value weights incoming edges double. Scores are normalized
    against the highest raw value in the run, so the most entangled module
    scores 100.

    Args:
        graph: Filtered dependency graph
        modules: Modules to score (default: all graph modules)

    Returns:
        Module key -> CouplingMetric
    """
    modules = list(graph.nodes if modules is None else modules)
    raw: Dict[str, tuple] = {}
    for module in modules:
        incoming = len(graph.in_edges(module))
        outgoing = len(graph.out_edges(module))
        raw[module.key] = (incoming, outgoing, incoming * INCOMING_EDGE_WEIGHT + outgoing * OUTGOING_EDGE_WEIGHT)

    max_raw = max((value[2] for value in raw.values()), default=0)
    metrics: Dict[str, CouplingMetric] = {}
    for module in modules:
        incoming, outgoing, raw_score = raw[module.key]
        normalized = float(np.clip(raw_score / max_raw * 100.0, 0.0, 100.0)) if max_raw > 0 else 0.0
        metrics[module.key] = CouplingMetric(
            module_name=module.name,
            incoming_count=incoming,
            outgoing_count=outgoing,
            raw_score=raw_score,
            normalized_score=normalized,
        )

    logger.debug("Coupling metrics for %d modules (max raw %d)", len(metrics), max_raw)
    return metrics


# =============================================================================
# Complexity
# =============================================================================


def normalize_complexity(average: float) -> float:
    """Map average cyclomatic complexity onto 0-100.

    Scale: 0-7 low (0-33), 8-15 medium (33-66), 16-25 high (66-90),
    26+ very high (90-100).
    """
    if average <= 0:
        return 0.0
    if average <= 7:
        score = average / 7.0 * 33.0
    elif average <= 15:
        score = 33.0 + (average - 7.0) / 8.0 * 33.0
    elif average <= 25:
        score = 66.0 + (average - 15.0) / 10.0 * 24.0
    else:
        score = 90.0 + (average - 25.0) / 10.0 * 10.0
    return float(np.clip(score, 0.0, 100.0))


def _complexity_fallback(module: ModuleNode) -> ComplexityMetric:
    return ComplexityMetric(
        module_name=module.name,
        unit_count=0,
        total_complexity=0,
        average_complexity=0.0,
        normalized_score=COMPLEXITY_FALLBACK_SCORE,
        fallback_used=True,
    )


def calculate_complexity_metric(module: ModuleNode, provider: Optional[SourceProvider]) -> ComplexityMetric:
    """Calculate the complexity metric of one module.

    Args:
        module: Module to analyze
        provider: Source access; None means analysis is unavailable

    Returns:
        ComplexityMetric, the neutral fallback if analysis fails
    """
    if provider is None:
        return _complexity_fallback(module)
    try:
        units = [unit for unit in provider.get_units(module) if unit.is_executable]
    except Exception as e:
        logger.warning("Complexity analysis failed for %s, using fallback score %.0f: %s", module.name, COMPLEXITY_FALLBACK_SCORE, e)
        return _complexity_fallback(module)

    total = sum(unit.complexity for unit in units)
    average = total / len(units) if units else 0.0
    return ComplexityMetric(
        module_name=module.name,
        unit_count=len(units),
        total_complexity=total,
        average_complexity=average,
        normalized_score=normalize_complexity(average),
    )


# =============================================================================
# Version debt
# =============================================================================


def calculate_version_debt_metric(module: ModuleNode) -> VersionDebtMetric:
    """Calculate the version debt of one module from its platform tag."""
    if not module.platform:
        logger.debug("No platform tag for %s, using fallback score %.0f", module.name, VERSION_DEBT_FALLBACK_SCORE)
        return VersionDebtMetric(module_name=module.name, platform=module.platform, normalized_score=VERSION_DEBT_FALLBACK_SCORE, fallback_used=True)
    score = lookup_version_debt(module.platform)
    if score is None:
        logger.warning("Unknown platform '%s' for %s, using fallback score %.0f", module.platform, module.name, VERSION_DEBT_FALLBACK_SCORE)
        return VersionDebtMetric(module_name=module.name, platform=module.platform, normalized_score=VERSION_DEBT_FALLBACK_SCORE, fallback_used=True)
    return VersionDebtMetric(module_name=module.name, platform=module.platform, normalized_score=score)


# =============================================================================
# External exposure
# =============================================================================


def classify_exposure(unit: AnalyzableUnit) -> Optional[str]:
    """Exposure mechanism of a unit, or None if it is not externally callable."""
    for mechanism, markers in EXPOSURE_MARKERS.items():
        if has_marker(unit, markers):
            return mechanism

    if unit.kind != UNIT_METHOD or unit.short_name.startswith("_"):
        return None
    if unit.short_name.lower() in HTTP_VERB_METHODS and has_container_marker(unit, VIEW_CONTAINER_MARKERS):
        return EXPOSURE_HTTP_ROUTE
    # gRPC servicer base classes are generated as <Service>Servicer
    if has_container_marker(unit, RPC_CONTAINER_MARKERS) or any(normalize_marker(m).endswith("servicer") for m in unit.container_markers):
        return EXPOSURE_RPC_SERVICE
    return None


def exposure_score(endpoint_count: int) -> float:
    """Stepped exposure score: 0 -> 0, 1-5 -> 33, 6-15 -> 66, 16+ -> 100."""
    for max_count, score in EXPOSURE_STEPS:
        if endpoint_count <= max_count:
            return score
    return EXPOSURE_MAX_SCORE


def count_endpoints(units: Iterable[AnalyzableUnit]) -> Dict[str, int]:
    breakdown = {mechanism: 0 for mechanism in EXPOSURE_MARKERS}
    for unit in units:
        mechanism = classify_exposure(unit)
        if mechanism is not None:
            breakdown[mechanism] += 1
    return breakdown


def calculate_exposure_metric(module: ModuleNode, provider: Optional[SourceProvider]) -> ExposureMetric:
    """Calculate the external exposure metric of one module.

    Args:
        module: Module to analyze
        provider: Source access; None means analysis is unavailable

    Returns:
        ExposureMetric, scored 0 if analysis fails
    """
    if provider is None:
        return ExposureMetric(module_name=module.name, endpoint_count=0, normalized_score=EXPOSURE_FALLBACK_SCORE, fallback_used=True)
    try:
        units: List[AnalyzableUnit] = provider.get_units(module)
    except Exception as e:
        logger.warning("Exposure analysis failed for %s, assuming no external endpoints: %s", module.name, e)
        return ExposureMetric(module_name=module.name, endpoint_count=0, normalized_score=EXPOSURE_FALLBACK_SCORE, fallback_used=True)

    breakdown = count_endpoints(units)
    endpoint_count = sum(breakdown.values())
    if endpoint_count:
        logger.debug("Module %s exposes %d endpoints: %s", module.name, endpoint_count, breakdown)
    return ExposureMetric(
        module_name=module.name,
        endpoint_count=endpoint_count,
        normalized_score=exposure_score(endpoint_count),
        breakdown=breakdown,
    )
