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
"""Parallel metric calculation.

The graph-relative coupling metric is computed once up front; the three
source-dependent metrics fan out per module over a thread pool. Each worker
writes only its own module's slot, and the slots are joined before scoring.

Cancellation is cooperative: the token is checked before a module starts,
never in the middle of one, and modules finished before the cancellation
are kept and returned as partial results.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from depmap.constants import AnalysisCancelledError
from depmap.graph_model import DependencyGraph, ModuleNode
from depmap.metric_calculators import (
    calculate_complexity_metric,
    calculate_coupling_metrics,
    calculate_exposure_metric,
    calculate_version_debt_metric,
)
from depmap.metric_types import CouplingMetric, ModuleMetrics
from depmap.source_analysis import SourceProvider

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation signal shared between the caller and workers."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise AnalysisCancelledError if cancellation was requested."""
        if self._event.is_set():
            raise AnalysisCancelledError()


@dataclass
class MetricsBatch:
    """Metric results of one run.

    Attributes:
        results: Module key -> completed ModuleMetrics
        cancelled: True if the run stopped early
        pending: Names of modules without results, in module order
    """

    results: Dict[str, ModuleMetrics] = field(default_factory=dict)
    cancelled: bool = False
    pending: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.cancelled and not self.pending

    def ordered(self, modules: Sequence[ModuleNode]) -> List[ModuleMetrics]:
        """Completed results in the given module order."""
        return [self.results[module.key] for module in modules if module.key in self.results]

    @property
    def degraded_modules(self) -> List[str]:
        return [metrics.module.name for metrics in self.results.values() if metrics.degraded]


def compute_module_metrics(module: ModuleNode, coupling: CouplingMetric, provider: Optional[SourceProvider]) -> ModuleMetrics:
    """Compute the source-dependent metrics of one module."""
    return ModuleMetrics(
        module=module,
        coupling=coupling,
        complexity=calculate_complexity_metric(module, provider),
        version_debt=calculate_version_debt_metric(module),
        exposure=calculate_exposure_metric(module, provider),
    )


def run_metric_calculators(
    graph: DependencyGraph,
    modules: Sequence[ModuleNode],
    provider: Optional[SourceProvider] = None,
    max_workers: Optional[int] = None,
    cancellation: Optional[CancellationToken] = None,
    on_module_done: Optional[Callable[[ModuleMetrics], None]] = None,
) -> MetricsBatch:
    """Calculate all four metrics for each module.

    Args:
        graph: Filtered dependency graph (read only)
        modules: Modules to analyze
        provider: Source access for complexity/exposure, None disables it
        max_workers: Thread pool size (None = executor default)
        cancellation: Optional token checked before each module
        on_module_done: Called from the joining thread for every finished module

    Returns:
        MetricsBatch, possibly partial if cancellation was requested
    """
    token = cancellation or CancellationToken()
    coupling = calculate_coupling_metrics(graph, modules)
    batch = MetricsBatch()

    def work(module: ModuleNode) -> ModuleMetrics:
        token.raise_if_cancelled()
        return compute_module_metrics(module, coupling[module.key], provider)

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="depmap-metrics") as executor:
        futures: Dict[Future, ModuleNode] = {executor.submit(work, module): module for module in modules}
        for future in as_completed(futures):
            module = futures[future]
            if future.cancelled():
                continue
            try:
                metrics = future.result()
            except AnalysisCancelledError:
                logger.debug("Skipped %s after cancellation", module.name)
                continue
            batch.results[module.key] = metrics
            if on_module_done is not None:
                on_module_done(metrics)
            if token.is_cancelled:
                for pending in futures:
                    pending.cancel()

    batch.pending = [module.name for module in modules if module.key not in batch.results]
    batch.cancelled = token.is_cancelled and bool(batch.pending)
    if batch.cancelled:
        logger.warning("Metric calculation cancelled: %d of %d modules completed", len(batch.results), len(modules))
    else:
        logger.info("Calculated metrics for %d modules", len(batch.results))
    return batch
