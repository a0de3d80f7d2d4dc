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
"""Plain-text analysis report.

The report is built as a list of lines so it can be written to a file or
printed; it carries no terminal color codes.
"""

import os
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from depmap.candidate_ranker import DifficultyBand, classify_band
from depmap.color_utils import print_error, print_success
from depmap.constants import DEFAULT_MAX_BREAK_POINTS, MAX_CYCLES_DISPLAY, REPORT_WIDTH
from depmap.cycle_breaking import top_suggestions
from depmap.export_utils import sanitize_filename
from depmap.metric_types import ExtractionScore
from depmap.pipeline import AnalysisResults

logger = logging.getLogger(__name__)

SEPARATOR = "=" * REPORT_WIDTH
RULE = "-" * REPORT_WIDTH


def _section(title: str) -> List[str]:
    return [title, SEPARATOR, ""]


def _format_header(name: str, results: AnalysisResults, analysis_date: datetime) -> List[str]:
    lines = [
        SEPARATOR,
        "Dependency Map Analysis Report",
        SEPARATOR,
        "",
        f"Analysis: {name}",
        f"Analysis Date: {analysis_date:%Y-%m-%d %H:%M:%S} UTC",
        f"Total Modules: {results.graph.node_count:,}",
    ]
    if results.partial:
        lines.append(f"Partial Results: metric calculation was cancelled ({len(results.metrics.pending)} module(s) not scored)")
    lines.extend(["", SEPARATOR, ""])
    return lines


def _format_dependency_overview(results: AnalysisResults) -> List[str]:
    stats = results.filter_statistics
    lines = _section("DEPENDENCY OVERVIEW")
    lines.append(f"Total References: {stats.total_edges:,}")
    lines.append(f"  - Framework References: {stats.removed_edges:,} ({stats.removed_percentage:.0f}%)")
    lines.append(f"  - Custom References: {stats.retained_edges:,} ({stats.retained_percentage:.0f}%)")
    lines.append("")

    cross = results.cross_collection_edges
    if cross:
        lines.append(f"Cross-Collection References: {cross:,}")
        lines.append("  (References between modules of different input collections)")
        lines.append("")
    lines.extend([SEPARATOR, ""])
    return lines


def _format_cycles(results: AnalysisResults) -> List[str]:
    statistics = results.cycles.statistics
    lines = _section("CIRCULAR DEPENDENCIES")
    if not results.cycles.has_cycles:
        lines.extend(["No circular dependencies detected.", "", SEPARATOR, ""])
        return lines

    lines.append(f"Total Cycles: {statistics.total_cycles}")
    lines.append(f"Modules in Cycles: {statistics.modules_in_cycles} ({statistics.participation_rate:.1f}%)")
    lines.append(f"Largest Cycle: {statistics.largest_cycle_size} modules")
    lines.append("")

    for cycle in results.cycles.cycles[:MAX_CYCLES_DISPLAY]:
        lines.append(f"Cycle {cycle.cycle_id} ({cycle.size} modules): {', '.join(cycle.member_names)}")
    remaining = len(results.cycles.cycles) - MAX_CYCLES_DISPLAY
    if remaining > 0:
        lines.append(f"... and {remaining} more cycle(s)")
    lines.extend(["", SEPARATOR, ""])
    return lines


def _format_recommendations(results: AnalysisResults, max_break_points: int) -> List[str]:
    lines = _section("CYCLE-BREAKING RECOMMENDATIONS")
    shown = top_suggestions(results.suggestions, max_break_points)
    if not shown:
        lines.extend(["No cycle-breaking recommendations.", "", SEPARATOR, ""])
        return lines

    lines.append(f"Top {len(shown)} of {len(results.suggestions)} suggestion(s):")
    lines.append("")
    for suggestion in shown:
        lines.append(f"{suggestion.rank:>3}. {suggestion.source.name} → {suggestion.target.name}")
        lines.append(f"     {suggestion.rationale} (cycle {suggestion.cycle_id})")
    lines.extend(["", SEPARATOR, ""])
    return lines


def _format_candidates(title: str, candidates: Sequence[ExtractionScore]) -> List[str]:
    lines = [title, RULE]
    if not candidates:
        lines.append("  (none)")
    for position, score in enumerate(candidates, start=1):
        band = classify_band(score.final_score)
        lines.append(
            f"{position:>3}. {score.module_name:<40} {score.final_score:5.1f}  [{band.label}]"
            f"  endpoints: {score.exposure.endpoint_count}"
        )
    lines.append("")
    return lines


def _format_extraction_difficulty(results: AnalysisResults) -> List[str]:
    ranking = results.ranking
    lines = _section("EXTRACTION DIFFICULTY")
    lines.append(f"Scored Modules: {ranking.total}")
    lines.append(
        "  - "
        + ", ".join(f"{band.label}: {ranking.band_counts.get(band, 0)}" for band in DifficultyBand)
    )
    lines.append("")
    lines.extend(_format_candidates("Easiest Extraction Candidates", ranking.easiest))
    lines.extend(_format_candidates("Hardest Extraction Candidates", ranking.hardest))
    lines.append(SEPARATOR)
    return lines


def build_text_report(
    name: str,
    results: AnalysisResults,
    max_break_points: int = DEFAULT_MAX_BREAK_POINTS,
    analysis_date: Optional[datetime] = None,
) -> List[str]:
    """Build the text report.

    Args:
        name: Analysis name shown in the header
        results: Pipeline results
        max_break_points: Number of suggestions listed
        analysis_date: Timestamp for the header (default: now, UTC)

    Returns:
        Report lines without trailing newlines
    """
    date = analysis_date or datetime.now(timezone.utc)
    lines: List[str] = []
    lines.extend(_format_header(name, results, date))
    lines.extend(_format_dependency_overview(results))
    lines.extend(_format_cycles(results))
    lines.extend(_format_recommendations(results, max_break_points))
    lines.extend(_format_extraction_difficulty(results))
    return lines


def write_text_report(
    results: AnalysisResults, output_dir: str, name: str, max_break_points: int = DEFAULT_MAX_BREAK_POINTS
) -> Optional[str]:
    """Write `<name>-analysis-report.txt` into output_dir.

    Returns:
        Written file path, or None if writing failed
    """
    filename = os.path.join(output_dir, f"{sanitize_filename(name)}-analysis-report.txt")
    lines = build_text_report(name, results, max_break_points)
    try:
        os.makedirs(output_dir or ".", exist_ok=True)
        with open(filename, "w", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
    except OSError as e:
        logger.error("Failed to write text report: %s", e)
        print_error(f"Failed to write text report: {e}")
        return None

    logger.info("Wrote text report to %s", filename)
    print_success(f"Wrote text report to {filename}")
    return filename
