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
"""Circular dependency and extraction difficulty analysis for module graphs.

Version: 1.0.0

PURPOSE:
    Analyzes the dependency graph of a codebase's modules (projects, packages)
    to find circular dependencies, recommend which edge to cut first, and rank
    modules by how hard they would be to extract into independent units.

WHAT IT DOES:
    - Loads one or more graph descriptions (JSON or GraphML) and merges them
    - Removes framework references (System.*, Microsoft.*, ...) by glob pattern
    - Detects circular dependencies (strongly connected components)
    - Scores every edge by call-site coupling and suggests the weakest links
    - Scores every module by coupling, complexity, platform version debt and
      external API exposure, and bands them into Easy / Medium / Hard
    - Writes text and CSV reports and a Graphviz dependency diagram

USE CASES:
    - "Which circular dependencies do we have?"
    - "Which single reference should we remove first to break a cycle?"
    - "Which modules are the cheapest to extract into a separate service?"
    - "Which modules are blocked by old platform versions?"

OUTPUT:
    1. Console summary (cycles, top break points, easiest/hardest candidates)
    2. <name>-analysis-report.txt
    3. <name>-extraction-scores.csv, <name>-cycle-analysis.csv, <name>-dependency-matrix.csv
    4. <name>-dependencies.dot (+ .png/.svg when Graphviz is installed)

EXIT CODES:
    0: Success
    1: Invalid arguments, input or configuration
    2: Runtime error
    3: Analysis was cancelled, partial results were written
    130: Interrupted
"""
__version__ = "1.0.0"

import os
import sys
import signal
import logging
import argparse
from pathlib import Path
from typing import Any, List, Optional

from depmap.candidate_ranker import classify_band
from depmap.color_utils import Colors, get_band_color, print_error, print_info, print_success, print_warning, should_use_color
from depmap.config import AnalysisSettings, load_settings
from depmap.constants import (
    DEFAULT_MAX_BREAK_POINTS,
    DEFAULT_TOP_N,
    EXIT_INVALID_ARGS,
    EXIT_KEYBOARD_INTERRUPT,
    EXIT_PARTIAL_RESULTS,
    EXIT_RUNTIME_ERROR,
    EXIT_SUCCESS,
    DepMapError,
)
from depmap.cycle_breaking import SuggestionTiebreak, top_suggestions
from depmap.diagram import build_diagram_graph, write_dot_file
from depmap.export_utils import (
    export_cycle_analysis_csv,
    export_dependency_graph,
    export_dependency_matrix_csv,
    export_extraction_scores_csv,
    sanitize_filename,
)
from depmap.graph_loader import load_graph_description
from depmap.metric_types import ExtractionScore
from depmap.metrics_runner import CancellationToken
from depmap.pipeline import AnalysisResults, run_analysis
from depmap.report_generator import write_text_report
from depmap.source_analysis import PythonSourceProvider, SourceProvider
from depmap.tool_detection import render_dot

logger = logging.getLogger(__name__)

REPORT_CHOICES = ["text", "csv", "all", "none"]
FORMAT_CHOICES = {"dot": [], "png": ["png"], "svg": ["svg"], "both": ["png", "svg"]}


def install_cancel_handler(token: CancellationToken) -> Any:
    """First Ctrl+C requests cancellation, a second one interrupts.

    Returns:
        The previous SIGINT handler
    """

    def handler(signum: int, frame: Any) -> None:
        if token.is_cancelled:
            raise KeyboardInterrupt
        print_warning("Cancelling analysis, finishing modules in progress (Ctrl+C again to abort)", prefix=False)
        token.cancel()

    return signal.signal(signal.SIGINT, handler)


def print_summary(results: AnalysisResults, settings: AnalysisSettings) -> None:
    """Print the colored console summary."""
    stats = results.cycles.statistics
    print(f"\n{Colors.BRIGHT}{'=' * 80}{Colors.RESET}")
    print(f"{Colors.BRIGHT}DEPENDENCY MAP ANALYSIS{Colors.RESET}")
    print(f"{Colors.BRIGHT}{'=' * 80}{Colors.RESET}\n")

    print(f"{Colors.BRIGHT}Filter Scope:{Colors.RESET} {results.filter_statistics.format_concise()}")
    print(f"{Colors.BRIGHT}Modules:{Colors.RESET} {Colors.CYAN}{results.graph.node_count}{Colors.RESET}\n")

    if results.cycles.has_cycles:
        print(
            f"{Colors.BRIGHT}Circular Dependencies:{Colors.RESET} {Colors.RED}{stats.total_cycles}{Colors.RESET} cycle(s), "
            f"{stats.modules_in_cycles} modules ({stats.participation_rate:.1f}%), largest {stats.largest_cycle_size}"
        )
    else:
        print_success("No circular dependencies detected")

    shown = top_suggestions(results.suggestions, settings.max_break_points)
    if shown:
        print(f"\n{Colors.BRIGHT}Suggested Break Points (top {len(shown)} of {len(results.suggestions)}):{Colors.RESET}")
        for suggestion in shown:
            print(
                f"  {suggestion.rank:>3}. {Colors.YELLOW}{suggestion.source.name} → {suggestion.target.name}{Colors.RESET}"
                f"  {Colors.DIM}{suggestion.rationale}{Colors.RESET}"
            )

    _print_candidates("Easiest Extraction Candidates", results.ranking.easiest)
    _print_candidates("Hardest Extraction Candidates", results.ranking.hardest)
    print()


def _print_candidates(title: str, candidates: List[ExtractionScore]) -> None:
    print(f"\n{Colors.BRIGHT}{title}:{Colors.RESET}")
    if not candidates:
        print(f"  {Colors.DIM}(none){Colors.RESET}")
        return
    for position, score in enumerate(candidates, start=1):
        band = classify_band(score.final_score)
        color = get_band_color(band.label)
        print(f"  {position:>3}. {score.module_name:<40} {color}{score.final_score:5.1f} {band.label}{Colors.RESET}")


def write_outputs(results: AnalysisResults, settings: AnalysisSettings, args: argparse.Namespace, name: str) -> bool:
    """Write reports and diagrams. Returns False if any output failed."""
    ok = True
    output_dir = args.output

    if args.reports in ("text", "all"):
        ok &= write_text_report(results, output_dir, name, settings.max_break_points) is not None

    if args.reports in ("csv", "all"):
        ok &= export_extraction_scores_csv(results.scores, output_dir, name) is not None
        ok &= export_cycle_analysis_csv(results.cycles.cycles, results.suggestions, output_dir, name) is not None
        ok &= export_dependency_matrix_csv(results.graph, output_dir, name) is not None

    if args.export_graph:
        ok &= export_dependency_graph(args.export_graph, results.graph, results.scores, results.cycles.cycles)

    diagram = build_diagram_graph(
        results.graph,
        results.cycles.cycles,
        results.suggestions,
        results.scores,
        max_break_points=settings.max_break_points,
    )
    dot_file = os.path.join(output_dir, f"{sanitize_filename(name)}-dependencies.dot")
    try:
        os.makedirs(output_dir, exist_ok=True)
        write_dot_file(diagram, dot_file, graph_name="dependencies")
        print_success(f"Wrote diagram to {dot_file}")
    except OSError as e:
        logger.error("Failed to write diagram: %s", e)
        print_error(f"Failed to write diagram: {e}")
        return False

    formats = FORMAT_CHOICES[args.format]
    if formats:
        try:
            for rendered in render_dot(dot_file, formats):
                print_success(f"Rendered {rendered}")
        except RuntimeError as e:
            logger.error("Diagram rendering failed: %s", e)
            print_warning(f"Diagram rendering failed: {e}")
            ok = False
    return ok


def create_source_provider(args: argparse.Namespace) -> Optional[SourceProvider]:
    if args.no_source_analysis:
        logger.info("Source analysis disabled, using fallback coupling and metrics")
        return None
    return PythonSourceProvider(base_dir=args.source_root)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the dependency map analysis.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parser = argparse.ArgumentParser(
        description="Circular dependency and extraction difficulty analysis for module dependency graphs.",
        epilog="""
Input files describe modules and their references, either as JSON
({"modules": [...], "dependencies": [...]}) or as GraphML written by
--export-graph. Several inputs are merged; each becomes a collection.

Configuration (optional, in --config-dir):
  filter-config.json   {"FrameworkFilters": {"BlockList": [...], "AllowList": [...]}}
  scoring-config.json  {"ScoringWeights": {"Coupling": 0.4, "Complexity": 0.3,
                                           "TechDebt": 0.2, "ExternalExposure": 0.1}}

Examples:
  depMapAnalyze.py solution.json --output out/
  depMapAnalyze.py backend.json frontend.json --reports csv --format svg
  depMapAnalyze.py graph.graphml --no-source-analysis --top 5
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}", help="Show version and exit")
    parser.add_argument("inputs", metavar="INPUT", nargs="*", help="Graph description files (.json, .graphml)")
    parser.add_argument("--output", "-o", metavar="DIR", default=".", help="Output directory (default: current directory)")
    parser.add_argument("--name", metavar="NAME", help="Analysis name used for output file names (default: first input's file name)")
    parser.add_argument("--config-dir", metavar="DIR", help="Directory with filter-config.json / scoring-config.json (default: current directory)")
    parser.add_argument("--reports", choices=REPORT_CHOICES, default="all", help="Reports to write (default: all)")
    parser.add_argument(
        "--format", choices=list(FORMAT_CHOICES), default="dot", help="Diagram output: DOT only, or DOT plus rendered png/svg/both (default: dot)"
    )
    parser.add_argument("--export-graph", metavar="FILE", help="Export the filtered dependency graph (formats: .graphml, .dot, .json)")
    parser.add_argument("--top", type=int, default=DEFAULT_TOP_N, help=f"Number of easiest/hardest candidates (default: {DEFAULT_TOP_N})")
    parser.add_argument(
        "--max-break-points",
        type=int,
        default=DEFAULT_MAX_BREAK_POINTS,
        help=f"Number of cycle-break suggestions to show and highlight (default: {DEFAULT_MAX_BREAK_POINTS})",
    )
    parser.add_argument(
        "--tiebreak",
        choices=[t.value for t in SuggestionTiebreak],
        default=SuggestionTiebreak.SOURCE_NAME.value,
        help="Final ordering of equally ranked suggestions (default: source)",
    )
    parser.add_argument("--workers", type=int, metavar="N", help="Worker threads for metric calculation (default: automatic)")
    parser.add_argument("--source-root", metavar="DIR", help="Base directory for relative module source paths")
    parser.add_argument("--no-source-analysis", action="store_true", help="Skip source analysis; coupling and metrics use fallback values")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose debug logging")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--check-dependencies", action="store_true", help="Verify required Python packages and exit")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if not should_use_color(args.no_color):
        Colors.disable()

    if args.check_dependencies:
        from depmap.package_verification import check_all_packages

        return EXIT_SUCCESS if check_all_packages() else EXIT_RUNTIME_ERROR

    if not args.inputs:
        parser.print_usage(sys.stderr)
        print_error("At least one INPUT file is required")
        return EXIT_INVALID_ARGS

    try:
        settings = load_settings(
            args.config_dir,
            top_n=args.top,
            max_break_points=args.max_break_points,
            tiebreak=SuggestionTiebreak(args.tiebreak),
            max_workers=args.workers,
        )
        description = load_graph_description(args.inputs)
        name = args.name or Path(args.inputs[0]).stem
        print_info(f"Analyzing {len(description.modules)} modules from {len(args.inputs)} input(s)")

        token = CancellationToken()
        previous_handler = install_cancel_handler(token)
        try:
            results = run_analysis(description, settings, create_source_provider(args), cancellation=token)
        finally:
            signal.signal(signal.SIGINT, previous_handler)

        print_summary(results, settings)
        outputs_ok = write_outputs(results, settings, args, name)

    except DepMapError as e:
        logger.error("%s", e)
        print_error(str(e))
        return e.exit_code

    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.critical("Unexpected error: %s", e, exc_info=True)
        print_error(f"Fatal error: {e}")
        print_warning("Run with --verbose for more details", prefix=False)
        return EXIT_RUNTIME_ERROR

    if results.partial:
        print_warning(f"Analysis cancelled: {len(results.metrics.pending)} module(s) were not scored, results are partial")
        return EXIT_PARTIAL_RESULTS
    return EXIT_SUCCESS if outputs_ok else EXIT_RUNTIME_ERROR


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        print_warning("\nInterrupted by user", prefix=False)
        sys.exit(EXIT_KEYBOARD_INTERRUPT)
    except DepMapError as e:
        logging.error(str(e))
        sys.exit(e.exit_code)
    except Exception as e:  # pylint: disable=broad-exception-caught
        logging.error("Unexpected error: %s", e)
        sys.exit(EXIT_RUNTIME_ERROR)
