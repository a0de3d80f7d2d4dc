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
"""Graph description ingestion.

An input file is loaded by trying a prioritized list of ingestion
strategies in order. Every attempt yields a LoadAttempt that either carries
the loaded GraphDescription or the reason the strategy failed; the first
success wins.

JSON description format:

    {
      "collection": "Backend",
      "modules": [
        {"name": "Orders.Core", "path": "src/orders_core", "platform": "net472"}
      ],
      "dependencies": [
        {"source": "Orders.Api", "target": "Orders.Core", "kind": "project"}
      ]
    }

Relative module paths are resolved against the description file's
directory; the collection defaults to the file name without extension.
"""

import json
import logging
from xml.etree.ElementTree import ParseError
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import networkx as nx

from depmap.constants import GraphLoadError
from depmap.graph_model import DependencyKind, GraphDescription

logger = logging.getLogger(__name__)


@dataclass
class LoadAttempt:
    """Outcome of one ingestion strategy on one input.

    Attributes:
        strategy: Strategy name
        ok: True if the strategy produced a description
        description: Loaded description (only when ok)
        reason: Failure reason (only when not ok)
    """

    strategy: str
    ok: bool
    description: Optional[GraphDescription] = None
    reason: str = ""


class IngestionStrategy(ABC):
    """One way of turning an input file into a GraphDescription."""

    name = "strategy"

    @abstractmethod
    def load(self, path: Path) -> GraphDescription:
        """Load a description.

        Raises:
            ValueError: If the input is not in this strategy's format
            OSError: If the input cannot be read
        """

    def attempt(self, path: Path) -> LoadAttempt:
        try:
            return LoadAttempt(strategy=self.name, ok=True, description=self.load(path))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            return LoadAttempt(strategy=self.name, ok=False, reason=f"{type(e).__name__}: {e}")


def _resolve_path(base_dir: Path, value: Any) -> str:
    if not value:
        return ""
    path = Path(str(value))
    return str(path if path.is_absolute() else base_dir / path)


class JsonDescriptionStrategy(IngestionStrategy):
    """Load the JSON module/dependency description format."""

    name = "json"

    def load(self, path: Path) -> GraphDescription:
        if path.suffix.lower() != ".json":
            raise ValueError(f"not a .json file: {path.name}")
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict) or "modules" not in data:
            raise ValueError("expected an object with a 'modules' list")

        default_collection = str(data.get("collection") or path.stem)
        modules: List[Tuple[str, str, str, str]] = []
        for entry in data["modules"]:
            if isinstance(entry, str):
                entry = {"name": entry}
            name = str(entry["name"]).strip()
            if not name:
                raise ValueError("module with empty name")
            modules.append(
                (
                    name,
                    _resolve_path(path.parent, entry.get("path")),
                    str(entry.get("platform") or ""),
                    str(entry.get("collection") or default_collection),
                )
            )

        dependencies: List[Tuple[str, str, str]] = []
        for entry in data.get("dependencies", []):
            kind = DependencyKind.parse(entry.get("kind", DependencyKind.PROJECT_REFERENCE.value))
            dependencies.append((str(entry["source"]), str(entry["target"]), kind.value))

        return GraphDescription(modules=modules, dependencies=dependencies)


class GraphMLStrategy(IngestionStrategy):
    """Load a GraphML graph (as written by the graph exporter)."""

    name = "graphml"

    def load(self, path: Path) -> GraphDescription:
        if path.suffix.lower() not in (".graphml", ".xml"):
            raise ValueError(f"not a GraphML file: {path.name}")
        try:
            graph = nx.read_graphml(str(path))
        except (nx.NetworkXError, ParseError) as e:
            raise ValueError(str(e)) from e

        modules = [
            (
                str(node),
                str(data.get("path", "")),
                str(data.get("platform", "")),
                str(data.get("collection") or path.stem),
            )
            for node, data in graph.nodes(data=True)
        ]
        dependencies = [
            (str(source), str(target), DependencyKind.parse(data.get("kind", DependencyKind.PROJECT_REFERENCE.value)).value)
            for source, target, data in graph.edges(data=True)
        ]
        return GraphDescription(modules=modules, dependencies=dependencies)


DEFAULT_STRATEGIES: Sequence[IngestionStrategy] = (JsonDescriptionStrategy(), GraphMLStrategy())


def try_strategies(path: Path, strategies: Sequence[IngestionStrategy]) -> List[LoadAttempt]:
    """Try strategies in order until one succeeds.

    Returns:
        Every attempt made; the last one is the success if any succeeded
    """
    attempts: List[LoadAttempt] = []
    for strategy in strategies:
        attempt = strategy.attempt(path)
        attempts.append(attempt)
        if attempt.ok:
            logger.info("Loaded %s with %s strategy", path, strategy.name)
            break
        logger.debug("Strategy %s failed for %s: %s", strategy.name, path, attempt.reason)
    return attempts


def merge_descriptions(descriptions: Sequence[GraphDescription]) -> GraphDescription:
    """Merge descriptions from several inputs.

    A module listed by several inputs with the same path is kept once (first
    occurrence); repeated identical dependencies are kept once.
    """
    modules: List[Tuple[str, str, str, str]] = []
    seen_modules = set()
    dependencies: List[Tuple[str, str, str]] = []
    seen_dependencies = set()

    for description in descriptions:
        for module in description.modules:
            key = (module[0].casefold(), module[1])
            if key in seen_modules:
                logger.debug("Module %s listed by several inputs, keeping first occurrence", module[0])
                continue
            seen_modules.add(key)
            modules.append(module)
        for dependency in description.dependencies:
            key3 = (dependency[0].casefold(), dependency[1].casefold(), dependency[2])
            if key3 in seen_dependencies:
                continue
            seen_dependencies.add(key3)
            dependencies.append(dependency)

    return GraphDescription(modules=modules, dependencies=dependencies)


def load_graph_description(paths: Sequence[str], strategies: Optional[Sequence[IngestionStrategy]] = None) -> GraphDescription:
    """Load and merge graph descriptions from input files.

    Args:
        paths: Input files
        strategies: Ingestion strategies in priority order (default: JSON, GraphML)

    Returns:
        Merged GraphDescription

    Raises:
        GraphLoadError: If an input is missing or no strategy can load it
    """
    strategies = DEFAULT_STRATEGIES if strategies is None else strategies
    descriptions = []
    for raw_path in paths:
        path = Path(raw_path)
        if not path.is_file():
            raise GraphLoadError(f"Input file not found: {path}")
        attempts = try_strategies(path, strategies)
        if not attempts or not attempts[-1].ok:
            reasons = "; ".join(f"{attempt.strategy}: {attempt.reason}" for attempt in attempts) or "no strategies configured"
            raise GraphLoadError(f"Could not load {path} ({reasons})")
        description = attempts[-1].description
        assert description is not None, "Successful attempt must carry a description"
        descriptions.append(description)

    return merge_descriptions(descriptions)
