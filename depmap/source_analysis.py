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
"""Per-module source access for semantic metrics.

The metric calculators and the coupling analyzer only depend on the
SourceProvider interface: given a module, return its analyzable units
(functions and methods) with their branching complexity, markers
(decorators / attributes) and outgoing call targets.

PythonSourceProvider implements the interface for Python code with the
built-in ``ast`` module. StaticSourceProvider serves precomputed units and is
used for tests and for ingestion formats that already carry unit data.
"""

import ast
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from depmap.constants import SourceAnalysisError
from depmap.graph_model import ModuleNode

logger = logging.getLogger(__name__)

SKIP_DIRS: Set[str] = {
    ".venv", "venv", "__pycache__", "node_modules", ".git",
    "site-packages", ".tox", ".pytest_cache", "build", "dist",
    ".mypy_cache", ".eggs",
}

UNIT_FUNCTION = "function"
UNIT_METHOD = "method"
UNIT_MODULE = "module"  # Top-level statements of a file; not an executable unit for complexity


@dataclass(frozen=True)
class AnalyzableUnit:
    """One unit of code inside a module.

    Attributes:
        name: Qualified name (e.g. "orders/api.py:OrderView.get")
        kind: UNIT_FUNCTION, UNIT_METHOD or UNIT_MODULE
        complexity: Cyclomatic complexity (1 + decision points)
        markers: Decorator/attribute names as written on the unit
        container_markers: Decorators and base classes of the enclosing class
        call_targets: Root module name of every resolved external call site
    """

    name: str
    kind: str = UNIT_FUNCTION
    complexity: int = 1
    markers: FrozenSet[str] = field(default_factory=frozenset)
    container_markers: FrozenSet[str] = field(default_factory=frozenset)
    call_targets: Tuple[str, ...] = ()

    @property
    def is_executable(self) -> bool:
        return self.kind != UNIT_MODULE

    @property
    def short_name(self) -> str:
        return self.name.rsplit(".", 1)[-1].rsplit(":", 1)[-1]


class SourceProvider(ABC):
    """Source access used by the semantic metric calculators."""

    @abstractmethod
    def get_units(self, module: ModuleNode) -> List[AnalyzableUnit]:
        """Return the analyzable units of a module.

        Raises:
            SourceAnalysisError: If the module's source cannot be analyzed
        """


class StaticSourceProvider(SourceProvider):
    """Serve precomputed units keyed by module name (case-insensitive).

    Modules without an entry raise SourceAnalysisError, which the
    calculators translate into their fallback values.
    """

    def __init__(self, units: Mapping[str, Iterable[AnalyzableUnit]]) -> None:
        self._units: Dict[str, List[AnalyzableUnit]] = {name.casefold(): list(module_units) for name, module_units in units.items()}

    def get_units(self, module: ModuleNode) -> List[AnalyzableUnit]:
        try:
            return list(self._units[module.key])
        except KeyError:
            raise SourceAnalysisError(f"No source units available for module '{module.name}'") from None


# ----------------------------------------------------------------------
# Markers
# ----------------------------------------------------------------------


def normalize_marker(marker: str) -> str:
    """Reduce a marker spelling to its comparison form.

    "app.get" -> "get", "Microsoft.AspNetCore.Mvc.HttpGetAttribute" -> "httpget".
    """
    name = marker.strip().rsplit(".", 1)[-1].casefold()
    if name.endswith("attribute") and name != "attribute":
        name = name[: -len("attribute")]
    return name


def marker_set(*spellings: str) -> FrozenSet[str]:
    return frozenset(normalize_marker(spelling) for spelling in spellings)


def has_marker(unit: AnalyzableUnit, markers: FrozenSet[str]) -> bool:
    """True if the unit carries any spelling of a marker in the set."""
    return any(normalize_marker(marker) in markers for marker in unit.markers)


def has_container_marker(unit: AnalyzableUnit, markers: FrozenSet[str]) -> bool:
    """True if the unit's enclosing class carries any marker in the set."""
    return any(normalize_marker(marker) in markers for marker in unit.container_markers)


# ----------------------------------------------------------------------
# Python source analysis
# ----------------------------------------------------------------------

_SCOPE_NODES = (ast.FunctionDef, ast.AsyncFunctionDef)


def iter_own_nodes(root: ast.AST) -> Iterator[ast.AST]:
    """Walk the descendants of root without entering nested function bodies.

    Nested functions are their own units, so their bodies are excluded.
    """
    stack = list(ast.iter_child_nodes(root))
    while stack:
        node = stack.pop()
        yield node
        if isinstance(node, _SCOPE_NODES):
            continue
        stack.extend(ast.iter_child_nodes(node))


def decision_points(node: ast.AST) -> int:
    """Number of branches a node adds to cyclomatic complexity."""
    if isinstance(node, (ast.If, ast.For, ast.AsyncFor, ast.While, ast.IfExp, ast.ExceptHandler, ast.match_case)):
        return 1
    if isinstance(node, ast.BoolOp):
        return len(node.values) - 1
    if isinstance(node, ast.comprehension):
        return 1 + len(node.ifs)
    return 0


def cyclomatic_complexity(function: ast.AST) -> int:
    """Cyclomatic complexity of a function: 1 plus its decision points."""
    return 1 + sum(decision_points(node) for node in iter_own_nodes(function) if not isinstance(node, _SCOPE_NODES))


def dotted_name(node: ast.AST) -> Optional[str]:
    """Render Name/Attribute chains ("a.b.c"); calls resolve to their callee."""
    if isinstance(node, ast.Call):
        return dotted_name(node.func)
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        base = dotted_name(node.value)
        return f"{base}.{node.attr}" if base else None
    return None


def collect_import_aliases(tree: ast.Module) -> Dict[str, str]:
    """Map local names bound by absolute imports to their imported module path.

    Relative imports refer to the module itself and are ignored.
    """
    aliases: Dict[str, str] = {}
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                if alias.asname:
                    aliases[alias.asname] = alias.name
                else:
                    root = alias.name.split(".", 1)[0]
                    aliases[root] = root
        elif isinstance(node, ast.ImportFrom) and node.level == 0 and node.module:
            for alias in node.names:
                if alias.name != "*":
                    aliases[alias.asname or alias.name] = f"{node.module}.{alias.name}"
    return aliases


def resolve_call_targets(nodes: Iterable[ast.AST], aliases: Mapping[str, str]) -> Tuple[str, ...]:
    """Root module name for every call site that goes through an import."""
    targets = []
    for node in nodes:
        if not isinstance(node, ast.Call):
            continue
        callee = dotted_name(node.func)
        if not callee:
            continue
        head = callee.split(".", 1)[0]
        imported = aliases.get(head)
        if imported:
            targets.append(imported.split(".", 1)[0])
    return tuple(targets)


class _UnitCollector(ast.NodeVisitor):
    """Collect function/method units of one parsed file."""

    def __init__(self, file_label: str, aliases: Mapping[str, str]) -> None:
        self.file_label = file_label
        self.aliases = aliases
        self.units: List[AnalyzableUnit] = []
        self._class_stack: List[Tuple[str, FrozenSet[str]]] = []
        self._function_depth = 0

    def visit_ClassDef(self, node: ast.ClassDef) -> None:  # pylint: disable=invalid-name
        markers = {dotted_name(decorator) for decorator in node.decorator_list}
        markers.update(dotted_name(base) for base in node.bases)
        self._class_stack.append((node.name, frozenset(m for m in markers if m)))
        self.generic_visit(node)
        self._class_stack.pop()

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:  # pylint: disable=invalid-name
        self._add_function(node)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:  # pylint: disable=invalid-name
        self._add_function(node)

    def _add_function(self, node: ast.AST) -> None:
        is_method = bool(self._class_stack) and self._function_depth == 0
        qualifier = ".".join(name for name, _ in self._class_stack)
        name = f"{qualifier}.{node.name}" if qualifier else node.name  # type: ignore[attr-defined]
        self.units.append(
            AnalyzableUnit(
                name=f"{self.file_label}:{name}",
                kind=UNIT_METHOD if is_method else UNIT_FUNCTION,
                complexity=cyclomatic_complexity(node),
                markers=frozenset(m for m in (dotted_name(d) for d in node.decorator_list) if m),  # type: ignore[attr-defined]
                container_markers=self._class_stack[-1][1] if is_method else frozenset(),
                call_targets=resolve_call_targets(iter_own_nodes(node), self.aliases),
            )
        )
        self._function_depth += 1
        self.generic_visit(node)
        self._function_depth -= 1


def analyze_python_source(source: str, file_label: str) -> List[AnalyzableUnit]:
    """Parse Python source text into analyzable units.

    Args:
        source: Python source code
        file_label: Label used as the unit name prefix (usually a relative path)

    Returns:
        Function and method units, followed by one UNIT_MODULE unit holding
        the call sites of top-level statements

    Raises:
        SyntaxError: If the source does not parse
    """
    tree = ast.parse(source, filename=file_label)
    aliases = collect_import_aliases(tree)
    collector = _UnitCollector(file_label, aliases)
    collector.visit(tree)

    module_calls = resolve_call_targets(iter_own_nodes(tree), aliases)
    units = collector.units
    units.append(AnalyzableUnit(name=f"{file_label}:<module>", kind=UNIT_MODULE, complexity=0, call_targets=module_calls))
    return units


class PythonSourceProvider(SourceProvider):
    """Analyze the Python files under each module's path.

    Results are cached per module key; the provider is safe to share between
    worker threads because each module is parsed independently and the cache
    only ever gains complete entries.
    """

    def __init__(self, base_dir: Optional[str] = None, encoding: str = "utf-8") -> None:
        self.base_dir = Path(base_dir) if base_dir else None
        self.encoding = encoding
        self._cache: Dict[str, List[AnalyzableUnit]] = {}

    def _module_root(self, module: ModuleNode) -> Path:
        if not module.path:
            raise SourceAnalysisError(f"Module '{module.name}' has no source path")
        root = Path(module.path)
        if not root.is_absolute() and self.base_dir is not None:
            root = self.base_dir / root
        # A path to a project descriptor file means its directory
        if root.is_file() and root.suffix != ".py":
            root = root.parent
        if not root.exists():
            raise SourceAnalysisError(f"Source path for module '{module.name}' does not exist: {root}")
        return root

    def _source_files(self, root: Path) -> List[Path]:
        if root.is_file():
            return [root]
        return [path for path in sorted(root.rglob("*.py")) if not any(part in SKIP_DIRS for part in path.relative_to(root).parts)]

    def get_units(self, module: ModuleNode) -> List[AnalyzableUnit]:
        cached = self._cache.get(module.key)
        if cached is not None:
            return list(cached)

        root = self._module_root(module)
        units: List[AnalyzableUnit] = []
        for path in self._source_files(root):
            label = path.name if root.is_file() else path.relative_to(root).as_posix()
            try:
                source = path.read_text(encoding=self.encoding)
                units.extend(analyze_python_source(source, label))
            except (OSError, UnicodeDecodeError, SyntaxError) as e:
                raise SourceAnalysisError(f"Cannot analyze {path} for module '{module.name}': {e}") from e

        logger.debug("Module %s: %d units from %s", module.name, len(units), root)
        self._cache[module.key] = units
        return list(units)
