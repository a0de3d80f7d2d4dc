"""Pytest configuration and shared fixtures for depmap tests.

Graph fixtures come in two forms: GraphDescription fixtures for pipeline
and loader tests, and the make_graph factory for tests that need a built
DependencyGraph with preset coupling scores.
"""

import sys
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Tuple

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from depmap.graph_model import DependencyEdge, DependencyGraph, DependencyKind, GraphDescription, ModuleNode  # noqa: E402

EdgeSpec = Tuple[str, str]


def _build(names: Iterable[str], edges: Iterable[EdgeSpec], coupling: Optional[Dict[EdgeSpec, int]] = None, collection: str = "") -> DependencyGraph:
    graph = DependencyGraph()
    for name in names:
        graph.add_node(ModuleNode(name=name, collection=collection))
    coupling = coupling or {}
    for source, target in edges:
        graph.add_edge(
            DependencyEdge(
                source=graph.get_node(source),
                target=graph.get_node(target),
                kind=DependencyKind.PROJECT_REFERENCE,
                coupling_score=coupling.get((source, target)),
            )
        )
    return graph


@pytest.fixture
def make_graph() -> Callable[..., DependencyGraph]:
    """Factory: make_graph(names, edges, coupling=None, collection="").

    Scope: function
    Use for: Cycle detection, recommendation and metric tests
    """
    return _build


@pytest.fixture
def triangle_graph() -> DependencyGraph:
    """A -> B -> C -> A, every edge with coupling 3."""
    edges = [("A", "B"), ("B", "C"), ("C", "A")]
    return _build(["A", "B", "C"], edges, {edge: 3 for edge in edges})


@pytest.fixture
def framework_description() -> GraphDescription:
    """Custom modules referencing framework modules.

    Structure:
        MyApp.Web -> MyApp.Core -> System.Core
        MyApp.Web -> System.Core
        MyApp.Web -> Microsoft.Extensions.Logging
        MyApp.Core -> MyApp.Data
    """
    return GraphDescription(
        modules=[
            ("MyApp.Web", "", "net8.0", "Backend"),
            ("MyApp.Core", "", "net472", "Backend"),
            ("MyApp.Data", "", "netstandard2.0", "Backend"),
            ("System.Core", "", "", "Backend"),
            ("Microsoft.Extensions.Logging", "", "", "Backend"),
        ],
        dependencies=[
            ("MyApp.Web", "MyApp.Core", "project"),
            ("MyApp.Core", "System.Core", "binary"),
            ("MyApp.Web", "System.Core", "binary"),
            ("MyApp.Web", "Microsoft.Extensions.Logging", "binary"),
            ("MyApp.Core", "MyApp.Data", "project"),
        ],
    )


@pytest.fixture
def cyclic_description() -> GraphDescription:
    """Two cycles plus an acyclic tail, spread over two collections.

    Structure:
        Orders <-> Billing            (2-cycle)
        Catalog -> Pricing -> Stock -> Catalog   (3-cycle)
        Reporting -> Orders, Reporting -> Catalog
        Reporting -> System.Data      (framework)
    """
    return GraphDescription(
        modules=[
            ("Orders", "", "net6.0", "Sales"),
            ("Billing", "", "net48", "Sales"),
            ("Catalog", "", "net8.0", "Inventory"),
            ("Pricing", "", "netcoreapp3.1", "Inventory"),
            ("Stock", "", "python3.8", "Inventory"),
            ("Reporting", "", "", "Sales"),
            ("System.Data", "", "", "Sales"),
        ],
        dependencies=[
            ("Orders", "Billing", "project"),
            ("Billing", "Orders", "project"),
            ("Catalog", "Pricing", "project"),
            ("Pricing", "Stock", "project"),
            ("Stock", "Catalog", "project"),
            ("Reporting", "Orders", "project"),
            ("Reporting", "Catalog", "project"),
            ("Reporting", "System.Data", "binary"),
        ],
    )
