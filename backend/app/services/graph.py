"""
Whole-graph diagnostics using NetworkX.

The insertion path never needs the full graph; this module loads every
stored edge to confirm the edge set is still a DAG and to produce a
completion order.
"""

import networkx as nx

from app.models import TaskDependency
from app.services.store import TaskStore
from app.logging_config import get_logger

logger = get_logger(__name__)


def build_dependency_graph(edges: list[TaskDependency]) -> nx.DiGraph:
    """
    Build a NetworkX DiGraph from dependency edges.

    Edges go from prerequisite -> dependent (depends_on_task_id -> task_id),
    so a topological order lists every task after everything it waits on.
    """
    graph = nx.DiGraph()
    for edge in edges:
        graph.add_edge(edge.depends_on_task_id, edge.task_id, dependency_id=edge.dependency_id)
    return graph


def completion_order(graph: nx.DiGraph) -> list[int]:
    """
    Topological sort of the graph.

    Ties are broken by task id so the order is stable between calls.
    """
    return list(nx.lexicographical_topological_sort(graph))


def audit_graph_edges(edges: list[TaskDependency]) -> dict:
    """Check a list of edges for cycles and compute a completion order."""
    graph = build_dependency_graph(edges)

    try:
        cycle = nx.find_cycle(graph)
    except nx.NetworkXNoCycle:
        return {
            "acyclic": True,
            "task_count": graph.number_of_nodes(),
            "edge_count": graph.number_of_edges(),
            "cycle": [],
            "order": completion_order(graph),
        }

    # Report as (task_id, depends_on_task_id) pairs, matching the stored edges
    cycle_edges = [[successor, predecessor] for predecessor, successor in cycle]
    logger.error(f"Dependency graph contains a cycle: {cycle_edges}")
    return {
        "acyclic": False,
        "task_count": graph.number_of_nodes(),
        "edge_count": graph.number_of_edges(),
        "cycle": cycle_edges,
        "order": [],
    }


async def audit_graph(store: TaskStore) -> dict:
    """Audit every stored edge. Tasks without edges are not included."""
    edges = await store.list_all_edges()
    return audit_graph_edges(edges)
