"""Structural checks for dialogue graphs.

Pure, deterministic functions over a single graph. Dangling next-node
references are only warnings: the model accepts them and the runner
stops there with a ``NODE_NOT_FOUND`` error.

Checks:
- start node present
- orphaned nodes (nothing points at them)
- nodes unreachable from the start
- dangling next-node references
- edge endpoints and kinds
- ACT -> CHAPTER -> PAGE hierarchy
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dialogueforge.graph.validation_types import ValidationCheck, ValidationReport
from dialogueforge.models.graph import NodeType, node_references

if TYPE_CHECKING:
    from dialogueforge.models.graph import Graph


def build_adjacency(graph: Graph) -> dict[str, list[str]]:
    """Successor ids per node, from both edges and next-node fields.

    Targets outside the graph are kept; callers filter as needed.
    """
    adjacency: dict[str, list[str]] = {node_id: [] for node_id in graph.nodes}
    for node in graph.nodes.values():
        for target, _kind in node_references(node):
            if target not in adjacency[node.id]:
                adjacency[node.id].append(target)
    for edge in graph.edges:
        successors = adjacency.setdefault(edge.source, [])
        if edge.target not in successors:
            successors.append(edge.target)
    return adjacency


def reachable_nodes(graph: Graph) -> set[str]:
    """Node ids reachable from the start node (including it)."""
    if graph.start_node_id not in graph.nodes:
        return set()
    adjacency = build_adjacency(graph)
    visited: set[str] = set()
    stack = [graph.start_node_id]
    while stack:
        current = stack.pop()
        if current in visited or current not in graph.nodes:
            continue
        visited.add(current)
        stack.extend(adjacency.get(current, []))
    return visited


def check_start_node(graph: Graph) -> ValidationCheck:
    if not graph.nodes:
        return ValidationCheck(name="start_node", severity="pass", message="No nodes to check")
    if graph.start_node_id in graph.nodes:
        return ValidationCheck(
            name="start_node",
            severity="pass",
            message=f"Start node: {graph.start_node_id}",
        )
    return ValidationCheck(
        name="start_node",
        severity="fail",
        message=f"Start node '{graph.start_node_id}' is missing from the graph",
    )


def check_orphaned_nodes(graph: Graph) -> ValidationCheck:
    """Every node except the start needs at least one incoming reference."""
    has_incoming: set[str] = set()
    for successors in build_adjacency(graph).values():
        has_incoming.update(successors)
    orphans = [
        node_id
        for node_id in graph.nodes
        if node_id != graph.start_node_id and node_id not in has_incoming
    ]
    if not orphans:
        return ValidationCheck(name="orphaned_nodes", severity="pass", message="No orphaned nodes")
    return ValidationCheck(
        name="orphaned_nodes",
        severity="fail",
        message=f"Nodes with no incoming references: {', '.join(orphans)}",
        node_ids=orphans,
    )


def check_reachability(graph: Graph) -> ValidationCheck:
    if graph.start_node_id not in graph.nodes:
        return ValidationCheck(
            name="reachability",
            severity="pass",
            message="Skipped: no start node",
        )
    visited = reachable_nodes(graph)
    unreachable = [node_id for node_id in graph.nodes if node_id not in visited]
    if not unreachable:
        return ValidationCheck(
            name="reachability",
            severity="pass",
            message=f"All {len(graph.nodes)} nodes reachable from start",
        )
    return ValidationCheck(
        name="reachability",
        severity="fail",
        message=f"{len(unreachable)} nodes unreachable from start: {', '.join(unreachable)}",
        node_ids=unreachable,
    )


def check_dangling_references(graph: Graph) -> ValidationCheck:
    dangling: list[str] = []
    for node in graph.nodes.values():
        for target, _kind in node_references(node):
            if target not in graph.nodes:
                dangling.append(f"{node.id} -> {target}")
    if not dangling:
        return ValidationCheck(
            name="dangling_references",
            severity="pass",
            message="All next-node references resolve",
        )
    return ValidationCheck(
        name="dangling_references",
        severity="warn",
        message=f"References to missing nodes: {', '.join(dangling)}",
    )


def check_edges(graph: Graph) -> list[ValidationCheck]:
    """Edge endpoints must exist; edges should carry a kind."""
    dangling = [
        edge.id for edge in graph.edges if edge.source not in graph.nodes or edge.target not in graph.nodes
    ]
    untyped = [edge.id for edge in graph.edges if edge.kind is None]

    checks: list[ValidationCheck] = []
    if dangling:
        checks.append(
            ValidationCheck(
                name="edge_endpoints",
                severity="fail",
                message=f"Edges pointing at missing nodes: {', '.join(dangling)}",
            )
        )
    else:
        checks.append(ValidationCheck(name="edge_endpoints", severity="pass", message="All edges connect nodes"))
    if untyped:
        checks.append(
            ValidationCheck(
                name="edge_kinds",
                severity="warn",
                message=f"Edges without a kind: {', '.join(untyped)}",
            )
        )
    else:
        checks.append(ValidationCheck(name="edge_kinds", severity="pass", message="All edges have a kind"))
    return checks


_EXPECTED_PARENT = {
    NodeType.CHAPTER: NodeType.ACT,
    NodeType.PAGE: NodeType.CHAPTER,
}


def check_hierarchy(graph: Graph) -> ValidationCheck:
    """Chapters should hang off acts, pages off chapters."""
    parent_of: dict[str, str] = {}
    for source, successors in build_adjacency(graph).items():
        for target in successors:
            parent_of.setdefault(target, source)

    misplaced: list[str] = []
    for node in graph.nodes.values():
        expected = _EXPECTED_PARENT.get(NodeType(node.type))
        if expected is None:
            continue
        parent = graph.nodes.get(parent_of.get(node.id, ""))
        if parent is not None and parent.type != expected:
            misplaced.append(node.id)

    if not misplaced:
        return ValidationCheck(name="hierarchy", severity="pass", message="Structure nodes are well nested")
    return ValidationCheck(
        name="hierarchy",
        severity="warn",
        message=f"Chapters/pages not under an act/chapter: {', '.join(misplaced)}",
        node_ids=misplaced,
    )


def validate_graph(graph: Graph) -> ValidationReport:
    """Run every structural check and aggregate the results."""
    checks: list[ValidationCheck] = [
        check_start_node(graph),
        check_orphaned_nodes(graph),
        check_reachability(graph),
        check_dangling_references(graph),
    ]
    checks.extend(check_edges(graph))
    checks.append(check_hierarchy(graph))
    return ValidationReport(checks=checks)
