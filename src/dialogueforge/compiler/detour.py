"""Storylet detour resolution.

Collects every graph reachable from a root graph through storylet calls.
Traversal is breadth-first over target graph ids with a ``seen`` set, so
each graph is fetched at most once and cyclic references terminate.
Lookups are awaited one at a time in queue order.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from dialogueforge.graph.errors import MissingReferencedGraphError
from dialogueforge.models.composition import CompositionDiagnostic
from dialogueforge.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping

    from dialogueforge.models.graph import Graph

GraphResolver = Callable[[int], Awaitable["Graph | None"]]
"""Async graph lookup; returns None when the graph does not exist."""

log = get_logger(__name__)


@dataclass
class DetourResolution:
    """Result of resolving a root graph's storylet family.

    Attributes:
        graph_by_id: Root first, then graphs in discovery order.
        resolved_graph_ids: Keys of ``graph_by_id``, in the same order.
        diagnostics: Missing-graph findings, in discovery order.
    """

    graph_by_id: dict[int, Graph] = field(default_factory=dict)
    diagnostics: list[CompositionDiagnostic] = field(default_factory=list)

    @property
    def resolved_graph_ids(self) -> list[int]:
        return list(self.graph_by_id)

    @property
    def graphs(self) -> list[Graph]:
        return list(self.graph_by_id.values())


def dict_resolver(graphs: Mapping[int, Graph]) -> GraphResolver:
    """Adapt an in-memory mapping to the async resolver contract."""

    async def resolve(graph_id: int) -> Graph | None:
        return graphs.get(graph_id)

    return resolve


async def resolve_storylet_detours(
    root: Graph,
    resolver: GraphResolver,
    *,
    fail_on_missing_graph: bool = True,
) -> DetourResolution:
    """Resolve every graph reachable from ``root`` via storylet calls.

    Args:
        root: Graph to start from. It is never passed to ``resolver``.
        resolver: Async lookup; ``None`` means the graph does not exist.
        fail_on_missing_graph: Raise on the first missing graph instead of
            recording a diagnostic and continuing.

    Returns:
        The resolved graph family and any diagnostics.

    Raises:
        MissingReferencedGraphError: A target graph is missing and
            ``fail_on_missing_graph`` is set.
    """
    result = DetourResolution(graph_by_id={root.id: root})
    seen: set[int] = {root.id}
    queue: deque[tuple[int, int]] = deque((target, root.id) for target in root.storylet_targets())

    while queue:
        graph_id, referenced_by = queue.popleft()
        if graph_id in seen:
            continue
        seen.add(graph_id)

        graph = await resolver(graph_id)
        if graph is None:
            diagnostic = CompositionDiagnostic(
                level="error",
                code=MissingReferencedGraphError.code,
                message=f"Referenced graph {graph_id} not found",
                graph_id=graph_id,
                details={"referencedBy": referenced_by},
            )
            result.diagnostics.append(diagnostic)
            log.warning("storylet_graph_missing", graph_id=graph_id, referenced_by=referenced_by)
            if fail_on_missing_graph:
                raise MissingReferencedGraphError(
                    graph_id,
                    referenced_by=referenced_by,
                    diagnostics=list(result.diagnostics),
                )
            continue

        if graph.id != graph_id:
            log.warning("storylet_graph_id_mismatch", requested=graph_id, returned=graph.id)
        result.graph_by_id[graph_id] = graph
        queue.extend((target, graph_id) for target in graph.storylet_targets())

    log.debug(
        "storylet_resolution_complete",
        root=root.id,
        graphs=len(result.graph_by_id),
        missing=len(result.diagnostics),
    )
    return result
