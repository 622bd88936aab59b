"""Graph reference error types.

Raised when something names a node or graph that cannot be found. The
runner never lets these escape (they become ``ERROR`` events); the detour
resolver raises ``MissingReferencedGraphError`` in fail-fast mode.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from difflib import get_close_matches
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dialogueforge.models.composition import CompositionDiagnostic


class ForgeGraphError(Exception):
    """Base class for graph reference failures."""

    code = "GRAPH_ERROR"


@dataclass
class NodeNotFoundError(ForgeGraphError):
    """Raised when a node id is absent from its graph.

    Attributes:
        node_id: The ID that was referenced but doesn't exist.
        graph_id: Graph that was searched.
        available: Node IDs that do exist, used for suggestions.
    """

    node_id: str
    graph_id: int | None = None
    available: list[str] = field(default_factory=list)

    code = "NODE_NOT_FOUND"

    def __post_init__(self) -> None:
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"Node '{self.node_id}' not found"
        if self.graph_id is not None:
            msg += f" in graph {self.graph_id}"
        suggestions = get_close_matches(self.node_id, self.available, n=3, cutoff=0.6)
        if suggestions:
            msg += f" (did you mean: {', '.join(suggestions)}?)"
        return msg


@dataclass
class GraphNotFoundError(ForgeGraphError):
    """Raised when a graph id is absent from the supplied graph map."""

    graph_id: int

    code = "GRAPH_NOT_FOUND"

    def __post_init__(self) -> None:
        super().__init__(f"Graph {self.graph_id} not found")


@dataclass
class MissingReferencedGraphError(ForgeGraphError):
    """Raised when a storylet call targets a graph the resolver cannot supply.

    Attributes:
        graph_id: The unresolved target graph.
        referenced_by: Graph that holds the storylet call, if known.
        diagnostics: Diagnostics accumulated up to the failure.
    """

    graph_id: int
    referenced_by: int | None = None
    diagnostics: list[CompositionDiagnostic] = field(default_factory=list)

    code = "MISSING_REFERENCED_GRAPH"

    def __post_init__(self) -> None:
        msg = f"Referenced graph {self.graph_id} not found"
        if self.referenced_by is not None:
            msg += f" (referenced by graph {self.referenced_by})"
        super().__init__(msg)


class UnsupportedSchemaError(ValueError):
    """Raised when a composition document has an unknown schema version."""

    def __init__(self, schema: object) -> None:
        self.schema = schema
        super().__init__(f"Unsupported composition schema: {schema!r}")
