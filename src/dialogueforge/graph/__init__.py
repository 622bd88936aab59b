"""Graph reference errors and structural validation."""

from dialogueforge.graph.errors import (
    ForgeGraphError,
    GraphNotFoundError,
    MissingReferencedGraphError,
    NodeNotFoundError,
    UnsupportedSchemaError,
)
from dialogueforge.graph.validation import reachable_nodes, validate_graph
from dialogueforge.graph.validation_types import ValidationCheck, ValidationReport

__all__ = [
    "ForgeGraphError",
    "GraphNotFoundError",
    "MissingReferencedGraphError",
    "NodeNotFoundError",
    "UnsupportedSchemaError",
    "ValidationCheck",
    "ValidationReport",
    "reachable_nodes",
    "validate_graph",
]
