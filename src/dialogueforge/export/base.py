"""Export context and Exporter protocol.

Exporters take an ``ExportContext`` (one graph, optionally its compiled
composition) and write a single file into an output directory.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from pathlib import Path

    from dialogueforge.models.composition import Composition
    from dialogueforge.models.graph import Graph


@dataclass
class ExportContext:
    """Everything an exporter may need."""

    graph: Graph
    composition: Composition | None = None

    @property
    def file_stem(self) -> str:
        """Filesystem-safe name derived from the graph title."""
        slug = re.sub(r"[^A-Za-z0-9]+", "_", self.graph.title).strip("_").lower()
        return slug or f"graph_{self.graph.id}"


class Exporter(Protocol):
    """Protocol for export format handlers."""

    format_name: str

    def export(self, context: ExportContext, output_dir: Path) -> Path:
        """Export to the given output directory.

        Args:
            context: Graph (and composition) to export.
            output_dir: Directory to write output files.

        Returns:
            Path to the written file.
        """
        ...
