"""Yarn export format."""

from __future__ import annotations

from typing import TYPE_CHECKING

from dialogueforge.observability.logging import get_logger
from dialogueforge.yarn.formatter import format_graph

if TYPE_CHECKING:
    from pathlib import Path

    from dialogueforge.export.base import ExportContext

log = get_logger(__name__)


class YarnExporter:
    """Export a graph as a Yarn script."""

    format_name = "yarn"

    def export(self, context: ExportContext, output_dir: Path) -> Path:
        """Write ``<title>.yarn``.

        Args:
            context: Graph to export.
            output_dir: Directory to write output files.

        Returns:
            Path to the generated .yarn file.
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        output_file = output_dir / f"{context.file_stem}.yarn"
        output_file.write_text(format_graph(context.graph), encoding="utf-8")

        log.info(
            "yarn_export_complete",
            graph_id=context.graph.id,
            nodes=len(context.graph.nodes),
            output=str(output_file),
        )
        return output_file
