"""JSON export formats.

``composition`` writes the compiled ``forge.composition.v1`` document;
``graph`` writes the authored graph itself. Both use camelCase keys.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from dialogueforge.observability.logging import get_logger

if TYPE_CHECKING:
    from pathlib import Path

    from dialogueforge.export.base import ExportContext

log = get_logger(__name__)


class JsonCompositionExporter:
    """Export a compiled composition as JSON."""

    format_name = "composition"

    def export(self, context: ExportContext, output_dir: Path) -> Path:
        """Write ``composition.json``.

        Raises:
            ValueError: If the context carries no composition.
        """
        if context.composition is None:
            msg = "Composition export requires a compiled composition"
            raise ValueError(msg)

        output_dir.mkdir(parents=True, exist_ok=True)
        output_file = output_dir / "composition.json"
        data = context.composition.to_json_dict()
        output_file.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

        log.info(
            "composition_export_complete",
            cues=len(context.composition.cues),
            graphs=len(context.composition.graphs),
            output=str(output_file),
        )
        return output_file


class GraphJsonExporter:
    """Export the authored graph as JSON."""

    format_name = "graph"

    def export(self, context: ExportContext, output_dir: Path) -> Path:
        output_dir.mkdir(parents=True, exist_ok=True)
        output_file = output_dir / f"{context.file_stem}.json"
        data = context.graph.to_json_dict()
        output_file.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        return output_file
