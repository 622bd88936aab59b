"""Export format handlers (composition JSON, graph JSON, Yarn)."""

from __future__ import annotations

from dialogueforge.export.base import ExportContext, Exporter
from dialogueforge.export.json_exporter import GraphJsonExporter, JsonCompositionExporter
from dialogueforge.export.yarn_exporter import YarnExporter

_EXPORTERS: dict[str, type[JsonCompositionExporter | GraphJsonExporter | YarnExporter]] = {
    "composition": JsonCompositionExporter,
    "graph": GraphJsonExporter,
    "yarn": YarnExporter,
}


def get_exporter(format_name: str) -> JsonCompositionExporter | GraphJsonExporter | YarnExporter:
    """Get an exporter instance by format name.

    Args:
        format_name: Export format ("composition", "graph" or "yarn").

    Returns:
        Exporter instance.

    Raises:
        ValueError: If the format is not supported.
    """
    cls = _EXPORTERS.get(format_name)
    if cls is None:
        supported = ", ".join(sorted(_EXPORTERS))
        msg = f"Unknown export format '{format_name}'. Supported: {supported}"
        raise ValueError(msg)
    return cls()


__all__ = [
    "ExportContext",
    "Exporter",
    "GraphJsonExporter",
    "JsonCompositionExporter",
    "YarnExporter",
    "get_exporter",
]
