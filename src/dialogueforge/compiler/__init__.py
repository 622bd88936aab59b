"""Storylet resolution and composition compilation."""

from dialogueforge.compiler.composition import (
    CHOICE_TRACK_ID,
    DIALOGUE_TRACK_ID,
    PRESENTATION_TRACK_ID,
    SYSTEM_TRACK_ID,
    CompilationResult,
    build_bindings,
    build_cues,
    compile_composition,
    read_composition,
    snapshot_graph,
)
from dialogueforge.compiler.detour import (
    DetourResolution,
    GraphResolver,
    dict_resolver,
    resolve_storylet_detours,
)

__all__ = [
    "CHOICE_TRACK_ID",
    "DIALOGUE_TRACK_ID",
    "PRESENTATION_TRACK_ID",
    "SYSTEM_TRACK_ID",
    "CompilationResult",
    "DetourResolution",
    "GraphResolver",
    "build_bindings",
    "build_cues",
    "compile_composition",
    "dict_resolver",
    "read_composition",
    "resolve_storylet_detours",
    "snapshot_graph",
]
