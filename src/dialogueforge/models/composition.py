"""Composition document models (``forge.composition.v1``).

A composition is the compiler's flattened, cue-based timeline for one
root graph and the storylet graphs it reaches. Consumers must check
``schema`` before trusting field shapes.

Cues are frozen: once the compiler emits one it is never modified or
reordered.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Literal

from pydantic import ConfigDict, Field

from dialogueforge.models.graph import FlagValue, ForgeModel

COMPOSITION_SCHEMA_V1 = "forge.composition.v1"


class TrackType(StrEnum):
    SYSTEM = "SYSTEM"
    DIALOGUE = "DIALOGUE"
    CHOICE = "CHOICE"
    PRESENTATION = "PRESENTATION"


class CueType(StrEnum):
    ENTER_NODE = "ENTER_NODE"
    LINE = "LINE"
    CHOICES = "CHOICES"
    SET_VARIABLES = "SET_VARIABLES"
    DIRECTIVE = "DIRECTIVE"
    END = "END"


class Transition(StrEnum):
    CUT = "CUT"
    FADE = "FADE"
    SLIDE = "SLIDE"


DiagnosticLevel = Literal["info", "warning", "error"]


class CompositionDiagnostic(ForgeModel):
    """A non-fatal (or, in fail-fast mode, fatal) compile/resolve finding."""

    level: DiagnosticLevel
    code: str
    message: str
    graph_id: int | None = None
    node_id: str | None = None
    details: dict[str, Any] | None = None


class CompositionCondition(ForgeModel):
    flag: str
    operator: str
    value: FlagValue | None = None


class CompositionChoice(ForgeModel):
    id: str
    text: str
    next_node_id: str | None = None
    conditions: list[CompositionCondition] | None = None
    set_flags: list[str] | None = None


class CompositionConditionalBlock(ForgeModel):
    id: str
    type: str
    condition: list[CompositionCondition] | None = None
    speaker: str | None = None
    character_id: str | None = None
    content: str | None = None
    next_node_id: str | None = None
    set_flags: list[str] | None = None


class CompositionStoryletCall(ForgeModel):
    mode: str
    target_graph_id: int
    target_start_node_id: str | None = None
    return_node_id: str | None = None
    return_graph_id: int | None = None


class CompositionPresentation(ForgeModel):
    image_id: str | None = None
    background_id: str | None = None
    portrait_id: str | None = None


class CompositionGraphNode(ForgeModel):
    """Flattened snapshot of one authored node."""

    id: str
    type: str
    label: str | None = None
    speaker: str | None = None
    character_id: str | None = None
    content: str | None = None
    set_flags: list[str] | None = None
    default_next_node_id: str | None = None
    choices: list[CompositionChoice] | None = None
    conditional_blocks: list[CompositionConditionalBlock] | None = None
    storylet_call: CompositionStoryletCall | None = None
    presentation: CompositionPresentation | None = None


class CompositionGraphEdge(ForgeModel):
    id: str
    source: str
    target: str
    kind: str | None = None
    label: str | None = None


class CompositionGraph(ForgeModel):
    graph_id: int
    kind: str
    title: str
    start_node_id: str
    node_order: list[str]
    nodes_by_id: dict[str, CompositionGraphNode]
    edges: list[CompositionGraphEdge]


class CompositionScene(ForgeModel):
    id: str
    graph_id: int
    title: str
    node_ids: list[str]


class CompositionTrack(ForgeModel):
    id: str
    type: TrackType
    cue_ids: list[str] = Field(default_factory=list)


class CharacterBinding(ForgeModel):
    character_id: str
    display_name: str
    portrait_id: str | None = None
    slot: Literal["left", "center", "right"] | None = None


class BackgroundBinding(ForgeModel):
    background_id: str
    image_id: str | None = None


class CueTiming(ForgeModel):
    """Virtual sequencing position; renderers assign real timing."""

    model_config = ConfigDict(frozen=True)

    at_ms: int
    duration_ms: int | None = None
    wait_for_input: bool | None = None


class AnimationHint(ForgeModel):
    model_config = ConfigDict(frozen=True)

    transition: Transition | None = None
    motion_preset: str | None = None


class CompositionSetVariable(ForgeModel):
    """One variable effect; ``operator`` is ``=`` or a compound form."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: FlagValue
    operator: str = "="


class Cue(ForgeModel):
    """One timestamped, track-scoped event."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: CueType
    graph_id: int
    node_id: str
    track_id: str
    timing: CueTiming
    text: str | None = None
    speaker: str | None = None
    choices: tuple[CompositionChoice, ...] | None = None
    set_variables: tuple[CompositionSetVariable, ...] | None = None
    animation_hint: AnimationHint | None = None


class CompositionEntry(ForgeModel):
    graph_id: int
    node_id: str


class Composition(ForgeModel):
    """A compiled ``forge.composition.v1`` document."""

    schema_: Literal["forge.composition.v1"] = Field(default=COMPOSITION_SCHEMA_V1, alias="schema")
    root_graph_id: int
    entry: CompositionEntry
    resolved_graph_ids: list[int]
    scenes: list[CompositionScene]
    tracks: list[CompositionTrack]
    cues: list[Cue]
    graphs: list[CompositionGraph]
    character_bindings: list[CharacterBinding]
    background_bindings: list[BackgroundBinding]
    diagnostics: list[CompositionDiagnostic]

    def cues_for_track(self, track_id: str) -> list[Cue]:
        """Return a track's cues in emission order."""
        by_id = {cue.id: cue for cue in self.cues}
        for track in self.tracks:
            if track.id == track_id:
                return [by_id[cue_id] for cue_id in track.cue_ids]
        return []
