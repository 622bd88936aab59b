"""Composition compiler.

Flattens a root graph, and optionally the storylet graphs it reaches,
into a ``forge.composition.v1`` document: graph snapshots, character and
background bindings, and a cue timeline split across four tracks.

The cue pass walks each graph's authored node order, not its branch
topology, and never revisits a node. One virtual cursor runs across the
whole compile and steps by one for every line and choice prompt; it
orders cues, it does not model real time. Output is fully determined by
the input graphs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from dialogueforge.compiler.detour import resolve_storylet_detours
from dialogueforge.graph.errors import UnsupportedSchemaError
from dialogueforge.models.composition import (
    COMPOSITION_SCHEMA_V1,
    AnimationHint,
    BackgroundBinding,
    CharacterBinding,
    Composition,
    CompositionDiagnostic,
    CompositionEntry,
    CompositionGraph,
    CompositionGraphEdge,
    CompositionGraphNode,
    CompositionScene,
    CompositionSetVariable,
    CompositionTrack,
    Cue,
    CueTiming,
    CueType,
    TrackType,
    Transition,
)
from dialogueforge.models.graph import NodeType
from dialogueforge.observability.logging import get_logger
from dialogueforge.runtime.variables import parse_set_instruction

if TYPE_CHECKING:
    from dialogueforge.compiler.detour import GraphResolver
    from dialogueforge.models.graph import Graph, Node

log = get_logger(__name__)

SYSTEM_TRACK_ID = "track-system"
DIALOGUE_TRACK_ID = "track-dialogue"
CHOICE_TRACK_ID = "track-choice"
PRESENTATION_TRACK_ID = "track-presentation"

_TRACKS: list[tuple[str, TrackType]] = [
    (SYSTEM_TRACK_ID, TrackType.SYSTEM),
    (DIALOGUE_TRACK_ID, TrackType.DIALOGUE),
    (CHOICE_TRACK_ID, TrackType.CHOICE),
    (PRESENTATION_TRACK_ID, TrackType.PRESENTATION),
]

# Node fields with no place in a snapshot.
_SNAPSHOT_EXCLUDE = {"act_id", "chapter_id", "page_id"}


@dataclass
class CompilationResult:
    composition: Composition
    resolved_graph_ids: list[int] = field(default_factory=list)
    diagnostics: list[CompositionDiagnostic] = field(default_factory=list)


def snapshot_node(node: Node) -> CompositionGraphNode:
    """Flatten an authored node into its composition snapshot."""
    data = node.model_dump(mode="json", exclude=_SNAPSHOT_EXCLUDE, exclude_none=True)
    return CompositionGraphNode.model_validate(data)


def snapshot_graph(graph: Graph) -> CompositionGraph:
    """Snapshot a graph, keeping authored node order."""
    return CompositionGraph(
        graph_id=graph.id,
        kind=graph.kind.value,
        title=graph.title,
        start_node_id=graph.start_node_id,
        node_order=list(graph.nodes),
        nodes_by_id={node_id: snapshot_node(node) for node_id, node in graph.nodes.items()},
        edges=[CompositionGraphEdge.model_validate(edge.model_dump(mode="json")) for edge in graph.edges],
    )


def build_bindings(
    graphs: list[CompositionGraph],
) -> tuple[list[CharacterBinding], list[BackgroundBinding]]:
    """Collect character and background bindings, first occurrence wins."""
    characters: dict[str, CharacterBinding] = {}
    backgrounds: dict[str, BackgroundBinding] = {}

    for graph in graphs:
        for node_id in graph.node_order:
            node = graph.nodes_by_id[node_id]
            presentation = node.presentation
            if node.character_id and node.character_id not in characters:
                characters[node.character_id] = CharacterBinding(
                    character_id=node.character_id,
                    display_name=node.speaker or node.character_id,
                    portrait_id=presentation.portrait_id if presentation else None,
                )
            if presentation and presentation.background_id and presentation.background_id not in backgrounds:
                backgrounds[presentation.background_id] = BackgroundBinding(
                    background_id=presentation.background_id,
                    image_id=presentation.image_id,
                )

    return list(characters.values()), list(backgrounds.values())


def _set_variables(instructions: list[str]) -> tuple[CompositionSetVariable, ...]:
    variables: list[CompositionSetVariable] = []
    for entry in instructions:
        instruction = parse_set_instruction(entry)
        if instruction is None:
            log.warning("composition_set_instruction_skipped", instruction=entry)
            continue
        variables.append(
            CompositionSetVariable(
                name=instruction.flag,
                value=instruction.value,
                operator=instruction.operator.value,
            )
        )
    return tuple(variables)


class _CueWriter:
    """Append-only cue sink that tracks ids, per-track order and the cursor."""

    def __init__(self) -> None:
        self.cues: list[Cue] = []
        self.track_cue_ids: dict[str, list[str]] = {track_id: [] for track_id, _ in _TRACKS}
        self.cursor_ms = 0

    def push(self, cue_type: CueType, track_id: str, graph_id: int, node_id: str, **fields: Any) -> Cue:
        wait_for_input = fields.pop("wait_for_input", None)
        cue = Cue(
            id=f"cue-{len(self.cues) + 1}",
            type=cue_type,
            graph_id=graph_id,
            node_id=node_id,
            track_id=track_id,
            timing=CueTiming(at_ms=self.cursor_ms, wait_for_input=wait_for_input),
            **fields,
        )
        self.cues.append(cue)
        self.track_cue_ids[track_id].append(cue.id)
        return cue

    def tracks(self) -> list[CompositionTrack]:
        return [
            CompositionTrack(id=track_id, type=track_type, cue_ids=list(self.track_cue_ids[track_id]))
            for track_id, track_type in _TRACKS
        ]


def _has_text(text: str | None) -> bool:
    return bool(text and text.strip())


def build_cues(graphs: list[CompositionGraph]) -> tuple[list[CompositionTrack], list[Cue]]:
    """Emit the cue timeline for snapshotted graphs.

    Per node, in order: ENTER_NODE, a presentation DIRECTIVE, node
    SET_VARIABLES, the node LINE, each conditional block's LINE and
    SET_VARIABLES, CHOICES, and END for END nodes. LINE and CHOICES cues
    wait for input and advance the cursor.
    """
    writer = _CueWriter()

    for graph in graphs:
        gid = graph.graph_id
        for node_id in graph.node_order:
            node = graph.nodes_by_id[node_id]
            writer.push(CueType.ENTER_NODE, SYSTEM_TRACK_ID, gid, node_id)

            presentation = node.presentation
            if presentation and (presentation.background_id or presentation.portrait_id):
                writer.push(
                    CueType.DIRECTIVE,
                    PRESENTATION_TRACK_ID,
                    gid,
                    node_id,
                    animation_hint=AnimationHint(transition=Transition.FADE),
                )

            if node.set_flags:
                writer.push(
                    CueType.SET_VARIABLES,
                    SYSTEM_TRACK_ID,
                    gid,
                    node_id,
                    set_variables=_set_variables(node.set_flags),
                )

            if _has_text(node.content):
                writer.push(
                    CueType.LINE,
                    DIALOGUE_TRACK_ID,
                    gid,
                    node_id,
                    wait_for_input=True,
                    speaker=node.speaker,
                    text=node.content,
                )
                writer.cursor_ms += 1

            for block in node.conditional_blocks or []:
                if _has_text(block.content):
                    writer.push(
                        CueType.LINE,
                        DIALOGUE_TRACK_ID,
                        gid,
                        node_id,
                        wait_for_input=True,
                        speaker=block.speaker,
                        text=block.content,
                    )
                    writer.cursor_ms += 1
                if block.set_flags:
                    writer.push(
                        CueType.SET_VARIABLES,
                        SYSTEM_TRACK_ID,
                        gid,
                        node_id,
                        set_variables=_set_variables(block.set_flags),
                    )

            if node.choices:
                writer.push(
                    CueType.CHOICES,
                    CHOICE_TRACK_ID,
                    gid,
                    node_id,
                    wait_for_input=True,
                    choices=tuple(node.choices),
                )
                writer.cursor_ms += 1

            if node.type == NodeType.END:
                writer.push(CueType.END, SYSTEM_TRACK_ID, gid, node_id)

    return writer.tracks(), writer.cues


async def compile_composition(
    root: Graph,
    *,
    resolver: GraphResolver | None = None,
    resolve_storylets: bool = False,
    fail_on_missing_graph: bool = True,
) -> CompilationResult:
    """Compile ``root`` (and optionally its storylet family) to a composition.

    Args:
        root: Graph to compile; its start node is the composition entry.
        resolver: Async graph lookup used when resolving storylets.
        resolve_storylets: Pull in every graph reachable via storylet
            calls. Without a resolver only the root is compiled and a
            ``RESOLVER_MISSING`` warning is recorded.
        fail_on_missing_graph: Passed to the detour resolver.

    Raises:
        MissingReferencedGraphError: A storylet target is missing and
            ``fail_on_missing_graph`` is set.
    """
    diagnostics: list[CompositionDiagnostic] = []
    graphs: list[Graph] = [root]

    if resolve_storylets:
        if resolver is None:
            diagnostics.append(
                CompositionDiagnostic(
                    level="warning",
                    code="RESOLVER_MISSING",
                    message="Storylet resolution requested without a resolver; compiled root graph only",
                    graph_id=root.id,
                )
            )
        else:
            resolution = await resolve_storylet_detours(
                root, resolver, fail_on_missing_graph=fail_on_missing_graph
            )
            graphs = resolution.graphs
            diagnostics.extend(resolution.diagnostics)

    snapshots = [snapshot_graph(graph) for graph in graphs]
    character_bindings, background_bindings = build_bindings(snapshots)
    tracks, cues = build_cues(snapshots)
    resolved_graph_ids = [snapshot.graph_id for snapshot in snapshots]

    composition = Composition(
        root_graph_id=root.id,
        entry=CompositionEntry(graph_id=root.id, node_id=root.start_node_id),
        resolved_graph_ids=resolved_graph_ids,
        scenes=[
            CompositionScene(
                id=f"scene-{snapshot.graph_id}",
                graph_id=snapshot.graph_id,
                title=snapshot.title,
                node_ids=list(snapshot.node_order),
            )
            for snapshot in snapshots
        ],
        tracks=tracks,
        cues=cues,
        graphs=snapshots,
        character_bindings=character_bindings,
        background_bindings=background_bindings,
        diagnostics=diagnostics,
    )

    log.info(
        "composition_compiled",
        root=root.id,
        graphs=len(snapshots),
        cues=len(cues),
        diagnostics=len(diagnostics),
    )
    return CompilationResult(
        composition=composition,
        resolved_graph_ids=list(resolved_graph_ids),
        diagnostics=list(diagnostics),
    )


def read_composition(data: dict[str, Any]) -> Composition:
    """Validate a composition document after checking its schema tag.

    Raises:
        UnsupportedSchemaError: ``schema`` is not ``forge.composition.v1``.
        pydantic.ValidationError: The document does not match the schema.
    """
    schema = data.get("schema")
    if schema != COMPOSITION_SCHEMA_V1:
        raise UnsupportedSchemaError(schema)
    return Composition.model_validate(data)
