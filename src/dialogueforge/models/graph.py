"""Dialogue graph models.

A graph is a map of nodes keyed by id, an entry point, and a list of edges.
Node variants are a discriminated union on ``type``; each variant only
accepts the fields that make sense for it, so a ``choices`` list on a line
node is rejected at validation time.

Node kinds:
- CHARACTER: a spoken line, advancing to ``defaultNextNodeId``
- PLAYER: a set of player choices
- CONDITIONAL: if/elseif/else blocks evaluated against flag state
- STORYLET / DETOUR: a jump into another graph, optionally returning
- END: terminal marker
- ACT / CHAPTER / PAGE: authoring structure, no branching logic

JSON uses camelCase field names (``startNodeId``); Python attributes are
snake_case. Both spellings are accepted on input.

Next-node references that point nowhere are legal in the model. The
runner stops on them with ``NODE_NOT_FOUND``; validation only warns.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

FlagValue = bool | int | float | str
"""A flag/variable value held in session state."""


class ForgeModel(BaseModel):
    """Base model with camelCase JSON aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to a JSON-ready dict with camelCase keys and no unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class GraphKind(StrEnum):
    """Top-level graph purpose."""

    NARRATIVE = "NARRATIVE"
    STORYLET = "STORYLET"


class NodeType(StrEnum):
    """Discriminator values for node variants."""

    ACT = "ACT"
    CHAPTER = "CHAPTER"
    PAGE = "PAGE"
    PLAYER = "PLAYER"
    CHARACTER = "CHARACTER"
    CONDITIONAL = "CONDITIONAL"
    DETOUR = "DETOUR"
    END = "END"
    STORYLET = "STORYLET"


class EdgeKind(StrEnum):
    FLOW = "FLOW"
    CHOICE = "CHOICE"
    CONDITION = "CONDITION"
    DEFAULT = "DEFAULT"
    VISUAL = "VISUAL"


# Only reachable through their choice/block, or layout only.
_NON_FLOW_EDGE_KINDS = frozenset({EdgeKind.CHOICE, EdgeKind.CONDITION, EdgeKind.VISUAL})


class ConditionOperator(StrEnum):
    """Comparison operators for flag conditions."""

    IS_SET = "is_set"
    IS_NOT_SET = "is_not_set"
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_EQUAL = "greater_equal"
    LESS_EQUAL = "less_equal"


class ConditionalBlockType(StrEnum):
    IF = "if"
    ELSEIF = "elseif"
    ELSE = "else"


class StoryletCallMode(StrEnum):
    """How a storylet call treats the caller.

    JUMP leaves the caller for good; DETOUR_RETURN pushes a return point.
    """

    DETOUR_RETURN = "DETOUR_RETURN"
    JUMP = "JUMP"


class Condition(ForgeModel):
    """A single flag predicate. Lists of conditions are conjunctions."""

    flag: str = Field(min_length=1)
    operator: ConditionOperator
    value: FlagValue | None = None


class Choice(ForgeModel):
    """A player option on a PLAYER node."""

    id: str = Field(min_length=1)
    text: str
    next_node_id: str | None = None
    conditions: list[Condition] | None = None
    set_flags: list[str] | None = None


class ConditionalBlock(ForgeModel):
    """One branch of a CONDITIONAL node.

    ``condition`` is required for IF/ELSEIF and ignored for ELSE.
    """

    id: str = Field(min_length=1)
    type: ConditionalBlockType
    condition: list[Condition] | None = None
    speaker: str | None = None
    character_id: str | None = None
    content: str | None = None
    next_node_id: str | None = None
    set_flags: list[str] | None = None


class StoryletCall(ForgeModel):
    """Cross-graph jump target with an optional return point."""

    mode: StoryletCallMode = StoryletCallMode.JUMP
    target_graph_id: int
    target_start_node_id: str | None = None
    return_node_id: str | None = None
    return_graph_id: int | None = None


class NodePresentation(ForgeModel):
    image_id: str | None = None
    background_id: str | None = None
    portrait_id: str | None = None


class BaseNode(ForgeModel):
    """Fields shared by every node variant."""

    id: str = Field(min_length=1)
    label: str | None = None
    speaker: str | None = None
    character_id: str | None = None
    content: str | None = None
    set_flags: list[str] | None = None
    default_next_node_id: str | None = None
    presentation: NodePresentation | None = None

    @property
    def has_content(self) -> bool:
        """True if the node carries non-blank dialogue text."""
        return bool(self.content and self.content.strip())


class CharacterNode(BaseNode):
    """A spoken line."""

    type: Literal["CHARACTER"] = "CHARACTER"


class PlayerNode(BaseNode):
    """A player choice point."""

    type: Literal["PLAYER"] = "PLAYER"
    choices: list[Choice] = Field(default_factory=list)


class ConditionalNode(BaseNode):
    """Branches on flag state; first matching block wins."""

    type: Literal["CONDITIONAL"] = "CONDITIONAL"
    conditional_blocks: list[ConditionalBlock] = Field(default_factory=list)


class StoryletNode(BaseNode):
    """Calls into another graph."""

    type: Literal["STORYLET", "DETOUR"] = "STORYLET"
    storylet_call: StoryletCall | None = None


class EndNode(BaseNode):
    type: Literal["END"] = "END"


class StructuralNode(BaseNode):
    """Authoring-only structure (acts, chapters, pages)."""

    type: Literal["ACT", "CHAPTER", "PAGE"]
    act_id: int | None = None
    chapter_id: int | None = None
    page_id: int | None = None


Node = Annotated[
    CharacterNode | PlayerNode | ConditionalNode | StoryletNode | EndNode | StructuralNode,
    Field(discriminator="type"),
]


class Edge(ForgeModel):
    id: str
    source: str
    target: str
    kind: EdgeKind | None = None
    label: str | None = None


class Graph(ForgeModel):
    """A dialogue or narrative graph.

    ``nodes`` preserves authoring order (dict insertion order), which the
    composition compiler relies on.
    """

    id: int
    title: str = ""
    kind: GraphKind = GraphKind.STORYLET
    start_node_id: str = ""
    end_node_ids: list[str] = Field(default_factory=list)
    nodes: dict[str, Node] = Field(default_factory=dict)
    edges: list[Edge] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_node_keys(self) -> Graph:
        for key, node in self.nodes.items():
            if key != node.id:
                msg = f"Node key '{key}' does not match node id '{node.id}'"
                raise ValueError(msg)
        if self.nodes and self.start_node_id not in self.nodes:
            msg = f"Start node '{self.start_node_id}' is not in graph {self.id}"
            raise ValueError(msg)
        return self

    @classmethod
    def from_nodes(
        cls,
        graph_id: int,
        nodes: list[CharacterNode | PlayerNode | ConditionalNode | StoryletNode | EndNode | StructuralNode],
        *,
        title: str = "",
        kind: GraphKind = GraphKind.STORYLET,
        start_node_id: str | None = None,
        edges: list[Edge] | None = None,
    ) -> Graph:
        """Build a graph from an ordered node list.

        The start node defaults to the first node; END nodes become
        ``end_node_ids``; edges default to ``derive_edges(nodes)``.
        """
        return cls(
            id=graph_id,
            title=title,
            kind=kind,
            start_node_id=start_node_id if start_node_id is not None else (nodes[0].id if nodes else ""),
            end_node_ids=[n.id for n in nodes if n.type == NodeType.END],
            nodes={n.id: n for n in nodes},
            edges=edges if edges is not None else derive_edges(nodes),
        )

    def get_node(self, node_id: str) -> Node | None:
        return self.nodes.get(node_id)

    def outgoing_edges(self, node_id: str) -> list[Edge]:
        return [edge for edge in self.edges if edge.source == node_id]

    def next_node_id(self, node: BaseNode) -> str | None:
        """Resolve where a node advances to.

        ``defaultNextNodeId`` wins; otherwise the first outgoing edge that
        is not a CHOICE, CONDITION or VISUAL edge.
        """
        if node.default_next_node_id:
            return node.default_next_node_id
        for edge in self.outgoing_edges(node.id):
            if edge.kind not in _NON_FLOW_EDGE_KINDS:
                return edge.target
        return None

    def storylet_targets(self) -> list[int]:
        """Target graph ids of storylet calls, in node order, deduplicated."""
        targets: list[int] = []
        for node in self.nodes.values():
            if isinstance(node, StoryletNode) and node.storylet_call is not None:
                target = node.storylet_call.target_graph_id
                if target not in targets:
                    targets.append(target)
        return targets


def node_references(node: BaseNode) -> list[tuple[str, EdgeKind]]:
    """List the in-graph node ids a node points at, with the edge kind.

    Order: block/choice targets first (authoring order), then the
    default next node.
    """
    refs: list[tuple[str, EdgeKind]] = []
    if isinstance(node, PlayerNode):
        refs.extend((c.next_node_id, EdgeKind.CHOICE) for c in node.choices if c.next_node_id)
    elif isinstance(node, ConditionalNode):
        refs.extend(
            (b.next_node_id, EdgeKind.CONDITION) for b in node.conditional_blocks if b.next_node_id
        )
    if node.default_next_node_id:
        refs.append((node.default_next_node_id, EdgeKind.DEFAULT))
    return refs


def derive_edges(nodes: list[Any]) -> list[Edge]:
    """Rebuild edges from next-node references.

    Edge ids follow ``edge_<source>_<target>``; a repeated pair is emitted
    once.
    """
    edges: list[Edge] = []
    seen: set[tuple[str, str]] = set()
    for node in nodes:
        for target, kind in node_references(node):
            if (node.id, target) in seen:
                continue
            seen.add((node.id, target))
            edges.append(Edge(id=f"edge_{node.id}_{target}", source=node.id, target=target, kind=kind))
    return edges
