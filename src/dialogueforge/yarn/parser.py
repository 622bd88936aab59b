"""Yarn text to graph.

Reads the block layout written by ``format_graph`` and tolerates plain
Yarn Spinner scripts without ``nodeType`` headers, inferring each node's
type from its body.

Parsing never raises. Blocks that cannot be turned into a node are
skipped with a warning; unreadable ``<<set>>`` and condition fragments
are dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import ValidationError

from dialogueforge.models.graph import (
    CharacterNode,
    Choice,
    ConditionalBlock,
    ConditionalBlockType,
    ConditionalNode,
    EndNode,
    Graph,
    GraphKind,
    NodeType,
    PlayerNode,
    StoryletCall,
    StoryletCallMode,
    StoryletNode,
    StructuralNode,
)
from dialogueforge.observability.logging import get_logger
from dialogueforge.runtime.variables import format_set_instruction, parse_set_command
from dialogueforge.yarn import syntax
from dialogueforge.yarn.conditions import parse_condition
from dialogueforge.yarn.content import join_dialogue

if TYPE_CHECKING:
    from dialogueforge.models.graph import Condition, Node

log = get_logger(__name__)

_STRUCTURAL_TYPES = {NodeType.ACT, NodeType.CHAPTER, NodeType.PAGE}


@dataclass
class YarnBlock:
    """One ``title: ... === `` block, split into headers and body lines."""

    title: str
    headers: dict[str, str] = field(default_factory=dict)
    lines: list[str] = field(default_factory=list)
    line_number: int = 0

    @property
    def tags(self) -> list[str]:
        return self.headers.get("tags", "").split()

    @property
    def declared_type(self) -> NodeType | None:
        raw = self.headers.get("nodeType", "").strip().upper()
        try:
            return NodeType(raw) if raw else None
        except ValueError:
            log.warning("yarn_unknown_node_type", node=self.title, node_type=raw)
            return None


@dataclass
class _ChoiceDraft:
    id: str
    text: str
    conditions: list[Condition] | None = None
    set_flags: list[str] = field(default_factory=list)
    next_node_id: str | None = None


@dataclass
class _BlockDraft:
    type: ConditionalBlockType
    condition: list[Condition] | None = None
    lines: list[str] = field(default_factory=list)
    set_flags: list[str] = field(default_factory=list)
    next_node_id: str | None = None


@dataclass
class _Body:
    """Everything read from a block body, before the node type is applied."""

    lines: list[str] = field(default_factory=list)
    set_flags: list[str] = field(default_factory=list)
    next_node_id: str | None = None
    stop: bool = False
    storylet_call: StoryletCall | None = None
    storylet_command: str | None = None
    choices: list[_ChoiceDraft] = field(default_factory=list)
    blocks: list[_BlockDraft] = field(default_factory=list)


def split_blocks(text: str) -> list[YarnBlock]:
    """Split Yarn text into raw node blocks.

    A missing ``===`` before the next ``title:`` or the end of input closes
    the block anyway.
    """
    blocks: list[YarnBlock] = []
    current: YarnBlock | None = None
    in_body = False

    for number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.rstrip()
        stripped = line.strip()

        if not in_body:
            if stripped == syntax.NODE_SEPARATOR:
                if current is None:
                    log.warning("yarn_separator_without_title", line=number)
                    continue
                in_body = True
                continue
            match = syntax.HEADER_RE.match(stripped)
            if not match:
                continue
            key, value = match.group(1), match.group(2).strip()
            if key == "title":
                if current is not None:
                    log.warning("yarn_block_without_body", node=current.title, line=current.line_number)
                current = YarnBlock(title=value, line_number=number)
            elif current is not None:
                current.headers[key] = value
            continue

        if stripped == syntax.NODE_END:
            if current is not None:
                blocks.append(current)
            current = None
            in_body = False
            continue
        if current is not None:
            current.lines.append(line)

    if current is not None and in_body:
        blocks.append(current)
    return blocks


def _set_instruction(command: str, node_id: str) -> str | None:
    instruction = parse_set_command(command)
    if instruction is None:
        log.warning("yarn_unreadable_set_command", node=node_id, command=command)
        return None
    return format_set_instruction(instruction)


def _storylet_call(match_groups: tuple[str, ...]) -> StoryletCall:
    command, target, raw_args = match_groups
    args = dict(arg.split("=", 1) for arg in raw_args.split())
    return_graph = args.get("returnGraph")
    return StoryletCall(
        mode=StoryletCallMode.DETOUR_RETURN if command == "detour" else StoryletCallMode.JUMP,
        target_graph_id=int(target),
        target_start_node_id=args.get("start"),
        return_node_id=args.get("return"),
        return_graph_id=int(return_graph) if return_graph is not None else None,
    )


def _read_body(block: YarnBlock) -> _Body:
    body = _Body()
    choice: _ChoiceDraft | None = None
    choice_condition: list[Condition] | None = None
    cond_block: _BlockDraft | None = None
    in_if = False

    for line in block.lines:
        stripped = line.strip()
        if not stripped:
            continue
        indented = line[:1] in (" ", "\t")

        # Lines nested under an option belong to it.
        if choice is not None and indented and not stripped.startswith(syntax.OPTION_PREFIX.strip()):
            if stripped.startswith("<<set"):
                instruction = _set_instruction(stripped, block.title)
                if instruction:
                    choice.set_flags.append(instruction)
            elif match := syntax.JUMP_RE.match(stripped):
                choice.next_node_id = match.group(1)
            continue

        if match := syntax.OPTION_RE.match(stripped):
            choice = _ChoiceDraft(
                id=match.group(2) or f"{block.title}_choice_{len(body.choices)}",
                text=match.group(1),
                conditions=choice_condition,
            )
            body.choices.append(choice)
            continue
        choice = None

        if match := syntax.IF_RE.match(stripped):
            in_if = True
            cond_block = _BlockDraft(type=ConditionalBlockType.IF, condition=parse_condition(match.group(1)))
            body.blocks.append(cond_block)
            choice_condition = cond_block.condition
            continue
        if match := syntax.ELSEIF_RE.match(stripped):
            cond_block = _BlockDraft(type=ConditionalBlockType.ELSEIF, condition=parse_condition(match.group(1)))
            body.blocks.append(cond_block)
            choice_condition = None
            continue
        if syntax.ELSE_RE.match(stripped):
            cond_block = _BlockDraft(type=ConditionalBlockType.ELSE)
            body.blocks.append(cond_block)
            choice_condition = None
            continue
        if syntax.ENDIF_RE.match(stripped):
            in_if = False
            cond_block = None
            choice_condition = None
            continue

        target_flags = cond_block.set_flags if cond_block is not None else body.set_flags
        if stripped.startswith("<<set"):
            instruction = _set_instruction(stripped, block.title)
            if instruction:
                target_flags.append(instruction)
            continue
        if match := syntax.JUMP_RE.match(stripped):
            if cond_block is not None:
                cond_block.next_node_id = match.group(1)
            else:
                body.next_node_id = match.group(1)
            continue
        if syntax.STOP_RE.match(stripped):
            body.stop = True
            continue
        if match := syntax.STORYLET_RE.match(stripped):
            body.storylet_command = match.group(1)
            body.storylet_call = _storylet_call(match.groups())
            continue
        if stripped.startswith("<<"):
            log.debug("yarn_command_ignored", node=block.title, command=stripped)
            continue

        if cond_block is not None:
            cond_block.lines.append(stripped)
        else:
            body.lines.append(stripped)

    if in_if:
        log.warning("yarn_unclosed_if", node=block.title)
    return body


def _infer_type(body: _Body) -> NodeType:
    if body.choices:
        return NodeType.PLAYER
    if body.storylet_call is not None:
        return NodeType.DETOUR if body.storylet_command == "detour" else NodeType.STORYLET
    if body.stop:
        return NodeType.END
    if body.blocks:
        return NodeType.CONDITIONAL
    return NodeType.CHARACTER


def _conditional_blocks(node_id: str, drafts: list[_BlockDraft]) -> list[ConditionalBlock]:
    blocks: list[ConditionalBlock] = []
    for index, draft in enumerate(drafts):
        speaker, content = join_dialogue(draft.lines)
        blocks.append(
            ConditionalBlock(
                id=f"{node_id}_block_{index}",
                type=draft.type,
                condition=draft.condition if draft.type != ConditionalBlockType.ELSE else None,
                speaker=speaker,
                content=content or None,
                next_node_id=draft.next_node_id,
                set_flags=draft.set_flags or None,
            )
        )
    return blocks


def build_node(block: YarnBlock) -> Node:
    """Turn one raw block into a node. Raises ``ValidationError`` on bad data."""
    body = _read_body(block)
    node_type = block.declared_type or _infer_type(body)
    speaker, content = join_dialogue(body.lines)
    common = {
        "id": block.title,
        "speaker": speaker,
        "content": content or None,
        "set_flags": body.set_flags or None,
    }
    next_node_id = body.next_node_id

    if node_type == NodeType.PLAYER:
        choices = [
            Choice(
                id=draft.id,
                text=draft.text,
                next_node_id=draft.next_node_id,
                conditions=draft.conditions or None,
                set_flags=draft.set_flags or None,
            )
            for draft in body.choices
        ]
        return PlayerNode(**common, choices=choices, default_next_node_id=next_node_id)
    if node_type == NodeType.CONDITIONAL:
        return ConditionalNode(
            **common,
            conditional_blocks=_conditional_blocks(block.title, body.blocks),
            default_next_node_id=next_node_id,
        )
    if node_type in (NodeType.STORYLET, NodeType.DETOUR):
        return StoryletNode(
            **common,
            type=node_type.value,
            storylet_call=body.storylet_call,
            default_next_node_id=next_node_id,
        )
    if node_type == NodeType.END:
        return EndNode(**common)
    if node_type in _STRUCTURAL_TYPES:
        return StructuralNode(**common, type=node_type.value, default_next_node_id=next_node_id)

    if body.blocks:
        log.warning("yarn_blocks_dropped", node=block.title, node_type=node_type.value)
    return CharacterNode(**common, default_next_node_id=next_node_id)


def parse(
    text: str,
    *,
    graph_id: int = 0,
    title: str = "",
    kind: GraphKind = GraphKind.STORYLET,
) -> Graph:
    """Parse Yarn text into a graph.

    The start node is the block tagged ``start``, else the first block.
    Edges are rebuilt from next-node references.

    Args:
        text: Yarn source.
        graph_id: Id for the new graph.
        title: Title for the new graph.
        kind: Graph kind.

    Returns:
        The parsed graph. Empty input gives a graph with no nodes.
    """
    nodes = []
    seen: set[str] = set()
    start_node_id: str | None = None

    for block in split_blocks(text or ""):
        if not block.title:
            log.warning("yarn_block_skipped", line=block.line_number, reason="missing title")
            continue
        if block.title in seen:
            log.warning("yarn_block_skipped", node=block.title, reason="duplicate title")
            continue
        try:
            node = build_node(block)
        except (ValidationError, ValueError) as e:
            log.warning("yarn_block_skipped", node=block.title, reason=str(e))
            continue
        seen.add(node.id)
        nodes.append(node)
        if start_node_id is None and syntax.START_TAG in block.tags:
            start_node_id = node.id

    graph = Graph.from_nodes(graph_id, nodes, title=title, kind=kind, start_node_id=start_node_id)
    log.debug("yarn_parse_complete", graph_id=graph_id, nodes=len(nodes), edges=len(graph.edges))
    return graph
