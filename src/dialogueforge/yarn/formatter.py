"""Graph to Yarn text.

Every node becomes one block::

    title: greet
    nodeType: CHARACTER
    tags: start
    ---
    Guide: Welcome, traveller.
    <<set $met_guide = true>>
    <<jump ask>>
    ===

Blocks are written in graph node order, with a fixed emission order
inside each block, so equal graphs always format to identical text.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dialogueforge.models.graph import (
    ConditionalBlockType,
    ConditionalNode,
    EndNode,
    PlayerNode,
    StoryletCallMode,
    StoryletNode,
)
from dialogueforge.observability.logging import get_logger
from dialogueforge.runtime.variables import extract_set_commands, remove_set_commands
from dialogueforge.yarn import syntax
from dialogueforge.yarn.conditions import format_conditions
from dialogueforge.yarn.content import escape_narration, format_content
from dialogueforge.yarn.variables import set_flags_to_commands

if TYPE_CHECKING:
    from dialogueforge.models.graph import Choice, ConditionalBlock, Graph, Node, StoryletCall

log = get_logger(__name__)


def format_graph(graph: Graph) -> str:
    """Render a whole graph as Yarn text."""
    blocks = [
        "\n".join(_render_node(node, is_start=node.id == graph.start_node_id))
        for node in graph.nodes.values()
    ]
    log.debug("yarn_format_complete", graph_id=graph.id, nodes=len(blocks))
    if not blocks:
        return ""
    return "\n\n".join(blocks) + "\n"


def format_node(node: Node, *, is_start: bool = False) -> str:
    """Render a single node block."""
    return "\n".join(_render_node(node, is_start=is_start)) + "\n"


def _render_node(node: Node, *, is_start: bool) -> list[str]:
    lines = [f"{syntax.TITLE_PREFIX} {node.id}", f"{syntax.NODE_TYPE_PREFIX} {node.type}"]
    if is_start:
        lines.append(f"{syntax.TAGS_PREFIX} {syntax.START_TAG}")
    lines.append(syntax.NODE_SEPARATOR)

    lines.extend(_render_content(node.content, node.speaker))

    if isinstance(node, ConditionalNode):
        lines.extend(_render_conditional_blocks(node.conditional_blocks))
    lines.extend(set_flags_to_commands(node.set_flags or []))

    if isinstance(node, PlayerNode):
        for choice in node.choices:
            lines.extend(_render_choice(choice))
    elif isinstance(node, StoryletNode) and node.storylet_call is not None:
        lines.append(_storylet_command(node.storylet_call))

    if isinstance(node, EndNode):
        lines.append(syntax.STOP_COMMAND)
    elif node.default_next_node_id:
        lines.append(syntax.jump(node.default_next_node_id))

    lines.append(syntax.NODE_END)
    return lines


def _render_content(content: str | None, speaker: str | None, indent: str = "") -> list[str]:
    """Dialogue lines followed by any inline ``<<set>>`` commands."""
    if not content:
        return []
    lines: list[str] = []
    text = remove_set_commands(content)
    if text:
        rendered = format_content(text, speaker) if speaker else escape_narration(text)
        lines.extend(f"{indent}{line}" for line in rendered.split("\n"))
    lines.extend(f"{indent}{command}" for command in extract_set_commands(content))
    return lines


def _render_conditional_blocks(blocks: list[ConditionalBlock]) -> list[str]:
    if not blocks:
        return []
    lines: list[str] = []
    for index, block in enumerate(blocks):
        condition = format_conditions(block.condition) or "true"
        if block.type == ConditionalBlockType.ELSE:
            lines.append(syntax.ELSE_COMMAND)
        elif index == 0:
            lines.append(syntax.if_command(condition))
        else:
            lines.append(syntax.elseif_command(condition))
        lines.extend(_render_content(block.content, block.speaker, indent=syntax.INDENT))
        lines.extend(f"{syntax.INDENT}{cmd}" for cmd in set_flags_to_commands(block.set_flags or []))
        if block.next_node_id:
            lines.append(f"{syntax.INDENT}{syntax.jump(block.next_node_id)}")
    lines.append(syntax.ENDIF_COMMAND)
    return lines


def _render_choice(choice: Choice) -> list[str]:
    lines: list[str] = []
    conditional = bool(choice.conditions)
    if conditional:
        lines.append(syntax.if_command(format_conditions(choice.conditions)))

    text = remove_set_commands(choice.text).replace("\n", " ")
    tag = f"{syntax.CHOICE_TAG}{choice.id}"
    lines.append(f"{syntax.OPTION_PREFIX}{text} {tag}" if text else f"{syntax.OPTION_PREFIX}{tag}")
    for command in extract_set_commands(choice.text):
        lines.append(f"{syntax.INDENT}{command}")
    for command in set_flags_to_commands(choice.set_flags or []):
        lines.append(f"{syntax.INDENT}{command}")
    if choice.next_node_id:
        lines.append(f"{syntax.INDENT}{syntax.jump(choice.next_node_id)}")

    if conditional:
        lines.append(syntax.ENDIF_COMMAND)
    return lines


def _storylet_command(call: StoryletCall) -> str:
    command = "detour" if call.mode == StoryletCallMode.DETOUR_RETURN else "storylet"
    parts = [f"<<{command} {call.target_graph_id}"]
    if call.target_start_node_id:
        parts.append(f"start={call.target_start_node_id}")
    if call.return_node_id:
        parts.append(f"return={call.return_node_id}")
    if call.return_graph_id is not None:
        parts.append(f"returnGraph={call.return_graph_id}")
    return " ".join(parts) + ">>"
