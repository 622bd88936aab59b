"""Bidirectional conversion between dialogue graphs and Yarn text."""

from dialogueforge.yarn.conditions import (
    format_condition,
    format_conditions,
    parse_condition,
)
from dialogueforge.yarn.content import format_content
from dialogueforge.yarn.formatter import format_graph, format_node
from dialogueforge.yarn.parser import parse, split_blocks
from dialogueforge.yarn.variables import (
    extract_set_commands,
    format_flags_as_set_commands,
    format_set_command,
    parse_set_command,
    remove_set_commands,
)

__all__ = [
    "extract_set_commands",
    "format_condition",
    "format_conditions",
    "format_content",
    "format_flags_as_set_commands",
    "format_graph",
    "format_node",
    "format_set_command",
    "parse",
    "parse_condition",
    "parse_set_command",
    "remove_set_commands",
    "split_blocks",
]
