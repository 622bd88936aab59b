"""Yarn ``<<set>>`` commands.

Handles the ``<<set $flag = value>>`` family, including the compound
``+=``, ``-=``, ``*=`` and ``/=`` forms. Parsing lives with the runtime
(the runner applies inline commands); this module adds the formatting
side used when writing scripts.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dialogueforge.runtime.variables import (
    SET_COMMAND_RE,
    SetInstruction,
    SetOperator,
    extract_set_commands,
    format_literal,
    parse_set_command,
    parse_set_instruction,
    remove_set_commands,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from dialogueforge.models.graph import FlagValue

__all__ = [
    "SET_COMMAND_RE",
    "extract_set_commands",
    "format_flags_as_set_commands",
    "format_set_command",
    "instruction_to_set_command",
    "parse_set_command",
    "remove_set_commands",
    "set_flags_to_commands",
]


def format_set_command(flag: str, value: FlagValue = True, operator: SetOperator | str = "=") -> str:
    """Render ``<<set $flag <op> value>>``. Strings are double-quoted."""
    symbol = SetOperator(operator).value
    return f"<<set ${flag} {symbol} {format_literal(value)}>>"


def instruction_to_set_command(instruction: SetInstruction) -> str:
    return format_set_command(instruction.flag, instruction.value, instruction.operator)


def format_flags_as_set_commands(flags: Iterable[str], value: FlagValue = True) -> list[str]:
    """Render bare flag names as assignments of ``value``."""
    return [format_set_command(flag, value) for flag in flags]


def set_flags_to_commands(set_flags: Iterable[str]) -> list[str]:
    """Render ``setFlags`` entries as ``<<set>>`` commands.

    Entries that cannot be read as set instructions are dropped.
    """
    commands: list[str] = []
    for entry in set_flags:
        instruction = parse_set_instruction(entry)
        if instruction is not None:
            commands.append(instruction_to_set_command(instruction))
    return commands
