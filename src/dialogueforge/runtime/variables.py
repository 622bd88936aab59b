"""Flag/variable storage and set instructions.

Node, choice and block ``setFlags`` entries are set instructions:

    "met_guide"           -> met_guide = True
    "gold = 50"           -> gold = 50
    "gold += 10"          -> gold = gold + 10   (also -=, *=, /=)
    'mood = "cheerful"'   -> mood = "cheerful"

A leading ``$`` on the flag name is accepted and dropped.

Dialogue content may also carry inline ``<<set $flag = value>>`` script
commands; the runner applies those when the line is shown.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from dialogueforge.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from dialogueforge.models.graph import FlagValue

log = get_logger(__name__)

_NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?([eE][+-]?\d+)?$")
_INT_RE = re.compile(r"^-?\d+$")
_INSTRUCTION_RE = re.compile(r"^\$?([A-Za-z_][\w.-]*)\s*(\+=|-=|\*=|/=|=)\s*(.+)$")
_BARE_FLAG_RE = re.compile(r"^\$?([A-Za-z_][\w.-]*)$")

SET_COMMAND_RE = re.compile(r"<<set\s+\$([A-Za-z_][\w.-]*)\s*(\+=|-=|\*=|/=|=)\s*(.+?)\s*>>")
_INLINE_SET_RE = re.compile(r"<<set\b[^>]*>>")


class SetOperator(StrEnum):
    """Assignment operators, valued by their script symbol."""

    ASSIGN = "="
    ADD = "+="
    SUBTRACT = "-="
    MULTIPLY = "*="
    DIVIDE = "/="


@dataclass(frozen=True)
class SetInstruction:
    """A parsed variable assignment."""

    flag: str
    operator: SetOperator
    value: FlagValue

    @property
    def is_compound(self) -> bool:
        return self.operator != SetOperator.ASSIGN


def parse_literal(raw: str) -> FlagValue | None:
    """Parse a script literal: ``true``/``false``, a number, or a quoted string.

    Returns None for anything else (including the empty string).
    """
    text = raw.strip()
    if text == "true":
        return True
    if text == "false":
        return False
    if _NUMBER_RE.match(text):
        return int(text) if _INT_RE.match(text) else float(text)
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1]
    return None


def format_literal(value: FlagValue) -> str:
    """Inverse of ``parse_literal``."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)


def parse_set_instruction(instruction: str) -> SetInstruction | None:
    """Parse a ``setFlags`` entry. Returns None if it cannot be read."""
    text = instruction.strip()
    if not text:
        return None

    bare = _BARE_FLAG_RE.match(text)
    if bare:
        return SetInstruction(flag=bare.group(1), operator=SetOperator.ASSIGN, value=True)

    match = _INSTRUCTION_RE.match(text)
    if not match:
        return None
    flag, symbol, raw_value = match.groups()
    value = parse_literal(raw_value)
    if value is None:
        # Unquoted words are taken as plain strings in setFlags entries.
        value = raw_value.strip()
    operator = SetOperator(symbol)
    if operator != SetOperator.ASSIGN and (isinstance(value, bool) or not isinstance(value, int | float)):
        return None
    return SetInstruction(flag=flag, operator=operator, value=value)


def format_set_instruction(instruction: SetInstruction) -> str:
    """Render an instruction in ``setFlags`` form (bare flag for ``= true``)."""
    if instruction.operator == SetOperator.ASSIGN and instruction.value is True:
        return instruction.flag
    return f"{instruction.flag} {instruction.operator.value} {format_literal(instruction.value)}"


def parse_set_command(command: str) -> SetInstruction | None:
    """Parse a single ``<<set $flag <op> value>>`` script command.

    Returns None for anything malformed: a missing ``$``, a missing value,
    a value that is not a literal, or a compound operator on a non-number.
    """
    match = SET_COMMAND_RE.fullmatch(command.strip())
    if not match:
        return None
    flag, symbol, raw_value = match.groups()
    value = parse_literal(raw_value)
    if value is None:
        return None
    operator = SetOperator(symbol)
    if operator != SetOperator.ASSIGN and isinstance(value, bool | str):
        return None
    return SetInstruction(flag=flag, operator=operator, value=value)


def extract_set_commands(content: str) -> list[str]:
    """Return inline ``<<set>>`` commands in order of appearance."""
    if not content:
        return []
    return _INLINE_SET_RE.findall(content)


def remove_set_commands(content: str) -> str:
    """Strip inline ``<<set>>`` commands and tidy the leftover spacing.

    Line breaks are kept; runs of spaces within a line collapse to one.
    """
    if not content:
        return ""
    stripped = _INLINE_SET_RE.sub("", content)
    lines = [re.sub(r"[ \t]+", " ", line).strip() for line in stripped.split("\n")]
    return "\n".join(line for line in lines if line)


class VariableStorage:
    """Live flag map for one play session.

    Keeps a copy of the initial snapshot so ``reset()`` can discard every
    mutation made since.
    """

    def __init__(self, initial: Mapping[str, FlagValue] | None = None) -> None:
        self._initial: dict[str, FlagValue] = dict(initial or {})
        self._values: dict[str, FlagValue] = dict(self._initial)

    def get(self, name: str) -> FlagValue | None:
        return self._values.get(name)

    def set(self, name: str, value: FlagValue) -> None:
        self._values[name] = value

    def snapshot(self) -> dict[str, FlagValue]:
        """Copy of the current values."""
        return dict(self._values)

    def reset(self) -> None:
        self._values = dict(self._initial)

    @property
    def values(self) -> Mapping[str, FlagValue]:
        """Read-only view of the live values, for condition evaluation."""
        return self._values

    def __repr__(self) -> str:
        return f"VariableStorage({self._values!r})"


def apply_instruction(storage: VariableStorage, instruction: SetInstruction) -> FlagValue | None:
    """Apply one instruction. Returns the new value, or None if skipped."""
    if not instruction.is_compound:
        storage.set(instruction.flag, instruction.value)
        return instruction.value

    current = storage.get(instruction.flag)
    if current is None:
        current = 0
    if isinstance(current, bool) or not isinstance(current, int | float):
        log.warning(
            "compound_set_on_non_number",
            flag=instruction.flag,
            operator=instruction.operator.value,
            current=current,
        )
        return None

    delta: Any = instruction.value
    if instruction.operator == SetOperator.ADD:
        result = current + delta
    elif instruction.operator == SetOperator.SUBTRACT:
        result = current - delta
    elif instruction.operator == SetOperator.MULTIPLY:
        result = current * delta
    else:
        if delta == 0:
            log.warning("set_division_by_zero", flag=instruction.flag)
            return None
        result = current / delta
        if isinstance(result, float) and result.is_integer() and isinstance(current, int):
            result = int(result)

    storage.set(instruction.flag, result)
    return result


def apply_set_instructions(
    storage: VariableStorage,
    instructions: Iterable[str | SetInstruction],
) -> dict[str, FlagValue]:
    """Apply a batch of instructions in order.

    Unreadable entries are skipped with a warning.

    Returns:
        Mapping of flag name to its value after the batch, for flags that
        changed. Empty if nothing applied.
    """
    updates: dict[str, FlagValue] = {}
    for entry in instructions:
        instruction = parse_set_instruction(entry) if isinstance(entry, str) else entry
        if instruction is None:
            log.warning("unreadable_set_instruction", instruction=entry)
            continue
        value = apply_instruction(storage, instruction)
        if value is not None:
            updates[instruction.flag] = value
    return updates


def flatten_game_state(state: Mapping[str, Any], separator: str = "_") -> dict[str, FlagValue]:
    """Flatten a nested game-state mapping into flag ids.

    ``{"flags": {"gold": 0}, "act": 2}`` becomes ``{"flags_gold": 0, "act": 2}``.
    Only boolean, number and string leaves are kept; lists and None are
    dropped.
    """
    flat: dict[str, FlagValue] = {}

    def _walk(prefix: str, value: Any) -> None:
        if isinstance(value, dict):
            for key, child in value.items():
                _walk(f"{prefix}{separator}{key}" if prefix else str(key), child)
        elif isinstance(value, bool | int | float | str):
            flat[prefix] = value

    _walk("", state)
    return flat
