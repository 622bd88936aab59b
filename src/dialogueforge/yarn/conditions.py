"""Yarn condition expressions.

Converts between ``Condition`` lists and the expression text found in
``<<if ...>>`` commands:

    $quest                      -> IS_SET
    not $quest                  -> IS_NOT_SET
    $gold > 100                 -> GREATER_THAN 100
    $name == "Alice"            -> EQUALS "Alice"
    $quest and $gold >= 5       -> two conditions, in order

Only conjunction is supported (``and`` or ``&&``). The keyword forms
``eq``/``is``, ``neq``, ``gt``, ``lt``, ``gte`` and ``lte`` are accepted on
input; formatting always writes symbols.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from dialogueforge.models.graph import Condition, ConditionOperator
from dialogueforge.runtime.variables import format_literal, parse_literal

if TYPE_CHECKING:
    from collections.abc import Iterable

    from dialogueforge.models.graph import FlagValue

OPERATOR_SYMBOLS: dict[ConditionOperator, str] = {
    ConditionOperator.EQUALS: "==",
    ConditionOperator.NOT_EQUALS: "!=",
    ConditionOperator.GREATER_THAN: ">",
    ConditionOperator.LESS_THAN: "<",
    ConditionOperator.GREATER_EQUAL: ">=",
    ConditionOperator.LESS_EQUAL: "<=",
}

_TOKEN_OPERATORS: dict[str, ConditionOperator] = {
    "==": ConditionOperator.EQUALS,
    "eq": ConditionOperator.EQUALS,
    "is": ConditionOperator.EQUALS,
    "!=": ConditionOperator.NOT_EQUALS,
    "neq": ConditionOperator.NOT_EQUALS,
    ">=": ConditionOperator.GREATER_EQUAL,
    "gte": ConditionOperator.GREATER_EQUAL,
    "<=": ConditionOperator.LESS_EQUAL,
    "lte": ConditionOperator.LESS_EQUAL,
    ">": ConditionOperator.GREATER_THAN,
    "gt": ConditionOperator.GREATER_THAN,
    "<": ConditionOperator.LESS_THAN,
    "lt": ConditionOperator.LESS_THAN,
}

# Split on "and"/"&&" only where an even number of double quotes follows,
# i.e. outside string literals.
_CONJUNCTION_RE = re.compile(r'\s+(?:and|&&)\s+(?=(?:[^"]*"[^"]*")*[^"]*$)', re.IGNORECASE)
_NOT_RE = re.compile(r"^(?:not\s+|!\s*)\$([\w.-]+)$", re.IGNORECASE)
_FLAG_RE = re.compile(r"^\$([\w.-]+)$")
_COMPARISON_RE = re.compile(
    r"^\$([\w.-]+)\s*(==|!=|>=|<=|>|<|\b(?:eq|is|neq|gte|lte|gt|lt)\b)\s*(.+)$",
    re.IGNORECASE,
)


def _parse_value(raw: str) -> FlagValue:
    value = parse_literal(raw)
    if value is None:
        # Unquoted bare words read as strings.
        return raw.strip()
    return value


def parse_condition_part(part: str) -> Condition | None:
    """Parse one conjunct. Returns None if it is not a recognizable condition."""
    text = part.strip()
    if not text:
        return None

    match = _NOT_RE.match(text)
    if match:
        return Condition(flag=match.group(1), operator=ConditionOperator.IS_NOT_SET)

    match = _COMPARISON_RE.match(text)
    if match:
        flag, token, raw_value = match.groups()
        operator = _TOKEN_OPERATORS[token.lower()]
        return Condition(flag=flag, operator=operator, value=_parse_value(raw_value))

    match = _FLAG_RE.match(text)
    if match:
        return Condition(flag=match.group(1), operator=ConditionOperator.IS_SET)
    return None


def parse_condition(text: str) -> list[Condition]:
    """Parse a condition expression into a list of conjuncts.

    Unreadable parts are dropped; an empty or blank expression yields an
    empty list.
    """
    if not text or not text.strip():
        return []
    conditions: list[Condition] = []
    for part in _CONJUNCTION_RE.split(text.strip()):
        condition = parse_condition_part(part)
        if condition is not None:
            conditions.append(condition)
    return conditions


def format_condition(condition: Condition) -> str:
    """Render one condition.

    Comparisons without a value degrade to presence checks, mirroring how
    they evaluate.
    """
    flag = f"${condition.flag}"
    operator = condition.operator
    if operator == ConditionOperator.IS_SET:
        return flag
    if operator == ConditionOperator.IS_NOT_SET:
        return f"not {flag}"
    if condition.value is None:
        return f"not {flag}" if operator == ConditionOperator.NOT_EQUALS else flag
    return f"{flag} {OPERATOR_SYMBOLS[operator]} {format_literal(condition.value)}"


def format_conditions(conditions: Iterable[Condition] | None) -> str:
    """Join conditions with ``" and "``."""
    if not conditions:
        return ""
    return " and ".join(format_condition(condition) for condition in conditions)
