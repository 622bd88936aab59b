"""Condition evaluation over a flag snapshot.

Pure functions: no state is mutated and nothing raises. A condition list
is a conjunction; evaluation short-circuits on the first false member.

Comparisons are type-strict. Values are grouped into three kinds
(boolean, number, string) and two values of different kinds never
compare equal or ordered, so ``$gold == "5"`` is false when gold is 5.
A missing flag takes the zero value of the literal's kind (``False``,
``0`` or ``""``) before comparing.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from dialogueforge.models.graph import ConditionOperator

if TYPE_CHECKING:
    from dialogueforge.models.graph import Condition, FlagValue

VariableState = Mapping[str, "FlagValue"]

_ORDERING: dict[ConditionOperator, Callable[[Any, Any], bool]] = {
    ConditionOperator.GREATER_THAN: lambda a, b: a > b,
    ConditionOperator.LESS_THAN: lambda a, b: a < b,
    ConditionOperator.GREATER_EQUAL: lambda a, b: a >= b,
    ConditionOperator.LESS_EQUAL: lambda a, b: a <= b,
}


def value_kind(value: object) -> str | None:
    """Classify a flag value as ``boolean``, ``number`` or ``string``.

    ``bool`` is checked before ``int`` since it subclasses it.
    """
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int | float):
        return "number"
    if isinstance(value, str):
        return "string"
    return None


_ZERO_VALUES: dict[str, FlagValue] = {"boolean": False, "number": 0, "string": ""}


def evaluate_condition(condition: Condition, state: VariableState) -> bool:
    """Evaluate a single condition against ``state``."""
    current = state.get(condition.flag)
    operator = condition.operator

    if operator == ConditionOperator.IS_SET:
        return bool(current)
    if operator == ConditionOperator.IS_NOT_SET:
        return not current

    expected = condition.value
    if expected is None:
        # A comparison without a literal degrades to a presence test.
        if operator == ConditionOperator.EQUALS:
            return bool(current)
        if operator == ConditionOperator.NOT_EQUALS:
            return not current
        return False

    expected_kind = value_kind(expected)
    if current is None:
        current = _ZERO_VALUES.get(expected_kind or "", None)
    if expected_kind is None or value_kind(current) != expected_kind:
        return False

    if operator == ConditionOperator.EQUALS:
        return current == expected
    if operator == ConditionOperator.NOT_EQUALS:
        return current != expected

    compare = _ORDERING.get(operator)
    if compare is None:
        return False
    return compare(current, expected)


def evaluate(conditions: Iterable[Condition] | None, state: VariableState) -> bool:
    """Evaluate a conjunction of conditions.

    An empty or missing list is true.
    """
    if not conditions:
        return True
    return all(evaluate_condition(condition, state) for condition in conditions)
