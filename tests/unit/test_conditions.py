"""Tests for condition evaluation."""

from __future__ import annotations

from dialogueforge.models.graph import Condition, ConditionOperator, FlagValue
from dialogueforge.runtime.conditions import evaluate, evaluate_condition, value_kind


def _cond(flag: str, operator: ConditionOperator, value: FlagValue | None = None) -> Condition:
    return Condition(flag=flag, operator=operator, value=value)


class TestValueKind:
    def test_bool_is_not_number(self) -> None:
        assert value_kind(True) == "boolean"
        assert value_kind(1) == "number"
        assert value_kind(1.5) == "number"
        assert value_kind("x") == "string"
        assert value_kind(None) is None


class TestPresence:
    def test_is_set_truthy(self) -> None:
        cond = _cond("met", ConditionOperator.IS_SET)
        assert evaluate_condition(cond, {"met": True})
        assert not evaluate_condition(cond, {"met": False})
        assert not evaluate_condition(cond, {})

    def test_is_set_zero_and_empty_are_unset(self) -> None:
        cond = _cond("x", ConditionOperator.IS_SET)
        assert not evaluate_condition(cond, {"x": 0})
        assert not evaluate_condition(cond, {"x": ""})

    def test_is_not_set(self) -> None:
        cond = _cond("met", ConditionOperator.IS_NOT_SET)
        assert evaluate_condition(cond, {})
        assert not evaluate_condition(cond, {"met": True})

    def test_equals_without_value_is_presence(self) -> None:
        assert evaluate_condition(_cond("met", ConditionOperator.EQUALS), {"met": True})
        assert evaluate_condition(_cond("met", ConditionOperator.NOT_EQUALS), {})

    def test_ordering_without_value_is_false(self) -> None:
        assert not evaluate_condition(_cond("gold", ConditionOperator.GREATER_THAN), {"gold": 5})


class TestComparisons:
    def test_numeric_ordering(self) -> None:
        state = {"gold": 50}
        assert evaluate_condition(_cond("gold", ConditionOperator.GREATER_EQUAL, 50), state)
        assert not evaluate_condition(_cond("gold", ConditionOperator.GREATER_THAN, 50), state)
        assert evaluate_condition(_cond("gold", ConditionOperator.LESS_THAN, 100), state)
        assert evaluate_condition(_cond("gold", ConditionOperator.LESS_EQUAL, 50.0), state)

    def test_type_strict_equality(self) -> None:
        assert not evaluate_condition(_cond("gold", ConditionOperator.EQUALS, "5"), {"gold": 5})
        assert not evaluate_condition(_cond("flag", ConditionOperator.EQUALS, 1), {"flag": True})

    def test_mismatched_kinds_never_order(self) -> None:
        assert not evaluate_condition(_cond("name", ConditionOperator.GREATER_THAN, 3), {"name": "bob"})
        assert not evaluate_condition(_cond("name", ConditionOperator.NOT_EQUALS, 3), {"name": "bob"})

    def test_missing_flag_uses_zero_value(self) -> None:
        assert evaluate_condition(_cond("gold", ConditionOperator.EQUALS, 0), {})
        assert evaluate_condition(_cond("gold", ConditionOperator.LESS_THAN, 10), {})
        assert evaluate_condition(_cond("mood", ConditionOperator.EQUALS, ""), {})
        assert evaluate_condition(_cond("met", ConditionOperator.EQUALS, False), {})

    def test_string_equality(self) -> None:
        state = {"mood": "cheerful"}
        assert evaluate_condition(_cond("mood", ConditionOperator.EQUALS, "cheerful"), state)
        assert evaluate_condition(_cond("mood", ConditionOperator.NOT_EQUALS, "grim"), state)


class TestConjunction:
    def test_empty_list_is_true(self) -> None:
        assert evaluate([], {})
        assert evaluate(None, {})

    def test_all_must_hold(self) -> None:
        conds = [
            _cond("met", ConditionOperator.IS_SET),
            _cond("gold", ConditionOperator.GREATER_EQUAL, 10),
        ]
        assert evaluate(conds, {"met": True, "gold": 10})
        assert not evaluate(conds, {"met": True, "gold": 9})

    def test_state_is_not_mutated(self) -> None:
        state = {"gold": 1}
        evaluate([_cond("missing", ConditionOperator.EQUALS, 0)], state)
        assert state == {"gold": 1}
