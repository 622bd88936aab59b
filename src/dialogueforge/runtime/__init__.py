"""Dialogue runtime: condition evaluation, variable state and the graph runner."""

from dialogueforge.runtime.conditions import VariableState, evaluate, evaluate_condition, value_kind
from dialogueforge.runtime.events import (
    ChoicesEvent,
    EndEvent,
    ErrorEvent,
    LineEvent,
    RunnerChoice,
    RunnerEvent,
    RunnerEventAdapter,
    RunnerEventType,
    SetVariablesEvent,
)
from dialogueforge.runtime.runner import (
    GraphRunner,
    GraphRunnerState,
    PendingAdvance,
    ReturnFrame,
    RunnerErrorCode,
    RunnerStatus,
)
from dialogueforge.runtime.variables import (
    SetInstruction,
    SetOperator,
    VariableStorage,
    apply_set_instructions,
    flatten_game_state,
    parse_set_instruction,
)

__all__ = [
    "ChoicesEvent",
    "EndEvent",
    "ErrorEvent",
    "GraphRunner",
    "GraphRunnerState",
    "LineEvent",
    "PendingAdvance",
    "ReturnFrame",
    "RunnerChoice",
    "RunnerErrorCode",
    "RunnerEvent",
    "RunnerEventAdapter",
    "RunnerEventType",
    "RunnerStatus",
    "SetInstruction",
    "SetOperator",
    "SetVariablesEvent",
    "VariableState",
    "VariableStorage",
    "apply_set_instructions",
    "evaluate",
    "evaluate_condition",
    "flatten_game_state",
    "parse_set_instruction",
    "value_kind",
]
