"""Events emitted by the graph runner.

Every public runner call returns a list of these. ``type`` discriminates
the variants, so a JSON event stream can be read back with
``RunnerEventAdapter.validate_python``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import Field, TypeAdapter

from dialogueforge.models.graph import FlagValue, ForgeModel


class RunnerEventType(StrEnum):
    LINE = "LINE"
    CHOICES = "CHOICES"
    SET_VARIABLES = "SET_VARIABLES"
    END = "END"
    ERROR = "ERROR"


class RunnerChoice(ForgeModel):
    """A choice that passed its conditions and can be selected."""

    id: str
    text: str
    next_node_id: str | None = None
    set_flags: list[str] | None = None


class _RunnerEventBase(ForgeModel):
    graph_id: int
    node_id: str = ""


class LineEvent(_RunnerEventBase):
    type: Literal["LINE"] = "LINE"
    speaker: str | None = None
    character_id: str | None = None
    content: str = ""


class ChoicesEvent(_RunnerEventBase):
    type: Literal["CHOICES"] = "CHOICES"
    choices: list[RunnerChoice] = Field(default_factory=list)


class SetVariablesEvent(_RunnerEventBase):
    type: Literal["SET_VARIABLES"] = "SET_VARIABLES"
    updates: dict[str, FlagValue] = Field(default_factory=dict)


class EndEvent(_RunnerEventBase):
    type: Literal["END"] = "END"


class ErrorEvent(_RunnerEventBase):
    type: Literal["ERROR"] = "ERROR"
    message: str
    code: str


RunnerEvent = Annotated[
    LineEvent | ChoicesEvent | SetVariablesEvent | EndEvent | ErrorEvent,
    Field(discriminator="type"),
]

RunnerEventAdapter: TypeAdapter[RunnerEvent] = TypeAdapter(RunnerEvent)
