"""Interactive graph runner.

A small state machine that walks a dialogue graph one user action at a
time. Callers drive it with exactly one of ``step``, ``advance``,
``select_choice`` or ``restart`` per action and consume the returned
event batch.

Status flow::

    IDLE -> WAITING_FOR_ADVANCE | WAITING_FOR_CHOICE -> ... -> ENDED | ERROR

Storylet calls switch the current graph. ``DETOUR_RETURN`` calls push a
``(graph_id, node_id)`` frame onto an explicit return stack; reaching an
END node (or running out of next nodes) pops it. No public method raises:
failures become an ``ERROR`` event and a terminal ``ERROR`` status.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from dialogueforge.graph.errors import GraphNotFoundError, NodeNotFoundError
from dialogueforge.models.graph import (
    ConditionalBlockType,
    ConditionalNode,
    EndNode,
    PlayerNode,
    StoryletCallMode,
    StoryletNode,
)
from dialogueforge.observability.logging import get_logger
from dialogueforge.runtime.conditions import evaluate
from dialogueforge.runtime.events import (
    ChoicesEvent,
    EndEvent,
    ErrorEvent,
    LineEvent,
    RunnerChoice,
    SetVariablesEvent,
)
from dialogueforge.runtime.variables import (
    VariableStorage,
    apply_set_instructions,
    extract_set_commands,
    flatten_game_state,
    parse_set_command,
    remove_set_commands,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from dialogueforge.models.graph import ConditionalBlock, FlagValue, Graph, StoryletCall
    from dialogueforge.runtime.events import RunnerEvent
    from dialogueforge.runtime.variables import SetInstruction

log = get_logger(__name__)

DEFAULT_MAX_CALL_STACK_DEPTH = 32
DEFAULT_MAX_STEPS = 10_000


class RunnerStatus(StrEnum):
    IDLE = "IDLE"
    WAITING_FOR_ADVANCE = "WAITING_FOR_ADVANCE"
    WAITING_FOR_CHOICE = "WAITING_FOR_CHOICE"
    ENDED = "ENDED"
    ERROR = "ERROR"


class RunnerErrorCode(StrEnum):
    GRAPH_NOT_FOUND = "GRAPH_NOT_FOUND"
    NODE_NOT_FOUND = "NODE_NOT_FOUND"
    MISSING_REFERENCED_GRAPH = "MISSING_REFERENCED_GRAPH"
    CALL_STACK_OVERFLOW = "CALL_STACK_OVERFLOW"
    STEP_LIMIT_EXCEEDED = "STEP_LIMIT_EXCEEDED"
    INVALID_CHOICE = "INVALID_CHOICE"


@dataclass(frozen=True)
class ReturnFrame:
    """Where execution resumes after a detour ends."""

    graph_id: int
    node_id: str | None


@dataclass(frozen=True)
class PendingAdvance:
    """Target of the next ``advance()`` after a line was shown."""

    graph_id: int
    node_id: str | None


@dataclass(frozen=True)
class RunnerError:
    message: str
    code: str


@dataclass
class GraphRunnerState:
    """Point-in-time view of a runner, returned by ``get_state()``."""

    status: RunnerStatus
    current_graph_id: int
    current_node_id: str | None
    call_stack_depth: int
    waiting_choices: list[RunnerChoice] = field(default_factory=list)
    pending_advance: PendingAdvance | None = None
    last_error: RunnerError | None = None


class GraphRunner:
    """Walks a root graph and the storylet graphs it calls.

    The runner never fetches graphs itself: every graph it may enter must be
    in ``graphs_by_id`` or returned by the optional synchronous
    ``graph_resolver``. Graphs are treated as read-only.

    Args:
        root_graph: Graph to start in.
        graphs_by_id: Other graphs reachable through storylet calls.
        graph_resolver: Fallback lookup for graphs missing from the map.
        variables: Initial flat flag values.
        initial_game_state: Nested game state, flattened into flags and
            layered over ``variables``.
        max_call_stack_depth: Return stack cap.
        max_steps: Node visits allowed per drive before giving up.
    """

    def __init__(
        self,
        root_graph: Graph,
        graphs_by_id: Mapping[int, Graph] | None = None,
        *,
        graph_resolver: Callable[[int], Graph | None] | None = None,
        variables: Mapping[str, FlagValue] | None = None,
        initial_game_state: Mapping[str, Any] | None = None,
        max_call_stack_depth: int = DEFAULT_MAX_CALL_STACK_DEPTH,
        max_steps: int = DEFAULT_MAX_STEPS,
    ) -> None:
        self._root = root_graph
        self._graphs: dict[int, Graph] = {root_graph.id: root_graph}
        for graph in (graphs_by_id or {}).values():
            self._graphs.setdefault(graph.id, graph)
        self._graph_resolver = graph_resolver
        self._max_call_stack_depth = max_call_stack_depth
        self._max_steps = max_steps

        initial: dict[str, FlagValue] = dict(variables or {})
        if initial_game_state:
            initial.update(flatten_game_state(initial_game_state))
        self._storage = VariableStorage(initial)

        self._status = RunnerStatus.IDLE
        self._current_graph_id = root_graph.id
        self._current_node_id: str | None = root_graph.start_node_id or None
        self._call_stack: list[ReturnFrame] = []
        self._waiting_choices: list[RunnerChoice] = []
        self._pending_advance: PendingAdvance | None = None
        self._last_error: RunnerError | None = None

    # -- public surface -------------------------------------------------

    @property
    def status(self) -> RunnerStatus:
        return self._status

    def get_state(self) -> GraphRunnerState:
        return GraphRunnerState(
            status=self._status,
            current_graph_id=self._current_graph_id,
            current_node_id=self._current_node_id,
            call_stack_depth=len(self._call_stack),
            waiting_choices=list(self._waiting_choices),
            pending_advance=self._pending_advance,
            last_error=self._last_error,
        )

    def get_variable_snapshot(self) -> dict[str, FlagValue]:
        """Current flag values, including every mutation so far."""
        return self._storage.snapshot()

    def step(self) -> list[RunnerEvent]:
        """Run from the current node until the next wait point.

        While a line is waiting this behaves like ``advance()``. While
        choices are waiting, or after the run has finished, it does
        nothing.
        """
        if self._status == RunnerStatus.WAITING_FOR_ADVANCE:
            return self.advance()
        if self._status != RunnerStatus.IDLE:
            return []
        return self._drive()

    def advance(self) -> list[RunnerEvent]:
        """Move past the line that is currently shown."""
        if self._status != RunnerStatus.WAITING_FOR_ADVANCE or self._pending_advance is None:
            return []
        pending = self._pending_advance
        self._pending_advance = None
        self._current_graph_id = pending.graph_id
        self._current_node_id = pending.node_id
        self._status = RunnerStatus.IDLE
        return self._drive()

    def select_choice(self, choice_id: str) -> list[RunnerEvent]:
        """Pick one of the choices from the last ``CHOICES`` event.

        An id that was not offered halts the run with ``INVALID_CHOICE``.
        """
        if self._status != RunnerStatus.WAITING_FOR_CHOICE:
            return []
        selected = next((c for c in self._waiting_choices if c.id == choice_id), None)
        if selected is None:
            return [
                self._fail(
                    f"Choice '{choice_id}' is not available",
                    RunnerErrorCode.INVALID_CHOICE,
                )
            ]

        log.debug("choice_selected", graph_id=self._current_graph_id, choice_id=choice_id)
        events: list[RunnerEvent] = []
        node_id = self._current_node_id or ""
        set_event = self._apply_set_flags(node_id, selected.set_flags)
        if set_event is not None:
            events.append(set_event)

        next_node_id = selected.next_node_id
        if next_node_id is None:
            graph = self._graphs.get(self._current_graph_id)
            node = graph.get_node(node_id) if graph is not None else None
            if graph is not None and node is not None:
                next_node_id = graph.next_node_id(node)

        self._current_node_id = next_node_id
        self._waiting_choices = []
        self._status = RunnerStatus.IDLE
        events.extend(self._drive())
        return events

    def restart(self, graph_id: int | None = None, node_id: str | None = None) -> list[RunnerEvent]:
        """Discard all progress and variable changes and run from the entry.

        Args:
            graph_id: Graph to restart in (defaults to the root graph).
            node_id: Node to restart at (defaults to that graph's start).
        """
        self._call_stack.clear()
        self._waiting_choices = []
        self._pending_advance = None
        self._last_error = None
        self._storage.reset()
        self._status = RunnerStatus.IDLE

        self._current_graph_id = graph_id if graph_id is not None else self._root.id
        graph = self._lookup_graph(self._current_graph_id) or self._root
        self._current_node_id = node_id if node_id is not None else (graph.start_node_id or None)
        log.debug("runner_restart", graph_id=self._current_graph_id, node_id=self._current_node_id)
        return self._drive()

    # -- internals ------------------------------------------------------

    def _lookup_graph(self, graph_id: int) -> Graph | None:
        graph = self._graphs.get(graph_id)
        if graph is not None:
            return graph
        if self._graph_resolver is None:
            return None
        graph = self._graph_resolver(graph_id)
        if graph is not None:
            self._graphs[graph.id] = graph
        return graph

    def _fail(self, message: str, code: str, node_id: str | None = None) -> ErrorEvent:
        self._status = RunnerStatus.ERROR
        self._last_error = RunnerError(message=message, code=code)
        log.warning("runner_error", code=code, graph_id=self._current_graph_id, message=message)
        return ErrorEvent(
            graph_id=self._current_graph_id,
            node_id=node_id if node_id is not None else (self._current_node_id or ""),
            message=message,
            code=code,
        )

    def _apply_set_flags(
        self, node_id: str, instructions: Iterable[str | SetInstruction] | None
    ) -> SetVariablesEvent | None:
        if not instructions:
            return None
        updates = apply_set_instructions(self._storage, instructions)
        if not updates:
            return None
        return SetVariablesEvent(graph_id=self._current_graph_id, node_id=node_id, updates=updates)

    def _emit_line(
        self,
        events: list[RunnerEvent],
        node_id: str,
        content: str,
        speaker: str | None,
        character_id: str | None,
        next_node_id: str | None,
    ) -> None:
        """Emit a line and park in WAITING_FOR_ADVANCE.

        Inline ``<<set>>`` commands run now and are stripped from the text.
        """
        inline = [cmd for cmd in (parse_set_command(c) for c in extract_set_commands(content)) if cmd]
        set_event = self._apply_set_flags(node_id, inline)
        if set_event is not None:
            events.append(set_event)

        events.append(
            LineEvent(
                graph_id=self._current_graph_id,
                node_id=node_id,
                speaker=speaker,
                character_id=character_id,
                content=remove_set_commands(content) if inline else content,
            )
        )
        self._pending_advance = PendingAdvance(graph_id=self._current_graph_id, node_id=next_node_id)
        self._status = RunnerStatus.WAITING_FOR_ADVANCE

    def _pop_return_frame(self) -> bool:
        if not self._call_stack:
            return False
        frame = self._call_stack.pop()
        log.debug("detour_return", graph_id=frame.graph_id, node_id=frame.node_id)
        self._current_graph_id = frame.graph_id
        self._current_node_id = frame.node_id
        return True

    def _finish(self, events: list[RunnerEvent], node_id: str) -> None:
        self._status = RunnerStatus.ENDED
        events.append(EndEvent(graph_id=self._current_graph_id, node_id=node_id))
        log.debug("runner_ended", graph_id=self._current_graph_id, node_id=node_id)

    def _drive(self) -> list[RunnerEvent]:
        events: list[RunnerEvent] = []
        steps = 0

        while self._status == RunnerStatus.IDLE:
            steps += 1
            if steps > self._max_steps:
                events.append(
                    self._fail(
                        f"Exceeded {self._max_steps} steps without reaching a wait point",
                        RunnerErrorCode.STEP_LIMIT_EXCEEDED,
                    )
                )
                break

            node_id = self._current_node_id
            if not node_id:
                if not self._pop_return_frame():
                    self._finish(events, "")
                continue

            graph = self._lookup_graph(self._current_graph_id)
            if graph is None:
                error = GraphNotFoundError(self._current_graph_id)
                events.append(self._fail(str(error), error.code))
                break

            node = graph.get_node(node_id)
            if node is None:
                error = NodeNotFoundError(node_id, graph_id=graph.id, available=list(graph.nodes))
                events.append(self._fail(str(error), error.code))
                break

            set_event = self._apply_set_flags(node_id, node.set_flags)
            if set_event is not None:
                events.append(set_event)

            if isinstance(node, EndNode):
                if not self._pop_return_frame():
                    self._finish(events, node_id)
                continue

            if isinstance(node, StoryletNode) and node.storylet_call is not None:
                self._enter_storylet(events, graph, node, node.storylet_call)
                continue

            if isinstance(node, ConditionalNode):
                self._run_conditional(events, graph, node)
                continue

            if isinstance(node, PlayerNode):
                self._offer_choices(events, graph, node)
                continue

            if node.has_content:
                self._emit_line(
                    events,
                    node_id,
                    node.content or "",
                    node.speaker,
                    node.character_id,
                    graph.next_node_id(node),
                )
                continue

            self._current_node_id = graph.next_node_id(node)

        return events

    def _enter_storylet(
        self, events: list[RunnerEvent], graph: Graph, node: StoryletNode, call: StoryletCall
    ) -> None:
        target = self._lookup_graph(call.target_graph_id)
        if target is None:
            events.append(
                self._fail(
                    f"Referenced graph {call.target_graph_id} not found",
                    RunnerErrorCode.MISSING_REFERENCED_GRAPH,
                    node_id=node.id,
                )
            )
            return

        if call.mode == StoryletCallMode.DETOUR_RETURN:
            if len(self._call_stack) >= self._max_call_stack_depth:
                events.append(
                    self._fail(
                        f"Call stack exceeded maximum depth {self._max_call_stack_depth}",
                        RunnerErrorCode.CALL_STACK_OVERFLOW,
                        node_id=node.id,
                    )
                )
                return
            self._call_stack.append(
                ReturnFrame(
                    graph_id=call.return_graph_id if call.return_graph_id is not None else graph.id,
                    node_id=call.return_node_id or graph.next_node_id(node),
                )
            )

        log.debug(
            "storylet_enter",
            from_graph=graph.id,
            to_graph=target.id,
            mode=call.mode.value,
            depth=len(self._call_stack),
        )
        self._current_graph_id = target.id
        self._current_node_id = call.target_start_node_id or target.start_node_id or None

    def _pick_block(self, node: ConditionalNode) -> ConditionalBlock | None:
        state = self._storage.values
        for block in node.conditional_blocks:
            if block.type == ConditionalBlockType.ELSE:
                return block
            if evaluate(block.condition, state):
                return block
        return None

    def _run_conditional(self, events: list[RunnerEvent], graph: Graph, node: ConditionalNode) -> None:
        block = self._pick_block(node)
        if block is None:
            # No match and no ELSE: fall through silently.
            self._current_node_id = graph.next_node_id(node)
            return

        set_event = self._apply_set_flags(node.id, block.set_flags)
        if set_event is not None:
            events.append(set_event)

        next_node_id = block.next_node_id or graph.next_node_id(node)
        if block.content and block.content.strip():
            self._emit_line(
                events,
                node.id,
                block.content,
                block.speaker,
                block.character_id,
                next_node_id,
            )
            return
        self._current_node_id = next_node_id

    def _offer_choices(self, events: list[RunnerEvent], graph: Graph, node: PlayerNode) -> None:
        """Emit the passing choices, or fall through when none pass."""
        state = self._storage.values
        self._waiting_choices = [
            RunnerChoice(
                id=choice.id,
                text=choice.text,
                next_node_id=choice.next_node_id,
                set_flags=choice.set_flags,
            )
            for choice in node.choices
            if evaluate(choice.conditions, state)
        ]
        if not self._waiting_choices:
            log.debug("no_choices_available", graph_id=graph.id, node_id=node.id)
            self._current_node_id = graph.next_node_id(node)
            return
        events.append(
            ChoicesEvent(
                graph_id=self._current_graph_id,
                node_id=node.id,
                choices=list(self._waiting_choices),
            )
        )
        self._status = RunnerStatus.WAITING_FOR_CHOICE
