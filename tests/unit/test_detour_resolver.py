"""Tests for storylet detour resolution."""

from __future__ import annotations

import pytest

from dialogueforge.compiler.detour import dict_resolver, resolve_storylet_detours
from dialogueforge.graph.errors import MissingReferencedGraphError
from dialogueforge.models.graph import (
    EndNode,
    Graph,
    StoryletCall,
    StoryletCallMode,
    StoryletNode,
)


def _calling_graph(graph_id: int, *targets: int) -> Graph:
    """A graph whose nodes call each target in turn, then end."""
    nodes: list[StoryletNode | EndNode] = []
    for index, target in enumerate(targets):
        nodes.append(
            StoryletNode(
                id=f"call_{index}",
                storylet_call=StoryletCall(mode=StoryletCallMode.DETOUR_RETURN, target_graph_id=target),
                default_next_node_id=f"call_{index + 1}" if index + 1 < len(targets) else "end",
            )
        )
    nodes.append(EndNode(id="end"))
    return Graph.from_nodes(graph_id, nodes)


class _CountingResolver:
    def __init__(self, graphs: dict[int, Graph]) -> None:
        self.graphs = graphs
        self.calls: list[int] = []

    async def __call__(self, graph_id: int) -> Graph | None:
        self.calls.append(graph_id)
        return self.graphs.get(graph_id)


class TestResolveStoryletDetours:
    @pytest.mark.asyncio
    async def test_root_without_storylets(self) -> None:
        root = _calling_graph(1)
        resolver = _CountingResolver({})

        result = await resolve_storylet_detours(root, resolver)

        assert result.resolved_graph_ids == [1]
        assert result.diagnostics == []
        assert resolver.calls == []

    @pytest.mark.asyncio
    async def test_cycle_resolves_each_graph_once(self) -> None:
        a = _calling_graph(1, 2)
        b = _calling_graph(2, 1)
        resolver = _CountingResolver({1: a, 2: b})

        result = await resolve_storylet_detours(a, resolver)

        assert result.resolved_graph_ids == [1, 2]
        assert resolver.calls == [2]

    @pytest.mark.asyncio
    async def test_breadth_first_order(self) -> None:
        graphs = {
            1: _calling_graph(1, 2, 3),
            2: _calling_graph(2, 4),
            3: _calling_graph(3),
            4: _calling_graph(4, 2),
        }
        resolver = _CountingResolver(graphs)

        result = await resolve_storylet_detours(graphs[1], resolver)

        assert result.resolved_graph_ids == [1, 2, 3, 4]
        assert resolver.calls == [2, 3, 4]
        assert [g.id for g in result.graphs] == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_missing_graph_raises_by_default(self) -> None:
        root = _calling_graph(1, 99)

        with pytest.raises(MissingReferencedGraphError) as exc_info:
            await resolve_storylet_detours(root, dict_resolver({}))

        error = exc_info.value
        assert error.graph_id == 99
        assert error.referenced_by == 1
        assert error.code == "MISSING_REFERENCED_GRAPH"
        assert len(error.diagnostics) == 1

    @pytest.mark.asyncio
    async def test_missing_graph_recorded_when_lenient(self) -> None:
        graphs = {1: _calling_graph(1, 2, 98), 2: _calling_graph(2, 99)}

        result = await resolve_storylet_detours(
            graphs[1], dict_resolver(graphs), fail_on_missing_graph=False
        )

        assert result.resolved_graph_ids == [1, 2]
        assert [d.graph_id for d in result.diagnostics] == [98, 99]
        first = result.diagnostics[0]
        assert first.level == "error"
        assert first.code == "MISSING_REFERENCED_GRAPH"
        assert first.details == {"referencedBy": 1}
        assert result.diagnostics[1].details == {"referencedBy": 2}

    @pytest.mark.asyncio
    async def test_resolution_is_repeatable(self) -> None:
        graphs = {1: _calling_graph(1, 2), 2: _calling_graph(2, 1)}

        first = await resolve_storylet_detours(graphs[1], dict_resolver(graphs))
        second = await resolve_storylet_detours(graphs[1], dict_resolver(graphs))

        assert first.resolved_graph_ids == second.resolved_graph_ids
