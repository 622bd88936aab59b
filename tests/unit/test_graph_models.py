"""Tests for dialogue graph models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from dialogueforge.models.graph import (
    CharacterNode,
    Choice,
    ConditionalBlock,
    ConditionalBlockType,
    ConditionalNode,
    Edge,
    EdgeKind,
    EndNode,
    Graph,
    PlayerNode,
    StoryletCall,
    StoryletNode,
    derive_edges,
    node_references,
)


def _graph_json() -> dict[str, object]:
    return {
        "id": 1,
        "title": "Intro",
        "kind": "NARRATIVE",
        "startNodeId": "a",
        "endNodeIds": ["c"],
        "nodes": {
            "a": {"id": "a", "type": "CHARACTER", "speaker": "Guide", "content": "Hi", "defaultNextNodeId": "b"},
            "b": {
                "id": "b",
                "type": "PLAYER",
                "choices": [{"id": "go", "text": "Go", "nextNodeId": "c", "setFlags": ["left"]}],
            },
            "c": {"id": "c", "type": "END"},
        },
        "edges": [],
    }


class TestGraphParsing:
    def test_camel_case_input(self) -> None:
        graph = Graph.model_validate(_graph_json())

        assert graph.start_node_id == "a"
        assert isinstance(graph.nodes["a"], CharacterNode)
        assert isinstance(graph.nodes["b"], PlayerNode)
        assert isinstance(graph.nodes["c"], EndNode)
        assert graph.nodes["b"].choices[0].set_flags == ["left"]

    def test_snake_case_input(self) -> None:
        graph = Graph(id=2, start_node_id="x", nodes={"x": EndNode(id="x")})
        assert graph.nodes["x"].type == "END"

    def test_json_output_uses_camel_case(self) -> None:
        data = Graph.model_validate(_graph_json()).to_json_dict()

        assert data["startNodeId"] == "a"
        assert data["nodes"]["a"]["defaultNextNodeId"] == "b"
        assert "label" not in data["nodes"]["a"]

    def test_start_node_must_exist(self) -> None:
        data = _graph_json()
        data["startNodeId"] = "missing"
        with pytest.raises(ValidationError, match="Start node"):
            Graph.model_validate(data)

    def test_node_keys_must_match_ids(self) -> None:
        with pytest.raises(ValidationError, match="does not match"):
            Graph(id=1, start_node_id="a", nodes={"a": EndNode(id="b")})

    def test_unknown_node_type_rejected(self) -> None:
        data = _graph_json()
        data["nodes"] = {"a": {"id": "a", "type": "BOGUS"}}
        with pytest.raises(ValidationError):
            Graph.model_validate(data)

    def test_variant_fields_are_exclusive(self) -> None:
        with pytest.raises(ValidationError):
            CharacterNode.model_validate({"id": "a", "choices": []})

    def test_dangling_reference_is_allowed(self) -> None:
        graph = Graph.from_nodes(1, [CharacterNode(id="a", default_next_node_id="nowhere")])
        assert graph.nodes["a"].default_next_node_id == "nowhere"

    def test_detour_type(self) -> None:
        node = StoryletNode.model_validate(
            {"id": "d", "type": "DETOUR", "storyletCall": {"mode": "DETOUR_RETURN", "targetGraphId": 4}}
        )
        assert node.storylet_call is not None
        assert node.storylet_call.target_graph_id == 4


class TestGraphNavigation:
    def test_from_nodes_defaults(self) -> None:
        graph = Graph.from_nodes(
            1,
            [CharacterNode(id="a", content="Hi", default_next_node_id="b"), EndNode(id="b")],
        )
        assert graph.start_node_id == "a"
        assert graph.end_node_ids == ["b"]
        assert [(e.source, e.target, e.kind) for e in graph.edges] == [("a", "b", EdgeKind.DEFAULT)]

    def test_next_node_prefers_default(self) -> None:
        node = CharacterNode(id="a", default_next_node_id="b")
        graph = Graph(
            id=1,
            start_node_id="a",
            nodes={"a": node, "b": EndNode(id="b"), "c": EndNode(id="c")},
            edges=[Edge(id="e", source="a", target="c")],
        )
        assert graph.next_node_id(node) == "b"

    def test_next_node_falls_back_to_edge(self) -> None:
        node = CharacterNode(id="a")
        graph = Graph(
            id=1,
            start_node_id="a",
            nodes={"a": node, "c": EndNode(id="c")},
            edges=[Edge(id="e", source="a", target="c")],
        )
        assert graph.next_node_id(node) == "c"
        assert graph.next_node_id(EndNode(id="c")) is None

    def test_next_node_ignores_branch_edges(self) -> None:
        node = PlayerNode(id="p", choices=[Choice(id="a", text="A", next_node_id="x")])
        graph = Graph(
            id=1,
            start_node_id="p",
            nodes={"p": node, "x": EndNode(id="x"), "y": EndNode(id="y")},
            edges=[
                Edge(id="e1", source="p", target="x", kind=EdgeKind.CHOICE),
                Edge(id="e2", source="p", target="x", kind=EdgeKind.CONDITION),
                Edge(id="e3", source="p", target="x", kind=EdgeKind.VISUAL),
            ],
        )
        assert graph.next_node_id(node) is None

        graph.edges.append(Edge(id="e4", source="p", target="y", kind=EdgeKind.FLOW))
        assert graph.next_node_id(node) == "y"

    def test_storylet_targets_deduplicated(self) -> None:
        graph = Graph.from_nodes(
            1,
            [
                StoryletNode(id="s1", storylet_call=StoryletCall(target_graph_id=5), default_next_node_id="s2"),
                StoryletNode(id="s2", storylet_call=StoryletCall(target_graph_id=3), default_next_node_id="s3"),
                StoryletNode(id="s3", storylet_call=StoryletCall(target_graph_id=5)),
            ],
        )
        assert graph.storylet_targets() == [5, 3]


class TestReferences:
    def test_node_references_order(self) -> None:
        node = ConditionalNode(
            id="c",
            conditional_blocks=[
                ConditionalBlock(id="b1", type=ConditionalBlockType.IF, next_node_id="x"),
                ConditionalBlock(id="b2", type=ConditionalBlockType.ELSE),
            ],
            default_next_node_id="y",
        )
        assert node_references(node) == [("x", EdgeKind.CONDITION), ("y", EdgeKind.DEFAULT)]

    def test_derive_edges_deduplicates_pairs(self) -> None:
        node = PlayerNode(
            id="p",
            choices=[
                Choice(id="a", text="A", next_node_id="x"),
                Choice(id="b", text="B", next_node_id="x"),
            ],
        )
        edges = derive_edges([node])
        assert [(e.id, e.kind) for e in edges] == [("edge_p_x", EdgeKind.CHOICE)]
