"""Test CLI commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

from dialogueforge import __version__
from dialogueforge.cli import app
from dialogueforge.models.graph import (
    CharacterNode,
    Choice,
    EndNode,
    Graph,
    PlayerNode,
    StoryletCall,
    StoryletCallMode,
    StoryletNode,
)

if TYPE_CHECKING:
    from pathlib import Path

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run every command from an empty directory (no forge.yaml)."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DFORGE_FAIL_ON_MISSING_GRAPH", raising=False)
    monkeypatch.delenv("DFORGE_MAX_CALL_STACK_DEPTH", raising=False)


def _write_graph(path: Path, graph: Graph) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(graph.to_json_dict()))
    return path


def _story() -> Graph:
    return Graph.from_nodes(
        1,
        [
            CharacterNode(id="hello", speaker="Guide", content="Hi", default_next_node_id="ask"),
            PlayerNode(
                id="ask",
                choices=[Choice(id="go", text="Go", next_node_id="visit", set_flags=["brave"])],
            ),
            StoryletNode(
                id="visit",
                storylet_call=StoryletCall(mode=StoryletCallMode.DETOUR_RETURN, target_graph_id=2),
                default_next_node_id="end",
            ),
            EndNode(id="end"),
        ],
        title="Story",
    )


def _side() -> Graph:
    return Graph.from_nodes(
        2,
        [CharacterNode(id="s1", content="A side trip", default_next_node_id="s2"), EndNode(id="s2")],
        title="Side",
    )


def test_version_command() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert f"v{__version__}" in result.stdout


# --- validate ---


def test_validate_clean_graph(tmp_path: Path) -> None:
    graph_file = _write_graph(tmp_path / "story.json", _side())

    result = runner.invoke(app, ["validate", str(graph_file)])

    assert result.exit_code == 0
    assert "passed" in result.stdout


def test_validate_reports_failures(tmp_path: Path) -> None:
    graph = Graph.from_nodes(
        1,
        [CharacterNode(id="a", content="Hi"), CharacterNode(id="lost", content="?")],
    )
    graph_file = _write_graph(tmp_path / "bad.json", graph)

    result = runner.invoke(app, ["validate", str(graph_file)])

    assert result.exit_code == 1
    assert "failed" in result.stdout


def test_validate_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["validate", str(tmp_path / "nope.json")])
    assert result.exit_code == 1
    assert "File not found" in result.stdout


def test_validate_invalid_json(tmp_path: Path) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")

    result = runner.invoke(app, ["validate", str(bad)])

    assert result.exit_code == 1
    assert "Invalid graph file" in result.stdout


# --- yarn ---


def test_export_yarn(tmp_path: Path) -> None:
    graph_file = _write_graph(tmp_path / "story.json", _story())

    result = runner.invoke(app, ["export-yarn", str(graph_file), "-o", str(tmp_path / "out")])

    assert result.exit_code == 0
    yarn_file = tmp_path / "out" / "story.yarn"
    assert yarn_file.exists()
    assert "title: hello" in yarn_file.read_text()


def test_import_yarn_uses_default_title(tmp_path: Path) -> None:
    yarn_file = tmp_path / "scene.yarn"
    yarn_file.write_text("title: a\n---\nGuide: Hello\n<<stop>>\n===\n")

    result = runner.invoke(app, ["import-yarn", str(yarn_file), "-o", str(tmp_path / "out"), "--id", "5"])

    assert result.exit_code == 0
    data = json.loads((tmp_path / "out" / "imported_dialogue.json").read_text())
    assert data["id"] == 5
    assert data["title"] == "Imported Dialogue"
    assert data["nodes"]["a"]["type"] == "END"


def test_import_yarn_with_title(tmp_path: Path) -> None:
    yarn_file = tmp_path / "scene.yarn"
    yarn_file.write_text("title: a\n---\nHello\n===\n")

    result = runner.invoke(app, ["import-yarn", str(yarn_file), "-o", str(tmp_path), "--title", "My Scene"])

    assert result.exit_code == 0
    assert (tmp_path / "my_scene.json").exists()


def test_import_yarn_without_nodes(tmp_path: Path) -> None:
    yarn_file = tmp_path / "empty.yarn"
    yarn_file.write_text("just some text\n")

    result = runner.invoke(app, ["import-yarn", str(yarn_file)])

    assert result.exit_code == 1
    assert "No nodes found" in result.stdout


# --- compile ---


def test_compile_with_storylets(tmp_path: Path) -> None:
    root_file = _write_graph(tmp_path / "story.json", _story())
    _write_graph(tmp_path / "graphs" / "side.json", _side())

    result = runner.invoke(
        app,
        ["compile", str(root_file), "--graphs", str(tmp_path / "graphs"), "-o", str(tmp_path / "out")],
    )

    assert result.exit_code == 0
    data = json.loads((tmp_path / "out" / "composition.json").read_text())
    assert data["resolvedGraphIds"] == [1, 2]


def test_compile_missing_storylet_fails(tmp_path: Path) -> None:
    root_file = _write_graph(tmp_path / "story.json", _story())
    (tmp_path / "graphs").mkdir()

    result = runner.invoke(app, ["compile", str(root_file), "--graphs", str(tmp_path / "graphs")])

    assert result.exit_code == 1
    assert not (tmp_path / "composition.json").exists()


def test_compile_allow_missing(tmp_path: Path) -> None:
    root_file = _write_graph(tmp_path / "story.json", _story())
    (tmp_path / "graphs").mkdir()

    result = runner.invoke(
        app, ["compile", str(root_file), "--graphs", str(tmp_path / "graphs"), "--allow-missing"]
    )

    assert result.exit_code == 0
    assert "MISSING_REFERENCED_GRAPH" in result.stdout
    assert (tmp_path / "composition.json").exists()


def test_compile_root_only(tmp_path: Path) -> None:
    root_file = _write_graph(tmp_path / "story.json", _story())

    result = runner.invoke(app, ["compile", str(root_file), "--no-storylets"])

    assert result.exit_code == 0
    data = json.loads((tmp_path / "composition.json").read_text())
    assert data["resolvedGraphIds"] == [1]


# --- play ---


def test_play_scripted_choices(tmp_path: Path) -> None:
    root_file = _write_graph(tmp_path / "story.json", _story())
    _write_graph(tmp_path / "graphs" / "side.json", _side())

    result = runner.invoke(
        app,
        ["play", str(root_file), "--graphs", str(tmp_path / "graphs"), "--choose", "go", "--variables"],
    )

    assert result.exit_code == 0
    assert "Guide: Hi" in result.stdout
    assert "A side trip" in result.stdout
    assert "END" in result.stdout
    assert '"brave": true' in result.stdout


def test_play_stops_at_unanswered_choice(tmp_path: Path) -> None:
    root_file = _write_graph(tmp_path / "story.json", _story())

    result = runner.invoke(app, ["play", str(root_file)])

    assert result.exit_code == 0
    assert "Go" in result.stdout
    assert "END" not in result.stdout


def test_play_error_exits_nonzero(tmp_path: Path) -> None:
    root_file = _write_graph(tmp_path / "story.json", _story())

    result = runner.invoke(app, ["play", str(root_file), "--choose", "go"])

    assert result.exit_code == 1
    assert "MISSING_REFERENCED_GRAPH" in result.stdout


def test_log_flag_writes_debug_file(tmp_path: Path) -> None:
    from dialogueforge.observability import close_file_logging, configure_logging

    root_file = _write_graph(tmp_path / "story.json", _story())

    try:
        result = runner.invoke(app, ["--log", "play", str(root_file)])
    finally:
        close_file_logging()
        configure_logging(verbosity=0)

    assert result.exit_code == 0
    assert (tmp_path / "logs" / "debug.jsonl").exists()
