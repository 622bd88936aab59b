"""Tests for project configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from dialogueforge.config import (
    CONFIG_FILENAME,
    DEFAULT_YARN_TITLE,
    CompilerConfig,
    ForgeConfig,
    ForgeConfigError,
    RunnerConfig,
    load_forge_config,
)
from dialogueforge.runtime.runner import DEFAULT_MAX_CALL_STACK_DEPTH, DEFAULT_MAX_STEPS

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DFORGE_MAX_CALL_STACK_DEPTH", raising=False)
    monkeypatch.delenv("DFORGE_FAIL_ON_MISSING_GRAPH", raising=False)


class TestForgeConfig:
    def test_defaults(self) -> None:
        config = ForgeConfig.from_dict({})

        assert config.runner.max_call_stack_depth == DEFAULT_MAX_CALL_STACK_DEPTH
        assert config.runner.max_steps == DEFAULT_MAX_STEPS
        assert config.compiler.resolve_storylets is True
        assert config.compiler.fail_on_missing_graph is True
        assert config.yarn.default_title == DEFAULT_YARN_TITLE

    def test_from_dict(self) -> None:
        config = ForgeConfig.from_dict(
            {
                "runner": {"max_call_stack_depth": 8, "max_steps": 500},
                "compiler": {"resolve_storylets": False, "fail_on_missing_graph": False},
                "yarn": {"default_title": "Scripts"},
            }
        )

        assert config.runner == RunnerConfig(max_call_stack_depth=8, max_steps=500)
        assert config.compiler == CompilerConfig(resolve_storylets=False, fail_on_missing_graph=False)
        assert config.yarn.default_title == "Scripts"

    def test_null_sections_use_defaults(self) -> None:
        config = ForgeConfig.from_dict({"runner": None})
        assert config.runner.max_steps == DEFAULT_MAX_STEPS


class TestEnvironmentOverrides:
    def test_call_stack_depth(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DFORGE_MAX_CALL_STACK_DEPTH", "4")
        config = RunnerConfig.from_dict({"max_call_stack_depth": 16})
        assert config.max_call_stack_depth == 4

    def test_invalid_int_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DFORGE_MAX_CALL_STACK_DEPTH", "lots")
        assert RunnerConfig.from_dict({}).max_call_stack_depth == DEFAULT_MAX_CALL_STACK_DEPTH

    @pytest.mark.parametrize(("raw", "expected"), [("0", False), ("no", False), ("TRUE", True), ("on", True)])
    def test_fail_on_missing_graph(self, monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
        monkeypatch.setenv("DFORGE_FAIL_ON_MISSING_GRAPH", raw)
        config = CompilerConfig.from_dict({"fail_on_missing_graph": not expected})
        assert config.fail_on_missing_graph is expected


class TestLoadForgeConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        assert load_forge_config(tmp_path) == ForgeConfig()

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("")
        assert load_forge_config(tmp_path) == ForgeConfig()

    def test_reads_yaml(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("runner:\n  max_steps: 25\nyarn:\n  default_title: Imported\n")
        config = load_forge_config(tmp_path)
        assert config.runner.max_steps == 25
        assert config.yarn.default_title == "Imported"

    def test_non_mapping_rejected(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("- just\n- a list\n")
        with pytest.raises(ForgeConfigError, match="Top level must be a mapping"):
            load_forge_config(tmp_path)

    def test_invalid_yaml_wrapped(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("runner: [unclosed\n")
        with pytest.raises(ForgeConfigError) as exc_info:
            load_forge_config(tmp_path)
        assert exc_info.value.path == tmp_path / CONFIG_FILENAME

    def test_bad_value_wrapped(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("runner:\n  max_steps: many\n")
        with pytest.raises(ForgeConfigError, match="max_steps|invalid literal"):
            load_forge_config(tmp_path)
