"""Project configuration loading (``forge.yaml``)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import Any

from ruamel.yaml import YAML

from dialogueforge.runtime.runner import DEFAULT_MAX_CALL_STACK_DEPTH, DEFAULT_MAX_STEPS

CONFIG_FILENAME = "forge.yaml"
DEFAULT_YARN_TITLE = "Imported Dialogue"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_bool(name: str) -> bool | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return None


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


@dataclass
class RunnerConfig:
    """Graph runner limits.

    ``DFORGE_MAX_CALL_STACK_DEPTH`` overrides the file value.
    """

    max_call_stack_depth: int = DEFAULT_MAX_CALL_STACK_DEPTH
    max_steps: int = DEFAULT_MAX_STEPS

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunnerConfig:
        depth = _env_int("DFORGE_MAX_CALL_STACK_DEPTH")
        return cls(
            max_call_stack_depth=depth
            if depth is not None
            else int(data.get("max_call_stack_depth", DEFAULT_MAX_CALL_STACK_DEPTH)),
            max_steps=int(data.get("max_steps", DEFAULT_MAX_STEPS)),
        )


@dataclass
class CompilerConfig:
    """Composition compiler defaults.

    ``DFORGE_FAIL_ON_MISSING_GRAPH`` overrides the file value.
    """

    resolve_storylets: bool = True
    fail_on_missing_graph: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CompilerConfig:
        fail_fast = _env_bool("DFORGE_FAIL_ON_MISSING_GRAPH")
        return cls(
            resolve_storylets=bool(data.get("resolve_storylets", True)),
            fail_on_missing_graph=fail_fast
            if fail_fast is not None
            else bool(data.get("fail_on_missing_graph", True)),
        )


@dataclass
class YarnConfig:
    default_title: str = DEFAULT_YARN_TITLE

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> YarnConfig:
        return cls(default_title=str(data.get("default_title", DEFAULT_YARN_TITLE)))


@dataclass
class ForgeConfig:
    """Configuration for a dialogueforge project."""

    runner: RunnerConfig = field(default_factory=RunnerConfig)
    compiler: CompilerConfig = field(default_factory=CompilerConfig)
    yarn: YarnConfig = field(default_factory=YarnConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ForgeConfig:
        """Create config from dictionary.

        Args:
            data: Parsed ``forge.yaml`` contents. Missing sections use
                defaults.

        Returns:
            ForgeConfig instance.
        """
        return cls(
            runner=RunnerConfig.from_dict(dict(data.get("runner") or {})),
            compiler=CompilerConfig.from_dict(dict(data.get("compiler") or {})),
            yarn=YarnConfig.from_dict(dict(data.get("yarn") or {})),
        )


class ForgeConfigError(Exception):
    """Raised when project configuration cannot be loaded."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load forge config at {path}: {reason}")


def load_forge_config(project_path: Path) -> ForgeConfig:
    """Load configuration from ``forge.yaml`` in ``project_path``.

    A missing file yields defaults (environment overrides still apply).

    Raises:
        ForgeConfigError: If the file exists but cannot be read.
    """
    config_path = project_path / CONFIG_FILENAME

    if not config_path.exists():
        return ForgeConfig.from_dict({})

    yaml = YAML(typ="safe")
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)

        if data is None:
            return ForgeConfig.from_dict({})
        if not isinstance(data, dict):
            raise ForgeConfigError(config_path, "Top level must be a mapping")

        return ForgeConfig.from_dict(data)
    except Exception as e:
        if isinstance(e, ForgeConfigError):
            raise
        raise ForgeConfigError(config_path, str(e)) from e
