"""Validation result types shared by the graph checks and the CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal


@dataclass
class ValidationCheck:
    """Result of a single validation check.

    Attributes:
        name: Identifier for the check.
        severity: "pass", "warn", or "fail".
        message: Human-readable description of the result.
        node_ids: Nodes the finding is about, if any.
    """

    name: str
    severity: Literal["pass", "warn", "fail"]
    message: str = ""
    node_ids: list[str] = field(default_factory=list)


@dataclass
class ValidationReport:
    """Aggregated results of validation checks."""

    checks: list[ValidationCheck] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return any(c.severity == "fail" for c in self.checks)

    @property
    def has_warnings(self) -> bool:
        return any(c.severity == "warn" for c in self.checks)

    @property
    def summary(self) -> str:
        """Human-readable summary, e.g. ``"1 failed, 4 passed"``."""
        counts = {
            severity: sum(1 for c in self.checks if c.severity == severity)
            for severity in ("fail", "warn", "pass")
        }
        parts: list[str] = []
        if counts["fail"]:
            parts.append(f"{counts['fail']} failed")
        if counts["warn"]:
            parts.append(f"{counts['warn']} warnings")
        if counts["pass"]:
            parts.append(f"{counts['pass']} passed")
        return ", ".join(parts)
