"""Shared types for doctor-style commands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from cinder.sessions.types import FixAction


@dataclass
class DoctorFinding:
    """A single doctor check result."""

    level: Literal["ok", "warning", "error"]
    check: str
    detail: str
    repair: str | None = None
    fix_action: FixAction | None = None
    fixed: bool = False

    @property
    def unresolved(self) -> bool:
        return self.level != "ok" and not self.fixed


@dataclass
class DoctorResult:
    """Aggregated doctor output with common summary semantics."""

    findings: list[DoctorFinding]

    @property
    def checks(self) -> int:
        return len(self.findings)

    @property
    def ok_count(self) -> int:
        return sum(1 for finding in self.findings if finding.level == "ok")

    @property
    def warning_count(self) -> int:
        return sum(
            1
            for finding in self.findings
            if finding.level == "warning" and finding.unresolved
        )

    @property
    def error_count(self) -> int:
        return sum(
            1
            for finding in self.findings
            if finding.level == "error" and finding.unresolved
        )

    @property
    def fixed_count(self) -> int:
        return sum(1 for finding in self.findings if finding.fixed)

    @property
    def fixable_count(self) -> int:
        return sum(
            1
            for finding in self.findings
            if finding.fix_action is not None and not finding.fixed
        )

    @property
    def has_errors(self) -> bool:
        return self.error_count > 0

    def summary_text(self) -> str:
        return (
            f"checks={self.checks} ok={self.ok_count} "
            f"warnings={self.warning_count} errors={self.error_count} "
            f"fixed={self.fixed_count}"
        )
