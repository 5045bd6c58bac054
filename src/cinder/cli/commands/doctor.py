"""Health checks for the Cinder home directory, config and sessions."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.markup import escape

from cinder.cli.console import console, create_table, dim, error, success, warning
from cinder.cli.doctor_utils import DoctorFinding, DoctorResult
from cinder.config import (
    CinderConfig,
    ConfigError,
    get_cinder_home,
    get_default_config,
    load_config,
)
from cinder.sessions import SessionStore, scan_sessions

logger = logging.getLogger(__name__)


def register(app: typer.Typer) -> None:
    """Register the top-level doctor command."""

    @app.command()
    def doctor(
        fix: Annotated[
            bool,
            typer.Option(
                "--fix",
                help="Apply available fixes (deletes corrupt files, repairs pairing)",
            ),
        ] = False,
        config_path: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
    ) -> None:
        """Check session files for corruption and optionally fix them."""
        result = asyncio.run(run_doctor_checks(config_path))
        if fix:
            asyncio.run(apply_fixes(result))
        _render_doctor_report(result, fix=fix)
        if result.has_errors:
            raise typer.Exit(1)


async def run_doctor_checks(config_path: Path | None = None) -> DoctorResult:
    """Run all doctor checks without changing anything."""
    findings: list[DoctorFinding] = []

    findings.extend(_check_home())
    config, config_findings = _check_config(config_path)
    findings.extend(config_findings)
    findings.extend(await _check_sessions(config))

    return DoctorResult(findings=findings)


async def apply_fixes(result: DoctorResult) -> None:
    """Run every available fix action, recording which ones succeeded."""
    for finding in result.findings:
        if finding.fix_action is None or finding.fixed:
            continue
        try:
            await finding.fix_action()
        except Exception as e:
            logger.warning(
                "doctor_fix_failed",
                extra={"check": finding.check, "error.message": str(e)},
            )
            finding.detail = f"{finding.detail} (fix failed: {e})"
            continue
        finding.fixed = True


def _render_doctor_report(result: DoctorResult, *, fix: bool) -> None:
    home = get_cinder_home()

    console.print(f"[bold]Cinder Doctor[/bold] [cyan]{home}[/cyan]")
    table = create_table(
        "Doctor Findings",
        [
            ("Level", "white"),
            ("Check", "cyan"),
            ("Detail", "white"),
            ("Repair", "green"),
        ],
    )

    level_label = {
        "ok": "[green]OK[/green]",
        "warning": "[yellow]WARN[/yellow]",
        "error": "[red]ERROR[/red]",
    }
    for finding in result.findings:
        label = "[green]FIXED[/green]" if finding.fixed else level_label[finding.level]
        table.add_row(
            label,
            finding.check,
            escape(finding.detail),
            finding.repair or "-",
        )
    console.print(table)

    console.print(f"[bold]Summary:[/bold] {result.summary_text()}")
    if result.has_errors:
        error("Doctor found blocking issues")
    elif result.warning_count:
        warning("Doctor found non-blocking issues")
    else:
        success("Doctor checks passed")

    if not fix and result.fixable_count:
        dim("Run 'cinder doctor --fix' to attempt automatic fixes")
    elif not fix:
        dim("Read-only checks. No changes were made.")


def _check_home() -> list[DoctorFinding]:
    home = get_cinder_home()
    if not home.exists():
        return [
            DoctorFinding(
                level="warning",
                check="home.exists",
                detail=f"CINDER_HOME does not exist: {home}",
                repair="Created on first session save",
            )
        ]
    return [
        DoctorFinding(
            level="ok", check="home.exists", detail=f"home directory exists: {home}"
        )
    ]


def _check_config(
    config_path: Path | None,
) -> tuple[CinderConfig, list[DoctorFinding]]:
    try:
        config = load_config(config_path)
    except FileNotFoundError as e:
        if config_path is not None:
            return get_default_config(), [
                DoctorFinding(level="error", check="config.load", detail=str(e))
            ]
        return get_default_config(), [
            DoctorFinding(
                level="ok",
                check="config.load",
                detail="no config file found, using defaults",
            )
        ]
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        return get_default_config(), [
            DoctorFinding(
                level="error",
                check="config.load",
                detail=f"config validation failed: {details}",
                repair="Fix the config file",
            )
        ]
    except ConfigError as e:
        return get_default_config(), [
            DoctorFinding(
                level="error",
                check="config.load",
                detail=str(e),
                repair="Fix the config file",
            )
        ]

    return config, [
        DoctorFinding(level="ok", check="config.load", detail="config is valid")
    ]


async def _check_sessions(config: CinderConfig) -> list[DoctorFinding]:
    sessions_dir = config.sessions_path
    if not sessions_dir.exists():
        return [
            DoctorFinding(
                level="ok",
                check="sessions.dir",
                detail="no sessions directory, nothing to check",
            )
        ]

    store = SessionStore(sessions_dir)
    entries = await store.list_sessions()
    findings = await scan_sessions(store)
    if not findings:
        return [
            DoctorFinding(
                level="ok",
                check="sessions.integrity",
                detail=f"{len(entries)} session file(s), no problems",
            )
        ]

    return [
        DoctorFinding(
            level="error",
            check="sessions.integrity",
            detail=finding.description,
            repair=finding.fix,
            fix_action=finding.fix_action if finding.fixable else None,
        )
        for finding in findings
    ]
