"""Run report presentation and exit code mapping."""

from __future__ import annotations

from typing import TYPE_CHECKING

from tagbuild.core.result import Err, Ok
from tagbuild.output.console import Style
from tagbuild.release.errors import (
    AmbiguousVersionError,
    CompileError,
    DispatchAcceptanceError,
    EntryError,
    PublishError,
    error_code,
)

if TYPE_CHECKING:
    from tagbuild.output.console import ConsoleProtocol
    from tagbuild.release.orchestrator import EntryReport, RunReport

__all__ = [
    "entry_error_exit_code",
    "print_ambiguous_version",
    "print_entry_error",
    "print_run_report",
    "run_exit_code",
]


def print_ambiguous_version(error: AmbiguousVersionError, console: ConsoleProtocol) -> None:
    console.error(error.message)
    console.print(f"hint: {error.hint}", Style.DIM)


def print_entry_error(error: EntryError, console: ConsoleProtocol) -> None:
    match error:
        case CompileError(platform=platform, reason=reason, message=message, detail=detail):
            console.error(f"{platform}: compile failed ({reason}): {message}")
            if detail:
                console.print(detail, Style.DIM)
        case PublishError(platform=platform, phase=phase, message=message, detail=detail):
            console.error(f"{platform}: publish failed during {phase}: {message}")
            if detail:
                console.print(detail, Style.DIM)
        case DispatchAcceptanceError(platform=platform, alias=alias, message=message):
            console.error(f"{platform}: '{alias}' was not accepted: {message}")


def entry_error_exit_code(error: EntryError) -> int:
    return int(error_code(error))


def _print_entry(entry: EntryReport, console: ConsoleProtocol) -> None:
    match entry.result:
        case Ok(outcome):
            if outcome.artifact is not None:
                console.success(f"{entry.platform}: published {outcome.artifact.artifact_label}")
                console.print(f"  {outcome.artifact.url}", Style.DIM)
            else:
                console.success(f"{entry.platform}: {outcome.state}")
        case Err(error):
            print_entry_error(error, console)


def print_run_report(report: RunReport, console: ConsoleProtocol) -> None:
    label = report.version or "dev build"
    console.header(f"Release summary ({label})")
    for entry in report.entries:
        _print_entry(entry, console)


def run_exit_code(report: RunReport) -> int:
    return int(report.exit_code)
