"""Failure payloads of a release run.

Each error carries enough context to diagnose it from the run output alone:
the offending tags, the platform, and the phase that failed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from tagbuild.core.errors import ErrorCode
from tagbuild.release.model import PlatformSpec, TaskState

CompileReason = Literal["copy_set_miss", "executor_unavailable", "provision_failed", "compile_failed"]
PublishPhase = Literal["extract", "upload"]


@dataclass(frozen=True, slots=True)
class AmbiguousVersionError:
    """More than one semver tag on the triggering commit."""

    tags: tuple[str, ...]

    @property
    def message(self) -> str:
        return f"Found too many version tags: {', '.join(self.tags)}"

    @property
    def hint(self) -> str:
        return "keep exactly one v<major>.<minor>.<patch> tag on the commit"

    def pretty(self) -> str:
        return f"{self.message} (hint: {self.hint})"


@dataclass(frozen=True, slots=True)
class CompileError:
    platform: PlatformSpec
    reason: CompileReason
    message: str
    detail: str | None = None
    history: tuple[TaskState, ...] = ()

    def pretty(self) -> str:
        text = f"[{self.platform}] compile: {self.message}"
        if self.detail:
            text += f"\n{self.detail}"
        return text


@dataclass(frozen=True, slots=True)
class PublishError:
    platform: PlatformSpec
    phase: PublishPhase
    message: str
    detail: str | None = None
    history: tuple[TaskState, ...] = ()

    def pretty(self) -> str:
        text = f"[{self.platform}] publish ({self.phase}): {self.message}"
        if self.detail:
            text += f"\n{self.detail}"
        return text


@dataclass(frozen=True, slots=True)
class DispatchAcceptanceError:
    platform: PlatformSpec
    alias: str
    message: str

    def pretty(self) -> str:
        return f"[{self.platform}] dispatch of '{self.alias}' rejected: {self.message}"


BuildTaskError = CompileError | PublishError
EntryError = CompileError | PublishError | DispatchAcceptanceError


def error_code(error: EntryError) -> ErrorCode:
    match error:
        case CompileError():
            return ErrorCode.BUILD_ERROR
        case PublishError():
            return ErrorCode.PUBLISH_ERROR
        case DispatchAcceptanceError():
            return ErrorCode.DISPATCH_ERROR
