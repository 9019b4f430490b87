"""Contracts of the external collaborators a release run calls.

The orchestration logic only talks to these protocols; concrete
implementations live next to this module (git, docker, publish, spawner)
and tests substitute fakes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Protocol

from tagbuild.core.result import Result
from tagbuild.release.model import CommitContext


ExecutorErrorKind = Literal["unavailable", "copy_set_miss", "provision_failed", "command_failed", "extract_failed"]


@dataclass(frozen=True, slots=True)
class ExecutorError:
    kind: ExecutorErrorKind
    message: str
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class PublisherError:
    message: str
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class ContextError:
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class BuildOptions:
    image: str
    copy_paths: tuple[str, ...]
    env: tuple[str, ...]
    workdir: str = "/src"
    timeout_seconds: float | None = None


@dataclass(frozen=True, slots=True)
class PublishOptions:
    name: str
    published: bool
    labels: tuple[str, ...]
    version: str


class CommitContextProvider(Protocol):
    def fetch(self) -> Result[CommitContext, ContextError]: ...


class BuildHandle(Protocol):
    """A finished build environment that still holds its outputs."""

    output: str

    async def extract_file(self, container_path: str, dest_dir: Path) -> Result[Path, ExecutorError]: ...

    async def close(self) -> None: ...


class BuildExecutor(Protocol):
    async def run(self, command: str, options: BuildOptions) -> Result[BuildHandle, ExecutorError]: ...


class PublishHandle(Protocol):
    def generate_public_url(self, organization: str, repository: str) -> str: ...


class ArtifactPublisher(Protocol):
    async def upload(self, local_path: Path, options: PublishOptions) -> Result[PublishHandle, PublisherError]: ...


class JobHandle(Protocol):
    alias: str

    async def wait(self) -> object: ...


class JobSpawner(Protocol):
    def spawn(self, job_ref: str, *, alias: str, args: Mapping[str, str | None]) -> Result[JobHandle, str]: ...
