from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


DEFAULT_OS = "linux"
DEFAULT_ARCH = "amd64"


@dataclass(frozen=True, slots=True)
class PlatformSpec:
    """One entry of the build matrix."""

    os: str
    arch: str

    def __str__(self) -> str:
        return f"{self.os}/{self.arch}"


@dataclass(frozen=True, slots=True)
class CommitContext:
    """The triggering commit as seen by a release run."""

    tags: tuple[str, ...]
    organization: str
    repository: str

    @property
    def slug(self) -> str:
        return f"{self.organization}/{self.repository}"


@dataclass(frozen=True, slots=True)
class BuildRequest:
    """Parameters of one build job.

    ``os``/``arch`` fall back to linux/amd64 when absent. ``version`` is None
    for dev builds; only versioned requests publish.
    """

    os: str | None = None
    arch: str | None = None
    version: str | None = None

    @property
    def target_os(self) -> str:
        return self.os or DEFAULT_OS

    @property
    def target_arch(self) -> str:
        return self.arch or DEFAULT_ARCH

    @property
    def platform(self) -> PlatformSpec:
        return PlatformSpec(os=self.target_os, arch=self.target_arch)

    def as_args(self) -> dict[str, str | None]:
        return {"os": self.os, "arch": self.arch, "version": self.version}


class TaskState(Enum):
    PENDING = auto()
    COMPILING = auto()
    COMPILE_FAILED = auto()
    COMPILED = auto()
    PUBLISHING = auto()
    PUBLISH_FAILED = auto()
    PUBLISHED = auto()
    DONE = auto()

    def __str__(self) -> str:
        return self.name.lower().replace("_", "-")


@dataclass(frozen=True, slots=True)
class PublishedArtifact:
    binary_name: str
    artifact_label: str
    is_published: bool
    labels: tuple[str, ...]
    url: str


@dataclass(frozen=True, slots=True)
class BuildOutcome:
    request: BuildRequest
    history: tuple[TaskState, ...]
    artifact: PublishedArtifact | None = None

    @property
    def state(self) -> TaskState:
        return self.history[-1]

    @property
    def published(self) -> bool:
        return self.artifact is not None
