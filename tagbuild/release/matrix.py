from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from tagbuild.core.result import Err, Ok, Result
from tagbuild.output.console import ConsoleProtocol, Style
from tagbuild.release.errors import DispatchAcceptanceError
from tagbuild.release.model import BuildRequest, PlatformSpec
from tagbuild.services.protocols import JobHandle, JobSpawner


BUILD_JOB_REF = "tagbuild.release.build_task:execute"


@dataclass(frozen=True, slots=True)
class DispatchedEntry:
    request: BuildRequest
    alias: str
    job: Result[JobHandle, DispatchAcceptanceError]


def dispatch(version: str | None, matrix: Sequence[PlatformSpec]) -> tuple[BuildRequest, ...]:
    """One request per matrix entry, in matrix order, all sharing ``version``."""
    return tuple(BuildRequest(os=p.os, arch=p.arch, version=version) for p in matrix)


def build_alias(request: BuildRequest) -> str:
    return f"Build {request.target_os.capitalize()} {request.target_arch}"


def fan_out(
    version: str | None,
    matrix: Sequence[PlatformSpec],
    spawner: JobSpawner,
    console: ConsoleProtocol,
    *,
    job_ref: str = BUILD_JOB_REF,
) -> list[DispatchedEntry]:
    """Spawn one build job per matrix entry.

    Returns once every spawn call has returned. A rejected entry is recorded
    as an Err and the remaining entries are still spawned.
    """
    entries: list[DispatchedEntry] = []
    for request in dispatch(version, matrix):
        alias = build_alias(request)
        spawned = spawner.spawn(job_ref, alias=alias, args=request.as_args())
        if isinstance(spawned, Err):
            error = DispatchAcceptanceError(platform=request.platform, alias=alias, message=spawned.error)
            entries.append(DispatchedEntry(request=request, alias=alias, job=Err(error)))
            continue

        console.print(f"spawned {alias}", Style.DIM)
        entries.append(DispatchedEntry(request=request, alias=alias, job=Ok(spawned.value)))
    return entries
