"""Push-event release run.

    commit tags -> classify -> version | None -> fan_out over the matrix
                -> await every accepted build job -> RunReport

Classification failure ends the run before anything is spawned. After that,
each matrix entry succeeds or fails on its own; the report lists one entry
per matrix row in matrix order.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from tagbuild.core.config import Config
from tagbuild.core.errors import ErrorCode
from tagbuild.core.result import Err, Ok, Result
from tagbuild.output.console import ConsoleProtocol, PrefixedConsole, Style
from tagbuild.release.build_task import BuildTaskContext, execute
from tagbuild.release.errors import AmbiguousVersionError, BuildTaskError, EntryError, error_code
from tagbuild.release.matrix import BUILD_JOB_REF, DispatchedEntry, build_alias, fan_out
from tagbuild.release.model import BuildOutcome, BuildRequest, CommitContext, PlatformSpec
from tagbuild.release.semver import classify
from tagbuild.services.protocols import ArtifactPublisher, BuildExecutor, JobSpawner
from tagbuild.services.spawner import JobFn, LocalJobSpawner


@dataclass(frozen=True, slots=True)
class RunContext:
    config: Config
    executor: BuildExecutor
    publisher: ArtifactPublisher
    console: ConsoleProtocol
    output_dir: Path

    def task_context(self, commit: CommitContext, console: ConsoleProtocol) -> BuildTaskContext:
        return BuildTaskContext(
            config=self.config,
            executor=self.executor,
            publisher=self.publisher,
            organization=commit.organization,
            repository=commit.repository,
            console=console,
            output_dir=self.output_dir,
        )


@dataclass(frozen=True, slots=True)
class EntryReport:
    request: BuildRequest
    alias: str
    result: Result[BuildOutcome, EntryError]

    @property
    def platform(self) -> PlatformSpec:
        return self.request.platform

    @property
    def ok(self) -> bool:
        return isinstance(self.result, Ok)


@dataclass(frozen=True, slots=True)
class RunReport:
    version: str | None
    entries: tuple[EntryReport, ...]

    @property
    def ok(self) -> bool:
        return all(e.ok for e in self.entries)

    @property
    def failures(self) -> tuple[EntryReport, ...]:
        return tuple(e for e in self.entries if not e.ok)

    @property
    def published(self) -> tuple[BuildOutcome, ...]:
        return tuple(
            e.result.value for e in self.entries if isinstance(e.result, Ok) and e.result.value.published
        )

    @property
    def exit_code(self) -> ErrorCode:
        """Code of the first failed entry in matrix order."""
        for entry in self.entries:
            if isinstance(entry.result, Err):
                return error_code(entry.result.error)
        return ErrorCode.OK


def build_job(ctx: RunContext, commit: CommitContext) -> JobFn:
    """Job function running ``execute`` with the alias-prefixed console."""

    async def job(alias: str, args: Mapping[str, str | None]) -> Result[BuildOutcome, BuildTaskError]:
        request = BuildRequest(os=args.get("os"), arch=args.get("arch"), version=args.get("version"))
        return await execute(request, ctx.task_context(commit, PrefixedConsole(ctx.console, alias)))

    return job


def _as_build_result(obj: object) -> Result[BuildOutcome, BuildTaskError]:
    if isinstance(obj, (Ok, Err)):
        return obj
    raise TypeError(f"build job returned {type(obj).__name__}, expected a Result")


async def collect(entries: list[DispatchedEntry]) -> tuple[EntryReport, ...]:
    """Await every accepted job concurrently.

    No job is cancelled because a sibling failed. An unexpected exception in
    a job is re-raised once all siblings have finished.
    """
    accepted = [e.job.value for e in entries if isinstance(e.job, Ok)]
    outcomes = await asyncio.gather(*(job.wait() for job in accepted), return_exceptions=True)

    crashed = next((o for o in outcomes if isinstance(o, BaseException)), None)
    if crashed is not None:
        raise crashed

    results = iter(outcomes)
    reports: list[EntryReport] = []
    for entry in entries:
        if isinstance(entry.job, Err):
            reports.append(EntryReport(request=entry.request, alias=entry.alias, result=entry.job))
            continue
        reports.append(
            EntryReport(request=entry.request, alias=entry.alias, result=_as_build_result(next(results)))
        )
    return tuple(reports)


async def on_push(
    commit: CommitContext,
    ctx: RunContext,
    *,
    spawner: JobSpawner | None = None,
) -> Result[RunReport, AmbiguousVersionError]:
    ctx.console.header(f"{commit.slug}: {len(commit.tags)} tag(s) on commit")

    classified = classify(commit.tags)
    if isinstance(classified, Err):
        ctx.console.error(classified.error.message)
        return classified

    version = classified.value
    if version is not None:
        ctx.console.print(f"Found version tag {version}, will build release artifacts.")
    else:
        ctx.console.print("No version tag found, building without publishing.", Style.DIM)

    if spawner is None:
        spawner = LocalJobSpawner({BUILD_JOB_REF: build_job(ctx, commit)})

    entries = fan_out(version, ctx.config.matrix, spawner, ctx.console)
    reports = await collect(entries)
    return Ok(RunReport(version=version, entries=reports))


async def run_build(request: BuildRequest, commit: CommitContext, ctx: RunContext) -> EntryReport:
    """Run a single build task outside of a matrix fan-out."""
    alias = build_alias(request)
    result = await execute(request, ctx.task_context(commit, PrefixedConsole(ctx.console, alias)))
    return EntryReport(request=request, alias=alias, result=result)
