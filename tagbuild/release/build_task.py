"""One matrix entry: compile, then publish if the run is versioned.

    PENDING -> COMPILING -> COMPILE_FAILED
                         -> COMPILED -> DONE                 (no version)
                                     -> PUBLISHING -> PUBLISHED
                                                   -> PUBLISH_FAILED

A task owns its request, build environment and artifact exclusively; it never
retries and never touches sibling tasks.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from tagbuild.core.config import Config
from tagbuild.core.result import Err, Ok, Result
from tagbuild.output.console import ConsoleProtocol, Style
from tagbuild.release.errors import BuildTaskError, CompileError, CompileReason, PublishError, PublishPhase
from tagbuild.release.model import BuildOutcome, BuildRequest, PublishedArtifact, TaskState
from tagbuild.services.protocols import (
    ArtifactPublisher,
    BuildExecutor,
    BuildHandle,
    BuildOptions,
    ExecutorError,
    ExecutorErrorKind,
    PublishOptions,
)

_COMPILE_REASONS: dict[ExecutorErrorKind, CompileReason] = {
    "unavailable": "executor_unavailable",
    "copy_set_miss": "copy_set_miss",
    "provision_failed": "provision_failed",
    "command_failed": "compile_failed",
    "extract_failed": "compile_failed",
}


@dataclass(frozen=True, slots=True)
class BuildTaskContext:
    config: Config
    executor: BuildExecutor
    publisher: ArtifactPublisher
    organization: str
    repository: str
    console: ConsoleProtocol
    # Extracted binaries land in <output_dir>/<os>-<arch>/.
    output_dir: Path


def artifact_name(product: str, os: str, arch: str, version: str) -> str:
    return f"{product}-{os}-{arch}-{version}"


def artifact_labels(product: str, os: str, arch: str, version: str) -> tuple[str, ...]:
    return (product, f"arch:{arch}", f"os:{os}", f"version:{version}")


async def execute(request: BuildRequest, ctx: BuildTaskContext) -> Result[BuildOutcome, BuildTaskError]:
    history: list[TaskState] = [TaskState.PENDING]
    product = ctx.config.product
    build = ctx.config.build

    ctx.console.step(f"Build {product} binary")
    history.append(TaskState.COMPILING)
    options = BuildOptions(
        image=build.image,
        copy_paths=build.copy,
        env=build.platform_env(request.target_os, request.target_arch),
        workdir=build.workdir,
        timeout_seconds=build.timeout_seconds,
    )
    try:
        built = await ctx.executor.run(build.command, options)
    except OSError as e:
        built = Err(ExecutorError(kind="provision_failed", message="build environment failed", detail=str(e)))
    if isinstance(built, Err):
        history.append(TaskState.COMPILE_FAILED)
        e = built.error
        return Err(
            CompileError(
                platform=request.platform,
                reason=_COMPILE_REASONS[e.kind],
                message=e.message,
                detail=e.detail,
                history=tuple(history),
            )
        )

    handle = built.value
    try:
        history.append(TaskState.COMPILED)
        if handle.output.strip():
            ctx.console.print(handle.output.rstrip(), Style.DIM)

        match request.version:
            case None:
                history.append(TaskState.DONE)
                ctx.console.success(f"{request.platform} compiled; no version tag, nothing published")
                return Ok(BuildOutcome(request=request, history=tuple(history)))
            case version:
                return await _publish(request, version, handle, ctx, history)
    finally:
        await handle.close()


async def _publish(
    request: BuildRequest,
    version: str,
    handle: BuildHandle,
    ctx: BuildTaskContext,
    history: list[TaskState],
) -> Result[BuildOutcome, BuildTaskError]:
    product = ctx.config.product
    os, arch = request.target_os, request.target_arch
    history.append(TaskState.PUBLISHING)

    def failed(phase: PublishPhase, message: str, detail: str | None) -> Err[PublishError]:
        history.append(TaskState.PUBLISH_FAILED)
        return Err(
            PublishError(
                platform=request.platform,
                phase=phase,
                message=message,
                detail=detail,
                history=tuple(history),
            )
        )

    try:
        extracted = await handle.extract_file(ctx.config.build.artifact, ctx.output_dir / f"{os}-{arch}")
    except OSError as e:
        return failed("extract", f"cannot extract {ctx.config.build.artifact}", str(e))
    if isinstance(extracted, Err):
        return failed("extract", extracted.error.message, extracted.error.detail)

    ctx.console.step(f"Upload {product} binary")
    name = artifact_name(product, os, arch, version)
    labels = artifact_labels(product, os, arch, version)
    try:
        uploaded = await ctx.publisher.upload(
            extracted.value,
            PublishOptions(name=name, published=True, labels=labels, version=version),
        )
    except OSError as e:
        return failed("upload", f"cannot upload {name}", str(e))
    if isinstance(uploaded, Err):
        return failed("upload", uploaded.error.message, uploaded.error.detail)

    url = uploaded.value.generate_public_url(ctx.organization, ctx.repository)
    ctx.console.print(f"Uploaded binary to {url}")
    history.append(TaskState.PUBLISHED)

    artifact = PublishedArtifact(
        binary_name=extracted.value.name,
        artifact_label=name,
        is_published=True,
        labels=labels,
        url=url,
    )
    return Ok(BuildOutcome(request=request, history=tuple(history), artifact=artifact))
