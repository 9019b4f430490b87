"""Isolated builds in throwaway Docker containers.

A build copies only the configured source subset into a fresh container of
the pinned toolchain image, runs the build command there, and keeps the
container around until the caller has extracted what it needs:

    docker create --workdir /src -e GOOS=linux ... golang:1.16 sh -c <command>
    docker cp <staged>/. <id>:/src
    docker start -a <id>
    docker cp <id>:/src/<artifact> <local dir>    (extract_file)
    docker rm -f <id>                              (close)
"""

from __future__ import annotations

import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from tagbuild.core.result import Err, Ok, Result
from tagbuild.platform.files import expand_copy_set, stage_files
from tagbuild.platform.process import ProcessError, run_async
from tagbuild.services.protocols import BuildOptions, ExecutorError

__all__ = ["DockerBuild", "DockerExecutor"]

_DOCKER_TIMEOUT_SECONDS = 60.0
# Image pulls happen during create.
_DOCKER_CREATE_TIMEOUT_SECONDS = 15 * 60.0
_OUTPUT_TAIL_LINES = 40


def _tail(error: ProcessError) -> str | None:
    text = "\n".join(s for s in (error.stdout.strip(), error.stderr.strip()) if s)
    if not text:
        return None
    lines = text.splitlines()
    return "\n".join(lines[-_OUTPUT_TAIL_LINES:])


@dataclass(frozen=True, slots=True)
class DockerBuild:
    """A stopped container holding the build outputs."""

    container_id: str
    workdir: str
    root: Path
    output: str
    docker: str = "docker"

    def _container_path(self, path: str) -> str:
        p = PurePosixPath(path)
        if p.is_absolute():
            return str(p)
        return str(PurePosixPath(self.workdir) / p)

    async def extract_file(self, container_path: str, dest_dir: Path) -> Result[Path, ExecutorError]:
        src = self._container_path(container_path)
        dest = dest_dir / PurePosixPath(src).name
        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Err(ExecutorError(kind="extract_failed", message=f"cannot create {dest_dir}", detail=str(e)))

        result = await run_async(
            [self.docker, "cp", f"{self.container_id}:{src}", str(dest)],
            cwd=self.root,
            timeout=_DOCKER_TIMEOUT_SECONDS,
        )
        if isinstance(result, Err):
            return Err(
                ExecutorError(
                    kind="extract_failed",
                    message=f"cannot extract {src} from the build container",
                    detail=_tail(result.error),
                )
            )
        if not dest.is_file():
            return Err(ExecutorError(kind="extract_failed", message=f"{src} is not a regular file"))
        return Ok(dest)

    async def close(self) -> None:
        await run_async(
            [self.docker, "rm", "-f", self.container_id],
            cwd=self.root,
            timeout=_DOCKER_TIMEOUT_SECONDS,
        )


class DockerExecutor:
    """Runs build commands in containers, sourcing files from ``root``."""

    def __init__(self, root: Path, *, docker: str = "docker") -> None:
        self._root = root
        self._docker = docker

    async def run(self, command: str, options: BuildOptions) -> Result[DockerBuild, ExecutorError]:
        if shutil.which(self._docker) is None:
            return Err(
                ExecutorError(
                    kind="unavailable",
                    message=f"{self._docker}: missing",
                    detail="Install Docker and make sure the daemon is running",
                )
            )

        files = expand_copy_set(self._root, options.copy_paths)
        if isinstance(files, Err):
            return Err(ExecutorError(kind="copy_set_miss", message=files.error))

        create_cmd = [self._docker, "create", "--workdir", options.workdir]
        for item in options.env:
            create_cmd.extend(["-e", item])
        create_cmd.extend([options.image, "sh", "-c", command])

        created = await run_async(create_cmd, cwd=self._root, timeout=_DOCKER_CREATE_TIMEOUT_SECONDS)
        if isinstance(created, Err):
            return Err(
                ExecutorError(
                    kind="provision_failed",
                    message=f"cannot create build container from {options.image}",
                    detail=_tail(created.error),
                )
            )

        build = DockerBuild(
            container_id=created.value.strip(),
            workdir=options.workdir,
            root=self._root,
            output="",
            docker=self._docker,
        )
        try:
            result = await self._copy_and_start(build, files.value, options)
        except BaseException:
            await build.close()
            raise
        if isinstance(result, Err):
            await build.close()
        return result

    async def _copy_and_start(
        self,
        build: DockerBuild,
        files: tuple[Path, ...],
        options: BuildOptions,
    ) -> Result[DockerBuild, ExecutorError]:
        try:
            with tempfile.TemporaryDirectory(prefix="tagbuild-src-") as tmp:
                staging = Path(tmp)
                stage_files(self._root, files, staging)
                copied = await run_async(
                    [self._docker, "cp", f"{staging}/.", f"{build.container_id}:{options.workdir}"],
                    cwd=self._root,
                    timeout=_DOCKER_TIMEOUT_SECONDS * 5,
                )
        except OSError as e:
            return Err(
                ExecutorError(
                    kind="provision_failed",
                    message="cannot stage sources for the build container",
                    detail=str(e),
                )
            )
        if isinstance(copied, Err):
            return Err(
                ExecutorError(
                    kind="provision_failed",
                    message="cannot copy sources into the build container",
                    detail=_tail(copied.error),
                )
            )

        started = await run_async(
            [self._docker, "start", "-a", build.container_id],
            cwd=self._root,
            timeout=options.timeout_seconds,
        )
        if isinstance(started, Err):
            return Err(
                ExecutorError(
                    kind="command_failed",
                    message=f"build command exited with {started.error.returncode}",
                    detail=_tail(started.error),
                )
            )

        return Ok(
            DockerBuild(
                container_id=build.container_id,
                workdir=build.workdir,
                root=build.root,
                output=started.value,
                docker=build.docker,
            )
        )
