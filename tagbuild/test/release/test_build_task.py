from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from tagbuild.core.config import Config
from tagbuild.core.result import Err, Ok
from tagbuild.output.console import MockConsole
from tagbuild.release.build_task import BuildTaskContext, artifact_labels, artifact_name, execute
from tagbuild.release.errors import CompileError, PublishError
from tagbuild.release.model import BuildRequest, TaskState
from tagbuild.services.protocols import ExecutorError

if TYPE_CHECKING:
    from conftest import FakeExecutor, FakePublisher


def _ctx(
    tmp_path: Path,
    config: Config,
    executor: FakeExecutor,
    publisher: FakePublisher,
    console: MockConsole,
) -> BuildTaskContext:
    return BuildTaskContext(
        config=config,
        executor=executor,
        publisher=publisher,
        organization="acme",
        repository="jambon",
        console=console,
        output_dir=tmp_path / "out",
    )


def test_artifact_name_is_deterministic() -> None:
    assert artifact_name("jambon", "linux", "amd64", "v1.0.0") == "jambon-linux-amd64-v1.0.0"
    assert artifact_name("jambon", "linux", "amd64", "v1.0.0") == artifact_name("jambon", "linux", "amd64", "v1.0.0")


def test_artifact_labels() -> None:
    assert artifact_labels("jambon", "windows", "amd64", "v1.0.0") == (
        "jambon",
        "arch:amd64",
        "os:windows",
        "version:v1.0.0",
    )


@pytest.mark.asyncio
async def test_compile_options_come_from_config(
    tmp_path: Path, config: Config, executor: FakeExecutor, publisher: FakePublisher, console: MockConsole
) -> None:
    await execute(BuildRequest(os="windows", arch="amd64"), _ctx(tmp_path, config, executor, publisher, console))

    command, options = executor.calls[0]
    assert command == config.build.command
    assert options.image == "golang:1.16"
    assert options.copy_paths == ("cmd/**", "tacview/**", "go.sum", "go.mod", "*.go")
    assert options.env == ("GOOS=windows", "GOARCH=amd64")


@pytest.mark.asyncio
async def test_missing_os_and_arch_default_to_linux_amd64(
    tmp_path: Path, config: Config, executor: FakeExecutor, publisher: FakePublisher, console: MockConsole
) -> None:
    await execute(BuildRequest(), _ctx(tmp_path, config, executor, publisher, console))
    assert executor.calls[0][1].env == ("GOOS=linux", "GOARCH=amd64")


@pytest.mark.asyncio
async def test_without_version_never_extracts_or_publishes(
    tmp_path: Path, config: Config, executor: FakeExecutor, publisher: FakePublisher, console: MockConsole
) -> None:
    result = await execute(BuildRequest(os="linux", arch="amd64"), _ctx(tmp_path, config, executor, publisher, console))

    assert isinstance(result, Ok)
    assert result.value.state == TaskState.DONE
    assert result.value.artifact is None
    assert result.value.history == (
        TaskState.PENDING,
        TaskState.COMPILING,
        TaskState.COMPILED,
        TaskState.DONE,
    )
    assert executor.handles[0].extracted == []
    assert publisher.uploads == []
    assert console.steps == ["Build jambon binary"]
    assert executor.handles[0].closed


@pytest.mark.asyncio
async def test_with_version_extracts_and_publishes_once(
    tmp_path: Path, config: Config, executor: FakeExecutor, publisher: FakePublisher, console: MockConsole
) -> None:
    request = BuildRequest(os="linux", arch="amd64", version="v1.0.0")
    result = await execute(request, _ctx(tmp_path, config, executor, publisher, console))

    assert isinstance(result, Ok)
    outcome = result.value
    assert outcome.state == TaskState.PUBLISHED
    assert executor.handles[0].extracted == ["jambon"]
    assert len(publisher.uploads) == 1

    local_path, options = publisher.uploads[0]
    assert local_path == tmp_path / "out" / "linux-amd64" / "jambon"
    assert options.name == "jambon-linux-amd64-v1.0.0"
    assert options.published is True
    assert options.labels == ("jambon", "arch:amd64", "os:linux", "version:v1.0.0")

    assert outcome.artifact is not None
    assert outcome.artifact.url == "https://artifacts.example/acme/jambon/jambon-linux-amd64-v1.0.0"
    assert outcome.artifact.binary_name == "jambon"
    assert outcome.artifact.is_published
    assert console.steps == ["Build jambon binary", "Upload jambon binary"]
    assert console.find("Uploaded binary to https://artifacts.example/acme/jambon/")


@pytest.mark.asyncio
async def test_compile_failure_is_reported_with_platform(
    tmp_path: Path, config: Config, executor: FakeExecutor, publisher: FakePublisher, console: MockConsole
) -> None:
    executor.fail["windows"] = ExecutorError(kind="command_failed", message="build command exited with 2", detail="undefined: foo")
    request = BuildRequest(os="windows", arch="amd64", version="v1.0.0")

    result = await execute(request, _ctx(tmp_path, config, executor, publisher, console))

    assert isinstance(result, Err)
    error = result.error
    assert isinstance(error, CompileError)
    assert error.reason == "compile_failed"
    assert error.history[-1] == TaskState.COMPILE_FAILED
    assert "windows/amd64" in error.pretty()
    assert "undefined: foo" in error.pretty()
    assert publisher.uploads == []


@pytest.mark.asyncio
async def test_copy_set_miss_is_a_compile_failure(
    tmp_path: Path, config: Config, executor: FakeExecutor, publisher: FakePublisher, console: MockConsole
) -> None:
    executor.fail["linux"] = ExecutorError(kind="copy_set_miss", message="copy pattern matched no files: tacview/**")
    result = await execute(BuildRequest(version="v1.0.0"), _ctx(tmp_path, config, executor, publisher, console))

    assert isinstance(result, Err)
    assert isinstance(result.error, CompileError)
    assert result.error.reason == "copy_set_miss"


@pytest.mark.asyncio
async def test_extraction_failure_is_a_publish_failure(
    tmp_path: Path, config: Config, executor: FakeExecutor, publisher: FakePublisher, console: MockConsole
) -> None:
    executor.extract_error = ExecutorError(kind="extract_failed", message="cannot extract /src/jambon")
    result = await execute(BuildRequest(version="v1.0.0"), _ctx(tmp_path, config, executor, publisher, console))

    assert isinstance(result, Err)
    error = result.error
    assert isinstance(error, PublishError)
    assert error.phase == "extract"
    assert error.history[-2:] == (TaskState.PUBLISHING, TaskState.PUBLISH_FAILED)
    assert publisher.uploads == []
    assert executor.handles[0].closed


@pytest.mark.asyncio
async def test_upload_failure_is_a_publish_failure(
    tmp_path: Path, config: Config, executor: FakeExecutor, publisher: FakePublisher, console: MockConsole
) -> None:
    publisher.reject.add("linux")
    result = await execute(BuildRequest(version="v1.0.0"), _ctx(tmp_path, config, executor, publisher, console))

    assert isinstance(result, Err)
    assert isinstance(result.error, PublishError)
    assert result.error.phase == "upload"
    assert "publish (upload)" in result.error.pretty()
    assert "HTTP 422" in result.error.pretty()


@pytest.mark.asyncio
async def test_upload_os_error_is_a_publish_failure(
    tmp_path: Path, config: Config, executor: FakeExecutor, publisher: FakePublisher, console: MockConsole
) -> None:
    async def broken_upload(local_path: Path, options: object) -> object:
        raise PermissionError(13, "Permission denied", str(local_path))

    publisher.upload = broken_upload  # type: ignore[method-assign]

    result = await execute(BuildRequest(version="v1.0.0"), _ctx(tmp_path, config, executor, publisher, console))

    assert isinstance(result, Err)
    assert isinstance(result.error, PublishError)
    assert result.error.phase == "upload"
    assert result.error.message == "cannot upload jambon-linux-amd64-v1.0.0"
    assert executor.handles[0].closed
