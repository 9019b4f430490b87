from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

import pytest

from tagbuild.core.config import BuildConfig, Config
from tagbuild.core.result import Err, Ok, Result
from tagbuild.output.console import MockConsole
from tagbuild.release.model import CommitContext
from tagbuild.release.orchestrator import RunContext
from tagbuild.services.protocols import BuildOptions, ExecutorError, PublisherError, PublishOptions


@dataclass
class FakeHandle:
    output: str = "built"
    extract_error: ExecutorError | None = None
    extracted: list[str] = field(default_factory=lambda: [])
    closed: bool = False

    async def extract_file(self, container_path: str, dest_dir: Path) -> Result[Path, ExecutorError]:
        self.extracted.append(container_path)
        if self.extract_error is not None:
            return Err(self.extract_error)
        dest_dir.mkdir(parents=True, exist_ok=True)
        path = dest_dir / PurePosixPath(container_path).name
        path.write_bytes(b"\x7fELF")
        return Ok(path)

    async def close(self) -> None:
        self.closed = True


@dataclass
class FakeExecutor:
    """Fails the builds whose GOOS is a key of ``fail``."""

    fail: dict[str, ExecutorError] = field(default_factory=lambda: {})
    extract_error: ExecutorError | None = None
    calls: list[tuple[str, BuildOptions]] = field(default_factory=lambda: [])
    handles: list[FakeHandle] = field(default_factory=lambda: [])

    async def run(self, command: str, options: BuildOptions) -> Result[FakeHandle, ExecutorError]:
        self.calls.append((command, options))
        await asyncio.sleep(0)
        env = dict(item.split("=", 1) for item in options.env)
        error = self.fail.get(env.get("GOOS", ""))
        if error is not None:
            return Err(error)
        handle = FakeHandle(extract_error=self.extract_error)
        self.handles.append(handle)
        return Ok(handle)


@dataclass(frozen=True)
class FakeUpload:
    name: str

    def generate_public_url(self, organization: str, repository: str) -> str:
        return f"https://artifacts.example/{organization}/{repository}/{self.name}"


@dataclass
class FakePublisher:
    """Rejects uploads whose name contains one of ``reject``."""

    reject: set[str] = field(default_factory=lambda: set())
    uploads: list[tuple[Path, PublishOptions]] = field(default_factory=lambda: [])

    async def upload(self, local_path: Path, options: PublishOptions) -> Result[FakeUpload, PublisherError]:
        self.uploads.append((local_path, options))
        await asyncio.sleep(0)
        if any(marker in options.name for marker in self.reject):
            return Err(PublisherError(message="upload rejected", detail="HTTP 422"))
        return Ok(FakeUpload(name=options.name))


@pytest.fixture
def config() -> Config:
    return Config(
        product="jambon",
        build=BuildConfig(
            command="go build -o jambon cmd/jambon/main.go && ls -lah",
            artifact="jambon",
            copy=("cmd/**", "tacview/**", "go.sum", "go.mod", "*.go"),
        ),
    )


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def console() -> MockConsole:
    return MockConsole()


@pytest.fixture
def commit() -> CommitContext:
    return CommitContext(tags=(), organization="acme", repository="jambon")


@pytest.fixture
def run_ctx(
    tmp_path: Path,
    config: Config,
    executor: FakeExecutor,
    publisher: FakePublisher,
    console: MockConsole,
) -> RunContext:
    return RunContext(
        config=config,
        executor=executor,
        publisher=publisher,
        console=console,
        output_dir=tmp_path / "out",
    )
