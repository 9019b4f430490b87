from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import typer

from tagbuild.core.config import CONFIG_FILENAME, Config, load_config
from tagbuild.core.errors import ErrorCode
from tagbuild.core.result import Err
from tagbuild.output.console import ConsoleProtocol, RichConsole, Style
from tagbuild.release.model import CommitContext
from tagbuild.release.orchestrator import RunContext
from tagbuild.services.docker import DockerExecutor
from tagbuild.services.git import GitCommitContextProvider, StaticCommitContextProvider
from tagbuild.services.protocols import CommitContextProvider
from tagbuild.services.publish import make_publisher


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: Config
    console: ConsoleProtocol

    @property
    def output_dir(self) -> Path:
        return self.root / ".tagbuild" / "out"

    def run_context(self, commit: CommitContext) -> RunContext:
        return RunContext(
            config=self.config,
            executor=DockerExecutor(self.root),
            publisher=make_publisher(self.config.publish, root=self.root, repo_slug=commit.slug),
            console=self.console,
            output_dir=self.output_dir,
        )


def find_config(start: Path) -> Path | None:
    for parent in (start, *start.parents):
        candidate = parent / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def build_context(config_path: Path | None = None) -> CLIContext:
    console = RichConsole()
    path = config_path or find_config(Path.cwd().resolve())
    if path is None:
        console.error(f"{CONFIG_FILENAME} not found in this directory or any parent")
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    loaded = load_config(path)
    if isinstance(loaded, Err):
        console.error(loaded.error.pretty())
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(root=path.resolve().parent, config=loaded.value, console=console)


def resolve_commit(
    ctx: CLIContext,
    *,
    tags: list[str] | None,
    org: str | None,
    repo: str | None,
    read_tags: bool = True,
) -> CommitContext:
    """Commit context from flags, falling back to git for anything not given.

    With ``read_tags=False`` the commit carries no tags (single builds get
    their version explicitly).
    """
    fetched = commit_provider(ctx.root, tags=tags, org=org, repo=repo, read_tags=read_tags).fetch()
    if isinstance(fetched, Err):
        _exit_context_error(ctx, fetched.error.message, fetched.error.hint)
    return fetched.value


def commit_provider(
    root: Path,
    *,
    tags: list[str] | None,
    org: str | None,
    repo: str | None,
    read_tags: bool = True,
) -> CommitContextProvider:
    explicit_tags = tuple(tags or ()) if tags or not read_tags else None
    if explicit_tags is not None and org and repo:
        commit = CommitContext(tags=explicit_tags, organization=org, repository=repo)
        return StaticCommitContextProvider(commit)
    return GitCommitContextProvider(root, tags=explicit_tags, organization=org, repository=repo)


def _exit_context_error(ctx: CLIContext, message: str, hint: str | None) -> NoReturn:
    ctx.console.error(message)
    if hint:
        ctx.console.print(f"hint: {hint}", Style.DIM)
    raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
