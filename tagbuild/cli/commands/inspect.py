"""classify and matrix commands - show what a push would do, without building."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import typer

from tagbuild.cli.context import build_context
from tagbuild.core.errors import ErrorCode
from tagbuild.core.result import Err, Ok
from tagbuild.output.console import ConsoleProtocol, RichConsole, Style
from tagbuild.output.errors import print_ambiguous_version
from tagbuild.release.matrix import build_alias, dispatch
from tagbuild.release.model import BuildRequest
from tagbuild.release.semver import classify


def classify_cmd(
    tags: list[str] | None = typer.Argument(None, help="Tags attached to the commit", show_default=False),
) -> None:
    """Resolve the release version from a set of tags."""
    console = RichConsole()
    match classify(tags or []):
        case Ok(None):
            console.info("no version tag: dev build, nothing will be published")
        case Ok(version):
            console.success(f"version {version}")
        case Err(error):
            print_ambiguous_version(error, console)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))


def print_requests(requests: Sequence[BuildRequest], console: ConsoleProtocol) -> None:
    for request in requests:
        suffix = f"version={request.version}" if request.version else "no publish"
        console.print(f"{build_alias(request)}: os={request.target_os} arch={request.target_arch} {suffix}")


def matrix(
    version: str | None = typer.Option(
        None, "--version", help="Version to dispatch with", show_default=False
    ),
    config: Path | None = typer.Option(
        None, "--config", help="Path to tagbuild.toml", show_default=False
    ),
) -> None:
    """List the build requests a push would dispatch."""
    ctx = build_context(config)
    print_requests(dispatch(version, ctx.config.matrix), ctx.console)
    ctx.console.print(f"image {ctx.config.build.image}, copy {', '.join(ctx.config.build.copy)}", Style.DIM)
