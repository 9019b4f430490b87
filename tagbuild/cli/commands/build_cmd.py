"""build command - run a single build task (one matrix entry)."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from tagbuild.cli.context import build_context, resolve_commit
from tagbuild.core.result import Err
from tagbuild.output.errors import entry_error_exit_code, print_entry_error
from tagbuild.release.model import BuildRequest, CommitContext
from tagbuild.release.orchestrator import run_build


def build(
    os: str | None = typer.Option(None, "--os", help="Target OS (default: linux)", show_default=False),
    arch: str | None = typer.Option(
        None, "--arch", help="Target architecture (default: amd64)", show_default=False
    ),
    version: str | None = typer.Option(
        None, "--version", help="Release version; publishes the binary when set", show_default=False
    ),
    org: str | None = typer.Option(None, "--org", help="Owning organization", show_default=False),
    repo: str | None = typer.Option(None, "--repo", help="Repository name", show_default=False),
    config: Path | None = typer.Option(
        None, "--config", help="Path to tagbuild.toml", show_default=False
    ),
) -> None:
    """Compile one platform and, with --version, publish the binary."""
    ctx = build_context(config)
    if version is None:
        # Nothing is published, so the owning repository is never needed.
        commit = CommitContext(tags=(), organization=org or "", repository=repo or ctx.root.name)
    else:
        commit = resolve_commit(ctx, tags=None, org=org, repo=repo, read_tags=False)
    request = BuildRequest(os=os, arch=arch, version=version)

    report = asyncio.run(run_build(request, commit, ctx.run_context(commit)))
    if isinstance(report.result, Err):
        print_entry_error(report.result.error, ctx.console)
        raise typer.Exit(code=entry_error_exit_code(report.result.error))

    outcome = report.result.value
    if outcome.artifact is not None:
        ctx.console.success(outcome.artifact.url)
    else:
        ctx.console.success(f"{request.platform}: {outcome.state}")
