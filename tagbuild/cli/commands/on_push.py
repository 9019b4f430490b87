"""on-push command - classify the commit's tags and run the build matrix."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from tagbuild.cli.commands.inspect import print_requests
from tagbuild.cli.context import CLIContext, build_context, resolve_commit
from tagbuild.core.errors import ErrorCode
from tagbuild.core.result import Err
from tagbuild.output.console import Style
from tagbuild.output.errors import print_ambiguous_version, print_run_report, run_exit_code
from tagbuild.release.matrix import BUILD_JOB_REF, dispatch
from tagbuild.release.model import CommitContext
from tagbuild.release.orchestrator import build_job, on_push as run_on_push
from tagbuild.release.semver import classify
from tagbuild.services.spawner import LocalJobSpawner


def on_push(
    tag: list[str] | None = typer.Option(
        None,
        "--tag",
        help="Commit tag (repeatable). Defaults to the tags pointing at HEAD.",
        show_default=False,
    ),
    org: str | None = typer.Option(None, "--org", help="Owning organization", show_default=False),
    repo: str | None = typer.Option(None, "--repo", help="Repository name", show_default=False),
    config: Path | None = typer.Option(
        None, "--config", help="Path to tagbuild.toml", show_default=False
    ),
    max_jobs: int | None = typer.Option(
        None, "--max-jobs", min=1, help="Limit concurrent build jobs", show_default=False
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Classify the tags and list the builds without running them"
    ),
) -> None:
    """Build every matrix platform; publish when the commit has a version tag."""
    ctx = build_context(config)
    commit = resolve_commit(ctx, tags=tag, org=org, repo=repo)
    if dry_run:
        _print_plan(commit, ctx)
        return

    run_ctx = ctx.run_context(commit)

    async def _run() -> int:
        spawner = LocalJobSpawner({BUILD_JOB_REF: build_job(run_ctx, commit)}, max_concurrency=max_jobs)
        try:
            result = await run_on_push(commit, run_ctx, spawner=spawner)
        finally:
            spawner.close()
            await spawner.cancel_all()
        if isinstance(result, Err):
            ctx.console.print(f"hint: {result.error.hint}", Style.DIM)
            return int(ErrorCode.USER_ERROR)
        print_run_report(result.value, ctx.console)
        return run_exit_code(result.value)

    code = asyncio.run(_run())
    if code != int(ErrorCode.OK):
        raise typer.Exit(code=code)


def _print_plan(commit: CommitContext, ctx: CLIContext) -> None:
    classified = classify(commit.tags)
    if isinstance(classified, Err):
        print_ambiguous_version(classified.error, ctx.console)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    print_requests(dispatch(classified.value, ctx.config.matrix), ctx.console)
