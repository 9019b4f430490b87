from __future__ import annotations

import typer

from tagbuild import __version__
from tagbuild.cli.commands.build_cmd import build
from tagbuild.cli.commands.inspect import classify_cmd, matrix
from tagbuild.cli.commands.on_push import on_push


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


app.command("on-push")(on_push)
app.command()(build)
app.command("classify")(classify_cmd)
app.command()(matrix)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)


def main() -> None:
    app()
