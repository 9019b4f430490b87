from __future__ import annotations

from typer.testing import CliRunner

from tagbuild import __version__
from tagbuild.cli.app import app

runner = CliRunner()


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_commands_are_registered() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for name in ("on-push", "build", "classify", "matrix"):
        assert name in result.output


def test_classify_exit_codes() -> None:
    assert runner.invoke(app, ["classify", "latest", "v1.0.0"]).exit_code == 0
    assert runner.invoke(app, ["classify", "v1.0.0", "v1.0.1"]).exit_code == 1


def test_matrix_lists_requests(tmp_path) -> None:  # type: ignore[no-untyped-def]
    config = tmp_path / "tagbuild.toml"
    config.write_text('[product]\nname = "jambon"\n', encoding="utf-8")

    result = runner.invoke(app, ["matrix", "--version", "v1.0.0", "--config", str(config)])

    assert result.exit_code == 0
    assert "Build Linux amd64: os=linux arch=amd64 version=v1.0.0" in result.output
    assert "Build Windows amd64: os=windows arch=amd64 version=v1.0.0" in result.output
