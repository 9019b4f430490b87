"""Typed configuration loading.

A project describes its release build in ``tagbuild.toml``:

    [product]
    name = "jambon"

    [build]
    image = "golang:1.16"
    command = "go build -o jambon cmd/jambon/main.go && ls -lah"
    copy = ["cmd/**", "tacview/**", "go.sum", "go.mod", "*.go"]
    os_env = "GOOS"
    arch_env = "GOARCH"
    artifact = "jambon"

    [[matrix]]
    os = "linux"
    arch = "amd64"

    [publish]
    backend = "directory"
    directory = "dist/artifacts"

Every section except ``[product]`` is optional.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from tagbuild.release.model import PlatformSpec

from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_float,
    get_str,
    get_str_list,
    get_table,
    get_table_list,
)

__all__ = [
    "BuildConfig",
    "Config",
    "ConfigError",
    "CONFIG_FILENAME",
    "DEFAULT_MATRIX",
    "PublishBackend",
    "PublishConfig",
    "load_config",
]

CONFIG_FILENAME = "tagbuild.toml"

DEFAULT_MATRIX: tuple[PlatformSpec, ...] = (
    PlatformSpec(os="linux", arch="amd64"),
    PlatformSpec(os="windows", arch="amd64"),
)

DEFAULT_IMAGE = "golang:1.16"
DEFAULT_OS_ENV = "GOOS"
DEFAULT_ARCH_ENV = "GOARCH"
DEFAULT_WORKDIR = "/src"
DEFAULT_BUILD_TIMEOUT_SECONDS = 30 * 60.0

PublishBackend = Literal["directory", "github"]


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None

    def pretty(self) -> str:
        if self.path is not None:
            return f"{self.message} ({self.path})"
        return self.message


@dataclass(frozen=True, slots=True)
class BuildConfig:
    """How a single matrix entry is compiled.

    ``copy`` lists globs relative to the project root; only matching files
    are sent into the build environment. ``artifact`` is the binary path
    relative to ``workdir`` inside the environment.
    """

    command: str
    artifact: str
    copy: tuple[str, ...]
    image: str = DEFAULT_IMAGE
    os_env: str = DEFAULT_OS_ENV
    arch_env: str = DEFAULT_ARCH_ENV
    workdir: str = DEFAULT_WORKDIR
    timeout_seconds: float = DEFAULT_BUILD_TIMEOUT_SECONDS

    def platform_env(self, os: str, arch: str) -> tuple[str, ...]:
        return (f"{self.os_env}={os}", f"{self.arch_env}={arch}")


@dataclass(frozen=True, slots=True)
class PublishConfig:
    backend: PublishBackend = "directory"
    directory: str = "dist/artifacts"
    base_url: str | None = None


@dataclass(frozen=True, slots=True)
class Config:
    product: str
    build: BuildConfig
    matrix: tuple[PlatformSpec, ...] = DEFAULT_MATRIX
    publish: PublishConfig = field(default_factory=PublishConfig)

    @classmethod
    def for_product(cls, product: str) -> Config:
        """Defaults for a Go-style project whose binary is named after it."""
        return cls(
            product=product,
            build=BuildConfig(
                command=f"go build -o {product} ./... && ls -lah",
                artifact=product,
                copy=("**/*.go", "go.mod", "go.sum"),
            ),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Result[Config, str]:
        product_t: StrDict = get_table(data, "product") or {}
        build_t: StrDict = get_table(data, "build") or {}
        publish_t: StrDict = get_table(data, "publish") or {}

        product = get_str(product_t, "name")
        if product is None:
            return Err("[product] name is required")

        defaults = cls.for_product(product).build
        copy = defaults.copy
        if "copy" in build_t:
            parsed = get_str_list(build_t, "copy")
            if not parsed:
                return Err("[build] copy must be a non-empty list of globs")
            copy = parsed

        build = BuildConfig(
            command=get_str(build_t, "command") or defaults.command,
            artifact=get_str(build_t, "artifact") or product,
            copy=copy,
            image=get_str(build_t, "image") or DEFAULT_IMAGE,
            os_env=get_str(build_t, "os_env") or DEFAULT_OS_ENV,
            arch_env=get_str(build_t, "arch_env") or DEFAULT_ARCH_ENV,
            workdir=get_str(build_t, "workdir") or DEFAULT_WORKDIR,
            timeout_seconds=get_float(build_t, "timeout_seconds") or DEFAULT_BUILD_TIMEOUT_SECONDS,
        )

        matrix = DEFAULT_MATRIX
        if "matrix" in data:
            parsed_matrix = _parse_matrix(data)
            if isinstance(parsed_matrix, Err):
                return parsed_matrix
            matrix = parsed_matrix.value

        backend = get_str(publish_t, "backend") or "directory"
        if backend not in ("directory", "github"):
            return Err(f"[publish] backend must be 'directory' or 'github', got '{backend}'")

        publish = PublishConfig(
            backend="github" if backend == "github" else "directory",
            directory=get_str(publish_t, "directory") or "dist/artifacts",
            base_url=get_str(publish_t, "base_url"),
        )

        return Ok(cls(product=product, build=build, matrix=matrix, publish=publish))


def _parse_matrix(data: Mapping[str, object]) -> Result[tuple[PlatformSpec, ...], str]:
    entries = get_table_list(data, "matrix")
    if not entries:
        return Err("[[matrix]] must contain at least one os/arch entry")

    out: list[PlatformSpec] = []
    for i, entry in enumerate(entries):
        os = get_str(entry, "os")
        arch = get_str(entry, "arch")
        if os is None or arch is None:
            return Err(f"[[matrix]] entry {i} needs both 'os' and 'arch'")
        spec = PlatformSpec(os=os, arch=arch)
        if spec in out:
            return Err(f"[[matrix]] entry {i} duplicates {spec}")
        out.append(spec)
    return Ok(tuple(out))


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and validate ``tagbuild.toml``.

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    parsed = Config.from_dict(result.value)
    if isinstance(parsed, Err):
        return Err(ConfigError(f"Invalid config: {parsed.error}", path=path))
    return Ok(parsed.value)
