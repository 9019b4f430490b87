"""Filesystem helpers."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

from tagbuild.core.result import Err, Ok, Result

__all__ = ["atomic_copy", "atomic_write_text", "expand_copy_set", "stage_files"]

_SKIP_DIRS = frozenset({".git", "__pycache__"})


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text to path atomically using temp file + replace."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def atomic_copy(src: Path, dest: Path) -> None:
    """Copy src over dest so readers never see a partial file."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".tmp", dir=str(dest.parent))
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        shutil.copy2(src, tmp_path)
        os.replace(tmp_path, dest)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def _skipped(root: Path, path: Path) -> bool:
    return any(part in _SKIP_DIRS for part in path.relative_to(root).parts)


def _files_under(root: Path, path: Path) -> list[Path]:
    if path.is_file():
        return [path]
    out: list[Path] = []
    for child in sorted(path.rglob("*")):
        if _skipped(root, child):
            continue
        if child.is_file():
            out.append(child)
    return out


def expand_copy_set(root: Path, patterns: tuple[str, ...]) -> Result[tuple[Path, ...], str]:
    """Resolve glob patterns to files relative to ``root``.

    A directory match (``cmd/**``) contributes every file below it. Each
    pattern must match at least one file; the Err names the first pattern
    that does not.
    """
    seen: dict[Path, None] = {}
    for pattern in patterns:
        if Path(pattern).is_absolute() or ".." in Path(pattern).parts:
            return Err(f"copy pattern must stay inside the project: {pattern}")

        matched = False
        for hit in sorted(root.glob(pattern)):
            for file in _files_under(root, hit):
                if _skipped(root, file):
                    continue
                seen[file.relative_to(root)] = None
                matched = True
        if not matched:
            return Err(f"copy pattern matched no files: {pattern}")

    return Ok(tuple(seen))


def stage_files(root: Path, files: tuple[Path, ...], dest: Path) -> None:
    """Copy ``files`` (relative to root) into ``dest`` keeping their layout."""
    for rel in files:
        target = dest / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(root / rel, target)
