"""Artifact publishers.

``DirectoryPublisher`` keeps artifacts in a local store with a JSON sidecar
per artifact (labels, checksum). ``GhReleasePublisher`` attaches them to the
GitHub release named after the version tag.

Publishing the same name twice overwrites the previous artifact in both
backends (``--clobber`` for GitHub), so a re-run of the same
(product, os, arch, version) never leaves two artifacts under one name.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from tagbuild.core.config import PublishConfig
from tagbuild.core.result import Err, Ok, Result
from tagbuild.platform.files import atomic_copy, atomic_write_text
from tagbuild.platform.process import ProcessError, run_async
from tagbuild.services.protocols import ArtifactPublisher, PublisherError, PublishOptions

__all__ = [
    "DirectoryPublisher",
    "GhReleasePublisher",
    "ReleaseAsset",
    "StoredArtifact",
    "make_publisher",
]

_GH_TIMEOUT_SECONDS = 60.0
_GH_UPLOAD_TIMEOUT_SECONDS = 15 * 60.0


def _sha256(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


# -----------------------------------------------------------------------------
# Local store
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StoredArtifact:
    name: str
    path: Path
    base_url: str | None

    def generate_public_url(self, organization: str, repository: str) -> str:
        if self.base_url is None:
            return self.path.resolve().as_uri()
        return f"{self.base_url.rstrip('/')}/{organization}/{repository}/{self.name}"


class DirectoryPublisher:
    def __init__(self, store: Path, *, base_url: str | None = None) -> None:
        self._store = store
        self._base_url = base_url

    async def upload(self, local_path: Path, options: PublishOptions) -> Result[StoredArtifact, PublisherError]:
        try:
            stored = await asyncio.to_thread(self._store_artifact, local_path, options)
        except OSError as e:
            return Err(PublisherError(message=f"cannot store {options.name}", detail=str(e)))
        return Ok(stored)

    def _store_artifact(self, local_path: Path, options: PublishOptions) -> StoredArtifact:
        dest = self._store / options.name
        atomic_copy(local_path, dest)
        meta = {
            "name": options.name,
            "version": options.version,
            "published": options.published,
            "labels": list(options.labels),
            "sha256": _sha256(dest),
            "size": dest.stat().st_size,
        }
        atomic_write_text(self._store / f"{options.name}.json", json.dumps(meta, indent=2) + "\n")
        return StoredArtifact(name=options.name, path=dest, base_url=self._base_url)


# -----------------------------------------------------------------------------
# GitHub releases
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ReleaseAsset:
    name: str
    tag: str

    def generate_public_url(self, organization: str, repository: str) -> str:
        return f"https://github.com/{organization}/{repository}/releases/download/{self.tag}/{self.name}"


def _gh_error(message: str, error: ProcessError) -> PublisherError:
    return PublisherError(message=message, detail=error.stderr.strip() or None)


class GhReleasePublisher:
    """Uploads release assets with the GitHub CLI (``gh``)."""

    def __init__(self, root: Path, *, repo_slug: str) -> None:
        self._root = root
        self._repo = repo_slug

    async def upload(self, local_path: Path, options: PublishOptions) -> Result[ReleaseAsset, PublisherError]:
        if shutil.which("gh") is None:
            return Err(PublisherError(message="gh: missing", detail="Install GitHub CLI: https://cli.github.com/"))

        ensured = await self._ensure_release(options)
        if isinstance(ensured, Err):
            return ensured

        label = f"{options.name} ({', '.join(options.labels)})"
        try:
            with tempfile.TemporaryDirectory(prefix="tagbuild-asset-") as tmp:
                # gh names the asset after the file.
                asset = Path(tmp) / options.name
                shutil.copy2(local_path, asset)
                result = await run_async(
                    [
                        "gh", "release", "upload", options.version, f"{asset}#{label}",
                        "--clobber", "--repo", self._repo,
                    ],
                    cwd=self._root,
                    timeout=_GH_UPLOAD_TIMEOUT_SECONDS,
                )
        except OSError as e:
            return Err(PublisherError(message=f"cannot stage {options.name} for upload", detail=str(e)))
        if isinstance(result, Err):
            return Err(_gh_error(f"gh release upload failed for {options.name}", result.error))

        return Ok(ReleaseAsset(name=options.name, tag=options.version))

    async def _release_exists(self, tag: str) -> bool:
        viewed = await run_async(
            ["gh", "release", "view", tag, "--repo", self._repo, "--json", "tagName"],
            cwd=self._root,
            timeout=_GH_TIMEOUT_SECONDS,
        )
        return isinstance(viewed, Ok)

    async def _ensure_release(self, options: PublishOptions) -> Result[None, PublisherError]:
        if await self._release_exists(options.version):
            return Ok(None)

        cmd = [
            "gh",
            "release",
            "create",
            options.version,
            "--repo",
            self._repo,
            "--title",
            options.version,
            "--notes",
            "",
            "--verify-tag",
        ]
        if not options.published:
            cmd.append("--draft")
        created = await run_async(cmd, cwd=self._root, timeout=_GH_TIMEOUT_SECONDS)
        if isinstance(created, Ok):
            return Ok(None)

        # A sibling build may have created it first.
        if await self._release_exists(options.version):
            return Ok(None)
        return Err(_gh_error(f"cannot create release {options.version}", created.error))


def make_publisher(config: PublishConfig, *, root: Path, repo_slug: str) -> ArtifactPublisher:
    match config.backend:
        case "github":
            return GhReleasePublisher(root, repo_slug=repo_slug)
        case "directory":
            store = Path(config.directory)
            if not store.is_absolute():
                store = root / store
            return DirectoryPublisher(store, base_url=config.base_url)
