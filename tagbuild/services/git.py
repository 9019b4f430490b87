"""Commit context from the local git checkout.

Tags come from ``git tag --points-at HEAD``. The owning organization and
repository come from ``GITHUB_REPOSITORY`` when running in CI, otherwise from
the ``origin`` remote URL.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from tagbuild.core.result import Err, Ok, Result
from tagbuild.platform.process import run as run_process
from tagbuild.release.model import CommitContext
from tagbuild.services.protocols import ContextError

__all__ = [
    "GitCommitContextProvider",
    "StaticCommitContextProvider",
    "parse_repo_slug",
]

_GIT_TIMEOUT_SECONDS = 30.0

# https://host/org/repo(.git), git@host:org/repo.git, ssh://git@host/org/repo
_REMOTE_RE = re.compile(r"[:/](?P<org>[^/:]+)/(?P<repo>[^/]+?)(?:\.git)?/?$")


def parse_repo_slug(value: str) -> tuple[str, str] | None:
    """Extract (organization, repository) from ``org/repo`` or a remote URL."""
    value = value.strip()
    if not value:
        return None
    if "://" not in value and "@" not in value and value.count("/") == 1:
        org, repo = value.split("/")
        return (org, repo) if org and repo else None
    m = _REMOTE_RE.search(value)
    if m is None:
        return None
    return (m.group("org"), m.group("repo"))


@dataclass(frozen=True, slots=True)
class StaticCommitContextProvider:
    """Commit context given explicitly (CLI flags, tests)."""

    context: CommitContext

    def fetch(self) -> Result[CommitContext, ContextError]:
        return Ok(self.context)


class GitCommitContextProvider:
    """Reads whatever the caller did not give explicitly from git.

    ``tags=None`` means "the tags pointing at HEAD"; an explicit organization
    and repository skip the remote lookup.
    """

    def __init__(
        self,
        root: Path,
        *,
        tags: tuple[str, ...] | None = None,
        organization: str | None = None,
        repository: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._root = root
        self._tags = tags
        self._organization = organization
        self._repository = repository
        self._environ = os.environ if environ is None else environ

    def _git(self, *args: str) -> Result[str, ContextError]:
        result = run_process(["git", *args], cwd=self._root, timeout=_GIT_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(
                ContextError(
                    message=f"git {args[0]} failed",
                    hint=result.error.stderr.strip() or None,
                )
            )
        return Ok(result.value)

    def tags(self) -> Result[tuple[str, ...], ContextError]:
        out = self._git("tag", "--points-at", "HEAD")
        if isinstance(out, Err):
            return out
        return Ok(tuple(line.strip() for line in out.value.splitlines() if line.strip()))

    def repo_slug(self) -> Result[tuple[str, str], ContextError]:
        env_slug = self._environ.get("GITHUB_REPOSITORY")
        if env_slug:
            parsed = parse_repo_slug(env_slug)
            if parsed is not None:
                return Ok(parsed)

        url = self._git("remote", "get-url", "origin")
        if isinstance(url, Err):
            return Err(
                ContextError(
                    message="cannot determine repository: no origin remote",
                    hint="Pass --org/--repo or set GITHUB_REPOSITORY=org/repo",
                )
            )
        parsed = parse_repo_slug(url.value)
        if parsed is None:
            return Err(ContextError(message=f"cannot parse origin remote: {url.value.strip()}"))
        return Ok(parsed)

    def fetch(self) -> Result[CommitContext, ContextError]:
        tags: Result[tuple[str, ...], ContextError] = Ok(self._tags) if self._tags is not None else self.tags()
        if isinstance(tags, Err):
            return tags

        if self._organization and self._repository:
            org, repo = self._organization, self._repository
        else:
            slug = self.repo_slug()
            if isinstance(slug, Err):
                return slug
            org = self._organization or slug.value[0]
            repo = self._repository or slug.value[1]
        return Ok(CommitContext(tags=tags.value, organization=org, repository=repo))
