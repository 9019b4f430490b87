from __future__ import annotations

import re
from collections.abc import Iterable

from tagbuild.core.result import Err, Ok, Result
from tagbuild.release.errors import AmbiguousVersionError


_SEMVER_TAG_RE = re.compile(
    r"v(?P<major>[0-9]+)\.(?P<minor>[0-9]+)\.(?P<patch>[0-9]+)"
    r"(?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+))?"
)


def is_semver_tag(tag: str) -> bool:
    return _SEMVER_TAG_RE.fullmatch(tag) is not None


def version_tags(tags: Iterable[str]) -> tuple[str, ...]:
    """Semver-looking tags in the order encountered, each listed once."""
    return tuple(dict.fromkeys(t for t in tags if is_semver_tag(t)))


def classify(tags: Iterable[str]) -> Result[str | None, AmbiguousVersionError]:
    """Resolve the release version of a commit from its tags.

    No match means an unversioned dev build. A single match is returned
    unchanged. Several matches are a configuration problem and are never
    tie-broken.
    """
    matches = version_tags(tags)
    match len(matches):
        case 0:
            return Ok(None)
        case 1:
            return Ok(matches[0])
        case _:
            return Err(AmbiguousVersionError(tags=matches))
