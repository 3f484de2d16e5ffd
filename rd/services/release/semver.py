from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import assert_never

from rd.services.release.model import CommitRecord, CommitType, VersionBump


_VERSION_RE = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)(.*)$")

_PATCH_TYPES = frozenset({CommitType.FIX, CommitType.UPDATE, CommitType.REFACTOR})


@dataclass(frozen=True, slots=True)
class SemanticVersion:
    """``major.minor.patch`` plus an opaque suffix (``-beta``, ``-prebeta.2``)."""

    major: int
    minor: int
    patch: int
    suffix: str = ""

    @classmethod
    def parse(cls, text: str) -> SemanticVersion | None:
        """Parse ``1.2.3``, ``v1.2.3`` or ``1.2.3-beta``; None if malformed."""
        m = _VERSION_RE.match(text.strip())
        if m is None:
            return None
        return cls(int(m.group(1)), int(m.group(2)), int(m.group(3)), m.group(4))

    def render(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}{self.suffix}"

    def to_tag(self, prefix: str = "v") -> str:
        return f"{prefix}{self.render()}"

    def bump(self, kind: VersionBump) -> SemanticVersion:
        match kind:
            case "major":
                return SemanticVersion(self.major + 1, 0, 0, self.suffix)
            case "minor":
                return SemanticVersion(self.major, self.minor + 1, 0, self.suffix)
            case "patch":
                return SemanticVersion(self.major, self.minor, self.patch + 1, self.suffix)
            case "none":
                return self
            case _:
                assert_never(kind)

    def __str__(self) -> str:
        return self.render()


def compute_bump(commits: Iterable[CommitRecord]) -> VersionBump:
    """Suggested bump for a set of pending commits.

    A set holding only docs/chore/other commits still yields ``patch``;
    an empty set yields ``none``.
    """
    items = list(commits)
    if not items:
        return "none"
    if any(c.breaking for c in items):
        return "major"
    if any(c.type == CommitType.FEATURE for c in items):
        return "minor"
    if any(c.type in _PATCH_TYPES for c in items):
        return "patch"
    return "patch"


def bump_version(version: str, kind: VersionBump) -> str:
    """Bump a version string; malformed input is returned unchanged.

    A leading ``v`` is dropped from a bumped result, the suffix is kept
    verbatim, and ``none`` always returns the input as given.
    """
    parsed = SemanticVersion.parse(version)
    if parsed is None or kind == "none":
        return version
    return parsed.bump(kind).render()


def version_from_tag(tag: str | None, prefix: str = "v") -> str:
    """Strip the tag prefix; ``0.0.0`` when there is no tag."""
    if not tag:
        return "0.0.0"
    if prefix and tag.startswith(prefix):
        return tag[len(prefix) :]
    return tag
