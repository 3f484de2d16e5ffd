from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Literal


VersionBump = Literal["none", "patch", "minor", "major"]


class CommitType(StrEnum):
    FEATURE = "feature"
    FIX = "fix"
    UPDATE = "update"
    REFACTOR = "refactor"
    DOCS = "docs"
    CHORE = "chore"
    PERF = "perf"
    TEST = "test"
    STYLE = "style"
    BUILD = "build"
    CI = "ci"
    OTHER = "other"


_BREAKING_MARKERS = ("BREAKING CHANGE", "!:")


@dataclass(frozen=True, slots=True)
class CommitRecord:
    """One commit scraped from ``git log --oneline``.

    ``message`` is everything after the hash; ``raw_line`` is the input line
    verbatim. For non-conventional commits ``subject == message``.
    """

    hash: str
    type: CommitType
    scope: str | None
    subject: str
    message: str
    raw_line: str

    @property
    def short_hash(self) -> str:
        return self.hash[:7]

    @property
    def breaking(self) -> bool:
        return any(marker in self.message for marker in _BREAKING_MARKERS)


@dataclass(frozen=True, slots=True)
class ReleaseNoteDraft:
    """Release notes projected from pending commits. Never persisted."""

    feature_items: tuple[CommitRecord, ...]
    fix_items: tuple[CommitRecord, ...]
    improvement_items: tuple[CommitRecord, ...]
    other_items: tuple[CommitRecord, ...]
    total_commits: int
    bump: VersionBump
    suggested_version: str
    rendered_text: str
