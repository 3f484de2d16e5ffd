"""Conventional-commit classification of ``git log --oneline`` output.

This is a best-effort log scrape: lines without a leading hash are dropped
and anything that is not ``type(scope): subject`` is classified as ``other``.
Nothing here raises.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from rd.services.release.model import CommitRecord, CommitType

# Keyword (as written in commit messages) -> commit type.
COMMIT_TYPE_KEYWORDS: dict[str, CommitType] = {
    "feat": CommitType.FEATURE,
    "fix": CommitType.FIX,
    "update": CommitType.UPDATE,
    "refactor": CommitType.REFACTOR,
    "docs": CommitType.DOCS,
    "chore": CommitType.CHORE,
    "perf": CommitType.PERF,
    "test": CommitType.TEST,
    "style": CommitType.STYLE,
    "build": CommitType.BUILD,
    "ci": CommitType.CI,
}

_LINE_RE = re.compile(r"^([0-9a-fA-F]{7,40})\s+(.+)$")


def _conventional_re(keywords: Iterable[str]) -> re.Pattern[str]:
    alternatives = "|".join(sorted((re.escape(k) for k in keywords), key=len, reverse=True))
    return re.compile(rf"^({alternatives})(?:\(([^)]+)\))?:\s*(.+)$", re.IGNORECASE)


_CONVENTIONAL_RE = _conventional_re(COMMIT_TYPE_KEYWORDS)


def parse_commit_line(line: str) -> CommitRecord | None:
    """Parse one ``<hash> <message>`` line; None if there is no hash."""
    m = _LINE_RE.match(line.strip())
    if m is None:
        return None
    sha, message = m.group(1), m.group(2)

    cc = _CONVENTIONAL_RE.match(message)
    if cc is None:
        return CommitRecord(
            hash=sha,
            type=CommitType.OTHER,
            scope=None,
            subject=message,
            message=message,
            raw_line=line,
        )

    keyword, scope, subject = cc.group(1), cc.group(2), cc.group(3)
    return CommitRecord(
        hash=sha,
        type=COMMIT_TYPE_KEYWORDS[keyword.lower()],
        scope=scope or None,
        subject=subject,
        message=message,
        raw_line=line,
    )


def classify_commits(lines: Iterable[str]) -> list[CommitRecord]:
    """Parse every line, preserving order and dropping malformed ones."""
    commits: list[CommitRecord] = []
    for line in lines:
        record = parse_commit_line(line)
        if record is not None:
            commits.append(record)
    return commits
