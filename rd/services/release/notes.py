from __future__ import annotations

from collections.abc import Sequence

from rd.services.release.model import CommitRecord, CommitType, ReleaseNoteDraft
from rd.services.release.semver import bump_version, compute_bump


_IMPROVEMENT_TYPES = frozenset({CommitType.UPDATE, CommitType.REFACTOR})
# Commit types that never show up in the notes
_HIDDEN_TYPES = frozenset({CommitType.DOCS, CommitType.CHORE})
_NAMED_TYPES = frozenset({CommitType.FEATURE, CommitType.FIX}) | _IMPROVEMENT_TYPES


def _bucket(
    commits: Sequence[CommitRecord],
) -> tuple[
    tuple[CommitRecord, ...],
    tuple[CommitRecord, ...],
    tuple[CommitRecord, ...],
    tuple[CommitRecord, ...],
]:
    features = tuple(c for c in commits if c.type == CommitType.FEATURE)
    fixes = tuple(c for c in commits if c.type == CommitType.FIX)
    improvements = tuple(c for c in commits if c.type in _IMPROVEMENT_TYPES)
    other = tuple(
        c for c in commits if c.type not in _NAMED_TYPES and c.type not in _HIDDEN_TYPES
    )
    return features, fixes, improvements, other


def _bullet(commit: CommitRecord) -> str:
    if commit.scope:
        return f"- **{commit.scope}:** {commit.subject}"
    return f"- {commit.subject}"


def compose_release_notes(commits: Sequence[CommitRecord], version: str) -> str:
    """Render commits as markdown release notes under a version header.

    An empty commit set renders as an empty string.
    """
    if not commits:
        return ""

    features, fixes, improvements, other = _bucket(commits)
    sections = (
        ("New Features", features),
        ("Bug Fixes", fixes),
        ("Improvements", improvements),
        ("Other Changes", other),
    )

    lines: list[str] = [f"## Version {version}", ""]
    for title, items in sections:
        if not items:
            continue
        lines.append(f"### {title}")
        lines.extend(_bullet(c) for c in items)
        lines.append("")

    return "\n".join(lines).strip()


def draft_release_notes(commits: Sequence[CommitRecord], current_version: str) -> ReleaseNoteDraft:
    """Project pending commits into a release-note draft for the next version."""
    features, fixes, improvements, other = _bucket(commits)
    bump = compute_bump(commits)
    suggested = bump_version(current_version, bump)
    return ReleaseNoteDraft(
        feature_items=features,
        fix_items=fixes,
        improvement_items=improvements,
        other_items=other,
        total_commits=len(commits),
        bump=bump,
        suggested_version=suggested,
        rendered_text=compose_release_notes(commits, suggested),
    )
