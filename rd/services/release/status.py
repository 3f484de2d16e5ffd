"""Repository state reader.

``RepositoryStateReader.get_status()`` always returns a complete
``RepositoryStatus``. Each sub-query (fetch, tag resolution, pending commits,
timestamps, artifact scans) degrades on its own to an empty value and a log
line; none of them aborts the whole snapshot. When the host lacks filesystem
or source-control access the reader skips those queries entirely.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from rd.core.capabilities import Capabilities
from rd.core.config import ReleaseConfig
from rd.core.result import Err, Ok, Result
from rd.git.repository import GitError, Repository
from rd.services.release.artifacts import BuildArtifactInfo, inspect_artifacts
from rd.services.release.commits import classify_commits
from rd.services.release.model import CommitRecord, ReleaseNoteDraft
from rd.services.release.notes import draft_release_notes
from rd.services.release.semver import version_from_tag

logger = logging.getLogger(__name__)

_STATELESS_MESSAGE = "Running without source-control access - build status requires a local checkout"
_NO_FILESYSTEM_MESSAGE = "Running without filesystem access - build artifacts unavailable"


def _no_artifacts() -> dict[str, BuildArtifactInfo | None]:
    return {}


@dataclass(frozen=True, slots=True)
class RepositoryStatus:
    """Read-only snapshot of the release state. Built fresh on every request."""

    last_release_tag: str | None
    version_from_tag: str
    latest_remote_commit_hash: str | None
    latest_remote_commit_date: str | None
    tag_created_at: str | None
    pending_changes: ReleaseNoteDraft | None
    capabilities: Capabilities
    builds_path: Path | None = None
    artifacts: Mapping[str, BuildArtifactInfo | None] = field(default_factory=_no_artifacts)
    message: str | None = None

    @property
    def has_new_commits(self) -> bool:
        return self.pending_changes is not None and self.pending_changes.total_commits > 0

    @property
    def suggested_version(self) -> str:
        if self.pending_changes is not None and self.has_new_commits:
            return self.pending_changes.suggested_version
        return self.version_from_tag


class RepositoryStateReader:
    """Reads tags, pending commits and build artifacts for one repository."""

    def __init__(
        self,
        config: ReleaseConfig,
        capabilities: Capabilities,
        repository: Repository | None = None,
    ) -> None:
        self._config = config
        self._caps = capabilities
        self._repo = repository or Repository(config.repo_path)

    @property
    def capabilities(self) -> Capabilities:
        return self._caps

    def get_status(self) -> RepositoryStatus:
        messages: list[str] = []
        artifacts: dict[str, BuildArtifactInfo | None] = {}
        builds_path: Path | None = None

        if self._caps.can_access_filesystem:
            builds_path = self._config.builds_path
            artifacts = self.read_artifacts()
        else:
            messages.append(_NO_FILESYSTEM_MESSAGE)

        if not self._caps.can_access_source_control:
            messages.insert(0, _STATELESS_MESSAGE)
            return RepositoryStatus(
                last_release_tag=None,
                version_from_tag=version_from_tag(None),
                latest_remote_commit_hash=None,
                latest_remote_commit_date=None,
                tag_created_at=None,
                pending_changes=None,
                capabilities=self._caps,
                builds_path=builds_path,
                artifacts=artifacts,
                message="; ".join(messages),
            )

        repo_cfg = self._config.repository
        remote_branch = repo_cfg.remote_branch

        self.fetch_remote()
        tag = self.resolve_last_release_tag()
        version = version_from_tag(tag, repo_cfg.tag_prefix)
        commits = self.pending_commits(tag)
        draft = draft_release_notes(commits, version) if commits else None

        return RepositoryStatus(
            last_release_tag=tag,
            version_from_tag=version,
            latest_remote_commit_hash=self._optional(
                self._repo.rev_parse_short(remote_branch), "latest commit hash"
            ),
            latest_remote_commit_date=self._optional(
                self._repo.commit_date(remote_branch), "latest commit date"
            ),
            tag_created_at=(
                self._optional(self._repo.tag_date(tag), "tag date") if tag else None
            ),
            pending_changes=draft,
            capabilities=self._caps,
            builds_path=builds_path,
            artifacts=artifacts,
            message="; ".join(messages) or None,
        )

    def fetch_remote(self) -> bool:
        """Refresh tags and remote branches; failure leaves the last known state."""
        remote = self._config.repository.remote
        result = self._repo.fetch(remote, tags=True, prune=True)
        if isinstance(result, Err):
            logger.warning("fetch from %s failed: %s", remote, result.error.message)
            return False
        return True

    def resolve_last_release_tag(self) -> str | None:
        """Most recent tag that is an ancestor of the tracked remote branch.

        Falls back to scanning tags by version order when ``git describe``
        fails; tags on abandoned history are skipped. None means no release yet.
        """
        remote_branch = self._config.repository.remote_branch
        described = self._repo.describe_latest_tag(remote_branch)
        if isinstance(described, Ok):
            return described.value
        logger.debug("describe on %s failed: %s", remote_branch, described.error.message)

        tags = self._repo.tags_by_version()
        if isinstance(tags, Err):
            logger.warning("listing tags failed: %s", tags.error.message)
            return None

        for tag in tags.value:
            if self._repo.is_ancestor(tag, remote_branch):
                return tag
        return None

    def pending_commits(self, tag: str | None) -> list[CommitRecord]:
        """Commits on the tracked branch not yet in ``tag`` (bounded when untagged)."""
        repo_cfg = self._config.repository
        if tag:
            result = self._repo.log_oneline(f"{tag}..{repo_cfg.remote_branch}")
        else:
            result = self._repo.log_oneline(repo_cfg.remote_branch, limit=repo_cfg.lookback)

        match result:
            case Ok(lines):
                return classify_commits(lines)
            case Err(e):
                logger.warning("listing pending commits failed: %s", e.message)
                return []

    def read_artifacts(self) -> dict[str, BuildArtifactInfo | None]:
        builds = self._config.builds_path
        out: dict[str, BuildArtifactInfo | None] = {}
        for platform in self._config.platforms:
            info = inspect_artifacts(builds / platform.name, artifact_suffix=platform.artifact_suffix)
            if info is None:
                logger.debug("no %s build at %s", platform.name, builds / platform.name)
            out[platform.name] = info
        return out

    @staticmethod
    def _optional(result: Result[str, GitError], what: str) -> str | None:
        match result:
            case Ok(value):
                return value or None
            case Err(e):
                logger.debug("%s unavailable: %s", what, e)
                return None


def _draft_to_dict(draft: ReleaseNoteDraft) -> dict[str, object]:
    def items(commits: tuple[CommitRecord, ...]) -> list[dict[str, object]]:
        return [
            {"hash": c.hash, "type": str(c.type), "scope": c.scope, "subject": c.subject}
            for c in commits
        ]

    return {
        "features": items(draft.feature_items),
        "fixes": items(draft.fix_items),
        "improvements": items(draft.improvement_items),
        "other": items(draft.other_items),
        "totalCommits": draft.total_commits,
        "suggestedBump": draft.bump,
        "suggestedVersion": draft.suggested_version,
        "markdownContent": draft.rendered_text,
    }


def _artifact_to_dict(info: BuildArtifactInfo | None) -> dict[str, object] | None:
    if info is None:
        return None
    return {
        "exists": info.exists,
        "path": str(info.path),
        "size": info.total_size_bytes,
        "sizeFormatted": info.size_formatted,
        "fileCount": info.file_count,
        "primaryArtifact": info.primary_artifact_name,
        "lastModified": info.last_modified_at,
    }


def status_to_dict(status: RepositoryStatus) -> dict[str, object]:
    """JSON-ready view of a status snapshot (camelCase keys, as served to the admin UI)."""
    return {
        "isLocal": status.capabilities.is_local,
        "version": status.version_from_tag,
        "gitTag": status.last_release_tag,
        "suggestedVersion": status.suggested_version,
        "hasNewCommits": status.has_new_commits,
        "pendingChanges": (
            _draft_to_dict(status.pending_changes) if status.pending_changes is not None else None
        ),
        "latestCommitHash": status.latest_remote_commit_hash,
        "latestCommitDate": status.latest_remote_commit_date,
        "tagCreatedAt": status.tag_created_at,
        "buildsPath": str(status.builds_path) if status.builds_path is not None else None,
        "artifacts": {name: _artifact_to_dict(info) for name, info in status.artifacts.items()},
        "message": status.message,
    }
