"""Release orchestration: classify commits, plan versions, tag and publish."""

from rd.services.release.commits import classify_commits, parse_commit_line
from rd.services.release.events import CompleteEvent, DeployEvent, ErrorEvent, OutputEvent, StartEvent
from rd.services.release.executor import DeploymentExecutor, DeploymentRun, DeployOptions, DeployPhase
from rd.services.release.model import CommitRecord, CommitType, ReleaseNoteDraft, VersionBump
from rd.services.release.notes import compose_release_notes, draft_release_notes
from rd.services.release.semver import SemanticVersion, bump_version, compute_bump
from rd.services.release.status import RepositoryStateReader, RepositoryStatus, status_to_dict
from rd.services.release.tags import RollbackOutcome, TagManager, TagOutcome

__all__ = [
    "CommitRecord",
    "CommitType",
    "CompleteEvent",
    "DeployEvent",
    "DeployOptions",
    "DeployPhase",
    "DeploymentExecutor",
    "DeploymentRun",
    "ErrorEvent",
    "OutputEvent",
    "ReleaseNoteDraft",
    "RepositoryStateReader",
    "RepositoryStatus",
    "RollbackOutcome",
    "SemanticVersion",
    "StartEvent",
    "TagManager",
    "TagOutcome",
    "VersionBump",
    "bump_version",
    "classify_commits",
    "compose_release_notes",
    "compute_bump",
    "draft_release_notes",
    "parse_commit_line",
    "status_to_dict",
]
