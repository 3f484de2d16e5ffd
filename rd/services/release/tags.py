"""Release tag creation, push and rollback.

One tag-creation attempt moves through::

    checking -> exists                         (already_existed, nothing pushed)
             -> fetch -> create-local -> push  (created)
                                      -> push failed -> delete-local -> error

No step is retried. ``rollback`` is advisory cleanup: it never fails, and a
tag missing locally or remotely counts as already rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from rd.core.result import Err, Ok, Result
from rd.git.repository import GitError, Repository
from rd.services.release.errors import TagError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TagOutcome:
    tag: str
    created: bool
    already_existed: bool


@dataclass(frozen=True, slots=True)
class RollbackOutcome:
    """Result of a best-effort tag deletion.

    ``local_clean``/``remote_clean`` are True when the tag is gone from that
    side, whether this call deleted it or it never existed there.
    """

    tag: str
    local_clean: bool
    remote_clean: bool
    errors: tuple[str, ...] = ()

    @property
    def clean(self) -> bool:
        return self.local_clean and self.remote_clean


class TagManager:
    """Creates and removes annotated release tags on the tracked branch."""

    def __init__(
        self,
        repository: Repository,
        *,
        remote: str = "origin",
        branch: str = "develop",
        tag_prefix: str = "v",
    ) -> None:
        self._repo = repository
        self._remote = remote
        self._branch = branch
        self._prefix = tag_prefix

    @property
    def remote_branch(self) -> str:
        return f"{self._remote}/{self._branch}"

    def tag_name(self, version: str) -> str:
        v = version.strip()
        if self._prefix and v.startswith(self._prefix):
            return v
        return f"{self._prefix}{v}"

    def ensure_tag(self, version: str, message: str | None = None) -> Result[TagOutcome, TagError]:
        """Make sure the release tag exists locally and on the remote.

        An existing tag is reported as ``already_existed`` and left untouched.
        """
        return self._materialize(version, message, allow_existing=True)

    def create_tag(self, version: str, message: str | None = None) -> Result[TagOutcome, TagError]:
        """Like ``ensure_tag`` but an existing tag is an error."""
        return self._materialize(version, message, allow_existing=False)

    def rollback(self, version: str) -> RollbackOutcome:
        """Delete the tag locally and on the remote, swallowing every failure."""
        tag = self.tag_name(version)
        errors: list[str] = []

        local_clean = self._deleted(self._repo.delete_local_tag(tag), "local", tag, errors)
        remote_clean = self._deleted(
            self._repo.delete_remote_tag(self._remote, tag), "remote", tag, errors
        )

        outcome = RollbackOutcome(
            tag=tag,
            local_clean=local_clean,
            remote_clean=remote_clean,
            errors=tuple(errors),
        )
        if outcome.clean:
            logger.info("rolled back tag %s", tag)
        else:
            logger.warning("rollback of %s incomplete: %s", tag, "; ".join(errors))
        return outcome

    def _materialize(
        self,
        version: str,
        message: str | None,
        *,
        allow_existing: bool,
    ) -> Result[TagOutcome, TagError]:
        tag = self.tag_name(version)
        if not version.strip() or tag == self._prefix:
            return Err(TagError(kind="invalid_version", message="version is required", tag=tag))

        existing = self._existing(tag, allow_existing=allow_existing)
        if existing is not None:
            return existing

        fetch = self._repo.fetch(self._remote, tags=True)
        if isinstance(fetch, Err):
            return Err(
                TagError(
                    kind="fetch_failed",
                    message=f"failed to fetch {self._remote}",
                    tag=tag,
                    hint=fetch.error.message,
                )
            )

        # The tag may only have existed on the remote until now.
        existing = self._existing(tag, allow_existing=allow_existing)
        if existing is not None:
            return existing

        created = self._repo.create_annotated_tag(
            tag, self.remote_branch, message or f"Release {tag}"
        )
        if isinstance(created, Err):
            return Err(
                TagError(
                    kind="create_failed",
                    message=f"failed to create tag {tag} at {self.remote_branch}",
                    tag=tag,
                    hint=created.error.message,
                )
            )
        logger.info("created tag %s at %s", tag, self.remote_branch)

        pushed = self._repo.push_tag(self._remote, tag)
        if isinstance(pushed, Err):
            cleanup = self._repo.delete_local_tag(tag)
            if isinstance(cleanup, Err):
                logger.warning("could not delete local tag %s: %s", tag, cleanup.error.message)
            return Err(
                TagError(
                    kind="push_failed",
                    message=f"tag {tag} created but failed to push to {self._remote}",
                    tag=tag,
                    hint=pushed.error.message,
                )
            )
        logger.info("pushed tag %s to %s", tag, self._remote)

        return Ok(TagOutcome(tag=tag, created=True, already_existed=False))

    def _existing(self, tag: str, *, allow_existing: bool) -> Result[TagOutcome, TagError] | None:
        if not self._repo.tag_exists(tag):
            return None
        if not allow_existing:
            return Err(TagError(kind="tag_exists", message=f"tag {tag} already exists", tag=tag))
        logger.info("tag %s already exists", tag)
        return Ok(TagOutcome(tag=tag, created=False, already_existed=True))

    @staticmethod
    def _deleted(
        result: Result[str, GitError],
        side: str,
        tag: str,
        errors: list[str],
    ) -> bool:
        match result:
            case Ok(_):
                return True
            case Err(e) if e.is_not_found:
                logger.debug("%s tag %s not present", side, tag)
                return True
            case Err(e):
                errors.append(f"{side}: {e.message}")
                return False
