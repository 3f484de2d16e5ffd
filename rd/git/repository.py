"""Git repository abstraction.

This module provides the Repository class for the git queries and tag
mutations the release engine needs. All operations that can fail return
Result types; nothing here raises for a failed git command.

Usage:
    repo = Repository(Path("/path/to/game"))

    match repo.describe_latest_tag("origin/develop"):
        case Ok(tag):
            print(f"Last release: {tag}")
        case Err(e):
            print(f"No tag: {e.message}")
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from rd.core.result import Err, Ok, Result
from rd.platform.process import ProcessError
from rd.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0
_NETWORK_COMMANDS = frozenset({"fetch", "pull", "push", "clone", "ls-remote"})

# git's wording for deleting a tag that is already gone, locally and on a remote
_NOT_FOUND_RE = re.compile(r"tag '[^']+' not found|remote ref does not exist")

__all__ = [
    "GitError",
    "Repository",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1

    @property
    def is_not_found(self) -> bool:
        """True when git reported the tag being deleted as already missing."""
        return _NOT_FOUND_RE.search(self.message) is not None


class Repository:
    """Git repository abstraction.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        """Check if this is a valid git repository (worktree or bare)."""
        return (self.path / ".git").exists() or (self.path / "HEAD").is_file()

    # -- queries -----------------------------------------------------------

    def fetch(self, remote: str, *, tags: bool = True, prune: bool = False) -> Result[str, GitError]:
        """Fetch from ``remote`` (optionally with tags and pruning)."""
        args = ["fetch", remote]
        if tags:
            args.append("--tags")
        if prune:
            args.append("--prune")
        return self._checked(args, fallback="fetch failed")

    def describe_latest_tag(self, ref: str) -> Result[str, GitError]:
        """Most recent tag reachable from ``ref`` (``git describe --abbrev=0``)."""
        result = self._checked(["describe", "--tags", "--abbrev=0", ref], fallback="no tag")
        match result:
            case Ok(tag) if tag:
                return Ok(tag)
            case Ok(_):
                return Err(GitError(command="describe", message="no tag"))
            case Err(_):
                return result

    def tags_by_version(self) -> Result[list[str], GitError]:
        """All local tags, highest version first."""
        result = self._checked(["tag", "--sort=-version:refname"], fallback="git tag failed")
        if isinstance(result, Err):
            return result
        return Ok([ln.strip() for ln in result.value.splitlines() if ln.strip()])

    def is_ancestor(self, ancestor: str, ref: str) -> bool:
        """True if ``ancestor`` is reachable walking back from ``ref``."""
        result = self._run(["merge-base", "--is-ancestor", ancestor, ref])
        return isinstance(result, Ok)

    def log_oneline(self, rev: str, *, limit: int | None = None) -> Result[list[str], GitError]:
        """``git log --oneline`` lines for a ref or range, newest first."""
        args = ["log", rev, "--oneline", "--no-decorate"]
        if limit is not None:
            args.append(f"-{limit}")
        result = self._checked(args, fallback="git log failed")
        if isinstance(result, Err):
            return result
        return Ok([ln for ln in result.value.splitlines() if ln.strip()])

    def rev_parse_short(self, ref: str) -> Result[str, GitError]:
        return self._checked(["rev-parse", "--short", ref], fallback=f"unknown ref: {ref}")

    def commit_date(self, ref: str) -> Result[str, GitError]:
        """Author date of the commit ``ref`` points at, ISO 8601."""
        result = self._checked(["log", "-1", "--format=%aI", ref], fallback=f"unknown ref: {ref}")
        match result:
            case Ok(date) if date:
                return Ok(date)
            case Ok(_):
                return Err(GitError(command="log", message=f"no date for {ref}"))
            case Err(_):
                return result

    def tag_date(self, tag: str) -> Result[str, GitError]:
        """Creation date of an annotated tag, or its commit date for a lightweight one."""
        result = self._checked(
            ["for-each-ref", f"refs/tags/{tag}", "--format=%(taggerdate:iso-strict)"],
            fallback=f"unknown tag: {tag}",
        )
        if isinstance(result, Ok) and result.value:
            return Ok(result.value)
        return self.commit_date(tag)

    def tag_exists(self, tag: str) -> bool:
        """True if ``tag`` exists in the local repository."""
        result = self._run(["rev-parse", "--verify", "--quiet", f"refs/tags/{tag}"])
        return isinstance(result, Ok)

    # -- tag mutations -------------------------------------------------------

    def create_annotated_tag(self, tag: str, ref: str, message: str) -> Result[str, GitError]:
        return self._checked(["tag", "-a", tag, ref, "-m", message], fallback="git tag failed")

    def push_tag(self, remote: str, tag: str) -> Result[str, GitError]:
        return self._checked(["push", remote, f"refs/tags/{tag}"], fallback="git push failed")

    def delete_local_tag(self, tag: str) -> Result[str, GitError]:
        return self._checked(["tag", "-d", tag], fallback="git tag -d failed")

    def delete_remote_tag(self, remote: str, tag: str) -> Result[str, GitError]:
        return self._checked(["push", remote, f":refs/tags/{tag}"], fallback="git push failed")

    # -- internals -----------------------------------------------------------

    def _checked(self, args: list[str], *, fallback: str) -> Result[str, GitError]:
        """Run git and convert a ProcessError into a GitError."""
        result = self._run(args)
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command=args[0],
                        message=e.stderr.strip() or e.stdout.strip() or fallback,
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                return Ok(stdout.strip())

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS if command in _NETWORK_COMMANDS else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)
