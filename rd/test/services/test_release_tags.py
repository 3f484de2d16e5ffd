from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from rd.core.result import Err, Ok, Result
from rd.git.repository import GitError, Repository
from rd.services.release.tags import TagManager, TagOutcome

if TYPE_CHECKING:
    from rd.test.conftest import GitSandbox


def _outcome(tag: str, *, created: bool) -> TagOutcome:
    return TagOutcome(tag=tag, created=created, already_existed=not created)


class FakeRepository(Repository):
    """In-memory tag store recording every mutation."""

    def __init__(
        self,
        *,
        tags: set[str] | None = None,
        remote_tags: set[str] | None = None,
        fail: dict[str, str] | None = None,
    ) -> None:
        super().__init__(Path("/fake"))
        self.tags = set(tags or ())
        self.remote = set(remote_tags or ())
        self.fail = dict(fail or {})
        self.calls: list[str] = []

    def _result(self, op: str) -> Result[str, GitError]:
        self.calls.append(op)
        if op in self.fail:
            return Err(GitError(command=op, message=self.fail[op]))
        return Ok("")

    def fetch(self, remote: str, *, tags: bool = True, prune: bool = False) -> Result[str, GitError]:
        result = self._result("fetch")
        if isinstance(result, Ok):
            self.tags |= self.remote
        return result

    def tag_exists(self, tag: str) -> bool:
        return tag in self.tags

    def create_annotated_tag(self, tag: str, ref: str, message: str) -> Result[str, GitError]:
        result = self._result(f"create {tag} {ref} {message}")
        if isinstance(result, Ok):
            self.tags.add(tag)
        return result

    def push_tag(self, remote: str, tag: str) -> Result[str, GitError]:
        result = self._result("push")
        if isinstance(result, Ok):
            self.remote.add(tag)
        return result

    def delete_local_tag(self, tag: str) -> Result[str, GitError]:
        if "delete_local" not in self.fail and tag not in self.tags:
            self.calls.append("delete_local")
            return Err(GitError(command="tag", message=f"error: tag '{tag}' not found."))
        result = self._result("delete_local")
        if isinstance(result, Ok):
            self.tags.discard(tag)
        return result

    def delete_remote_tag(self, remote: str, tag: str) -> Result[str, GitError]:
        if "delete_remote" not in self.fail and tag not in self.remote:
            self.calls.append("delete_remote")
            return Err(
                GitError(
                    command="push",
                    message=f"error: unable to delete '{tag}': remote ref does not exist",
                )
            )
        result = self._result("delete_remote")
        if isinstance(result, Ok):
            self.remote.discard(tag)
        return result


def test_tag_name_adds_prefix_once() -> None:
    manager = TagManager(FakeRepository())
    assert manager.tag_name("1.3.0") == "v1.3.0"
    assert manager.tag_name("v1.3.0") == "v1.3.0"
    assert manager.tag_name(" 1.3.0 ") == "v1.3.0"
    assert TagManager(FakeRepository(), tag_prefix="").tag_name("1.3.0") == "1.3.0"


def test_ensure_creates_and_pushes() -> None:
    repo = FakeRepository()
    result = TagManager(repo).ensure_tag("1.3.0")

    assert result == Ok(_outcome("v1.3.0", created=True))
    assert repo.calls == ["fetch", "create v1.3.0 origin/develop Release v1.3.0", "push"]
    assert repo.remote == {"v1.3.0"}


def test_custom_message_and_branch() -> None:
    repo = FakeRepository()
    TagManager(repo, remote="up", branch="main").ensure_tag("2.0.0", "Big one")

    assert "create v2.0.0 up/main Big one" in repo.calls


def test_existing_local_tag_is_left_alone() -> None:
    repo = FakeRepository(tags={"v1.3.0"})
    result = TagManager(repo).ensure_tag("1.3.0")

    assert result == Ok(_outcome("v1.3.0", created=False))
    assert repo.calls == []


def test_tag_only_on_remote_is_found_after_fetch() -> None:
    repo = FakeRepository(remote_tags={"v1.3.0"})
    result = TagManager(repo).ensure_tag("1.3.0")

    assert result == Ok(_outcome("v1.3.0", created=False))
    assert repo.calls == ["fetch"]


def test_create_tag_rejects_existing() -> None:
    result = TagManager(FakeRepository(tags={"v1.3.0"})).create_tag("1.3.0")

    assert isinstance(result, Err)
    assert result.error.kind == "tag_exists"
    assert result.error.tag == "v1.3.0"


def test_empty_version_is_invalid() -> None:
    repo = FakeRepository()
    result = TagManager(repo).ensure_tag("  ")

    assert isinstance(result, Err)
    assert result.error.kind == "invalid_version"
    assert repo.calls == []


def test_fetch_failure() -> None:
    repo = FakeRepository(fail={"fetch": "could not resolve host"})
    result = TagManager(repo).ensure_tag("1.3.0")

    assert isinstance(result, Err)
    assert result.error.kind == "fetch_failed"
    assert result.error.hint == "could not resolve host"
    assert repo.tags == set()


def test_push_failure_removes_local_tag() -> None:
    repo = FakeRepository(fail={"push": "permission denied"})
    result = TagManager(repo).ensure_tag("1.3.0")

    assert isinstance(result, Err)
    assert result.error.kind == "push_failed"
    assert result.error.hint == "permission denied"
    assert repo.calls[-1] == "delete_local"
    assert repo.tags == set()
    assert repo.remote == set()


def test_rollback_removes_both_sides() -> None:
    repo = FakeRepository(tags={"v1.3.0"}, remote_tags={"v1.3.0"})
    outcome = TagManager(repo).rollback("1.3.0")

    assert outcome.clean
    assert outcome.errors == ()
    assert repo.tags == set()
    assert repo.remote == set()


def test_rollback_of_missing_tag_is_clean() -> None:
    outcome = TagManager(FakeRepository()).rollback("9.9.9")

    assert outcome.clean
    assert outcome.tag == "v9.9.9"


def test_rollback_never_raises_on_remote_failure() -> None:
    repo = FakeRepository(
        tags={"v1.3.0"}, remote_tags={"v1.3.0"}, fail={"delete_remote": "network is down"}
    )
    outcome = TagManager(repo).rollback("1.3.0")

    assert outcome.local_clean
    assert not outcome.remote_clean
    assert not outcome.clean
    assert outcome.errors == ("remote: network is down",)


def test_rollback_reports_unreachable_remote() -> None:
    repo = FakeRepository(
        tags={"v1.3.0"},
        remote_tags={"v1.3.0"},
        fail={"delete_remote": "remote: Repository not found.\nfatal: repository 'x' not found"},
    )
    outcome = TagManager(repo).rollback("1.3.0")

    assert outcome.local_clean
    assert not outcome.remote_clean
    assert not outcome.clean
    assert outcome.errors[0].startswith("remote: ")


# -- against real git ---------------------------------------------------------


def test_ensure_twice_against_real_remote(sandbox: GitSandbox) -> None:
    sandbox.commit("feat: something new")
    sandbox.push()
    manager = TagManager(Repository(sandbox.work))

    first = manager.ensure_tag("1.0.0")
    second = manager.ensure_tag("1.0.0")

    assert first == Ok(_outcome("v1.0.0", created=True))
    assert second == Ok(_outcome("v1.0.0", created=False))
    assert sandbox.remote_tags() == ["v1.0.0"]
    assert sandbox.git("rev-parse", "v1.0.0^{commit}") == sandbox.git("rev-parse", "origin/develop")


def test_rollback_against_real_remote(sandbox: GitSandbox) -> None:
    manager = TagManager(Repository(sandbox.work))
    assert isinstance(manager.ensure_tag("1.0.0"), Ok)

    outcome = manager.rollback("1.0.0")

    assert outcome.clean
    assert sandbox.local_tags() == []
    assert sandbox.remote_tags() == []
    assert manager.rollback("1.0.0").clean
