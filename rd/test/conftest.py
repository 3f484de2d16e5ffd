from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from rd.core.config import ReleaseConfig, RepositoryConfig


def _git(cwd: Path, *args: str) -> str:
    proc = subprocess.run(
        ["git", "-C", str(cwd), *args],
        capture_output=True,
        text=True,
        check=True,
    )
    return proc.stdout.strip()


@dataclass
class GitSandbox:
    """A bare ``origin`` plus a working clone tracking ``develop``."""

    remote: Path
    work: Path
    _counter: int = field(default=0)

    def git(self, *args: str) -> str:
        return _git(self.work, *args)

    def commit(self, message: str) -> str:
        self._counter += 1
        (self.work / f"file{self._counter}.txt").write_text(message, encoding="utf-8")
        self.git("add", "-A")
        self.git("commit", "-q", "-m", message)
        return self.git("rev-parse", "HEAD")

    def push(self) -> None:
        self.git("push", "-q", "origin", "develop")

    def remote_tags(self) -> list[str]:
        out = _git(self.remote, "tag", "--list")
        return [t for t in out.splitlines() if t]

    def local_tags(self) -> list[str]:
        return [t for t in self.git("tag", "--list").splitlines() if t]

    def config(self) -> ReleaseConfig:
        return ReleaseConfig(repository=RepositoryConfig(path=self.work))


@pytest.fixture
def git_env(monkeypatch: pytest.MonkeyPatch) -> None:
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Release Bot")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "release@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Release Bot")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "release@example.com")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", os.devnull)
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")


@pytest.fixture
def sandbox(tmp_path: Path, git_env: None) -> GitSandbox:
    remote = tmp_path / "origin.git"
    work = tmp_path / "work"
    _git(tmp_path, "init", "-q", "--bare", str(remote))
    _git(tmp_path, "init", "-q", str(work))
    _git(work, "checkout", "-q", "-b", "develop")
    _git(work, "remote", "add", "origin", str(remote))

    box = GitSandbox(remote=remote, work=work)
    box.commit("chore: initial commit")
    box.push()
    box.git("fetch", "-q", "origin")
    return box
