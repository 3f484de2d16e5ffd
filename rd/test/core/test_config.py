"""Tests for rd.core.config module."""

from __future__ import annotations

from pathlib import Path

import pytest

from rd.core.config import (
    DEFAULT_DEPLOY_TIMEOUT_SECONDS,
    DEFAULT_LOOKBACK,
    PlatformConfig,
    ReleaseConfig,
    RepositoryConfig,
    load_config,
    load_config_or_default,
)
from rd.core.result import Err, Ok


class TestDefaults:
    def test_repository_defaults(self) -> None:
        repo = RepositoryConfig()
        assert repo.remote == "origin"
        assert repo.branch == "develop"
        assert repo.tag_prefix == "v"
        assert repo.lookback == DEFAULT_LOOKBACK
        assert repo.remote_branch == "origin/develop"

    def test_release_defaults(self) -> None:
        config = ReleaseConfig()
        assert config.publish.command == ("bash", "distribute.sh")
        assert config.publish.timeout_seconds == DEFAULT_DEPLOY_TIMEOUT_SECONDS == 600
        assert config.publish.no_notes_flag == "--no-changelog"
        assert config.publish.no_notify_flag == "--no-notify"
        assert config.platform_names == ("mac", "windows")
        assert config.platform("mac") == PlatformConfig("mac", "--mac", ".app")
        assert config.platform("linux") is None

    def test_builds_path_is_under_repo(self, tmp_path: Path) -> None:
        config = ReleaseConfig(repository=RepositoryConfig(path=tmp_path))
        assert config.builds_path == tmp_path / "Builds" / "current"


class TestFromDict:
    def test_full_document(self, tmp_path: Path) -> None:
        data: dict[str, object] = {
            "repository": {
                "path": "game",
                "remote": "upstream",
                "branch": "main",
                "tag_prefix": "release-",
                "lookback": 20,
            },
            "publish": {
                "command": ["./publish.sh", "--quiet"],
                "timeout_seconds": 30,
                "no_notes_flag": "--skip-notes",
            },
            "builds": {"dir": "out"},
            "platforms": {"linux": {"flag": "--linux", "artifact_suffix": ".AppImage"}},
        }
        config = ReleaseConfig.from_dict(data, base_dir=tmp_path)

        assert config.repo_path == tmp_path / "game"
        assert config.repository.remote_branch == "upstream/main"
        assert config.repository.tag_prefix == "release-"
        assert config.repository.lookback == 20
        assert config.publish.command == ("./publish.sh", "--quiet")
        assert config.publish.timeout_seconds == 30
        assert config.publish.no_notes_flag == "--skip-notes"
        assert config.publish.no_notify_flag == "--no-notify"
        assert config.builds_path == tmp_path / "game" / "out"
        assert config.platform_names == ("linux",)

    def test_absolute_path_kept(self, tmp_path: Path) -> None:
        config = ReleaseConfig.from_dict(
            {"repository": {"path": str(tmp_path)}}, base_dir=Path("/elsewhere")
        )
        assert config.repo_path == tmp_path

    def test_empty_tag_prefix_allowed(self) -> None:
        config = ReleaseConfig.from_dict({"repository": {"tag_prefix": ""}})
        assert config.repository.tag_prefix == ""

    def test_platform_flag_defaults_to_name(self) -> None:
        config = ReleaseConfig.from_dict({"platforms": {"linux": {}}})
        assert config.platform("linux") == PlatformConfig("linux", "--linux", "")

    @pytest.mark.parametrize(
        "data",
        [
            {"repository": {"lookback": 0}},
            {"publish": {"timeout_seconds": -5}},
            {"publish": {"command": []}},
            {"platforms": {"mac": "yes"}},
        ],
    )
    def test_invalid_values_raise(self, data: dict[str, object]) -> None:
        with pytest.raises(ValueError):
            ReleaseConfig.from_dict(data)


class TestLoadConfig:
    def test_load_valid_file(self, tmp_path: Path) -> None:
        path = tmp_path / "release.toml"
        path.write_text(
            '[repository]\npath = "."\nbranch = "main"\n\n[publish]\ntimeout_seconds = 60\n',
            encoding="utf-8",
        )
        result = load_config(path)

        assert isinstance(result, Ok)
        assert result.value.repo_path == tmp_path / "."
        assert result.value.repository.branch == "main"
        assert result.value.publish.timeout_seconds == 60

    def test_missing_file(self, tmp_path: Path) -> None:
        result = load_config(tmp_path / "missing.toml")

        assert isinstance(result, Err)
        assert "not found" in result.error.message
        assert result.error.path == tmp_path / "missing.toml"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "release.toml"
        path.write_text("[repository\n", encoding="utf-8")
        result = load_config(path)

        assert isinstance(result, Err)
        assert "Invalid TOML" in result.error.message

    def test_invalid_structure(self, tmp_path: Path) -> None:
        path = tmp_path / "release.toml"
        path.write_text("[repository]\nlookback = -1\n", encoding="utf-8")
        result = load_config(path)

        assert isinstance(result, Err)
        assert "lookback" in result.error.message

    def test_or_default_falls_back(self, tmp_path: Path) -> None:
        config = load_config_or_default(tmp_path / "release.toml")
        assert config.repo_path == tmp_path
        assert config.repository.branch == "develop"
