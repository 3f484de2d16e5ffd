"""Typed release configuration loaded from ``release.toml``.

Every component that needs the repository path, remote, branch or publish
command receives it from a ``ReleaseConfig`` instance; nothing is derived from
the process working directory.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_int, get_str, get_str_list, get_table

__all__ = [
    "BuildsConfig",
    "ConfigError",
    "PlatformConfig",
    "PublishConfig",
    "ReleaseConfig",
    "RepositoryConfig",
    "CONFIG_FILENAME",
    "DEFAULT_DEPLOY_TIMEOUT_SECONDS",
    "DEFAULT_LOOKBACK",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILENAME = "release.toml"

DEFAULT_REMOTE = "origin"
DEFAULT_BRANCH = "develop"
DEFAULT_TAG_PREFIX = "v"
# Commits listed when the branch has no release tag yet
DEFAULT_LOOKBACK = 50
DEFAULT_DEPLOY_TIMEOUT_SECONDS = 10 * 60
DEFAULT_BUILDS_DIR = "Builds/current"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class RepositoryConfig:
    """The one source repository this engine releases."""

    path: Path = Path(".")
    remote: str = DEFAULT_REMOTE
    branch: str = DEFAULT_BRANCH
    tag_prefix: str = DEFAULT_TAG_PREFIX
    lookback: int = DEFAULT_LOOKBACK

    @property
    def remote_branch(self) -> str:
        """Tracked ref, e.g. ``origin/develop``."""
        return f"{self.remote}/{self.branch}"


@dataclass(frozen=True, slots=True)
class PublishConfig:
    """External publish program invocation."""

    command: tuple[str, ...] = ("bash", "distribute.sh")
    timeout_seconds: float = DEFAULT_DEPLOY_TIMEOUT_SECONDS
    no_notes_flag: str = "--no-changelog"
    no_notify_flag: str = "--no-notify"


@dataclass(frozen=True, slots=True)
class BuildsConfig:
    dir: str = DEFAULT_BUILDS_DIR


@dataclass(frozen=True, slots=True)
class PlatformConfig:
    """A build target.

    Attributes:
        name: Platform id used on the CLI and in events (``mac``, ``windows``)
        flag: Publish-program flag selecting only this platform
        artifact_suffix: Suffix of the primary artifact (``.app``, ``.exe``)
    """

    name: str
    flag: str
    artifact_suffix: str


def _default_platforms() -> tuple[PlatformConfig, ...]:
    return (
        PlatformConfig(name="mac", flag="--mac", artifact_suffix=".app"),
        PlatformConfig(name="windows", flag="--windows", artifact_suffix=".exe"),
    )


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Main configuration container."""

    repository: RepositoryConfig = field(default_factory=RepositoryConfig)
    publish: PublishConfig = field(default_factory=PublishConfig)
    builds: BuildsConfig = field(default_factory=BuildsConfig)
    platforms: tuple[PlatformConfig, ...] = field(default_factory=_default_platforms)

    @property
    def repo_path(self) -> Path:
        return self.repository.path

    @property
    def builds_path(self) -> Path:
        return self.repository.path / self.builds.dir

    @property
    def platform_names(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.platforms)

    def platform(self, name: str) -> PlatformConfig | None:
        for p in self.platforms:
            if p.name == name:
                return p
        return None

    @classmethod
    def from_dict(cls, data: Mapping[str, object], *, base_dir: Path | None = None) -> ReleaseConfig:
        """Create a config from a parsed TOML mapping.

        Relative repository paths are resolved against ``base_dir`` (the
        directory holding the config file) when given.
        """
        repo: StrDict = get_table(data, "repository") or {}
        publish: StrDict = get_table(data, "publish") or {}
        builds: StrDict = get_table(data, "builds") or {}
        platforms_table: StrDict = get_table(data, "platforms") or {}

        repo_path = Path(get_str(repo, "path") or ".").expanduser()
        if base_dir is not None and not repo_path.is_absolute():
            repo_path = base_dir / repo_path

        lookback = get_int(repo, "lookback")
        if lookback is not None and lookback <= 0:
            raise ValueError(f"repository.lookback must be positive, got {lookback}")

        timeout = get_int(publish, "timeout_seconds")
        if timeout is not None and timeout <= 0:
            raise ValueError(f"publish.timeout_seconds must be positive, got {timeout}")

        raw_prefix = repo.get("tag_prefix")
        tag_prefix = raw_prefix.strip() if isinstance(raw_prefix, str) else DEFAULT_TAG_PREFIX

        command = get_str_list(publish, "command")
        if command is not None and not command:
            raise ValueError("publish.command must not be empty")

        platforms: list[PlatformConfig] = []
        for name, raw in platforms_table.items():
            table = as_str_dict(raw)
            if table is None:
                raise ValueError(f"platforms.{name} must be a table")
            platforms.append(
                PlatformConfig(
                    name=name,
                    flag=get_str(table, "flag") or f"--{name}",
                    artifact_suffix=get_str(table, "artifact_suffix") or "",
                )
            )

        defaults = PublishConfig()
        return cls(
            repository=RepositoryConfig(
                path=repo_path,
                remote=get_str(repo, "remote") or DEFAULT_REMOTE,
                branch=get_str(repo, "branch") or DEFAULT_BRANCH,
                tag_prefix=tag_prefix,
                lookback=lookback or DEFAULT_LOOKBACK,
            ),
            publish=PublishConfig(
                command=tuple(command) if command else defaults.command,
                timeout_seconds=timeout or DEFAULT_DEPLOY_TIMEOUT_SECONDS,
                no_notes_flag=get_str(publish, "no_notes_flag") or defaults.no_notes_flag,
                no_notify_flag=get_str(publish, "no_notify_flag") or defaults.no_notify_flag,
            ),
            builds=BuildsConfig(dir=get_str(builds, "dir") or DEFAULT_BUILDS_DIR),
            platforms=tuple(platforms) if platforms else _default_platforms(),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[ReleaseConfig, ConfigError]:
    """Load and parse ``release.toml``.

    Args:
        path: Path to the config file

    Returns:
        Ok(ReleaseConfig) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(ReleaseConfig.from_dict(result.value, base_dir=path.parent))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> ReleaseConfig:
    """Load config from file, or fall back to defaults rooted at the file's directory."""
    result = load_config(path)
    if isinstance(result, Ok):
        return result.value
    return ReleaseConfig(repository=RepositoryConfig(path=path.parent))
