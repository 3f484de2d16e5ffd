from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from rd.core.capabilities import Capabilities, detect_capabilities
from rd.core.config import CONFIG_FILENAME, ReleaseConfig, load_config, load_config_or_default
from rd.core.errors import ErrorCode
from rd.core.result import Err
from rd.output.console import ConsoleProtocol, RichConsole

CONFIG_ENV_VAR = "RD_CONFIG"


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: ReleaseConfig
    config_path: Path
    capabilities: Capabilities
    console: ConsoleProtocol


def config_path_from_env() -> tuple[Path, bool]:
    """Return (path, explicit). Explicit paths must exist; the default may not."""
    raw = os.environ.get(CONFIG_ENV_VAR)
    if raw:
        return Path(raw).expanduser().resolve(), True
    return (Path.cwd() / CONFIG_FILENAME).resolve(), False


def build_context() -> CLIContext:
    path, explicit = config_path_from_env()

    if explicit and not path.is_file():
        typer.echo(f"error: config file not found: {path}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    if path.is_file():
        config_result = load_config(path)
        if isinstance(config_result, Err):
            typer.echo(f"error: {config_result.error.message}", err=True)
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
        config = config_result.value
    else:
        config = load_config_or_default(path)

    return CLIContext(
        config=config,
        config_path=path,
        capabilities=detect_capabilities(),
        console=RichConsole(),
    )
