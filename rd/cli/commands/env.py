"""Env command - show detected capabilities and resolved configuration."""

from __future__ import annotations

from rd.cli.context import build_context
from rd.output.console import Style


def _flag(value: bool) -> str:
    return "yes" if value else "no"


def env() -> None:
    """Show what this host allows and which repository is configured."""
    ctx = build_context()
    caps = ctx.capabilities
    cfg = ctx.config

    ctx.console.header("Environment")
    ctx.console.print(f"  mode:           {caps.environment}")
    ctx.console.print(f"  filesystem:     {_flag(caps.can_access_filesystem)}")
    ctx.console.print(f"  source control: {_flag(caps.can_access_source_control)}")
    ctx.console.print(f"  spawn process:  {_flag(caps.can_spawn_processes)}")

    ctx.console.header("Configuration")
    source = str(ctx.config_path) if ctx.config_path.is_file() else "(defaults)"
    ctx.console.print(f"  config:    {source}", Style.DIM)
    ctx.console.print(f"  repo:      {cfg.repo_path}")
    ctx.console.print(f"  tracking:  {cfg.repository.remote_branch}")
    ctx.console.print(f"  publish:   {' '.join(cfg.publish.command)}")
    ctx.console.print(f"  builds:    {cfg.builds_path}")
    ctx.console.print(f"  platforms: {', '.join(cfg.platform_names)}")
