"""Tag commands - create or roll back a release tag by hand."""

from __future__ import annotations

import typer

from rd.cli.commands._helpers import exit_on_error, exit_with_code
from rd.cli.context import CLIContext, build_context
from rd.core.errors import ErrorCode
from rd.core.result import Err
from rd.git.repository import Repository
from rd.output.console import Style
from rd.services.release.tags import TagManager


def _require_git(ctx: CLIContext) -> None:
    if not ctx.capabilities.can_access_source_control:
        ctx.console.error("tag management requires source-control access")
        exit_with_code(ErrorCode.ENV_ERROR)


def _manager(ctx: CLIContext) -> TagManager:
    repo_cfg = ctx.config.repository
    return TagManager(
        Repository(ctx.config.repo_path),
        remote=repo_cfg.remote,
        branch=repo_cfg.branch,
        tag_prefix=repo_cfg.tag_prefix,
    )


def tag(
    version: str = typer.Argument(..., help="Version to tag, e.g. 1.3.0"),
    message: str | None = typer.Option(None, "--message", "-m", help="Tag annotation."),
) -> None:
    """Create an annotated release tag on the tracked branch and push it."""
    ctx = build_context()
    _require_git(ctx)
    manager = _manager(ctx)

    result = manager.create_tag(version, message)
    if isinstance(result, Err) and result.error.kind in ("invalid_version", "tag_exists"):
        exit_on_error(result, ctx, ErrorCode.USER_ERROR)
    outcome = exit_on_error(result, ctx, ErrorCode.GIT_ERROR)

    ctx.console.success(f"created {outcome.tag} at {manager.remote_branch} and pushed it")


def untag(
    version: str = typer.Argument(..., help="Version whose tag should be removed."),
) -> None:
    """Delete a release tag locally and on the remote."""
    ctx = build_context()
    _require_git(ctx)

    outcome = _manager(ctx).rollback(version)
    if outcome.clean:
        ctx.console.success(f"{outcome.tag} removed")
        return

    ctx.console.error(f"could not fully remove {outcome.tag}")
    for err in outcome.errors:
        ctx.console.print(f"  {err}", Style.DIM)
    exit_with_code(ErrorCode.GIT_ERROR)
