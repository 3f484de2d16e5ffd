"""Notes command - print the release-note draft for pending commits."""

from __future__ import annotations

import typer

from rd.cli.commands._helpers import exit_with_code
from rd.cli.context import build_context
from rd.core.errors import ErrorCode
from rd.output.console import Style
from rd.services.release.notes import compose_release_notes, draft_release_notes
from rd.services.release.semver import SemanticVersion, version_from_tag
from rd.services.release.status import RepositoryStateReader


def notes(
    version: str | None = typer.Option(
        None, "--version", "-v", help="Heading version (default: suggested version)."
    ),
) -> None:
    """Print Markdown release notes for commits since the last release."""
    ctx = build_context()
    if not ctx.capabilities.can_access_source_control:
        ctx.console.error("release notes require source-control access")
        exit_with_code(ErrorCode.ENV_ERROR)

    parsed = SemanticVersion.parse(version) if version is not None else None
    if version is not None and parsed is None:
        ctx.console.error(f"invalid version: {version}")
        ctx.console.print("hint: expected MAJOR.MINOR.PATCH", Style.DIM)
        exit_with_code(ErrorCode.USER_ERROR)

    reader = RepositoryStateReader(ctx.config, ctx.capabilities)
    reader.fetch_remote()
    tag = reader.resolve_last_release_tag()
    commits = reader.pending_commits(tag)
    if not commits:
        ctx.console.print(f"No changes since {tag or 'the beginning of history'}", Style.DIM)
        return

    if parsed is not None:
        heading = parsed.render()
    else:
        current = version_from_tag(tag, ctx.config.repository.tag_prefix)
        heading = draft_release_notes(commits, current).suggested_version

    typer.echo(compose_release_notes(commits, heading))
