"""Status command - last release, pending changes and build artifacts."""

from __future__ import annotations

import json

import typer

from rd.cli.context import CLIContext, build_context
from rd.output.console import Style
from rd.services.release.artifacts import BuildArtifactInfo
from rd.services.release.model import CommitRecord
from rd.services.release.status import RepositoryStateReader, RepositoryStatus, status_to_dict


def _print_commits(ctx: CLIContext, title: str, commits: tuple[CommitRecord, ...]) -> None:
    if not commits:
        return
    ctx.console.print(f"  {title} ({len(commits)})", Style.INFO)
    for c in commits:
        scope = f"{c.scope}: " if c.scope else ""
        ctx.console.print(f"    {c.short_hash}  {scope}{c.subject}")


def _print_artifact(ctx: CLIContext, name: str, info: BuildArtifactInfo | None) -> None:
    if info is None:
        ctx.console.print(f"  {name}: no build", Style.DIM)
        return
    primary = f" [{info.primary_artifact_name}]" if info.primary_artifact_name else ""
    ctx.console.print(
        f"  {name}: {info.size_formatted}, {info.file_count} files{primary}"
        f" (modified {info.last_modified_at or '?'})"
    )


def print_status(ctx: CLIContext, st: RepositoryStatus) -> None:
    if st.message:
        ctx.console.warning(st.message)

    ctx.console.header("Release")
    ctx.console.print(f"  environment: {st.capabilities.environment}")
    ctx.console.print(f"  last tag:    {st.last_release_tag or '(none)'}")
    ctx.console.print(f"  version:     {st.version_from_tag}")
    if st.tag_created_at:
        ctx.console.print(f"  tagged at:   {st.tag_created_at}", Style.DIM)
    if st.latest_remote_commit_hash:
        date = f" ({st.latest_remote_commit_date})" if st.latest_remote_commit_date else ""
        ctx.console.print(f"  head:        {st.latest_remote_commit_hash}{date}", Style.DIM)

    draft = st.pending_changes
    ctx.console.header("Pending")
    if draft is None or not st.has_new_commits:
        ctx.console.print("  no new commits since last release", Style.DIM)
    else:
        ctx.console.print(
            f"  {draft.total_commits} commit(s), {draft.bump} bump -> {draft.suggested_version}",
            Style.SUCCESS,
        )
        _print_commits(ctx, "features", draft.feature_items)
        _print_commits(ctx, "fixes", draft.fix_items)
        _print_commits(ctx, "improvements", draft.improvement_items)
        _print_commits(ctx, "other", draft.other_items)

    if st.builds_path is not None:
        ctx.console.header(f"Builds ({st.builds_path})")
        for name, info in st.artifacts.items():
            _print_artifact(ctx, name, info)


def status(
    as_json: bool = typer.Option(False, "--json", help="Print the status as JSON."),
) -> None:
    """Show the last release, pending commits and build artifacts."""
    ctx = build_context()
    reader = RepositoryStateReader(ctx.config, ctx.capabilities)
    st = reader.get_status()

    if as_json:
        typer.echo(json.dumps(status_to_dict(st), indent=2, ensure_ascii=False))
        return

    print_status(ctx, st)
