"""Deploy command - tag, run the publish program and stream its output."""

from __future__ import annotations

import sys

import typer

from rd.cli.commands._helpers import exit_with_code
from rd.cli.context import CLIContext, build_context
from rd.core.errors import ErrorCode
from rd.output.console import Style
from rd.services.release.events import (
    CompleteEvent,
    DeployEvent,
    ErrorEvent,
    OutputEvent,
    StartEvent,
    to_ndjson,
    to_sse,
)
from rd.services.release.executor import DeploymentExecutor, DeployOptions


def render_event(ctx: CLIContext, event: DeployEvent) -> None:
    """Human-readable rendering of one event."""
    match event:
        case StartEvent(message=message):
            ctx.console.info(message)
        case OutputEvent(source=source, data=data):
            ctx.console.raw(data, Style.STDERR if source == "stderr" else Style.DEFAULT)
        case CompleteEvent() if event.success:
            version = f" {event.resolved_version}" if event.resolved_version else ""
            ctx.console.newline()
            ctx.console.success(f"deployed{version} to {', '.join(event.platforms)}")
            if event.tag_created:
                ctx.console.print("release tag created by this run", Style.DIM)
        case CompleteEvent():
            ctx.console.newline()
            ctx.console.error(f"publish program exited with code {event.exit_code}")
            if event.rolled_back:
                ctx.console.print("release tag rolled back", Style.DIM)
            if event.tag_error:
                ctx.console.warning(event.tag_error)
        case ErrorEvent(message=message):
            ctx.console.error(message)


def deploy(
    platform: list[str] = typer.Option(
        [], "--platform", "-p", help="Target platform (repeatable)."
    ),
    version: str | None = typer.Option(
        None, "--version", "-v", help="Tag this version before publishing."
    ),
    no_notify: bool = typer.Option(False, "--no-notify", help="Skip release notifications."),
    no_notes: bool = typer.Option(False, "--no-notes", help="Skip publishing release notes."),
    as_json: bool = typer.Option(False, "--json", help="Emit events as NDJSON."),
    as_sse: bool = typer.Option(False, "--sse", help="Emit events as server-sent events."),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Override the configured timeout (seconds)."
    ),
) -> None:
    """Run the publish program for the selected platforms."""
    ctx = build_context()
    if as_json and as_sse:
        ctx.console.error("--json and --sse are mutually exclusive")
        exit_with_code(ErrorCode.USER_ERROR)

    executor = DeploymentExecutor(ctx.config, ctx.capabilities)
    run = executor.execute(
        platform,
        version,
        DeployOptions(notify=not no_notify, publish_notes=not no_notes),
        timeout=timeout,
    )

    events = iter(run)
    try:
        for event in events:
            if as_json:
                sys.stdout.write(to_ndjson(event))
                sys.stdout.flush()
            elif as_sse:
                sys.stdout.write(to_sse(event))
                sys.stdout.flush()
            else:
                render_event(ctx, event)
    except KeyboardInterrupt:
        events.close()
        ctx.console.error("interrupted")
        exit_with_code(ErrorCode.DEPLOY_ERROR)

    final = run.terminal_event
    if not (isinstance(final, CompleteEvent) and final.success):
        exit_with_code(ErrorCode.DEPLOY_ERROR)
