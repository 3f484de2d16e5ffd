from __future__ import annotations

import os
from pathlib import Path

import typer

from rd import __version__
from rd.cli.commands.deploy import deploy
from rd.cli.commands.env import env
from rd.cli.commands.notes import notes
from rd.cli.commands.status import status
from rd.cli.commands.tags import tag, untag
from rd.cli.context import CONFIG_ENV_VAR
from rd.core.errors import ErrorCode
from rd.output.logging import setup_logging


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(status)
app.command()(notes)
app.command()(tag)
app.command()(untag)
app.command()(deploy)
app.command()(env)


@app.callback(invoke_without_command=True)
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to release.toml (default: $RD_CONFIG or ./release.toml)",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging."),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    setup_logging(verbose=verbose)

    if config is not None:
        try:
            path = config.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --config: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not path.is_file():
            typer.echo(f"error: --config '{path}' does not exist", err=True)
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

        os.environ[CONFIG_ENV_VAR] = str(path)


def main() -> None:
    app()
