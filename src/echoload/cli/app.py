"""Main Typer application, the entry point for the ``echoload`` CLI."""

from __future__ import annotations

import typer

from echoload import __version__
from echoload.cli.profiles import profiles_cmd
from echoload.cli.run import run_cmd

app = typer.Typer(
    name="echoload",
    help="Load-test an HTTP service that echoes requested ids.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("run", help="Run the echo-id scenario against MY_APP_URL.")(run_cmd)
app.command("profiles", help="List the available run option profiles.")(profiles_cmd)


def _version_callback(value: bool) -> None:
    """Print version and exit.

    Args:
        value: True if --version was passed.
    """
    if value:
        typer.echo(f"echoload {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """echoload: ramp virtual users against an id-echo HTTP service."""
