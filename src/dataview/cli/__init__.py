"""
Dataview CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys

import typer

from dataview import __version__
from dataview.cli import config_cmd, show
from dataview.core.config.env import load_layered_env

app = typer.Typer(
    name="dataview",
    help="Browse remote collections through filtered, paged data views",
    no_args_is_help=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for all commands.

    Args:
        debug: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"dataview {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """
    Dataview - reactive views over remote collections.

    Quick Start:
        dataview config                          # Inspect configuration
        dataview show contacts --page-size 20    # First page of a collection
    """
    # Precedence: OS env > project .env > user .env
    load_layered_env()
    setup_logging(debug)
    ctx.obj = {"debug": debug}


app.command(name="show")(show.show)
app.command(name="config")(config_cmd.config)


__all__ = ["app", "main", "setup_logging"]
