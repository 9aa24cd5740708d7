"""
Dataview CLI - config command.

Shows the resolved configuration and the files it was merged from.
"""

import typer
from rich.console import Console
from rich.table import Table

from dataview.cli.errors import ExitCode, print_config_error
from dataview.core.config.loader import (
    get_project_config_path,
    get_user_config_path,
    load_config,
)
from dataview.core.exceptions import ConfigError

console = Console()


def config(
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Output only the resolved configuration as JSON",
    ),
) -> None:
    """
    Show the resolved configuration.

    Precedence: DATAVIEW_* env vars > .dataview.json > user config > defaults.

    Examples:
        dataview config
        dataview config --json
    """
    try:
        resolved = load_config(use_cache=False)
    except ConfigError as e:
        print_config_error(e.message)
        raise typer.Exit(ExitCode.USER_ERROR)

    if as_json:
        console.print_json(resolved.model_dump_json())
        return

    sources = Table(title="Configuration files", show_header=True)
    sources.add_column("Layer")
    sources.add_column("Path")
    sources.add_column("Present")
    for layer, path in (
        ("user", get_user_config_path()),
        ("project", get_project_config_path()),
    ):
        present = "[green]yes[/green]" if path.exists() else "[dim]no[/dim]"
        sources.add_row(layer, str(path), present)
    console.print(sources)
    console.print_json(resolved.model_dump_json())
