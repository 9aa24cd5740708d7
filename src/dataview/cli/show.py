"""
Dataview CLI - show command.

Fetches one page of a remote collection through a DataView and renders it
as a table (or JSON).
"""

import asyncio
import json
import logging
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from dataview.cli.errors import ExitCode, print_config_error, print_error, print_remote_error
from dataview.core.config.loader import load_config
from dataview.core.config.models import DataViewConfig
from dataview.core.dataset import DataSet, Record
from dataview.core.exceptions import ConfigError, RemoteOperationError
from dataview.core.query import Query
from dataview.core.remote import HttpRemoteSource, RemoteSource
from dataview.core.view import create

logger = logging.getLogger(__name__)

console = Console()


def parse_where(pairs: list[str] | None) -> dict[str, Any]:
    """
    Parse ``field=value`` filters.

    Values are decoded as JSON when possible (``age=42`` filters on the
    integer 42), otherwise kept as strings.

    Raises:
        typer.BadParameter: If a pair has no ``=`` or an empty field name
    """
    where: dict[str, Any] = {}
    for pair in pairs or []:
        name, sep, raw = pair.partition("=")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Expected field=value, got '{pair}'", param_hint="--where")
        try:
            value: Any = json.loads(raw)
        except json.JSONDecodeError:
            value = raw
        where[name.strip()] = value
    return where


def build_source(config: DataViewConfig, collection: str) -> RemoteSource:
    """Build the remote source for ``collection`` from configuration."""
    return HttpRemoteSource.from_config(config.remote, collection)


async def fetch_page(
    source: RemoteSource, config: DataViewConfig, query: Query
) -> list[dict[str, Any]]:
    """Refresh a view over ``source`` and return the page as plain dicts; closes the source."""
    try:
        data_set = DataSet.from_config(Record, source, config.dataset)
        view = create(data_set, query)
        page = await view.refresh()
        return [record.fields() for record in page]
    finally:
        close = getattr(source, "aclose", None)
        if close is not None:
            await close()


def render_table(collection: str, rows: list[dict[str, Any]], query: Query) -> Table:
    """Render records as a rich Table, one column per field seen."""
    columns: list[str] = []
    for row in rows:
        for name in row:
            if name not in columns:
                columns.append(name)

    title = collection if not query.is_paged else f"{collection} (page {query.page_index + 1})"
    table = Table(title=title)
    for name in columns:
        table.add_column(name)
    for row in rows:
        table.add_row(*("" if row.get(name) is None else str(row.get(name)) for name in columns))
    return table


def show(
    collection: str = typer.Argument(..., help="Remote collection to read (e.g. 'contacts')"),
    page_size: int | None = typer.Option(
        None,
        "--page-size",
        "-n",
        help="Records per page (defaults to query.page_size; 0 disables paging)",
    ),
    page: int = typer.Option(
        0,
        "--page",
        "-p",
        min=0,
        help="Zero-based page index",
    ),
    order_by: list[str] | None = typer.Option(
        None,
        "--order-by",
        "-o",
        help="Sort field, prefix with '-' for descending (can be repeated)",
    ),
    where: list[str] | None = typer.Option(
        None,
        "--where",
        "-w",
        help="Equality filter as field=value (can be repeated)",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Output records as JSON",
    ),
) -> None:
    """
    Show one page of a remote collection.

    Examples:
        dataview show contacts
        dataview show contacts --page-size 20 --page 2 --order-by -created
        dataview show contacts --where city=Paris --where active=true --json
    """
    filters = parse_where(where)

    try:
        config = load_config()
    except ConfigError as e:
        print_config_error(e.message)
        raise typer.Exit(ExitCode.USER_ERROR)

    try:
        query = Query(
            where=filters,
            order_by=order_by or None,
            page_size=page_size if page_size is not None else config.query.page_size,
            page_index=page,
        )
    except ValueError as e:
        print_error("Invalid query", reason=str(e))
        raise typer.Exit(ExitCode.USER_ERROR)

    try:
        source = build_source(config, collection)
    except RuntimeError as e:
        # Missing API key env var
        print_config_error(str(e))
        raise typer.Exit(ExitCode.USER_ERROR)

    try:
        rows = asyncio.run(fetch_page(source, config, query))
    except RemoteOperationError as e:
        logger.debug("show failed: %s", e.context)
        print_remote_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if as_json:
        console.print_json(json.dumps(rows, default=str))
        return

    if not rows:
        console.print(f"[dim]No records in {collection}[/dim]")
        return

    console.print(render_table(collection, rows, query))
