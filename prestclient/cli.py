"""
prest CLI - query a pREST gateway from the command line

Usage:
    prest --help
    prest config set url http://localhost:3000
    prest tables public
    prest list public.categories --page 1 --page-size 10 --where "category_id>=3"
    prest show categories
    prest export categories --output categories.csv
    prest run reports.daily_sales --param day=2024-01-01
"""

import json
import logging
import sys
from dataclasses import asdict
from typing import Any, Iterable, List, Optional, Tuple

import click
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from .client import PrestClient
from .config import (
    CONFIG_KEYS,
    clear_config,
    config_path,
    load_config,
    load_settings,
    save_config,
    setting_source,
)
from .exceptions import ConfigurationError, HttpError, PrestError
from .query import ChainedQuery

console = Console()

# Longer tokens first so ">=" wins over ">" at the same position.
WHERE_OPERATORS = (
    (">=", "gte"),
    ("<=", "lte"),
    ("!=", "ne"),
    (">", "gt"),
    ("<", "lt"),
    ("~", "ilike"),
    ("=", "eq"),
)


# =============================================================================
# HELPERS
# =============================================================================

def get_client(ctx) -> PrestClient:
    """Build a client from CLI options, environment and config file."""
    obj = ctx.obj
    try:
        settings = load_settings(
            url=obj.get("url"),
            username=obj.get("username"),
            password=obj.get("password"),
            auth_header=obj.get("auth_header")
        )
        return PrestClient.from_settings(settings)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        console.print("[dim]Set credentials with: prest config set username <user>[/dim]")
        sys.exit(1)


def handle_error(error: PrestError):
    """Print a client error with rich formatting and exit."""
    if isinstance(error, HttpError):
        console.print(f"\n[bold red]Error {error.status_code}[/bold red]")
        console.print(f"[red]{error.message}[/red]")
        if error.url:
            console.print(f"[dim]URL: {error.url}[/dim]")
    else:
        console.print(f"[red]Error: {error.message}[/red]")
    sys.exit(1)


def parse_where(expression: str) -> Tuple[str, str, str]:
    """
    Split ``field<op>value`` into (field, method, value).

    Supported operators: = != > >= < <= and ~ (case-insensitive like).
    The leftmost operator wins, so values may contain operator characters.
    """
    best = None
    for token, method in WHERE_OPERATORS:
        index = expression.find(token)
        if index > 0 and (best is None or index < best[0]):
            best = (index, token, method)
    if best is None:
        raise click.BadParameter(f"Expected FIELD<op>VALUE, got {expression!r}")
    index, token, method = best
    return expression[:index].strip(), method, expression[index + len(token):].strip()


def apply_where(query: ChainedQuery, expressions: Iterable[str]) -> ChainedQuery:
    for expression in expressions:
        field, method, value = parse_where(expression)
        query = getattr(query, method)(field, value)
    return query


def run_query(query: ChainedQuery) -> Any:
    try:
        return query.execute()
    except PrestError as e:
        handle_error(e)


def print_rows(ctx, rows: Any, title: str):
    """Render query results as a rich table, or JSON with --json."""
    if ctx.obj.get("output_json") or not isinstance(rows, list):
        console.print(Syntax(json.dumps(rows, indent=2, default=str), "json"))
        return

    if not rows:
        console.print("[yellow]No rows returned[/yellow]")
        return

    columns: List[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)

    table = Table(title=title, show_header=True)
    for column in columns:
        table.add_column(column, style="cyan" if column == columns[0] else None)
    for row in rows:
        table.add_row(*("" if row.get(c) is None else str(row.get(c)) for c in columns))

    console.print(table)
    console.print(f"[dim]{len(rows)} rows[/dim]")


# =============================================================================
# MAIN CLI GROUP
# =============================================================================

@click.group()
@click.option("--url", envvar="PREST_URL", help="Gateway URL")
@click.option("--username", "-u", envvar="PREST_USERNAME", help="Basic auth user")
@click.option("--password", "-p", envvar="PREST_PASSWORD", help="Basic auth password")
@click.option("--auth-header", envvar="PREST_AUTH_HEADER", help="Complete Authorization header value")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.option("--verbose", "-v", is_flag=True, help="Log requests to stderr")
@click.version_option(version="1.0.0", prog_name="prest")
@click.pass_context
def cli(ctx, url, username, password, auth_header, output_json, verbose):
    """
    prest - query a pREST gateway from the command line.

    \b
    Quick Start:
        prest config set url http://localhost:3000
        prest config set username prest
        prest config set password prest
        prest tables public
    """
    ctx.ensure_object(dict)
    ctx.obj["url"] = url
    ctx.obj["username"] = username
    ctx.obj["password"] = password
    ctx.obj["auth_header"] = auth_header
    ctx.obj["output_json"] = output_json
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


# =============================================================================
# CONFIG COMMANDS
# =============================================================================

@cli.group()
def config():
    """Manage CLI configuration."""
    pass


@config.command("show")
def config_show():
    """Show current configuration."""
    cfg = load_config()
    settings = load_settings()

    table = Table(title="Configuration", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_column("Source", style="dim")

    for key in CONFIG_KEYS:
        value = getattr(settings, key)
        if value is None:
            shown = "(not set)"
        elif key in ("password", "auth_header"):
            shown = "********"
        else:
            shown = str(value)
        table.add_row(key, shown, setting_source(key))

    table.add_row("config file", str(config_path()), "exists" if cfg else "")
    console.print(table)


@config.command("set")
@click.argument("key", type=click.Choice(list(CONFIG_KEYS)))
@click.argument("value")
def config_set(key, value):
    """Set a configuration value."""
    cfg = load_config()
    cfg[key] = value
    save_config(cfg)
    shown = "********" if key in ("password", "auth_header") else value
    console.print(f"[green]✓[/green] Set {key} = {shown}")


@config.command("clear")
def config_clear():
    """Clear all configuration."""
    if clear_config():
        console.print("[green]✓[/green] Configuration cleared")
    else:
        console.print("[yellow]No configuration file found[/yellow]")


# =============================================================================
# TABLE COMMANDS
# =============================================================================

@cli.command()
@click.argument("schema", default="public")
@click.pass_context
def tables(ctx, schema):
    """List the tables of a schema."""
    with get_client(ctx) as client:
        rows = run_query(client.table(f"{schema}.").list())
    print_rows(ctx, rows, f"Tables in {schema}")


@cli.command("list")
@click.argument("table")
@click.option("--page", type=int, help="Page number")
@click.option("--page-size", type=int, help="Rows per page")
@click.option("--select", "-s", "fields", multiple=True, help="Columns to return")
@click.option("--order", "-o", multiple=True, help="Sort field, prefix with - for descending")
@click.option("--where", "-w", multiple=True, help="Filter as FIELD<op>VALUE, e.g. 'price>=10'")
@click.option("--count", is_flag=True, help="Return the row count only")
@click.option("--distinct", is_flag=True, help="Drop duplicate rows")
@click.pass_context
def list_rows(ctx, table, page, page_size, fields, order, where, count, distinct):
    """List rows of TABLE (schema.table)."""
    with get_client(ctx) as client:
        query = client.table(table).list()
        if fields:
            query = query.select(*fields)
        query = apply_where(query, where)
        if order:
            query = query.order(*order)
        if count:
            query = query.count()
        if distinct:
            query = query.distinct()
        if page is not None:
            query = query.page(page)
        if page_size is not None:
            query = query.page_size(page_size)
        rows = run_query(query)
    print_rows(ctx, rows, table)


@cli.command()
@click.argument("table")
@click.pass_context
def show(ctx, table):
    """Show column metadata of TABLE."""
    with get_client(ctx) as client:
        try:
            columns = client.describe(table)
        except PrestError as e:
            handle_error(e)

    if ctx.obj.get("output_json"):
        console.print(Syntax(json.dumps([asdict(c) for c in columns], indent=2), "json"))
        return

    out = Table(title=f"Columns of {table}", show_header=True)
    out.add_column("#", style="dim")
    out.add_column("Column", style="cyan")
    out.add_column("Type", style="yellow")
    out.add_column("Nullable", style="dim")
    out.add_column("Default", style="dim")
    for column in sorted(columns, key=lambda c: c.position or 0):
        out.add_row(
            str(column.position or ""),
            column.column_name,
            column.data_type,
            "yes" if column.nullable else "no",
            column.default_value or ""
        )
    console.print(out)


@cli.command()
@click.argument("table")
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), help="Write to file instead of stdout")
@click.option("--where", "-w", multiple=True, help="Filter as FIELD<op>VALUE")
@click.pass_context
def export(ctx, table, output, where):
    """Export TABLE as CSV."""
    with get_client(ctx) as client:
        payload = run_query(apply_where(client.table(table).export(), where))
    write_payload(payload, output)


@cli.command()
@click.argument("script")
@click.option("--param", "params", multiple=True, help="Script parameter as KEY=VALUE")
@click.option("--export", "as_export", is_flag=True, help="Use the export route and print raw output")
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), help="Write export output to file")
@click.pass_context
def run(ctx, script, params, as_export, output):
    """Run the stored query SCRIPT (path.script)."""
    with get_client(ctx) as client:
        accessor = client.query(script)
        query = accessor.export() if as_export else accessor.list()
        for param in params:
            key, sep, value = param.partition("=")
            if not sep or not key:
                raise click.BadParameter(f"Expected KEY=VALUE, got {param!r}", param_hint="--param")
            query = query.eq(key, value)
        result = run_query(query)

    if as_export:
        write_payload(result, output)
    else:
        print_rows(ctx, result, script)


def write_payload(payload: bytes, output: Optional[str]):
    if output:
        with open(output, "wb") as f:
            f.write(payload)
        console.print(f"[green]✓[/green] Wrote {len(payload)} bytes to {output}")
    else:
        click.echo(payload.decode("utf-8", "replace"), nl=False)


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
