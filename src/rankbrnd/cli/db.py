"""
CLI: ``rankbrnd db``, database management commands.
"""

from __future__ import annotations

import typer

from rankbrnd.cli.utils import make_context, output_result

app = typer.Typer(no_args_is_help=True)


@app.command()
def init(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL or path"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview without changes"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Create all tables (idempotent)."""
    from rankbrnd.ops.database import initialize_database

    ctx, _conn = make_context(database, dry_run=dry_run)
    result = initialize_database(ctx)
    output_result(result, as_json=json_out, title="Database Init")


@app.command()
def health(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Check database connectivity."""
    from rankbrnd.ops.database import check_database_health

    ctx, _conn = make_context(database)
    output_result(check_database_health(ctx), as_json=json_out, title="Database Health")


@app.command()
def tables(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Row counts for every table."""
    from rankbrnd.ops.database import get_table_counts

    ctx, _conn = make_context(database)
    output_result(get_table_counts(ctx), as_json=json_out, title="Table Counts")
