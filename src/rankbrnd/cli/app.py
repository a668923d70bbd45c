"""
Root Typer application for the rankbrnd CLI.

Sub-command modules import their ops lazily, inside each command, so
``rankbrnd --help`` stays fast.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="rankbrnd",
    help="rankbrnd: publishing queue, rank tracking and database tools.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from rankbrnd import __version__

        typer.echo(f"rankbrnd {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Override RANKBRND_LOG_LEVEL"),
) -> None:
    """rankbrnd CLI: run workers, manage the publishing queue and database."""
    from rankbrnd.core.logging import configure_logging
    from rankbrnd.core.settings import get_settings

    settings = get_settings()
    configure_logging(level=log_level or settings.log_level, json_format=settings.json_logs)


# ── Sub-command registration ─────────────────────────────────────────────

from rankbrnd.cli.db import app as db_app  # noqa: E402
from rankbrnd.cli.queue import app as queue_app  # noqa: E402
from rankbrnd.cli.serve import serve  # noqa: E402
from rankbrnd.cli.worker import app as worker_app  # noqa: E402

app.add_typer(db_app, name="db", help="Database operations.")
app.add_typer(queue_app, name="queue", help="Publishing queue management.")
app.add_typer(worker_app, name="worker", help="Run the publishing and rank tracking workers.")
app.command("serve")(serve)
