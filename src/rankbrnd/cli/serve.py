"""
CLI: ``rankbrnd serve``, start the API server.
"""

from __future__ import annotations

import typer
import uvicorn

from rankbrnd.cli.utils import console


def serve(
    host: str | None = typer.Option(None, "--host", "-h", help="Bind address (default RANKBRND_HOST)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port (default RANKBRND_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on changes"),
    workers: int = typer.Option(1, "--workers", "-w", help="Number of worker processes"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Start the rankbrnd REST API server."""
    from rankbrnd.api.settings import RankBrndAPISettings

    settings = RankBrndAPISettings()
    host = host or settings.host
    port = port or settings.port
    console.print(f"[bold green]Starting rankbrnd API[/bold green] on {host}:{port}")
    uvicorn.run(
        "rankbrnd.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=log_level,
    )
