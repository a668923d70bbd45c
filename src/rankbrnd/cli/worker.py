"""
CLI: ``rankbrnd worker``, run the batch workers once or on an interval.

Example::

    rankbrnd worker publish --platform wordpress
    rankbrnd worker rank-tracking --org 01J... --device mobile
    rankbrnd worker publish --every 60
"""

from __future__ import annotations

import time

import typer

from rankbrnd.cli.utils import console, make_context, output_result

app = typer.Typer(no_args_is_help=True)


def _repeat(every: float | None, run) -> None:
    if not every:
        run()
        return
    console.print(f"[bold green]Running every {every:g}s[/bold green] (Ctrl+C to stop)")
    try:
        while True:
            try:
                run()
            except typer.Exit as exc:
                if exc.exit_code:
                    console.print("[yellow]Run failed; retrying next interval[/yellow]")
            time.sleep(every)
    except KeyboardInterrupt:
        console.print("\n[yellow]Worker stopped by user[/yellow]")


@app.command("publish")
def publish(
    platform: str | None = typer.Option(None, "--platform", "-p", help="Only this CMS platform"),
    organization_id: str | None = typer.Option(None, "--org", "-o", help="Only this organization"),
    limit: int | None = typer.Option(None, "--limit", "-n", help="Items per phase (capped)"),
    every: float | None = typer.Option(None, "--every", help="Repeat every N seconds"),
    database: str | None = typer.Option(None, "--database", "-d"),
    dry_run: bool = typer.Option(False, "--dry-run"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Run the scheduled, queued and retry publishing phases."""
    from rankbrnd.ops.requests import RunPublishWorkerRequest
    from rankbrnd.ops.workers import run_publishing_worker

    def _run() -> None:
        ctx, conn = make_context(database, dry_run=dry_run)
        try:
            request = RunPublishWorkerRequest(platform=platform, organization_id=organization_id, limit=limit)
            result = run_publishing_worker(ctx, request)
            output_result(result, as_json=json_out, title="Publishing Worker")
        finally:
            conn.close()

    _repeat(every, _run)


@app.command("rank-tracking")
def rank_tracking(
    organization_id: str | None = typer.Option(None, "--org", "-o", help="Only this organization"),
    product_id: str | None = typer.Option(None, "--product"),
    device: str | None = typer.Option(None, "--device", help="desktop or mobile"),
    location: str | None = typer.Option(None, "--location", help="Country code, e.g. us, gb"),
    limit: int | None = typer.Option(None, "--limit", "-n", help="Keywords per run (capped)"),
    every: float | None = typer.Option(None, "--every", help="Repeat every N seconds"),
    database: str | None = typer.Option(None, "--database", "-d"),
    dry_run: bool = typer.Option(False, "--dry-run"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Track keyword rankings through DataForSEO."""
    from rankbrnd.ops.requests import RunRankWorkerRequest
    from rankbrnd.ops.workers import run_rank_tracking_worker

    request = RunRankWorkerRequest(
        organization_id=organization_id,
        product_id=product_id,
        device=device,
        location=location,
        limit=limit,
    )

    def _run() -> None:
        ctx, conn = make_context(database, dry_run=dry_run)
        try:
            output_result(run_rank_tracking_worker(ctx, request), as_json=json_out, title="Rank Tracking Worker")
        finally:
            conn.close()

    _repeat(every, _run)


@app.command("status")
def status(
    platform: str | None = typer.Option(None, "--platform", "-p"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Items waiting in each publishing phase, plus rank tracking counts."""
    from rankbrnd.ops.requests import RunPublishWorkerRequest
    from rankbrnd.ops.workers import publishing_worker_status, rank_tracking_worker_stats

    ctx, _ = make_context(database)
    output_result(
        publishing_worker_status(ctx, RunPublishWorkerRequest(platform=platform)),
        as_json=json_out,
        title="Publishing Worker",
    )
    output_result(rank_tracking_worker_stats(ctx), as_json=json_out, title="Rank Tracking Worker")
