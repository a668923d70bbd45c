"""
CLI: ``rankbrnd queue``, publishing queue commands.
"""

from __future__ import annotations

import typer

from rankbrnd.cli.utils import make_context, output_paged, output_result

app = typer.Typer(no_args_is_help=True)

_LIST_COLUMNS = ["id", "organization_id", "platform", "status", "priority", "retry_count", "scheduled_for", "last_error"]


@app.command("list")
def list_items(
    organization_id: str | None = typer.Option(None, "--org", "-o", help="Organization ID"),
    status: str | None = typer.Option(None, "--status", "-s"),
    platform: str | None = typer.Option(None, "--platform", "-p"),
    limit: int = typer.Option(50, "--limit", "-n"),
    offset: int = typer.Option(0, "--offset"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List publishing queue items, newest first."""
    from rankbrnd.ops.publishing_queue import list_queue_items
    from rankbrnd.ops.requests import ListQueueItemsRequest

    ctx, _ = make_context(database)
    request = ListQueueItemsRequest(
        organization_id=organization_id,
        status=status,
        platform=platform,
        limit=limit,
        offset=offset,
    )
    output_paged(list_queue_items(ctx, request), as_json=json_out, title="Publishing Queue", columns=_LIST_COLUMNS)


@app.command("retry")
def retry(
    item_id: str = typer.Argument(..., help="Queue item ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Send a failed or cancelled item back to pending."""
    from rankbrnd.ops.publishing_queue import retry_queue_item
    from rankbrnd.ops.requests import QueueItemRequest

    ctx, _ = make_context(database)
    output_result(retry_queue_item(ctx, QueueItemRequest(item_id=item_id)), as_json=json_out, title="Retried")


@app.command("cancel")
def cancel(
    item_id: str = typer.Argument(..., help="Queue item ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Cancel a pending or queued item."""
    from rankbrnd.ops.publishing_queue import cancel_queue_item
    from rankbrnd.ops.requests import QueueItemRequest

    ctx, _ = make_context(database)
    output_result(cancel_queue_item(ctx, QueueItemRequest(item_id=item_id)), as_json=json_out, title="Cancelled")


@app.command("stats")
def stats(
    organization_id: str | None = typer.Option(None, "--org", "-o"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Count of items per status."""
    from rankbrnd.ops.publishing_queue import get_queue_stats
    from rankbrnd.ops.requests import QueueStatsRequest

    ctx, _ = make_context(database)
    output_result(
        get_queue_stats(ctx, QueueStatsRequest(organization_id=organization_id)),
        as_json=json_out,
        title="Queue Stats",
    )
