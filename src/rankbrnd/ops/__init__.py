"""
Operations layer: business logic for rankbrnd.

Every operation takes an :class:`OperationContext` first and returns an
:class:`OperationResult` (or :class:`PagedResult`). Operations never
raise, know nothing about HTTP or the CLI, and honour ``dry_run``.

Usage::

    from rankbrnd.ops import OperationContext
    from rankbrnd.ops.publishing_queue import get_queue_stats
    from rankbrnd.ops.requests import QueueStatsRequest

    ctx = OperationContext(conn=my_connection, user="user_1")
    result = get_queue_stats(ctx, QueueStatsRequest(organization_id="org_1"))
    assert result.success
"""

from rankbrnd.ops.context import OperationContext
from rankbrnd.ops.result import OperationError, OperationResult, PagedResult
from rankbrnd.ops.sqlite_conn import SqliteConnection

__all__ = [
    "OperationContext",
    "OperationError",
    "OperationResult",
    "PagedResult",
    "SqliteConnection",
]
