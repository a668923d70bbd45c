"""
Database operations.

Thin wrappers around :mod:`rankbrnd.core.schema_loader` for table
creation, row counts and connectivity checks.
"""

from __future__ import annotations

import re
import time
from typing import Any

from rankbrnd.core.logging import get_logger
from rankbrnd.core.schema_loader import apply_all_schemas, get_schema_files
from rankbrnd.ops.context import OperationContext
from rankbrnd.ops.responses import DatabaseHealth, DatabaseInitResult, TableCount
from rankbrnd.ops.result import OperationResult, start_timer

logger = get_logger(__name__)

_CREATE_TABLE_RE = re.compile(r"CREATE TABLE IF NOT EXISTS\s+(\w+)", re.IGNORECASE)


def initialize_database(ctx: OperationContext) -> OperationResult[DatabaseInitResult]:
    """Create all rankbrnd tables (idempotent)."""
    timer = start_timer()

    if ctx.dry_run:
        return OperationResult.ok(
            DatabaseInitResult(tables_created=table_names(), dry_run=True),
            elapsed_ms=timer.elapsed_ms,
        )

    try:
        apply_all_schemas(ctx.conn)
        return OperationResult.ok(DatabaseInitResult(tables_created=table_names()), elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to create tables: {exc}", elapsed_ms=timer.elapsed_ms)


def get_table_counts(ctx: OperationContext) -> OperationResult[list[TableCount]]:
    """Row counts per table; ``-1`` for a table that does not exist yet."""
    timer = start_timer()
    counts: list[TableCount] = []

    for tbl in table_names():
        try:
            ctx.conn.execute(f"SELECT COUNT(*) FROM {tbl}")  # noqa: S608
            row = ctx.conn.fetchone()
            counts.append(TableCount(table=tbl, count=row[0] if row else 0))
        except Exception as exc:
            logger.debug("table_count_failed", table=tbl, error=str(exc))
            ctx.conn.rollback()
            counts.append(TableCount(table=tbl, count=-1))

    return OperationResult.ok(counts, elapsed_ms=timer.elapsed_ms)


def check_database_health(ctx: OperationContext) -> OperationResult[DatabaseHealth]:
    """Check database connectivity and how many tables exist."""
    timer = start_timer()

    try:
        start = time.perf_counter()
        ctx.conn.execute("SELECT 1")
        ctx.conn.fetchone()
        latency = (time.perf_counter() - start) * 1000

        present = sum(1 for c in get_table_counts(ctx).data or [] if c.count >= 0)
        return OperationResult.ok(
            DatabaseHealth(
                connected=True,
                backend=_detect_backend(ctx.conn),
                table_count=present,
                latency_ms=round(latency, 2),
            ),
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        logger.exception("op_failed", error=str(exc))
        return OperationResult.ok(
            DatabaseHealth(connected=False, backend="unknown"),
            warnings=[f"Health check error: {exc}"],
            elapsed_ms=timer.elapsed_ms,
        )


def table_names() -> list[str]:
    """Table names declared by the bundled schema files, sorted."""
    names: set[str] = set()
    for sql_file in get_schema_files():
        names.update(_CREATE_TABLE_RE.findall(sql_file.read_text(encoding="utf-8")))
    return sorted(names)


def _detect_backend(conn: Any) -> str:
    type_name = type(conn).__module__ + "." + type(conn).__qualname__
    if "sqlite" in type_name.lower():
        return "sqlite"
    if "SAConnectionBridge" in type_name or "psycopg" in type_name.lower():
        return "postgresql"
    return "unknown"
