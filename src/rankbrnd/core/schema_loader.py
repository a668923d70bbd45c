"""SQL schema loading.

Applies the ``.sql`` files under ``rankbrnd/core/schema`` to a
connection in filename order. Every statement is ``CREATE ... IF NOT
EXISTS`` so applying twice is harmless.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from rankbrnd.core.logging import get_logger
from rankbrnd.core.protocols import Connection

logger = get_logger(__name__)

SCHEMA_DIR = Path(__file__).resolve().parent / "schema"


def _split_sql(sql: str) -> list[str]:
    """Split a SQL script into semicolon-terminated statements.

    Full-line ``--`` comments and blank lines are dropped.
    """
    statements: list[str] = []
    current: list[str] = []
    for line in sql.splitlines():
        stripped = line.strip()
        if stripped.startswith("--") or not stripped:
            continue
        current.append(line)
        if stripped.endswith(";"):
            stmt = "\n".join(current).strip()
            if stmt and stmt != ";":
                statements.append(stmt)
            current = []
    if current:
        stmt = "\n".join(current).strip()
        if stmt:
            statements.append(stmt)
    return statements


def get_schema_files(schema_dir: Path | str | None = None) -> list[Path]:
    """Sorted ``.sql`` files in *schema_dir* (defaults to core/schema/)."""
    directory = Path(schema_dir) if schema_dir else SCHEMA_DIR
    if not directory.exists():
        return []
    return sorted(directory.glob("*.sql"))


def apply_all_schemas(
    conn: Connection,
    schema_dir: Path | str | None = None,
    *,
    skip_files: Sequence[str] | None = None,
) -> list[str]:
    """Apply every schema file and return the applied filenames."""
    skip_set = set(skip_files or [])
    applied: list[str] = []

    for sql_file in get_schema_files(schema_dir):
        if sql_file.name in skip_set:
            logger.debug("schema_skipped", file=sql_file.name)
            continue
        for statement in _split_sql(sql_file.read_text(encoding="utf-8")):
            conn.execute(statement)
        applied.append(sql_file.name)
        logger.debug("schema_applied", file=sql_file.name)

    conn.commit()
    logger.info("schema_all_applied", count=len(applied))
    return applied


def get_table_list(conn: Connection) -> list[str]:
    """Names of the tables in a SQLite database, alphabetically."""
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")
    return [row[0] for row in cursor.fetchall()]
