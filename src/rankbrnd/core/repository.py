"""Base repository with dialect-aware database access.

Provides :class:`BaseRepository`, a base class that pairs a
:class:`~rankbrnd.core.protocols.Connection` with a
:class:`~rankbrnd.core.dialect.Dialect` so domain repositories write
portable SQL without referencing a database driver.

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                       BaseRepository                               │
    │                                                                    │
    │   conn: Connection        ← protocol from rankbrnd.core.protocols  │
    │   dialect: Dialect        ← from rankbrnd.core.dialect             │
    │                                                                    │
    │   execute(sql, params)     → cursor                                │
    │   query(sql, params)       → list[dict]                            │
    │   query_one(sql, params)   → dict | None                           │
    │   scalar(sql, params)      → first column of first row             │
    │   insert(table, data)      → cursor                                │
    │   update_by_id(table, id, data) → rows affected                    │
    └────────────────────────────────────────────────────────────────────┘

Usage:
    >>> class KeywordRepository(BaseRepository):
    ...     def get(self, keyword_id: str):
    ...         return self.query_one(
    ...             f"SELECT * FROM keywords WHERE id = {self.ph(1)}",
    ...             (keyword_id,),
    ...         )

Tags:
    repository, database, abstraction, portability
"""

from __future__ import annotations

import json
from typing import Any

from rankbrnd.core.dialect import Dialect, get_dialect
from rankbrnd.core.protocols import Connection


class BaseRepository:
    """Dialect-aware base class for data-access repositories.

    Parameters:
        conn: Any object satisfying the :class:`Connection` protocol.
        dialect: SQL dialect to use. Detected from *conn* when omitted.
    """

    #: Columns stored as JSON text and decoded on read.
    json_columns: tuple[str, ...] = ()

    def __init__(self, conn: Connection, dialect: Dialect | None = None) -> None:
        self.conn = conn
        self.dialect: Dialect = dialect or get_dialect(conn)

    # -- Convenience shortcuts ---------------------------------------------

    def ph(self, count: int) -> str:
        """Shortcut for ``self.dialect.placeholders(count)``.

        Embed directly in f-strings:
            f"SELECT * FROM t WHERE id = {self.ph(1)}"
        """
        return self.dialect.placeholders(count)

    # -- Query helpers -----------------------------------------------------

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute a statement and return the raw cursor/result."""
        return self.conn.execute(sql, params)

    def query(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        """Execute a SELECT and return rows as dicts.

        ``sqlite3.Row`` rows convert directly; plain tuples (from the
        SQLAlchemy bridge) are zipped with ``cursor.description``.
        """
        cursor = self.conn.execute(sql, params)
        rows = cursor.fetchall()
        if not rows:
            return []

        if hasattr(rows[0], "keys"):
            dicts = [dict(row) for row in rows]
        else:
            columns = [desc[0] for desc in cursor.description]
            dicts = [dict(zip(columns, row, strict=False)) for row in rows]
        return [self._decode(d) for d in dicts]

    def query_one(self, sql: str, params: tuple = ()) -> dict[str, Any] | None:
        """Execute a SELECT and return the first row as a dict (or None)."""
        results = self.query(sql, params)
        return results[0] if results else None

    def scalar(self, sql: str, params: tuple = ()) -> Any:
        """Return the first column of the first row, or ``None``."""
        row = self.conn.execute(sql, params).fetchone()
        if row is None:
            return None
        return row[0]

    # -- Write helpers -----------------------------------------------------

    def insert(self, table: str, data: dict[str, Any]) -> Any:
        """Insert a single row from a dict.

        Column names come from ``data.keys()``; JSON columns are encoded.
        """
        encoded = self._encode(data)
        columns = list(encoded.keys())
        values = list(encoded.values())
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({self.ph(len(values))})"
        return self.conn.execute(sql, tuple(values))

    def insert_many(self, table: str, rows: list[dict[str, Any]]) -> int:
        """Insert multiple rows from a list of dicts.

        Returns the number of rows inserted.
        """
        if not rows:
            return 0
        encoded = [self._encode(r) for r in rows]
        columns = list(encoded[0].keys())
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({self.ph(len(columns))})"
        self.conn.executemany(sql, [tuple(row[col] for col in columns) for row in encoded])
        return len(rows)

    def update_by_id(
        self,
        table: str,
        row_id: str,
        data: dict[str, Any],
        *,
        extra_where: str = "",
        extra_params: tuple = (),
    ) -> int:
        """Update columns of one row; returns the number of rows changed.

        ``extra_where`` adds a guard such as ``status = ?`` so that
        concurrent workers cannot both claim the same row.
        """
        if not data:
            return 0
        encoded = self._encode(data)
        assignments = ", ".join(f"{col} = {self.dialect.placeholder(0)}" for col in encoded)
        sql = f"UPDATE {table} SET {assignments} WHERE id = {self.dialect.placeholder(0)}"
        if extra_where:
            sql += f" AND {extra_where}"
        cursor = self.conn.execute(sql, (*encoded.values(), row_id, *extra_params))
        return getattr(cursor, "rowcount", 0) or 0

    def commit(self) -> None:
        """Commit the current transaction."""
        self.conn.commit()

    # -- JSON columns ------------------------------------------------------

    def _encode(self, data: dict[str, Any]) -> dict[str, Any]:
        out = dict(data)
        for col in self.json_columns:
            if col in out and out[col] is not None and not isinstance(out[col], str):
                out[col] = json.dumps(out[col], default=str)
        return out

    def _decode(self, row: dict[str, Any]) -> dict[str, Any]:
        for col in self.json_columns:
            value = row.get(col)
            if isinstance(value, str):
                row[col] = json.loads(value) if value else {}
        return row


__all__ = ["BaseRepository"]
