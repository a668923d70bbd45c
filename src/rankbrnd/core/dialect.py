"""SQL dialect abstraction for database-agnostic repositories.

Repositories use :class:`Dialect` methods for placeholders and upserts
instead of hard-coding backend syntax.

Both supported backends take ``?`` placeholders: SQLite natively, and
PostgreSQL through :class:`~rankbrnd.core.orm.session.SAConnectionBridge`,
which rewrites them to SQLAlchemy named binds. The dialects therefore
differ only in the fragments that are genuinely backend specific.

Architecture::

    ┌──────────────────────────────────────────────────────┐
    │  sql = f"INSERT INTO t (a,b) VALUES ({d.placeholders(2)})"
    │  conn.execute(sql, params)
    └──────────────────────────────────────────────────────┘
                │                         │
           SQLiteDialect           PostgreSQLDialect
           excluded.col            EXCLUDED.col

Tags:
    dialect, sql, portability, rankbrnd
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """Interface every SQL dialect implements."""

    @property
    def name(self) -> str: ...

    def placeholder(self, index: int) -> str: ...

    def placeholders(self, count: int) -> str: ...

    def upsert(
        self,
        table: str,
        columns: list[str],
        key_columns: list[str],
        update_columns: list[str] | None = None,
    ) -> str: ...


class SQLiteDialect:
    """SQLite dialect: ``?`` placeholders, ``excluded`` upserts."""

    @property
    def name(self) -> str:
        return "sqlite"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    def upsert(
        self,
        table: str,
        columns: list[str],
        key_columns: list[str],
        update_columns: list[str] | None = None,
    ) -> str:
        cols = ", ".join(columns)
        ph = self.placeholders(len(columns))
        keys = ", ".join(key_columns)
        update_cols = update_columns or [c for c in columns if c not in key_columns]
        updates = ", ".join(f"{c} = excluded.{c}" for c in update_cols)
        return f"INSERT INTO {table} ({cols}) VALUES ({ph}) ON CONFLICT ({keys}) DO UPDATE SET {updates}"


class PostgreSQLDialect:
    """PostgreSQL dialect used behind the SQLAlchemy bridge."""

    @property
    def name(self) -> str:
        return "postgresql"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    def upsert(
        self,
        table: str,
        columns: list[str],
        key_columns: list[str],
        update_columns: list[str] | None = None,
    ) -> str:
        cols = ", ".join(columns)
        ph = self.placeholders(len(columns))
        keys = ", ".join(key_columns)
        update_cols = update_columns or [c for c in columns if c not in key_columns]
        updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in update_cols)
        return f"INSERT INTO {table} ({cols}) VALUES ({ph}) ON CONFLICT ({keys}) DO UPDATE SET {updates}"


def get_dialect(conn: Any) -> Dialect:
    """Pick the dialect for a connection object."""
    from rankbrnd.core.orm.session import SAConnectionBridge

    if isinstance(conn, SAConnectionBridge):
        return PostgreSQLDialect()
    return SQLiteDialect()


__all__ = ["Dialect", "SQLiteDialect", "PostgreSQLDialect", "get_dialect"]
