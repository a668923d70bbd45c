"""Tests for the SQL dialects and the SQLAlchemy connection bridge.

The bridge runs against a SQLite file through SQLAlchemy so the
PostgreSQL code path is exercised without a server.
"""

from __future__ import annotations

import pytest

from rankbrnd.core.dialect import PostgreSQLDialect, SQLiteDialect, get_dialect
from rankbrnd.core.orm.session import (
    RankBrndSession,
    SAConnectionBridge,
    _rewrite_placeholders,
    create_rankbrnd_engine,
)
from rankbrnd.core.repositories import OrganizationRepository
from rankbrnd.core.schema_loader import apply_all_schemas
from rankbrnd.ops.sqlite_conn import SqliteConnection


@pytest.fixture()
def bridge(tmp_path):
    engine = create_rankbrnd_engine(f"sqlite:///{tmp_path}/bridge.db")
    conn = SAConnectionBridge(RankBrndSession(bind=engine))
    yield conn
    conn.close()
    engine.dispose()


class TestDialects:
    def test_upsert_sqlite(self):
        sql = SQLiteDialect().upsert("t", ["id", "a", "b"], ["id"])
        assert sql == "INSERT INTO t (id, a, b) VALUES (?, ?, ?) ON CONFLICT (id) DO UPDATE SET a = excluded.a, b = excluded.b"

    def test_upsert_postgres_explicit_columns(self):
        sql = PostgreSQLDialect().upsert("t", ["id", "a", "b"], ["id"], ["b"])
        assert sql.endswith("DO UPDATE SET b = EXCLUDED.b")

    def test_get_dialect(self, bridge):
        assert get_dialect(bridge).name == "postgresql"
        assert get_dialect(SqliteConnection(":memory:")).name == "sqlite"


@pytest.mark.parametrize(
    ("sql", "expected"),
    [
        ("SELECT * FROM t WHERE a = ? AND b = ?", "SELECT * FROM t WHERE a = :p0 AND b = :p1"),
        ("SELECT '?' FROM t WHERE a = ?", "SELECT '?' FROM t WHERE a = :p0"),
    ],
)
def test_rewrite_placeholders(sql, expected):
    assert _rewrite_placeholders(sql) == expected


class TestBridge:
    def test_repository_round_trip(self, bridge):
        apply_all_schemas(bridge)
        repo = OrganizationRepository(bridge)
        repo.create(
            {
                "id": "org-1",
                "name": "Acme",
                "slug": "acme",
                "domain": "acme.example",
                "tier": "free",
                "settings": {"tone": "bold"},
                "active": 1,
                "created_at": "2026-03-15T12:00:00.000Z",
                "updated_at": "2026-03-15T12:00:00.000Z",
            }
        )
        bridge.commit()

        row = repo.get("org-1")
        assert row["slug"] == "acme"
        assert row["settings"] == {"tone": "bold"}

    def test_fetch_without_rows(self, bridge):
        bridge.execute("CREATE TABLE t (a INTEGER)")
        assert bridge.fetchone() is None
        assert bridge.fetchall() == []
        assert bridge.description is None

    def test_executemany_and_rowcount(self, bridge):
        bridge.execute("CREATE TABLE t (a INTEGER)")
        bridge.executemany("INSERT INTO t (a) VALUES (?)", [(1,), (2,), (3,)])
        bridge.execute("DELETE FROM t WHERE a > ?", (1,))
        assert bridge.rowcount == 2
        bridge.execute("SELECT a FROM t")
        assert bridge.fetchall() == [(1,)]
