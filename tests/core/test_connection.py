"""Tests for rankbrnd.core.connection and rankbrnd.core.schema_loader."""

import pytest

from rankbrnd.core.connection import _parse_url, create_connection
from rankbrnd.core.schema_loader import _split_sql, apply_all_schemas, get_schema_files, get_table_list

EXPECTED_TABLES = {
    "organizations",
    "team_members",
    "keywords",
    "articles",
    "integrations",
    "publishing_queue",
    "rank_tracking",
    "flow_progress",
}


class TestParseUrl:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            (None, ("memory", ":memory:")),
            ("", ("memory", ":memory:")),
            ("memory", ("memory", ":memory:")),
            ("sqlite:///:memory:", ("memory", ":memory:")),
            ("sqlite:///data/rankbrnd.db", ("sqlite", "data/rankbrnd.db")),
            ("sqlite:////abs/x.db", ("sqlite", "/abs/x.db")),
            ("postgres://u:p@h/db", ("postgresql", "postgresql://u:p@h/db")),
            ("postgresql+psycopg2://u@h/db", ("postgresql", "postgresql+psycopg2://u@h/db")),
            ("./local.db", ("file", "./local.db")),
        ],
    )
    def test_schemes(self, url, expected):
        assert _parse_url(url) == expected


class TestCreateConnection:
    def test_memory(self):
        conn, info = create_connection(None)
        try:
            assert info.backend == "sqlite"
            assert info.persistent is False
            assert info.is_sqlite
        finally:
            conn.close()

    def test_file_resolved_under_data_dir(self, tmp_path):
        conn, info = create_connection("sqlite:///nested/app.db", data_dir=str(tmp_path), init_schema=True)
        try:
            assert info.persistent is True
            assert info.resolved_path == str((tmp_path / "nested" / "app.db").resolve())
            assert (tmp_path / "nested" / "app.db").exists()
            assert EXPECTED_TABLES <= set(get_table_list(conn))
        finally:
            conn.close()

    def test_foreign_keys_enforced(self):
        conn, _ = create_connection("memory", init_schema=True)
        try:
            import sqlite3

            with pytest.raises(sqlite3.IntegrityError):
                conn.execute(
                    "INSERT INTO keywords (id, organization_id, keyword, created_at, updated_at) "
                    "VALUES ('k', 'missing-org', 'x', '2026-01-01', '2026-01-01')"
                )
        finally:
            conn.close()


class TestSchemaLoader:
    def test_files_sorted(self):
        names = [f.name for f in get_schema_files()]
        assert names == sorted(names)
        assert names[0] == "00_organizations.sql"

    def test_apply_is_idempotent(self, conn):
        applied = apply_all_schemas(conn)
        assert len(applied) == len(get_schema_files())

    def test_skip_files(self, tmp_path):
        (tmp_path / "01_a.sql").write_text("CREATE TABLE IF NOT EXISTS a (id TEXT);")
        (tmp_path / "02_b.sql").write_text("CREATE TABLE IF NOT EXISTS b (id TEXT);")
        conn, _ = create_connection(None)
        try:
            assert apply_all_schemas(conn, tmp_path, skip_files=["02_b.sql"]) == ["01_a.sql"]
            assert get_table_list(conn) == ["a"]
        finally:
            conn.close()

    def test_missing_dir(self, tmp_path):
        assert get_schema_files(tmp_path / "nope") == []

    def test_split_sql_drops_comments(self):
        sql = "-- header\nCREATE TABLE a (\n  id TEXT\n);\n\nCREATE INDEX i ON a(id);\n"
        assert _split_sql(sql) == ["CREATE TABLE a (\n  id TEXT\n);", "CREATE INDEX i ON a(id);"]
