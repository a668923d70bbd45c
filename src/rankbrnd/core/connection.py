"""Connection factory: create database connections from URL strings.

This is the **single entry point** for creating database connections.
Every module that needs a connection uses ``create_connection()`` rather
than importing backend-specific classes directly.

Supported URL schemes
---------------------

==================  ==========================================  ============
Scheme              Example                                     Backend
==================  ==========================================  ============
``memory``          ``memory`` or ``:memory:`` or ``None``       SQLite RAM
``sqlite``          ``sqlite:///path/to/file.db``                SQLite file
``(file path)``     ``./data/rankbrnd.db``                       SQLite file
``postgresql``      ``postgresql://user:pw@host:port/db``        PostgreSQL
``postgres``        ``postgres://user:pw@host:port/db``          PostgreSQL
==================  ==========================================  ============

Usage
-----
::

    from rankbrnd.core.connection import create_connection

    conn, info = create_connection("sqlite:///data/rankbrnd.db", init_schema=True)
    print(info)
    # ConnectionInfo(backend='sqlite', persistent=True, path='/abs/data/rankbrnd.db')
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rankbrnd.core.logging import get_logger

logger = get_logger(__name__)


# ── ConnectionInfo ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a database connection."""

    backend: str
    """Backend identifier: ``"sqlite"`` or ``"postgresql"``."""

    persistent: bool
    """Whether data survives process exit."""

    url: str
    """The original URL or path used to create the connection."""

    resolved_path: str | None = None
    """For file-based SQLite, the resolved absolute path."""

    def __repr__(self) -> str:
        parts = [f"backend={self.backend!r}", f"persistent={self.persistent}"]
        if self.resolved_path:
            parts.append(f"path={self.resolved_path!r}")
        else:
            parts.append(f"url={self.url!r}")
        return f"ConnectionInfo({', '.join(parts)})"


# ── Backends ─────────────────────────────────────────────────────────────


def _create_sqlite_memory() -> tuple[Any, ConnectionInfo]:
    from rankbrnd.ops.sqlite_conn import SqliteConnection

    conn = SqliteConnection(":memory:")
    return conn, ConnectionInfo(backend="sqlite", persistent=False, url=":memory:")


def _create_sqlite_file(path_str: str) -> tuple[Any, ConnectionInfo]:
    from rankbrnd.ops.sqlite_conn import SqliteConnection

    path = Path(path_str).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    resolved = str(path.resolve())
    conn = SqliteConnection(resolved)
    info = ConnectionInfo(backend="sqlite", persistent=True, url=path_str, resolved_path=resolved)
    return conn, info


def _create_postgresql(url: str) -> tuple[Any, ConnectionInfo]:
    """Create a PostgreSQL connection via the SQLAlchemy bridge.

    Connection failures propagate; a silent fallback would publish into a
    throwaway database.
    """
    from rankbrnd.core.orm.session import RankBrndSession, SAConnectionBridge, create_rankbrnd_engine

    engine = create_rankbrnd_engine(url)
    conn = SAConnectionBridge(RankBrndSession(bind=engine))
    return conn, ConnectionInfo(backend="postgresql", persistent=True, url=url)


# ── URL parsing ──────────────────────────────────────────────────────────


def _parse_url(db: str | None) -> tuple[str, str]:
    """Parse a database URL into (scheme, target).

    ``scheme`` is one of ``"memory"``, ``"sqlite"``, ``"postgresql"``, ``"file"``.
    """
    if db is None or db in ("", "memory", ":memory:"):
        return "memory", ":memory:"

    for prefix in ("sqlite:///", "sqlite://"):
        if db.startswith(prefix):
            path = db[len(prefix):]
            if not path or path == ":memory:":
                return "memory", ":memory:"
            return "sqlite", path

    if db.startswith(("postgresql://", "postgres://")):
        return "postgresql", db.replace("postgres://", "postgresql://", 1)

    if db.startswith(("postgresql+", "postgres+")):
        return "postgresql", db

    return "file", db


# ── Main factory ─────────────────────────────────────────────────────────


def create_connection(
    db: str | None = None,
    *,
    init_schema: bool = False,
    data_dir: str | None = None,
) -> tuple[Any, ConnectionInfo]:
    """Create a database connection from a URL, path, or keyword.

    Parameters
    ----------
    db:
        Database URL, file path, or ``None``/``"memory"`` for in-memory SQLite.
    init_schema:
        If ``True``, apply all schemas (idempotent ``CREATE TABLE IF NOT EXISTS``).
    data_dir:
        Resolve relative SQLite paths within this directory.

    Returns
    -------
    tuple[Connection, ConnectionInfo]
    """
    scheme, target = _parse_url(db)

    if scheme == "memory":
        conn, info = _create_sqlite_memory()
    elif scheme in ("sqlite", "file"):
        if data_dir and not Path(target).is_absolute():
            target = str(Path(data_dir).expanduser() / target)
        conn, info = _create_sqlite_file(target)
    else:
        conn, info = _create_postgresql(target)

    if init_schema:
        from rankbrnd.core.schema_loader import apply_all_schemas

        apply_all_schemas(conn)

    logger.debug("connection_created", backend=info.backend, persistent=info.persistent)
    return conn, info
