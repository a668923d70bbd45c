"""SQLAlchemy integration for PostgreSQL deployments."""

from rankbrnd.core.orm.session import RankBrndSession, SAConnectionBridge, create_rankbrnd_engine

__all__ = ["RankBrndSession", "SAConnectionBridge", "create_rankbrnd_engine"]
