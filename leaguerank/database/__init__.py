"""Persistence: ORM models, sessions, snapshot store and repositories."""

from .connection import SessionLocal, create_session_factory, get_session_context, session_scope
from .init_db import create_database, drop_database, reset_database
from .models import Base, BacktestResultRecord, LearnedParamsRecord, RankingSnapshot
from .repositories import BacktestRepository, LearnedParamsRepository
from .snapshot_store import SnapshotStore, SqlSnapshotStore

__all__ = [
    "BacktestRepository",
    "BacktestResultRecord",
    "Base",
    "LearnedParamsRecord",
    "LearnedParamsRepository",
    "RankingSnapshot",
    "SessionLocal",
    "SnapshotStore",
    "SqlSnapshotStore",
    "create_database",
    "create_session_factory",
    "drop_database",
    "get_session_context",
    "reset_database",
    "session_scope",
]
