"""Database connection and session management using SQLAlchemy.

Session Patterns Provided:
1. create_session_factory(): build an engine + sessionmaker for any URL
2. session_scope(): context manager with commit on success, rollback on error
3. get_session_context(): session_scope() bound to the configured database

Repositories take a session factory rather than a session, so each operation
runs in its own short transaction and can be pointed at an in-memory SQLite
database in tests.
"""

from collections.abc import Callable, Generator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config.settings import settings

SessionFactory = Callable[[], Session]


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine, sharing one connection for in-memory SQLite."""
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, echo=echo, pool_pre_ping=True)


def create_session_factory(url: str, echo: bool = False) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=build_engine(url, echo))


@contextmanager
def session_scope(factory: SessionFactory) -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations.

    Usage:
        with session_scope(SessionLocal) as session:
            session.add(record)
            # Committed on exit, rolled back if anything raised
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# Default engine and session factory for the configured database
engine = build_engine(settings.database_url, echo=settings.database_echo)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_session_context() -> Generator[Session, None, None]:
    with session_scope(SessionLocal) as session:
        yield session
