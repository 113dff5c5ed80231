"""Database initialization helpers.

- create_database(): create all tables (idempotent)
- drop_database(): drop all tables (destructive)
- reset_database(): drop then create
"""

import logging
from pathlib import Path

from sqlalchemy.engine import Engine

from .connection import engine as default_engine
from .models import Base

logger = logging.getLogger(__name__)


def create_database(bind: Engine | None = None):
    """Create database schema and all tables from the models.

    For SQLite files the data directory is created first so the database
    file can be written.
    """
    bind = bind or default_engine
    try:
        if bind.url.get_backend_name() == "sqlite" and bind.url.database not in (None, "", ":memory:"):
            Path(bind.url.database).parent.mkdir(parents=True, exist_ok=True)

        Base.metadata.create_all(bind=bind)
        logger.info("Database tables created successfully")

    except Exception:
        logger.exception("Failed to create database")
        raise


def drop_database(bind: Engine | None = None):
    """Drop all database tables - DESTRUCTIVE OPERATION."""
    bind = bind or default_engine
    try:
        Base.metadata.drop_all(bind=bind)
        logger.info("Database tables dropped successfully")

    except Exception:
        logger.exception("Failed to drop database")
        raise


def reset_database(bind: Engine | None = None):
    logger.info("Resetting database...")
    drop_database(bind)
    create_database(bind)
    logger.info("Database reset complete")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_database()
