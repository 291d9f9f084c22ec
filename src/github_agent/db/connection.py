"""
Engine and session handling for GitHub Agent.

PostgreSQL is the deployment target; SQLite (file or in-memory) is
supported for local use and has its JSONB columns mapped to JSON.
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import JSON, create_engine, event, text
from sqlalchemy.dialects import postgresql
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from github_agent.config import settings
from github_agent.models.db import Base

logger = logging.getLogger(__name__)


def is_sqlite_url(url: str) -> bool:
    return url.startswith("sqlite")


@event.listens_for(Base.metadata, "before_create")
def _jsonb_as_json(target, connection, **kw):
    if connection.dialect.name != "sqlite":
        return
    for table in target.tables.values():
        for column in table.columns:
            if isinstance(column.type, postgresql.JSONB):
                column.type = JSON()


def build_engine(url: str) -> Engine:
    """Engine for `url`; one pool per uvicorn worker on PostgreSQL."""
    if is_sqlite_url(url):
        # A single shared connection keeps in-memory databases alive
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_pool_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
    )


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False)

if is_sqlite_url(settings.database_url):
    Base.metadata.create_all(bind=engine)


@contextmanager
def db_session() -> Generator[Session, None, None]:
    """
    Session scope for the CLI, background tasks and startup code.

    Commits on success, rolls back on error and always closes.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one committed session per request."""
    with db_session() as session:
        yield session


def init_db() -> None:
    """Create every table. PostgreSQL deployments use `alembic upgrade head`."""
    Base.metadata.create_all(bind=engine)


def check_connection() -> bool:
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Database connection failed: %s", e)
        return False
    return True
