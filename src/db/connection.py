"""Database connection management: in-memory SQLite or PostgreSQL."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import URL
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.db.migrations import migrate as apply_migrations
from src.db.models import Base
from src.db.provider import (
    ConfigurationError,
    ConnectionDescriptor,
    DatabaseResolution,
    DbProvider,
)

logger = logging.getLogger(__name__)


def postgres_url(connection_string: str) -> URL:
    """Translate a ``Host=...;Port=...`` connection string into a SQLAlchemy URL."""
    descriptor = ConnectionDescriptor.parse(connection_string)
    return URL.create(
        "postgresql+psycopg2",
        username=descriptor.username,
        password=descriptor.password,
        host=descriptor.host,
        port=descriptor.port if descriptor.port > 0 else None,
        database=descriptor.database,
        query=descriptor.options,
    )


def create_db_engine(resolution: DatabaseResolution) -> Engine:
    """Create the SQLAlchemy engine for a resolved provider."""
    if resolution.provider == DbProvider.POSTGRESQL:
        if not resolution.connection_string:
            raise ConfigurationError("PostgreSQL provider requires a connection string")
        return create_engine(postgres_url(resolution.connection_string), pool_pre_ping=True)
    if resolution.provider == DbProvider.IN_MEMORY:
        # One shared connection, otherwise every checkout sees an empty database
        return create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    raise ConfigurationError(f"Unknown db provider: {resolution.provider}")


class Database:
    """Engine + session factory for the resolved provider."""

    def __init__(self, resolution: DatabaseResolution, engine: Engine | None = None):
        self.resolution = resolution
        self.engine = engine if engine is not None else create_db_engine(resolution)
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._ensure_db()

    @property
    def provider(self) -> DbProvider:
        return self.resolution.provider

    def _ensure_db(self) -> None:
        """In-memory databases get their schema straight from the models."""
        if self.provider == DbProvider.IN_MEMORY:
            Base.metadata.create_all(self.engine)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Get a database session (context manager)."""
        session = self._sessions()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


# Module-level singleton
_db: Database | None = None


def get_db() -> Database:
    """Get the global database instance."""
    if _db is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _db


def init_db(resolution: DatabaseResolution, *, migrate: bool | None = None) -> Database:
    """Initialize the global database instance.

    Pending migrations are applied when ``migrate`` is true; it defaults to
    the resolution's own decision.
    """
    global _db
    _db = Database(resolution)
    if resolution.migrate if migrate is None else migrate:
        apply_migrations(_db.engine)
    return _db
