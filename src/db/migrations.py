"""Schema migrations: ordered SQL files, applied once each."""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import Column, DateTime, Engine, MetaData, String, Table, func, insert, select

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "sql"

_metadata = MetaData()

schema_migrations = Table(
    "schema_migrations",
    _metadata,
    Column("version", String(255), primary_key=True),
    Column("applied_at", DateTime, nullable=False, server_default=func.now()),
)


def split_statements(sql: str) -> list[str]:
    """Split a migration script on ``;`` and drop empty statements."""
    return [stmt.strip() for stmt in sql.split(";") if stmt.strip()]


def available_migrations(migrations_dir: Path = MIGRATIONS_DIR) -> list[Path]:
    return sorted(migrations_dir.glob("*.sql"))


def applied_versions(engine: Engine) -> set[str]:
    _metadata.create_all(engine)
    with engine.connect() as conn:
        return set(conn.scalars(select(schema_migrations.c.version)))


def pending_migrations(engine: Engine, migrations_dir: Path = MIGRATIONS_DIR) -> list[Path]:
    """Migration files whose version has not been recorded yet."""
    applied = applied_versions(engine)
    return [path for path in available_migrations(migrations_dir) if path.stem not in applied]


def migrate(engine: Engine, migrations_dir: Path = MIGRATIONS_DIR) -> list[str]:
    """Apply pending migrations, each in its own transaction.

    Returns the versions applied, in order.
    """
    applied: list[str] = []
    for path in pending_migrations(engine, migrations_dir):
        version = path.stem
        try:
            with engine.begin() as conn:
                for statement in split_statements(path.read_text()):
                    conn.exec_driver_sql(statement)
                conn.execute(insert(schema_migrations).values(version=version))
        except Exception:
            logger.exception("Migration %s failed", version)
            raise
        logger.info("Applied migration: %s", version)
        applied.append(version)

    if not applied:
        logger.info("Database schema is up to date")
    return applied
