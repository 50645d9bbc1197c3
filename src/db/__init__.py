"""Database layer: in-memory SQLite or PostgreSQL, picked at startup."""

from src.db.connection import Database, get_db, init_db
from src.db.provider import DatabaseResolution, DbProvider, resolve_database

__all__ = ["Database", "DatabaseResolution", "DbProvider", "get_db", "init_db", "resolve_database"]
