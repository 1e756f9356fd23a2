"""Database layer: SQLite (default) or PostgreSQL via SQLAlchemy."""

from spage.db.connection import Database, close_db, get_db, init_db

__all__ = ["Database", "close_db", "get_db", "init_db"]
