"""Database module for SQLite operations."""

from app.db.database import get_db, init_db

__all__ = ["get_db", "init_db"]
