"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from balancekit.database.sqlalchemy_db import SQLAlchemyDatabase

DB_PATH_ENV = "BALANCEKIT_DB_PATH"


def default_database_path() -> Path:
    """Return ~/.balancekit/balancekit.db, creating the directory."""
    db_dir = Path.home() / ".balancekit"
    db_dir.mkdir(exist_ok=True)
    return db_dir / "balancekit.db"


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks BALANCEKIT_DB_PATH
            environment variable, then defaults to ~/.balancekit/balancekit.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = os.environ.get(DB_PATH_ENV)

    if database_path is None:
        database_path = str(default_database_path())

    return SQLAlchemyDatabase(f"sqlite:///{database_path}")
