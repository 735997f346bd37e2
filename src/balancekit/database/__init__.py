"""Storage for balancekit: the Database interface and its SQLAlchemy implementation."""

from balancekit.database.base import Database
from balancekit.database.factories import DB_PATH_ENV, create_sqlite_database
from balancekit.database.sqlalchemy_db import SQLAlchemyDatabase

__all__ = ["DB_PATH_ENV", "Database", "SQLAlchemyDatabase", "create_sqlite_database"]
