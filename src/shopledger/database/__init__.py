"""Database layer for shopledger."""

from shopledger.database.base import Database
from shopledger.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
