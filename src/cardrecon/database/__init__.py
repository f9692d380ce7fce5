"""Database layer for cardrecon."""

from cardrecon.database.base import Database
from cardrecon.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
