"""Database layer for budgetkit."""

from budgetkit.database.base import Database
from budgetkit.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
