"""
Database module for the Schema Copilot.

Provides:
- Database connection management
- Read-only catalog query execution

The session lifecycle lives in database.session, which depends on the
metadata package and is imported from there directly.
"""

from .connection import DatabaseConnection, DatabaseConnectionError
from .executor import CatalogQueryExecutor, SQLAlchemyCatalogExecutor

__all__ = [
    "DatabaseConnection",
    "DatabaseConnectionError",
    "CatalogQueryExecutor",
    "SQLAlchemyCatalogExecutor",
]
