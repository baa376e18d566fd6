"""
Catalog query executor.

The metadata pipeline only needs one capability from a database: run a
read-only query and get rows back as dictionaries. SQLAlchemy is
synchronous, so each query runs in a worker thread on its own pooled
connection, which lets several catalog queries proceed concurrently.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from sql.validator import SQLValidator
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


@runtime_checkable
class CatalogQueryExecutor(Protocol):
    """Runs a read-only query and returns rows as column -> value mappings."""

    async def run(self, query: str) -> List[Dict[str, Any]]:
        ...


class SQLAlchemyCatalogExecutor:
    """CatalogQueryExecutor backed by a DatabaseConnection."""

    def __init__(self, connection: DatabaseConnection, validator: Optional[SQLValidator] = None):
        self.connection = connection
        self.validator = validator or SQLValidator()

    async def run(self, query: str) -> List[Dict[str, Any]]:
        self.validator.ensure_read_only(query)
        rows = await asyncio.to_thread(self.connection.fetch_all, query)
        logger.debug(f"Catalog query returned {len(rows)} rows")
        return rows
