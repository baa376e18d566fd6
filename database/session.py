"""
Database session with an explicit open / refresh / close lifecycle.

The application controller owns one session and passes it to whatever needs
to issue catalog queries. Lifecycle calls are serialized, so at most one
connect, refresh or disconnect is in flight at a time.
"""

import asyncio
import logging
from typing import Optional

from config import DatabaseConfig, DatabaseType, MetadataConfig
from metadata.persistence import ContextStore
from metadata.service import MetadataService, RefreshOutcome, create_metadata_service
from .connection import DatabaseConnection
from .executor import SQLAlchemyCatalogExecutor

logger = logging.getLogger(__name__)


class NotConnectedError(RuntimeError):
    """Raised when a refresh is requested without an open session."""
    pass


class DatabaseSession:
    """One active database handle plus the metadata service bound to it."""

    def __init__(self, store: ContextStore, metadata_config: Optional[MetadataConfig] = None):
        self.store = store
        self.metadata_config = metadata_config or MetadataConfig()
        self._connection: Optional[DatabaseConnection] = None
        self._service: Optional[MetadataService] = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    @property
    def db_type(self) -> Optional[DatabaseType]:
        return self._connection.db_type if self._connection else None

    @property
    def service(self) -> Optional[MetadataService]:
        return self._service

    def _make_connection(self, db_config: DatabaseConfig) -> DatabaseConnection:
        return DatabaseConnection(db_config, statement_timeout=self.metadata_config.query_timeout)

    async def open(self, db_config: DatabaseConfig) -> str:
        """
        Connect to a database, replacing any current connection.

        Raises:
            DatabaseConnectionError: the connection failed; the session is left closed.
            UnsupportedDatabaseError: no metadata support for the engine.
        """
        async with self._lock:
            await self._close_locked()

            connection = self._make_connection(db_config)
            message = await asyncio.to_thread(connection.open)
            try:
                service = create_metadata_service(
                    db_config.db_type,
                    SQLAlchemyCatalogExecutor(connection),
                    self.store,
                    self.metadata_config,
                )
            except Exception:
                connection.close()
                raise

            self._connection = connection
            self._service = service
            return message

    async def refresh(self) -> RefreshOutcome:
        """Collect, format and persist the schema of the connected database."""
        async with self._lock:
            if self._service is None:
                raise NotConnectedError("Not connected to a database")
            return await self._service.refresh()

    async def close(self) -> None:
        async with self._lock:
            await self._close_locked()

    async def _close_locked(self) -> None:
        if self._connection is None:
            return
        connection = self._connection
        self._connection = None
        self._service = None
        await asyncio.to_thread(connection.close)
        if self.metadata_config.clear_on_disconnect:
            self.store.clear()
