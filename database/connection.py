"""
Database Connection Module - PostgreSQL and MySQL.

This module provides:
- SQLAlchemy engine management for one connected database
- SSL/TLS support
- Connection health checking
- Read-only row fetching for catalog queries
"""

import logging
import math
from contextlib import contextmanager
from typing import Optional, Generator, List, Dict, Any
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, Connection
from sqlalchemy.exc import SQLAlchemyError

from config import DatabaseConfig, DatabaseType

logger = logging.getLogger(__name__)


class DatabaseConnectionError(ConnectionError):
    """Raised when a connection to the database cannot be established."""
    pass


class DatabaseConnection:
    """
    Owns the SQLAlchemy engine for a single database.

    Supports PostgreSQL and MySQL.
    """

    def __init__(self, db_config: DatabaseConfig, statement_timeout: Optional[float] = None):
        """
        Initialize database connection manager.

        Args:
            db_config: Database configuration for this connection.
            statement_timeout: Seconds a single statement may run before the
                driver or server gives up on it. None leaves the defaults.
        """
        self.config = db_config
        self.statement_timeout = statement_timeout
        self._engine: Optional[Engine] = None

    def _create_engine(self) -> Engine:
        """
        Create SQLAlchemy engine with appropriate settings for each database type.

        Returns:
            Configured SQLAlchemy Engine instance
        """
        connect_args = {}
        timeout = self.statement_timeout

        if self.config.db_type == DatabaseType.POSTGRESQL:
            if self.config.ssl_ca:
                connect_args["sslmode"] = "verify-full"
                connect_args["sslrootcert"] = self.config.ssl_ca
            if timeout:
                # Server cancels the statement; the pooled session keeps the setting
                connect_args["options"] = f"-c statement_timeout={int(timeout * 1000)}"
                connect_args["connect_timeout"] = max(1, math.ceil(timeout))

        else:  # MySQL
            if self.config.ssl_ca:
                connect_args["ssl"] = {
                    "ca": self.config.ssl_ca,
                    "check_hostname": True,
                    "verify_mode": True
                }
            if timeout:
                # MariaDB has no max_execution_time, so bound the socket instead
                connect_args["read_timeout"] = max(1, math.ceil(timeout))
                connect_args["connect_timeout"] = max(1, math.ceil(timeout))

        return create_engine(
            self.config.connection_string,
            pool_pre_ping=True,
            connect_args=connect_args,
            echo=False
        )

    @property
    def engine(self) -> Engine:
        """Get or create the SQLAlchemy engine."""
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    @property
    def db_type(self) -> DatabaseType:
        """Get the current database type."""
        return self.config.db_type

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @contextmanager
    def get_connection(self) -> Generator[Connection, None, None]:
        """
        Context manager for a pooled connection.

        Example:
            with db.get_connection() as conn:
                result = conn.execute(text("SELECT 1"))
        """
        with self.engine.connect() as conn:
            try:
                yield conn
            except SQLAlchemyError as e:
                logger.error(f"Database connection error: {e}")
                raise

    def fetch_all(self, query: str, params: Optional[dict] = None) -> List[Dict[str, Any]]:
        """
        Run a read-only query and return results.

        Args:
            query: SQL query string (must be SELECT)
            params: Optional query parameters for parameterized queries

        Returns:
            List of result rows as dictionaries
        """
        with self.get_connection() as conn:
            result = conn.execute(text(query), params or {})
            columns = list(result.keys())
            return [dict(zip(columns, row)) for row in result.fetchall()]

    def open(self) -> str:
        """
        Create the engine and verify connectivity.

        Returns:
            Success message

        Raises:
            DatabaseConnectionError: if the database cannot be reached. The
                engine is discarded so no half-open handle survives.
        """
        try:
            with self.get_connection() as conn:
                row = conn.execute(text("SELECT 1 AS health_check")).fetchone()
            if not row or row[0] != 1:
                raise DatabaseConnectionError("Unexpected result from health check query")
        except DatabaseConnectionError:
            self.close()
            raise
        except Exception as e:
            logger.error(f"Database connection failed: {e}")
            self.close()
            raise DatabaseConnectionError(f"Connection failed: {e}") from e

        db_type = self.config.db_type.value.upper()
        logger.info(f"{db_type} connection established to {self.config.host}/{self.config.database}")
        return f"{db_type} connection successful"

    def test_connection(self) -> tuple[bool, str]:
        """
        Test database connectivity.

        Returns:
            tuple: (success: bool, message: str)
        """
        try:
            return True, self.open()
        except DatabaseConnectionError as e:
            return False, str(e)

    def close(self):
        """Close all connections and dispose of the engine."""
        if self._engine:
            self._engine.dispose()
            self._engine = None
            logger.info("Database connections closed")
