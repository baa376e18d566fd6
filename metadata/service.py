"""
Metadata services.

One service per supported engine. Each service composes the shared
pipeline pieces (collector, builder, formatter, context store) with its
engine's catalog queries; there is no common base class.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol, Union

from config import DatabaseType, MetadataConfig
from database.executor import CatalogQueryExecutor
from .builder import SchemaModelBuilder
from .catalog import CatalogQuerySet, build_mysql_queries, build_postgres_queries
from .collector import MetadataCollector
from .errors import UnsupportedDatabaseError
from .formatter import SchemaFormatter
from .models import SchemaSnapshot
from .persistence import ContextStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshOutcome:
    snapshot: SchemaSnapshot
    text: str
    path: Path


class MetadataService(Protocol):
    db_type: DatabaseType

    async def get_metadata(self) -> SchemaSnapshot:
        """Collect a fresh snapshot without touching the context file."""
        ...

    async def refresh(self) -> RefreshOutcome:
        """Collect, format and persist a fresh snapshot."""
        ...

    def get_formatted_context(self) -> Optional[str]:
        """The persisted context text, or None if nothing was saved yet."""
        ...


class MetadataPipeline:
    """Collector -> builder -> formatter -> context store."""

    def __init__(
        self,
        collector: MetadataCollector,
        store: ContextStore,
        formatter: Optional[SchemaFormatter] = None,
    ):
        self.collector = collector
        self.store = store
        self.formatter = formatter or SchemaFormatter()

    @classmethod
    def for_queries(
        cls, query_set: CatalogQuerySet, store: ContextStore, metadata_config: MetadataConfig
    ) -> "MetadataPipeline":
        builder = SchemaModelBuilder(query_set.mapping, metadata_config.check_exclude_patterns)
        collector = MetadataCollector(query_set, builder, timeout=metadata_config.query_timeout)
        return cls(collector, store)

    async def collect(self, executor: CatalogQueryExecutor) -> SchemaSnapshot:
        return await self.collector.collect(executor)

    async def refresh(self, executor: CatalogQueryExecutor) -> RefreshOutcome:
        # Nothing is written unless collection and building both succeed
        snapshot = await self.collector.collect(executor)
        text = self.formatter.format(snapshot)
        path = await asyncio.to_thread(self.store.save, text)
        return RefreshOutcome(snapshot=snapshot, text=text, path=path)

    def load(self) -> Optional[str]:
        return self.store.load()


class PostgresMetadataService:
    """Schema metadata for PostgreSQL databases."""
    db_type = DatabaseType.POSTGRESQL

    def __init__(
        self,
        executor: CatalogQueryExecutor,
        store: ContextStore,
        metadata_config: Optional[MetadataConfig] = None,
    ):
        metadata_config = metadata_config or MetadataConfig()
        self.executor = executor
        self.query_set = build_postgres_queries(metadata_config.schemas_to_exclude(self.db_type))
        self.pipeline = MetadataPipeline.for_queries(self.query_set, store, metadata_config)

    async def get_metadata(self) -> SchemaSnapshot:
        return await self.pipeline.collect(self.executor)

    async def refresh(self) -> RefreshOutcome:
        return await self.pipeline.refresh(self.executor)

    def get_formatted_context(self) -> Optional[str]:
        return self.pipeline.load()


class MySQLMetadataService:
    """Schema metadata for MySQL databases."""
    db_type = DatabaseType.MYSQL

    def __init__(
        self,
        executor: CatalogQueryExecutor,
        store: ContextStore,
        metadata_config: Optional[MetadataConfig] = None,
    ):
        metadata_config = metadata_config or MetadataConfig()
        self.executor = executor
        self.query_set = build_mysql_queries(metadata_config.schemas_to_exclude(self.db_type))
        self.pipeline = MetadataPipeline.for_queries(self.query_set, store, metadata_config)

    async def get_metadata(self) -> SchemaSnapshot:
        return await self.pipeline.collect(self.executor)

    async def refresh(self) -> RefreshOutcome:
        return await self.pipeline.refresh(self.executor)

    def get_formatted_context(self) -> Optional[str]:
        return self.pipeline.load()


SERVICES: Dict[DatabaseType, Callable[..., MetadataService]] = {
    DatabaseType.POSTGRESQL: PostgresMetadataService,
    DatabaseType.MYSQL: MySQLMetadataService,
}


def create_metadata_service(
    db_type: Union[str, DatabaseType],
    executor: CatalogQueryExecutor,
    store: ContextStore,
    metadata_config: Optional[MetadataConfig] = None,
) -> MetadataService:
    """
    Factory for the metadata service of a database engine.

    Raises:
        UnsupportedDatabaseError: for engines without catalog support.
    """
    try:
        engine = db_type if isinstance(db_type, DatabaseType) else DatabaseType.parse(db_type)
    except ValueError:
        raise UnsupportedDatabaseError(f"Unsupported database type: {db_type}")

    factory = SERVICES.get(engine)
    if factory is None:
        raise UnsupportedDatabaseError(f"Unsupported database type: {db_type}")

    logger.info(f"Creating metadata service for {engine.value}")
    return factory(executor, store, metadata_config)
