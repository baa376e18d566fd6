"""
Metadata collector.

Runs an engine's six catalog queries concurrently and hands the labelled
result sets to the model builder. Any single failure aborts the whole
collection; no partial snapshot is ever returned.
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from database.executor import CatalogQueryExecutor
from .builder import SchemaModelBuilder
from .catalog import CatalogQuery, CatalogQuerySet
from .errors import CatalogQueryError, MetadataShapeError
from .models import SchemaSnapshot

logger = logging.getLogger(__name__)

RawCatalog = Dict[str, List[Dict[str, Any]]]


class MetadataCollector:
    """
    Collects a SchemaSnapshot through a CatalogQueryExecutor.

    Args:
        query_set: Engine-specific catalog queries and row mapping.
        builder: Builder for the snapshot. Defaults to one using the query
            set's mapping with no CHECK exclusions.
        timeout: Per-query timeout in seconds. None disables it.
    """

    def __init__(
        self,
        query_set: CatalogQuerySet,
        builder: Optional[SchemaModelBuilder] = None,
        timeout: Optional[float] = 30.0,
    ):
        self.query_set = query_set
        self.builder = builder or SchemaModelBuilder(query_set.mapping)
        self.timeout = timeout

    async def _run_one(self, executor: CatalogQueryExecutor, query: CatalogQuery) -> List[Dict[str, Any]]:
        try:
            if self.timeout is None:
                rows = await executor.run(query.sql)
            else:
                rows = await asyncio.wait_for(executor.run(query.sql), timeout=self.timeout)
            return [dict(row) for row in rows]
        except Exception as e:
            raise CatalogQueryError(query.label, e) from e

    async def collect_raw(self, executor: CatalogQueryExecutor) -> RawCatalog:
        """Run every catalog query concurrently and return rows keyed by query label."""
        started = time.perf_counter()
        tasks = {
            query.label: asyncio.ensure_future(self._run_one(executor, query))
            for query in self.query_set.queries
        }
        try:
            results = await asyncio.gather(*tasks.values())
        except BaseException as e:
            for task in tasks.values():
                task.cancel()
            await asyncio.gather(*tasks.values(), return_exceptions=True)
            if isinstance(e, CatalogQueryError):
                logger.error(f"Metadata collection aborted: {e}")
            raise

        raw = dict(zip(tasks.keys(), results))
        elapsed = time.perf_counter() - started
        logger.info(
            f"Collected {len(raw)} catalog result sets from {self.query_set.engine.value} "
            f"in {elapsed:.2f}s"
        )
        return raw

    async def collect(self, executor: CatalogQueryExecutor) -> SchemaSnapshot:
        """Collect catalog rows and build a typed SchemaSnapshot."""
        raw = await self.collect_raw(executor)
        try:
            return self.builder.build(raw)
        except MetadataShapeError as e:
            logger.error(f"Unexpected catalog row shape from query '{e.label}': {e}")
            raise
