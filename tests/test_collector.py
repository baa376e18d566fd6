from unittest.mock import AsyncMock, MagicMock

import pytest

from metadata.builder import SchemaModelBuilder
from metadata.catalog import COLUMNS, CONSTRAINTS, QUERY_LABELS, ROUTINES, TABLES, TRIGGERS
from metadata.collector import MetadataCollector
from metadata.errors import CatalogQueryError, MetadataShapeError
from sql.validator import ReadOnlyQueryError


@pytest.mark.asyncio
async def test_collect_runs_all_six_queries(pg_queries, fake_executor):
    collector = MetadataCollector(pg_queries)
    snapshot = await collector.collect(fake_executor)

    assert sorted(fake_executor.calls) == sorted(QUERY_LABELS)
    assert len(snapshot.tables) == 2
    assert len(snapshot.views) == 1


@pytest.mark.asyncio
async def test_results_recombined_by_label(pg_queries, make_executor):
    # Tables finish last; they must still land in the tables slot
    executor = make_executor(delays={TABLES: 0.05, COLUMNS: 0.01})
    raw = await MetadataCollector(pg_queries).collect_raw(executor)

    assert set(raw) == set(QUERY_LABELS)
    assert raw[TABLES][0]["table_name"] == "users"


@pytest.mark.asyncio
async def test_single_failure_aborts_collection(pg_queries, make_executor):
    executor = make_executor(failures={ROUTINES: RuntimeError("permission denied")})

    with pytest.raises(CatalogQueryError) as exc_info:
        await MetadataCollector(pg_queries).collect(executor)

    assert exc_info.value.label == ROUTINES
    assert isinstance(exc_info.value.cause, RuntimeError)
    assert "permission denied" in str(exc_info.value)


@pytest.mark.asyncio
async def test_failure_cancels_pending_queries(pg_queries, make_executor):
    executor = make_executor(
        failures={ROUTINES: RuntimeError("boom")},
        delays={TRIGGERS: 10, CONSTRAINTS: 10},
    )

    with pytest.raises(CatalogQueryError):
        await MetadataCollector(pg_queries, timeout=None).collect(executor)

    assert sorted(executor.cancelled) == sorted([TRIGGERS, CONSTRAINTS])


@pytest.mark.asyncio
async def test_timeout_becomes_catalog_error(pg_queries, make_executor):
    executor = make_executor(delays={CONSTRAINTS: 5})

    with pytest.raises(CatalogQueryError) as exc_info:
        await MetadataCollector(pg_queries, timeout=0.05).collect(executor)

    assert exc_info.value.label == CONSTRAINTS
    assert exc_info.value.kind == "catalog"


@pytest.mark.asyncio
async def test_read_only_guard_error_is_wrapped(pg_queries, make_executor):
    executor = make_executor(failures={TABLES: ReadOnlyQueryError("Only SELECT statements allowed")})

    with pytest.raises(CatalogQueryError) as exc_info:
        await MetadataCollector(pg_queries).collect(executor)

    assert isinstance(exc_info.value.cause, ReadOnlyQueryError)


@pytest.mark.asyncio
async def test_shape_error_propagates(pg_queries, make_executor, pg_rows):
    del pg_rows[COLUMNS][0]["column_name"]
    executor = make_executor(rows=pg_rows)

    with pytest.raises(MetadataShapeError) as exc_info:
        await MetadataCollector(pg_queries).collect(executor)

    assert exc_info.value.label == COLUMNS


@pytest.mark.asyncio
async def test_builder_receives_check_exclusions(pg_queries, fake_executor):
    builder = SchemaModelBuilder(pg_queries.mapping, [r"^\d+_\d+_\d+_not_null$"])
    snapshot = await MetadataCollector(pg_queries, builder).collect(fake_executor)

    assert all(not c.name.endswith("_not_null") for c in snapshot.constraints)


@pytest.mark.asyncio
async def test_rows_that_are_not_mappings_become_catalog_error(pg_queries):
    executor = MagicMock()
    executor.run = AsyncMock(return_value=[42])

    with pytest.raises(CatalogQueryError) as exc_info:
        await MetadataCollector(pg_queries).collect_raw(executor)

    assert exc_info.value.label in QUERY_LABELS
    assert isinstance(exc_info.value.cause, TypeError)
