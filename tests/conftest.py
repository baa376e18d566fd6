import asyncio

import pytest

from config import MetadataConfig
from metadata.catalog import (
    COLUMNS,
    CONSTRAINTS,
    ROUTINES,
    TABLES,
    TRIGGERS,
    VIEWS,
    build_postgres_queries,
)
from metadata.persistence import ContextStore


class FakeExecutor:
    """
    CatalogQueryExecutor stand-in.

    Answers each catalog query with the rows registered for its label. A
    label listed in `failures` raises the given exception; one listed in
    `delays` sleeps first.
    """

    def __init__(self, query_set, rows, failures=None, delays=None):
        self.labels = {q.sql: q.label for q in query_set.queries}
        self.rows = rows
        self.failures = failures or {}
        self.delays = delays or {}
        self.calls = []
        self.cancelled = []

    async def run(self, query):
        label = self.labels[query]
        self.calls.append(label)
        try:
            if label in self.delays:
                await asyncio.sleep(self.delays[label])
        except asyncio.CancelledError:
            self.cancelled.append(label)
            raise
        if label in self.failures:
            raise self.failures[label]
        return [dict(row) for row in self.rows.get(label, [])]


def postgres_rows():
    """information_schema rows for a small shop database."""
    return {
        TABLES: [
            {"table_schema": "public", "table_name": "users"},
            {"table_schema": "public", "table_name": "orders"},
        ],
        VIEWS: [
            {"table_schema": "public", "table_name": "active_users"},
        ],
        COLUMNS: [
            {"table_schema": "public", "table_name": "users", "column_name": "id",
             "data_type": "uuid", "is_nullable": "NO", "column_default": None},
            {"table_schema": "public", "table_name": "users", "column_name": "email",
             "data_type": "varchar", "is_nullable": "YES", "column_default": None},
            {"table_schema": "public", "table_name": "orders", "column_name": "id",
             "data_type": "integer", "is_nullable": "NO",
             "column_default": "nextval('orders_id_seq'::regclass)"},
            {"table_schema": "public", "table_name": "orders", "column_name": "user_id",
             "data_type": "uuid", "is_nullable": "NO", "column_default": None},
        ],
        ROUTINES: [
            {"routine_schema": "public", "routine_name": "refresh_stats",
             "routine_type": "FUNCTION", "data_type": "void"},
        ],
        TRIGGERS: [
            {"trigger_name": "orders_audit", "event_object_schema": "public",
             "event_object_table": "orders", "event_manipulation": "INSERT",
             "action_timing": "AFTER", "action_statement": "EXECUTE FUNCTION audit()"},
        ],
        CONSTRAINTS: [
            {"constraint_name": "users_pkey", "constraint_type": "PRIMARY KEY",
             "table_schema": "public", "table_name": "users", "column_name": "id",
             "foreign_table_schema": None, "foreign_table_name": None, "foreign_column_name": None},
            {"constraint_name": "users_email_key", "constraint_type": "UNIQUE",
             "table_schema": "public", "table_name": "users", "column_name": "email",
             "foreign_table_schema": None, "foreign_table_name": None, "foreign_column_name": None},
            {"constraint_name": "orders_pkey", "constraint_type": "PRIMARY KEY",
             "table_schema": "public", "table_name": "orders", "column_name": "id",
             "foreign_table_schema": None, "foreign_table_name": None, "foreign_column_name": None},
            {"constraint_name": "orders_user_id_fkey", "constraint_type": "FOREIGN KEY",
             "table_schema": "public", "table_name": "orders", "column_name": "user_id",
             "foreign_table_schema": "public", "foreign_table_name": "users",
             "foreign_column_name": "id"},
            {"constraint_name": "2200_16386_1_not_null", "constraint_type": "CHECK",
             "table_schema": "public", "table_name": "orders", "column_name": "id",
             "foreign_table_schema": None, "foreign_table_name": None, "foreign_column_name": None},
            {"constraint_name": "orders_total_check", "constraint_type": "CHECK",
             "table_schema": "public", "table_name": "orders", "column_name": None,
             "foreign_table_schema": None, "foreign_table_name": None, "foreign_column_name": None},
        ],
    }


@pytest.fixture
def pg_rows():
    return postgres_rows()


@pytest.fixture
def pg_queries():
    return build_postgres_queries(["pg_catalog", "information_schema"])


@pytest.fixture
def fake_executor(pg_queries, pg_rows):
    return FakeExecutor(pg_queries, pg_rows)


@pytest.fixture
def make_executor(pg_queries, pg_rows):
    def _make(rows=None, failures=None, delays=None, query_set=None):
        return FakeExecutor(query_set or pg_queries, pg_rows if rows is None else rows, failures, delays)
    return _make


@pytest.fixture
def metadata_config(tmp_path):
    return MetadataConfig(
        excluded_schemas=[],
        check_exclude_patterns=[r"^\d+_\d+_\d+_not_null$"],
        query_timeout=5.0,
        context_dir=tmp_path,
        context_filename="schema_context.sql",
        clear_on_disconnect=False,
    )


@pytest.fixture
def store(tmp_path):
    return ContextStore(tmp_path, "schema_context.sql")
