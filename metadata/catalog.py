"""
Catalog queries for each supported engine.

Each engine provides six read-only queries against information_schema and
a RowMapping that translates the engine's column names into the canonical
field names used by metadata.models. System schemas are filtered out of
every query so engine internals never reach the model.
"""

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence, Tuple

from config import DatabaseType

TABLES = "tables"
VIEWS = "views"
COLUMNS = "columns"
ROUTINES = "routines"
TRIGGERS = "triggers"
CONSTRAINTS = "constraints"

QUERY_LABELS = (TABLES, VIEWS, COLUMNS, ROUTINES, TRIGGERS, CONSTRAINTS)


@dataclass(frozen=True)
class CatalogQuery:
    """A labelled catalog query. Results are recombined by label, not arrival order."""
    label: str
    sql: str


@dataclass(frozen=True)
class RowMapping:
    """canonical field -> catalog column name, per query label."""
    fields: Mapping[str, Mapping[str, str]]

    def column_for(self, label: str, canonical: str) -> str:
        return self.fields[label][canonical]


@dataclass(frozen=True)
class CatalogQuerySet:
    engine: DatabaseType
    queries: Tuple[CatalogQuery, ...]
    mapping: RowMapping

    def get(self, label: str) -> Optional[CatalogQuery]:
        for query in self.queries:
            if query.label == label:
                return query
        return None


def quote_literal(value: str) -> str:
    """Render a string as a SQL literal. Embedded quotes are doubled."""
    return "'" + str(value).replace("'", "''") + "'"


def schema_filter(column: str, excluded: Iterable[str]) -> str:
    """WHERE fragment that hides the given schemas; always true when none are given."""
    names = [quote_literal(name) for name in excluded if name]
    if not names:
        return "1 = 1"
    return f"{column} NOT IN ({', '.join(names)})"


POSTGRES_MAPPING = RowMapping({
    TABLES: {"name": "table_name", "schema": "table_schema"},
    VIEWS: {"name": "table_name", "schema": "table_schema"},
    COLUMNS: {
        "table": "table_name",
        "schema": "table_schema",
        "name": "column_name",
        "data_type": "data_type",
        "is_nullable": "is_nullable",
        "default_value": "column_default",
    },
    ROUTINES: {
        "name": "routine_name",
        "schema": "routine_schema",
        "return_type": "data_type",
        "kind": "routine_type",
    },
    TRIGGERS: {
        "name": "trigger_name",
        "schema": "event_object_schema",
        "table": "event_object_table",
        "event": "event_manipulation",
        "timing": "action_timing",
        "action": "action_statement",
    },
    CONSTRAINTS: {
        "name": "constraint_name",
        "type": "constraint_type",
        "schema": "table_schema",
        "table": "table_name",
        "column": "column_name",
        "foreign_schema": "foreign_table_schema",
        "foreign_table": "foreign_table_name",
        "foreign_column": "foreign_column_name",
    },
})


# MySQL returns information_schema column names in upper case
MYSQL_MAPPING = RowMapping({
    TABLES: {"name": "TABLE_NAME", "schema": "TABLE_SCHEMA"},
    VIEWS: {"name": "TABLE_NAME", "schema": "TABLE_SCHEMA"},
    COLUMNS: {
        "table": "TABLE_NAME",
        "schema": "TABLE_SCHEMA",
        "name": "COLUMN_NAME",
        "data_type": "COLUMN_TYPE",
        "is_nullable": "IS_NULLABLE",
        "default_value": "COLUMN_DEFAULT",
    },
    ROUTINES: {
        "name": "ROUTINE_NAME",
        "schema": "ROUTINE_SCHEMA",
        "return_type": "DATA_TYPE",
        "kind": "ROUTINE_TYPE",
    },
    TRIGGERS: {
        "name": "TRIGGER_NAME",
        "schema": "EVENT_OBJECT_SCHEMA",
        "table": "EVENT_OBJECT_TABLE",
        "event": "EVENT_MANIPULATION",
        "timing": "ACTION_TIMING",
        "action": "ACTION_STATEMENT",
    },
    CONSTRAINTS: {
        "name": "CONSTRAINT_NAME",
        "type": "CONSTRAINT_TYPE",
        "schema": "TABLE_SCHEMA",
        "table": "TABLE_NAME",
        "column": "COLUMN_NAME",
        "foreign_schema": "REFERENCED_TABLE_SCHEMA",
        "foreign_table": "REFERENCED_TABLE_NAME",
        "foreign_column": "REFERENCED_COLUMN_NAME",
    },
})


def build_postgres_queries(excluded_schemas: Sequence[str]) -> CatalogQuerySet:
    """PostgreSQL catalog queries over information_schema."""
    queries = (
        CatalogQuery(TABLES, f"""
            SELECT table_schema, table_name
            FROM information_schema.tables
            WHERE table_type = 'BASE TABLE'
            AND {schema_filter("table_schema", excluded_schemas)}
            ORDER BY table_schema, table_name
        """),
        CatalogQuery(VIEWS, f"""
            SELECT table_schema, table_name
            FROM information_schema.views
            WHERE {schema_filter("table_schema", excluded_schemas)}
            ORDER BY table_schema, table_name
        """),
        CatalogQuery(COLUMNS, f"""
            SELECT table_schema, table_name, column_name, data_type,
                   is_nullable, column_default
            FROM information_schema.columns
            WHERE {schema_filter("table_schema", excluded_schemas)}
            ORDER BY table_schema, table_name, ordinal_position
        """),
        CatalogQuery(ROUTINES, f"""
            SELECT routine_schema, routine_name, routine_type, data_type
            FROM information_schema.routines
            WHERE {schema_filter("routine_schema", excluded_schemas)}
            ORDER BY routine_schema, routine_name
        """),
        CatalogQuery(TRIGGERS, f"""
            SELECT trigger_name, event_object_schema, event_object_table,
                   event_manipulation, action_timing, action_statement
            FROM information_schema.triggers
            WHERE {schema_filter("event_object_schema", excluded_schemas)}
            ORDER BY event_object_schema, event_object_table, trigger_name, event_manipulation
        """),
        CatalogQuery(CONSTRAINTS, f"""
            SELECT
                tc.constraint_name,
                tc.constraint_type,
                tc.table_schema,
                tc.table_name,
                COALESCE(kcu.column_name, chk.column_name) AS column_name,
                ref.table_schema AS foreign_table_schema,
                ref.table_name AS foreign_table_name,
                ref.column_name AS foreign_column_name
            FROM information_schema.table_constraints AS tc
            LEFT JOIN information_schema.key_column_usage AS kcu
                ON tc.constraint_schema = kcu.constraint_schema
                AND tc.constraint_name = kcu.constraint_name
                AND tc.table_name = kcu.table_name
            LEFT JOIN information_schema.referential_constraints AS rc
                ON tc.constraint_type = 'FOREIGN KEY'
                AND rc.constraint_schema = tc.constraint_schema
                AND rc.constraint_name = tc.constraint_name
            LEFT JOIN information_schema.key_column_usage AS ref
                ON ref.constraint_schema = rc.unique_constraint_schema
                AND ref.constraint_name = rc.unique_constraint_name
                AND ref.ordinal_position = kcu.position_in_unique_constraint
            LEFT JOIN information_schema.constraint_column_usage AS chk
                ON tc.constraint_type = 'CHECK'
                AND chk.constraint_name = tc.constraint_name
                AND chk.constraint_schema = tc.constraint_schema
            WHERE {schema_filter("tc.table_schema", excluded_schemas)}
            ORDER BY tc.table_schema, tc.table_name, tc.constraint_name, kcu.ordinal_position
        """),
    )
    return CatalogQuerySet(DatabaseType.POSTGRESQL, queries, POSTGRES_MAPPING)


def build_mysql_queries(excluded_schemas: Sequence[str]) -> CatalogQuerySet:
    """MySQL catalog queries over INFORMATION_SCHEMA."""
    queries = (
        CatalogQuery(TABLES, f"""
            SELECT TABLE_SCHEMA, TABLE_NAME
            FROM INFORMATION_SCHEMA.TABLES
            WHERE TABLE_TYPE = 'BASE TABLE'
            AND {schema_filter("TABLE_SCHEMA", excluded_schemas)}
            ORDER BY TABLE_SCHEMA, TABLE_NAME
        """),
        CatalogQuery(VIEWS, f"""
            SELECT TABLE_SCHEMA, TABLE_NAME
            FROM INFORMATION_SCHEMA.VIEWS
            WHERE {schema_filter("TABLE_SCHEMA", excluded_schemas)}
            ORDER BY TABLE_SCHEMA, TABLE_NAME
        """),
        CatalogQuery(COLUMNS, f"""
            SELECT TABLE_SCHEMA, TABLE_NAME, COLUMN_NAME, COLUMN_TYPE,
                   IS_NULLABLE, COLUMN_DEFAULT
            FROM INFORMATION_SCHEMA.COLUMNS
            WHERE {schema_filter("TABLE_SCHEMA", excluded_schemas)}
            ORDER BY TABLE_SCHEMA, TABLE_NAME, ORDINAL_POSITION
        """),
        CatalogQuery(ROUTINES, f"""
            SELECT ROUTINE_SCHEMA, ROUTINE_NAME, ROUTINE_TYPE, DATA_TYPE
            FROM INFORMATION_SCHEMA.ROUTINES
            WHERE {schema_filter("ROUTINE_SCHEMA", excluded_schemas)}
            ORDER BY ROUTINE_SCHEMA, ROUTINE_NAME
        """),
        CatalogQuery(TRIGGERS, f"""
            SELECT TRIGGER_NAME, EVENT_OBJECT_SCHEMA, EVENT_OBJECT_TABLE,
                   EVENT_MANIPULATION, ACTION_TIMING, ACTION_STATEMENT
            FROM INFORMATION_SCHEMA.TRIGGERS
            WHERE {schema_filter("EVENT_OBJECT_SCHEMA", excluded_schemas)}
            ORDER BY EVENT_OBJECT_SCHEMA, EVENT_OBJECT_TABLE, TRIGGER_NAME
        """),
        CatalogQuery(CONSTRAINTS, f"""
            SELECT
                tc.CONSTRAINT_NAME,
                tc.CONSTRAINT_TYPE,
                tc.TABLE_SCHEMA,
                tc.TABLE_NAME,
                kcu.COLUMN_NAME,
                kcu.REFERENCED_TABLE_SCHEMA,
                kcu.REFERENCED_TABLE_NAME,
                kcu.REFERENCED_COLUMN_NAME
            FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS AS tc
            LEFT JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE AS kcu
                ON tc.CONSTRAINT_SCHEMA = kcu.CONSTRAINT_SCHEMA
                AND tc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
                AND tc.TABLE_NAME = kcu.TABLE_NAME
            WHERE {schema_filter("tc.TABLE_SCHEMA", excluded_schemas)}
            ORDER BY tc.TABLE_SCHEMA, tc.TABLE_NAME, tc.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
        """),
    )
    return CatalogQuerySet(DatabaseType.MYSQL, queries, MYSQL_MAPPING)


