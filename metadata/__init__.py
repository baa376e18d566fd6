"""
Schema metadata pipeline.

Provides:
- Concurrent catalog collection
- Typed, cross-referenced schema model
- Pseudo-DDL formatting for LLM grounding context
- Context file persistence
"""

from .models import (
    TableInfo,
    ViewInfo,
    ColumnInfo,
    ProcedureInfo,
    TriggerInfo,
    ConstraintInfo,
    ConstraintType,
    TriggerTiming,
    RoutineKind,
    SchemaSnapshot,
)
from .errors import (
    MetadataError,
    CatalogQueryError,
    MetadataShapeError,
    ContextPersistenceError,
    UnsupportedDatabaseError,
)
from .catalog import CatalogQuery, CatalogQuerySet, build_postgres_queries, build_mysql_queries
from .builder import SchemaModelBuilder, SchemaGraph, build_graph
from .collector import MetadataCollector
from .formatter import SchemaFormatter, format_schema
from .persistence import ContextStore
from .service import (
    MetadataService,
    MetadataPipeline,
    PostgresMetadataService,
    MySQLMetadataService,
    RefreshOutcome,
    create_metadata_service,
)

__all__ = [
    "TableInfo", "ViewInfo", "ColumnInfo", "ProcedureInfo", "TriggerInfo",
    "ConstraintInfo", "ConstraintType", "TriggerTiming", "RoutineKind", "SchemaSnapshot",
    "MetadataError", "CatalogQueryError", "MetadataShapeError",
    "ContextPersistenceError", "UnsupportedDatabaseError",
    "CatalogQuery", "CatalogQuerySet", "build_postgres_queries", "build_mysql_queries",
    "SchemaModelBuilder", "SchemaGraph", "build_graph",
    "MetadataCollector",
    "SchemaFormatter", "format_schema",
    "ContextStore",
    "MetadataService", "MetadataPipeline", "PostgresMetadataService",
    "MySQLMetadataService", "RefreshOutcome", "create_metadata_service",
]
