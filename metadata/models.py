"""
Data models for the schema snapshot produced by a metadata refresh.

Every record is immutable. A refresh builds a fresh SchemaSnapshot and
never edits the previous one.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class ConstraintType(Enum):
    PRIMARY_KEY = "PRIMARY KEY"
    FOREIGN_KEY = "FOREIGN KEY"
    UNIQUE = "UNIQUE"
    CHECK = "CHECK"


class TriggerTiming(Enum):
    BEFORE = "BEFORE"
    AFTER = "AFTER"
    INSTEAD_OF = "INSTEAD OF"


class RoutineKind(Enum):
    FUNCTION = "FUNCTION"
    PROCEDURE = "PROCEDURE"


@dataclass(frozen=True)
class TableInfo:
    """A base table or a view, keyed by (schema, name)."""
    name: str
    schema: str

    @property
    def key(self) -> Tuple[str, str]:
        return (self.schema, self.name)

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.name}" if self.schema else self.name


# Views share the table shape; membership in SchemaSnapshot.views marks them.
ViewInfo = TableInfo


@dataclass(frozen=True)
class ColumnInfo:
    """A single column of a table or view."""
    table: str
    schema: str
    name: str
    data_type: str
    is_nullable: bool = True
    default_value: Optional[str] = None


@dataclass(frozen=True)
class ProcedureInfo:
    name: str
    schema: str
    return_type: Optional[str] = None
    kind: RoutineKind = RoutineKind.FUNCTION


@dataclass(frozen=True)
class TriggerInfo:
    name: str
    schema: str
    table: str
    event: str
    timing: TriggerTiming
    action: str = ""


@dataclass(frozen=True)
class ConstraintInfo:
    """
    One column of a constraint. Composite keys arrive as one record per
    column, sharing the constraint name.

    FOREIGN_KEY constraints always carry foreign_table and foreign_column;
    every other type carries None there.
    """
    name: str
    type: ConstraintType
    schema: str
    table: str
    column: str
    foreign_schema: Optional[str] = None
    foreign_table: Optional[str] = None
    foreign_column: Optional[str] = None

    @property
    def is_foreign_key(self) -> bool:
        return self.type == ConstraintType.FOREIGN_KEY


@dataclass
class SchemaGroup:
    """Tables, views and procedures that live in one schema."""
    tables: List[TableInfo] = field(default_factory=list)
    views: List[TableInfo] = field(default_factory=list)
    procedures: List[ProcedureInfo] = field(default_factory=list)


@dataclass(frozen=True)
class SchemaSnapshot:
    """Complete result of one metadata refresh."""
    tables: Tuple[TableInfo, ...] = ()
    views: Tuple[TableInfo, ...] = ()
    columns: Tuple[ColumnInfo, ...] = ()
    procedures: Tuple[ProcedureInfo, ...] = ()
    triggers: Tuple[TriggerInfo, ...] = ()
    constraints: Tuple[ConstraintInfo, ...] = ()

    @property
    def is_empty(self) -> bool:
        """True when there is nothing worth describing to a language model."""
        return not (self.tables or self.views or self.procedures)

    def group_by_schema(self) -> Dict[str, SchemaGroup]:
        """Group tables, views and procedures by schema, sorted by schema name."""
        grouped: Dict[str, SchemaGroup] = {}
        for table in self.tables:
            grouped.setdefault(table.schema, SchemaGroup()).tables.append(table)
        for view in self.views:
            grouped.setdefault(view.schema, SchemaGroup()).views.append(view)
        for proc in self.procedures:
            grouped.setdefault(proc.schema, SchemaGroup()).procedures.append(proc)
        return {name: grouped[name] for name in sorted(grouped)}

    def foreign_key_edges(self) -> List[Tuple[str, str]]:
        """Directed (from_table, to_table) pairs derived from FOREIGN KEY constraints."""
        edges = []
        for c in self.constraints:
            if not c.is_foreign_key:
                continue
            source = f"{c.schema}.{c.table}" if c.schema else c.table
            target_schema = c.foreign_schema or c.schema
            target = f"{target_schema}.{c.foreign_table}" if target_schema else c.foreign_table
            edge = (source, target)
            if edge not in edges:
                edges.append(edge)
        return edges
