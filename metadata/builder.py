"""
Schema model builder.

Turns raw catalog rows (engine-specific column names, loosely typed values)
into the typed records of metadata.models, and cross-references those
records into a SchemaGraph for rendering.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .catalog import (
    COLUMNS,
    CONSTRAINTS,
    QUERY_LABELS,
    ROUTINES,
    TABLES,
    TRIGGERS,
    VIEWS,
    RowMapping,
)
from .errors import MetadataShapeError
from .models import (
    ColumnInfo,
    ConstraintInfo,
    ConstraintType,
    ProcedureInfo,
    RoutineKind,
    SchemaSnapshot,
    TableInfo,
    TriggerInfo,
    TriggerTiming,
)

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]

_MISSING = object()

_TRUE_STRINGS = {"YES", "Y", "TRUE", "T", "1"}
_FALSE_STRINGS = {"NO", "N", "FALSE", "F", "0"}

# Fields whose catalog column may legitimately be absent from the row
_OPTIONAL_FIELDS = {
    COLUMNS: {"is_nullable", "default_value"},
    ROUTINES: {"return_type", "kind"},
    TRIGGERS: {"action"},
    CONSTRAINTS: {"foreign_schema", "foreign_table", "foreign_column"},
}


def _normalize_token(value: Any) -> str:
    return re.sub(r"[\s_]+", " ", str(value).strip().upper())


def _lookup(row: Row, column: str) -> Any:
    """Find a column in a row, falling back to a case-insensitive match."""
    if column in row:
        return row[column]
    lowered = column.lower()
    for key, value in row.items():
        if str(key).lower() == lowered:
            return value
    return _MISSING


def parse_nullable(value: Any) -> bool:
    """Coerce a catalog yes/no flag to bool. Unknown values count as nullable."""
    if isinstance(value, bool):
        return value
    if value is None:
        return True
    if isinstance(value, (int, float)):
        return bool(value)
    token = str(value).strip().upper()
    if token in _TRUE_STRINGS:
        return True
    if token in _FALSE_STRINGS:
        return False
    return True


def merge_trigger_events(triggers: Iterable[TriggerInfo]) -> Tuple[TriggerInfo, ...]:
    """
    Collapse one-row-per-event catalog output into one trigger per
    (schema, table, name, timing), joining the events with OR in the order
    they were first seen.
    """
    merged: Dict[Tuple[str, str, str, TriggerTiming], TriggerInfo] = {}
    for trigger in triggers:
        key = (trigger.schema, trigger.table, trigger.name, trigger.timing)
        existing = merged.get(key)
        if existing is None:
            merged[key] = trigger
            continue
        events = existing.event.split(" OR ")
        if trigger.event not in events:
            merged[key] = replace(existing, event=" OR ".join(events + [trigger.event]))
    return tuple(merged.values())


class SchemaModelBuilder:
    """
    Maps raw catalog rows to a SchemaSnapshot.

    Args:
        mapping: Engine RowMapping (canonical field -> catalog column).
        check_exclusions: Regexes; CHECK constraints whose name matches any of
            them are left out of the snapshot.
    """

    def __init__(self, mapping: RowMapping, check_exclusions: Iterable[str] = ()):
        self.mapping = mapping
        self.check_exclusions = [re.compile(p) for p in check_exclusions]

    def build(self, raw: Mapping[str, Sequence[Row]]) -> SchemaSnapshot:
        for label in QUERY_LABELS:
            if label not in raw:
                raise MetadataShapeError(label, "*", message="no result set for this query")

        snapshot = SchemaSnapshot(
            tables=tuple(self._relation(label=TABLES, row=row, index=i) for i, row in enumerate(raw[TABLES])),
            views=tuple(self._relation(label=VIEWS, row=row, index=i) for i, row in enumerate(raw[VIEWS])),
            columns=tuple(self._column(row, i) for i, row in enumerate(raw[COLUMNS])),
            procedures=tuple(self._procedure(row, i) for i, row in enumerate(raw[ROUTINES])),
            triggers=merge_trigger_events(self._trigger(row, i) for i, row in enumerate(raw[TRIGGERS])),
            constraints=tuple(
                c for c in (self._constraint(row, i) for i, row in enumerate(raw[CONSTRAINTS]))
                if not self._is_excluded(c)
            ),
        )
        logger.info(
            f"Built schema model: {len(snapshot.tables)} tables, {len(snapshot.views)} views, "
            f"{len(snapshot.columns)} columns, {len(snapshot.constraints)} constraints"
        )
        return snapshot

    # Field access

    def _get(self, label: str, row: Row, index: int, name: str, required: bool = True) -> Any:
        column = self.mapping.column_for(label, name)
        value = _lookup(row, column)
        if value is _MISSING:
            if name in _OPTIONAL_FIELDS.get(label, set()):
                return None
            raise MetadataShapeError(label, column, index)
        if required and value is None:
            raise MetadataShapeError(label, column, index, message=f"field '{column}' is null")
        return value

    def _text(self, label: str, row: Row, index: int, name: str) -> str:
        return str(self._get(label, row, index, name))

    def _optional_text(self, label: str, row: Row, index: int, name: str) -> Optional[str]:
        value = self._get(label, row, index, name, required=False)
        return None if value is None else str(value)

    # Record builders

    def _relation(self, label: str, row: Row, index: int) -> TableInfo:
        return TableInfo(
            name=self._text(label, row, index, "name"),
            schema=self._text(label, row, index, "schema"),
        )

    def _column(self, row: Row, index: int) -> ColumnInfo:
        return ColumnInfo(
            table=self._text(COLUMNS, row, index, "table"),
            schema=self._optional_text(COLUMNS, row, index, "schema") or "",
            name=self._text(COLUMNS, row, index, "name"),
            data_type=self._text(COLUMNS, row, index, "data_type"),
            is_nullable=parse_nullable(self._get(COLUMNS, row, index, "is_nullable", required=False)),
            default_value=self._optional_text(COLUMNS, row, index, "default_value"),
        )

    def _procedure(self, row: Row, index: int) -> ProcedureInfo:
        kind_raw = self._optional_text(ROUTINES, row, index, "kind")
        kind = RoutineKind.FUNCTION
        if kind_raw and _normalize_token(kind_raw) == "PROCEDURE":
            kind = RoutineKind.PROCEDURE
        return ProcedureInfo(
            name=self._text(ROUTINES, row, index, "name"),
            schema=self._text(ROUTINES, row, index, "schema"),
            return_type=self._optional_text(ROUTINES, row, index, "return_type"),
            kind=kind,
        )

    def _trigger(self, row: Row, index: int) -> TriggerInfo:
        timing_raw = self._text(TRIGGERS, row, index, "timing")
        try:
            timing = TriggerTiming(_normalize_token(timing_raw))
        except ValueError:
            column = self.mapping.column_for(TRIGGERS, "timing")
            raise MetadataShapeError(
                TRIGGERS, column, index, message=f"unknown trigger timing '{timing_raw}'"
            )
        return TriggerInfo(
            name=self._text(TRIGGERS, row, index, "name"),
            schema=self._text(TRIGGERS, row, index, "schema"),
            table=self._text(TRIGGERS, row, index, "table"),
            event=_normalize_token(self._text(TRIGGERS, row, index, "event")),
            timing=timing,
            action=self._optional_text(TRIGGERS, row, index, "action") or "",
        )

    def _constraint(self, row: Row, index: int) -> ConstraintInfo:
        type_raw = self._text(CONSTRAINTS, row, index, "type")
        try:
            ctype = ConstraintType(_normalize_token(type_raw))
        except ValueError:
            column = self.mapping.column_for(CONSTRAINTS, "type")
            raise MetadataShapeError(
                CONSTRAINTS, column, index, message=f"unknown constraint type '{type_raw}'"
            )

        name = self._text(CONSTRAINTS, row, index, "name")
        column_value = self._get(CONSTRAINTS, row, index, "column", required=False)
        foreign_schema = foreign_table = foreign_column = None

        if ctype == ConstraintType.FOREIGN_KEY:
            foreign_schema = self._optional_text(CONSTRAINTS, row, index, "foreign_schema")
            foreign_table = self._optional_text(CONSTRAINTS, row, index, "foreign_table")
            foreign_column = self._optional_text(CONSTRAINTS, row, index, "foreign_column")
            if not foreign_table or not foreign_column:
                raise MetadataShapeError(
                    CONSTRAINTS,
                    self.mapping.column_for(CONSTRAINTS, "foreign_table"),
                    index,
                    message=f"foreign key '{name}' has no referenced table/column",
                )

        return ConstraintInfo(
            name=name,
            type=ctype,
            schema=self._text(CONSTRAINTS, row, index, "schema"),
            table=self._text(CONSTRAINTS, row, index, "table"),
            column="" if column_value is None else str(column_value),
            foreign_schema=foreign_schema,
            foreign_table=foreign_table,
            foreign_column=foreign_column,
        )

    def _is_excluded(self, constraint: ConstraintInfo) -> bool:
        if constraint.type != ConstraintType.CHECK:
            return False
        return any(p.search(constraint.name) for p in self.check_exclusions)


@dataclass
class RelationNode:
    """A table or view with the records that belong to it."""
    info: TableInfo
    is_view: bool
    columns: List[ColumnInfo] = field(default_factory=list)
    constraints: List[ConstraintInfo] = field(default_factory=list)
    triggers: List[TriggerInfo] = field(default_factory=list)

    def key_constraint_for(self, column: str) -> Optional[ConstraintType]:
        """PRIMARY KEY wins over UNIQUE when both exist on the column."""
        found = None
        for c in self.constraints:
            if c.column != column:
                continue
            if c.type == ConstraintType.PRIMARY_KEY:
                return c.type
            if c.type == ConstraintType.UNIQUE:
                found = c.type
        return found

    def primary_key_columns(self) -> List[str]:
        return [c.column for c in self.constraints if c.type == ConstraintType.PRIMARY_KEY]

    def checks(self) -> List[ConstraintInfo]:
        """One record per CHECK name; multi-column checks arrive once per column."""
        seen = set()
        result = []
        for c in self.constraints:
            if c.type == ConstraintType.CHECK and c.name not in seen:
                seen.add(c.name)
                result.append(c)
        return result

    def foreign_keys(self) -> List["ForeignKey"]:
        """FOREIGN KEY rows grouped by constraint name, column pairs kept in catalog order."""
        grouped: Dict[str, ForeignKey] = {}
        for c in self.constraints:
            if c.type != ConstraintType.FOREIGN_KEY:
                continue
            fk = grouped.get(c.name)
            if fk is None:
                grouped[c.name] = ForeignKey(
                    name=c.name,
                    columns=(c.column,),
                    foreign_schema=c.foreign_schema,
                    foreign_table=c.foreign_table,
                    foreign_columns=(c.foreign_column,),
                )
            elif (c.column, c.foreign_column) not in fk.pairs:
                grouped[c.name] = replace(
                    fk,
                    columns=fk.columns + (c.column,),
                    foreign_columns=fk.foreign_columns + (c.foreign_column,),
                )
        return list(grouped.values())


@dataclass(frozen=True)
class ForeignKey:
    """A whole foreign key constraint, possibly spanning several columns."""
    name: str
    columns: Tuple[str, ...]
    foreign_schema: Optional[str]
    foreign_table: str
    foreign_columns: Tuple[str, ...]

    @property
    def pairs(self) -> List[Tuple[str, str]]:
        return list(zip(self.columns, self.foreign_columns))


@dataclass
class SchemaGraph:
    """Tables and views in first-appearance order, each with its owned records."""
    nodes: Dict[Tuple[str, str], RelationNode] = field(default_factory=dict)
    procedures: List[ProcedureInfo] = field(default_factory=list)

    def find(self, schema: str, table: str) -> Optional[RelationNode]:
        """Match by (schema, table); with no schema, fall back to a unique table-name match."""
        if schema:
            return self.nodes.get((schema, table))
        matches = [n for (s, t), n in self.nodes.items() if t == table]
        return matches[0] if len(matches) == 1 else None

    def __iter__(self):
        return iter(self.nodes.values())

    def __len__(self) -> int:
        return len(self.nodes)


def build_graph(snapshot: SchemaSnapshot) -> SchemaGraph:
    """
    Attach columns, constraints and triggers to their owning table or view.

    A duplicated (schema, name) keeps its first position and takes the last
    record. Records whose table is unknown are skipped.
    """
    graph = SchemaGraph(procedures=list(snapshot.procedures))

    for info, is_view in [(t, False) for t in snapshot.tables] + [(v, True) for v in snapshot.views]:
        if info.key in graph.nodes:
            logger.debug(f"Duplicate relation {info.qualified_name}; keeping the last definition")
        graph.nodes[info.key] = RelationNode(info=info, is_view=is_view)

    for col in snapshot.columns:
        node = graph.find(col.schema, col.table)
        if node is None:
            logger.debug(f"Skipping orphaned column {col.schema}.{col.table}.{col.name}")
            continue
        node.columns.append(col)

    for constraint in snapshot.constraints:
        node = graph.find(constraint.schema, constraint.table)
        if node is None:
            logger.debug(f"Skipping constraint {constraint.name} on unknown table {constraint.table}")
            continue
        node.constraints.append(constraint)

    for trigger in snapshot.triggers:
        node = graph.find(trigger.schema, trigger.table)
        if node is None:
            logger.debug(f"Skipping trigger {trigger.name} on unknown table {trigger.table}")
            continue
        node.triggers.append(trigger)

    return graph
