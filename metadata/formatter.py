"""
Schema formatter.

Serializes a SchemaSnapshot into an approximate pseudo-DDL description used
as language-model grounding context. View, check, trigger and procedure
bodies are not available from catalog introspection and are rendered as
stubs; the output is not meant to be executable.
"""

import logging
import re
from typing import List

from .builder import RelationNode, build_graph
from .models import ConstraintType, SchemaSnapshot

logger = logging.getLogger(__name__)

HEADER = "-- Database schema (generated from catalog introspection)"
HEADER_NOTE = "-- Definitions are approximate and are not executable SQL."
EMPTY_PLACEHOLDER = "-- No tables, views or procedures were found in the connected database."
PROCEDURES_HEADER = "-- Stored procedures and functions"
FOOTER = "-- End of schema"
NOT_AVAILABLE = "/* definition not available */"

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def clean(value) -> str:
    """Make an identifier safe to embed in a single line of prompt text."""
    return _CONTROL_CHARS.sub(" ", "" if value is None else str(value)).strip()


def qualified(schema: str, name: str) -> str:
    schema, name = clean(schema), clean(name)
    return f"{schema}.{name}" if schema else name


class SchemaFormatter:
    """Renders snapshots deterministically; never raises on a valid snapshot."""

    def format(self, snapshot: SchemaSnapshot) -> str:
        lines: List[str] = [HEADER, HEADER_NOTE, ""]

        if snapshot.is_empty:
            lines.extend([EMPTY_PLACEHOLDER, "", FOOTER])
            return "\n".join(lines) + "\n"

        graph = build_graph(snapshot)
        for node in graph:
            if node.is_view:
                lines.extend(self._view_block(node))
            else:
                lines.extend(self._table_block(node))
            lines.append("")

        if graph.procedures:
            lines.append(PROCEDURES_HEADER)
            for proc in graph.procedures:
                lines.append(f"CREATE PROCEDURE {qualified(proc.schema, proc.name)}() -- definition not available")
            lines.append("")

        lines.append(FOOTER)
        return "\n".join(lines) + "\n"

    def _view_block(self, node: RelationNode) -> List[str]:
        name = qualified(node.info.schema, node.info.name)
        return [
            f"-- View: {name}",
            f"CREATE VIEW {name} AS {NOT_AVAILABLE};",
        ]

    def _table_block(self, node: RelationNode) -> List[str]:
        name = qualified(node.info.schema, node.info.name)
        lines = [f"-- Table: {name}", f"CREATE TABLE {name} ("]

        column_lines = [self._column_line(node, col) for col in node.columns]
        if column_lines:
            lines.append(",\n".join(column_lines))
        lines.append(");")

        for check in node.checks():
            lines.append(
                f"ALTER TABLE {name} ADD CONSTRAINT {clean(check.name)} CHECK ({NOT_AVAILABLE});"
            )

        for fk in node.foreign_keys():
            lines.append(
                f"ALTER TABLE {name} ADD CONSTRAINT {clean(fk.name)} "
                f"FOREIGN KEY ({', '.join(clean(c) for c in fk.columns)}) "
                f"REFERENCES {clean(fk.foreign_table)}({', '.join(clean(c) for c in fk.foreign_columns)});"
            )

        for trigger in node.triggers:
            timing = trigger.timing.value
            event = clean(trigger.event)
            lines.append(f"-- Trigger: {clean(trigger.name)} ({timing} {event})")
            lines.append(
                f"CREATE TRIGGER {clean(trigger.name)} {timing} {event} ON {name} "
                f"FOR EACH ROW EXECUTE {NOT_AVAILABLE};"
            )

        return lines

    def _column_line(self, node: RelationNode, col) -> str:
        parts = [f"  {clean(col.name)} {clean(col.data_type)}"]
        key = node.key_constraint_for(col.name)
        if key == ConstraintType.PRIMARY_KEY:
            parts.append("PRIMARY KEY")
        elif key == ConstraintType.UNIQUE:
            parts.append("UNIQUE")
        if not col.is_nullable and key != ConstraintType.PRIMARY_KEY:
            parts.append("NOT NULL")
        if col.default_value is not None:
            parts.append(f"DEFAULT {clean(col.default_value)}")
        return " ".join(parts)


def format_schema(snapshot: SchemaSnapshot) -> str:
    """Convenience wrapper around SchemaFormatter().format."""
    return SchemaFormatter().format(snapshot)
