"""SQL module exports."""

from .validator import SQLValidator, SQLValidationError, ReadOnlyQueryError
from .generator import extract_sql, format_sql, get_sql_dialect

__all__ = [
    "SQLValidator", "SQLValidationError", "ReadOnlyQueryError",
    "extract_sql", "format_sql", "get_sql_dialect"
]
