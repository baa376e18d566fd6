"""
SQL Validator - Read-only guard for SQL text.

Ensures only single SELECT statements reach the database through the
catalog executor, and flags whether SQL suggested by the LLM is read-only.
"""

import logging
import re
from typing import Tuple

import sqlparse
from sqlparse.tokens import DDL, DML

logger = logging.getLogger(__name__)


class SQLValidationError(ValueError):
    """Raised when SQL validation fails."""
    pass


class ReadOnlyQueryError(SQLValidationError):
    """Raised when a statement other than a single SELECT is submitted."""
    pass


class SQLValidator:
    """Validates that SQL text is a single read-only statement."""

    FORBIDDEN_PATTERNS = [
        r'INTO\s+OUTFILE',
        r'INTO\s+DUMPFILE',
        r'LOAD_FILE\s*\(',
        r'LOAD\s+DATA',
    ]

    def __init__(self):
        self._compiled_patterns = [re.compile(p, re.IGNORECASE) for p in self.FORBIDDEN_PATTERNS]

    def validate(self, sql: str) -> Tuple[bool, str]:
        """
        Validate SQL for read-only use.

        Returns:
            Tuple of (is_valid, message)
        """
        if not sql or not sql.strip():
            return False, "Empty SQL query"

        for pattern in self._compiled_patterns:
            if pattern.search(sql):
                return False, "Forbidden pattern detected in query"

        try:
            parsed = [s for s in sqlparse.parse(sql) if str(s).strip(" \t\r\n;")]
        except Exception as e:
            return False, f"Failed to parse SQL: {e}"

        if not parsed:
            return False, "Failed to parse SQL query"

        # Only allow single statements
        if len(parsed) > 1:
            return False, "Multiple SQL statements not allowed"

        statement = parsed[0]
        stmt_type = statement.get_type()
        if stmt_type != 'SELECT':
            return False, f"Only SELECT statements allowed, got: {stmt_type}"

        # Data-modifying statements can hide inside CTEs
        for token in statement.flatten():
            if token.ttype in (DML, DDL) and token.normalized.upper() != 'SELECT':
                return False, f"Forbidden keyword detected: {token.normalized.upper()}"

        return True, "Query validated successfully"

    def ensure_read_only(self, sql: str) -> str:
        """Return sql unchanged, or raise ReadOnlyQueryError."""
        is_valid, message = self.validate(sql)
        if not is_valid:
            logger.warning(f"Rejected non read-only query: {message}")
            raise ReadOnlyQueryError(message)
        return sql

    def is_read_only(self, sql: str) -> bool:
        return self.validate(sql)[0]
