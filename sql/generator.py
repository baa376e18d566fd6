"""
SQL extraction from LLM replies.

The assistant asks the model for SQL; this module pulls the statement out of
a free-text reply and pretty-prints it for display.
"""

import logging
import re
from typing import Optional

import sqlparse

logger = logging.getLogger(__name__)

_CODE_BLOCK = re.compile(r'```(?:sql|postgresql|mysql)?\s*(.*?)```', re.DOTALL | re.IGNORECASE)
_STATEMENT = re.compile(r'((?:WITH|SELECT)\s+.+?(?:;|$))', re.DOTALL | re.IGNORECASE)


def get_sql_dialect(db_type: str) -> str:
    """Get the SQL dialect name for the given database type."""
    dialects = {
        "mysql": "MySQL",
        "postgresql": "PostgreSQL"
    }
    return dialects.get(db_type, "SQL")


def extract_sql(response: str) -> Optional[str]:
    """
    Extract a SQL statement from an LLM response.

    Looks for a fenced code block first, then for a bare SELECT/WITH
    statement. Returns None when the reply contains no SQL.
    """
    if not response:
        return None

    code_block = _CODE_BLOCK.search(response)
    if code_block:
        sql = code_block.group(1).strip()
    else:
        match = _STATEMENT.search(response)
        if not match:
            return None
        sql = match.group(1).strip()

    if not sql:
        return None
    return format_sql(sql)


def format_sql(sql: str) -> str:
    """Pretty-print SQL with upper-case keywords."""
    return sqlparse.format(sql, reindent=True, keyword_case="upper").strip()
