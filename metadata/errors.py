"""Errors raised by the schema metadata pipeline."""

from pathlib import Path
from typing import Optional


class MetadataError(Exception):
    """Base class for metadata refresh failures."""
    kind = "metadata"


class CatalogQueryError(MetadataError):
    """One of the catalog queries failed or timed out; the refresh produced nothing."""
    kind = "catalog"

    def __init__(self, label: str, cause: Optional[BaseException] = None):
        self.label = label
        self.cause = cause
        detail = f": {cause}" if cause is not None and str(cause) else ""
        reason = type(cause).__name__ if cause is not None else "error"
        super().__init__(f"Catalog query '{label}' failed ({reason}){detail}")


class MetadataShapeError(MetadataError):
    """A raw catalog row is missing a field the model needs."""
    kind = "shape"

    def __init__(self, label: str, field: str, row_index: Optional[int] = None, message: str = ""):
        self.label = label
        self.field = field
        self.row_index = row_index
        where = f" (row {row_index})" if row_index is not None else ""
        text = message or f"missing required field '{field}'"
        super().__init__(f"Catalog query '{label}'{where}: {text}")


class ContextPersistenceError(MetadataError):
    """Reading or writing the schema context file failed."""
    kind = "persistence"

    def __init__(self, path: Path, cause: BaseException):
        self.path = path
        self.cause = cause
        super().__init__(f"Could not access schema context file {path}: {cause}")


class UnsupportedDatabaseError(ValueError):
    """No metadata support for the requested database type."""
