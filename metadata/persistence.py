"""
Schema context persistence.

Keeps the latest formatted schema description in a single UTF-8 file in the
user's application data directory so it can be prefixed onto LLM prompts.
Each save fully replaces the previous file.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from .errors import ContextPersistenceError

logger = logging.getLogger(__name__)


class ContextStore:
    """Single-file store for the formatted schema context."""

    def __init__(self, directory: Union[str, Path], filename: str = "schema_context.sql"):
        self.directory = Path(directory)
        self.filename = filename

    @property
    def path(self) -> Path:
        return self.directory / self.filename

    def save(self, text: str) -> Path:
        """
        Write text to the context file, replacing any previous content.

        The write goes to a temporary file first, so a failed save leaves the
        previous file intact.

        Returns:
            Path of the context file
        """
        target = self.path
        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".schema-", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                handle.write(text)
            os.replace(tmp_name, target)
            tmp_name = None
        except OSError as e:
            logger.error(f"Error writing schema context to {target}: {e}")
            raise ContextPersistenceError(target, e) from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.remove(tmp_name)

        logger.info(f"Schema context written to {target}")
        return target

    def load(self) -> Optional[str]:
        """Return the saved context, or None when nothing has been saved yet."""
        target = self.path
        try:
            with open(target, "r", encoding="utf-8", newline="") as handle:
                return handle.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Error reading schema context at {target}: {e}")
            raise ContextPersistenceError(target, e) from e

    def clear(self) -> None:
        """Remove the context file if it exists."""
        try:
            self.path.unlink()
            logger.info(f"Schema context removed: {self.path}")
        except FileNotFoundError:
            return
        except OSError as e:
            raise ContextPersistenceError(self.path, e) from e
