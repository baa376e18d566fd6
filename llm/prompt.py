"""
Prompt assembly.

The persisted schema context, when there is one, is prefixed onto the
system instruction so the model answers against the connected database.
"""

import logging
from typing import Dict, List, Optional

from metadata.persistence import ContextStore

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n-----\n\n"

BASE_SYSTEM_MESSAGE = """You are an expert assistant for relational databases (PostgreSQL and MySQL).
When asked about the database, give clear, accurate and concise explanations.
When asked to write SQL, make sure it is syntactically correct and efficient for the connected engine.
If the user asks for a query, reply with only the SQL query in a ```sql code block unless an explanation is requested.
If a request for SQL is ambiguous, ask for clarification before writing the query.
Only write read-only queries (SELECT or WITH ... SELECT). Never modify data or schema.
If a schema context is provided above, use its table, column and key names exactly as written.
If no schema context is provided, answer in general terms."""


class PromptAssembler:
    """Builds chat messages grounded in the persisted schema context."""

    def __init__(self, store: ContextStore, base_message: str = BASE_SYSTEM_MESSAGE):
        self.store = store
        self.base_message = base_message

    def build_system_message(self, custom_message: Optional[str] = None) -> str:
        instruction = custom_message or self.base_message
        context = self.store.load()
        if context:
            return f"{context}{CONTEXT_SEPARATOR}{instruction}"
        logger.debug("No schema context found, prompting without it")
        return instruction

    def build_messages(
        self,
        prompt: str,
        history: Optional[List[Dict[str, str]]] = None,
        custom_message: Optional[str] = None,
    ) -> List[Dict[str, str]]:
        """System message, then prior turns, then the new user turn."""
        messages = [{"role": "system", "content": self.build_system_message(custom_message)}]
        for msg in history or []:
            # A stale system message in the history would shadow the fresh context
            if msg.get("role") == "system":
                continue
            messages.append({"role": msg["role"], "content": msg["content"]})
        messages.append({"role": "user", "content": prompt})
        return messages
