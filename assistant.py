"""
Schema Assistant - Top-level controller for the schema copilot.

Combines all components:
- Database session lifecycle (connect / disconnect)
- Schema metadata refresh and the persisted context file
- Prompt assembly and the LLM call
- Read-only check of SQL suggested by the model
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from config import AppConfig, DatabaseConfig, LLMConfig, config as default_config
from database.connection import DatabaseConnectionError
from database.session import DatabaseSession, NotConnectedError
from llm import LLMClient, PromptAssembler, create_llm_client
from llm.prompt import BASE_SYSTEM_MESSAGE
from metadata import ContextStore, MetadataError, SchemaSnapshot, UnsupportedDatabaseError
from sql import SQLValidator, extract_sql, get_sql_dialect

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    """Outcome of a schema refresh, shaped for the UI."""
    success: bool
    snapshot: Optional[SchemaSnapshot] = None
    path: Optional[Path] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None


@dataclass
class ChatResponse:
    """Response from the assistant."""
    answer: str
    sql_query: Optional[str] = None
    error: Optional[str] = None
    token_usage: Optional[Dict[str, int]] = None

    def __post_init__(self):
        if self.token_usage is None:
            self.token_usage = {"input": 0, "output": 0, "total": 0}


class SchemaAssistant:
    """Owns the database session, the context store and the LLM client."""

    def __init__(
        self,
        app_config: Optional[AppConfig] = None,
        llm_client: Optional[LLMClient] = None,
        session: Optional[DatabaseSession] = None,
    ):
        self.config = app_config or default_config
        metadata_config = self.config.metadata
        self.store = ContextStore(metadata_config.context_dir, metadata_config.context_filename)
        self.session = session or DatabaseSession(self.store, metadata_config)
        self.prompts = PromptAssembler(self.store)
        self.sql_validator = SQLValidator()
        self.last_snapshot: Optional[SchemaSnapshot] = None

        self.llm_config = self.config.llm
        self.llm_client = llm_client
        if self.llm_client is None and self.llm_config.is_configured():
            self.configure_llm(self.llm_config)

    @property
    def is_connected(self) -> bool:
        return self.session.is_open

    def configure_llm(self, llm_config: LLMConfig):
        self.llm_client = create_llm_client(llm_config.provider.value, **llm_config.client_kwargs())
        self.llm_config = llm_config
        logger.info(f"LLM client configured for provider {llm_config.provider.value}")

    def apply_llm_settings(self, provider: str, values: Dict[str, Any]) -> Tuple[bool, str]:
        """Switch the LLM client to the provider described by the settings form."""
        try:
            llm_config = LLMConfig.from_form(provider, values, base=self.llm_config)
        except ValueError as e:
            return False, f"Invalid LLM settings: {e}"

        if not llm_config.is_configured():
            return False, f"An API key is required for {llm_config.provider.value}"

        self.configure_llm(llm_config)
        return True, f"LLM client configured for {llm_config.provider.value}"

    def llm_available(self) -> bool:
        """Ask the configured provider whether it is reachable."""
        if self.llm_client is None:
            return False
        return self.llm_client.is_available()

    async def connect(self, db_type: str, values: Dict[str, Any]) -> Tuple[bool, str]:
        """Open a session on the database described by the connection form."""
        try:
            db_config = DatabaseConfig.from_form(db_type, values)
        except (ValueError, KeyError) as e:
            return False, f"Invalid connection settings: {e}"

        try:
            message = await self.session.open(db_config)
        except (DatabaseConnectionError, UnsupportedDatabaseError) as e:
            logger.error(f"Connect failed: {e}")
            return False, str(e)

        self.last_snapshot = None
        return True, message

    async def disconnect(self) -> Tuple[bool, str]:
        if not self.session.is_open:
            return False, "Not connected to a database"
        await self.session.close()
        self.last_snapshot = None
        return True, "Disconnected"

    async def refresh_schema(self) -> RefreshResult:
        """Collect the schema, write the context file and report what happened."""
        try:
            outcome = await self.session.refresh()
        except NotConnectedError as e:
            return RefreshResult(success=False, error=str(e), error_kind="not_connected")
        except MetadataError as e:
            logger.error(f"Schema refresh failed: {e}")
            return RefreshResult(success=False, error=str(e), error_kind=e.kind)

        self.last_snapshot = outcome.snapshot
        logger.info(f"Schema context written to {outcome.path}")
        return RefreshResult(success=True, snapshot=outcome.snapshot, path=outcome.path)

    def get_formatted_context(self) -> Optional[str]:
        """The persisted schema context, or None before the first refresh."""
        return self.store.load()

    def _system_instruction(self) -> str:
        db_type = self.session.db_type
        if db_type is None:
            return BASE_SYSTEM_MESSAGE
        dialect = get_sql_dialect(db_type.value)
        return f"{BASE_SYSTEM_MESSAGE}\nThe connected database is {dialect}; write SQL in the {dialect} dialect."

    def chat(self, prompt: str, history: Optional[List[Dict[str, str]]] = None) -> ChatResponse:
        """Send a question to the LLM, grounded in the persisted schema context."""
        if not self.llm_client:
            return ChatResponse(answer="LLM not configured.", error="Configure LLM client first")

        try:
            messages = self.prompts.build_messages(prompt, history, self._system_instruction())
            response = self.llm_client.chat(messages)
        except Exception as e:
            logger.error(f"Chat error: {e}")
            return ChatResponse(answer=f"Error: {str(e)}", error=str(e))

        sql = extract_sql(response.content)
        error = None
        if sql:
            is_valid, msg = self.sql_validator.validate(sql)
            if not is_valid:
                error = f"Suggested SQL is not read-only: {msg}"
                logger.warning(error)

        return ChatResponse(
            answer=response.content,
            sql_query=sql,
            error=error,
            token_usage=response.usage,
        )
