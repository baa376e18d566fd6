from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from assistant import SchemaAssistant
from config import AppConfig, DatabaseType, LLMConfig, LLMProvider
from database.connection import DatabaseConnectionError
from database.session import NotConnectedError
from llm.client import LLMResponse, OllamaClient, OpenRouterClient
from llm.prompt import BASE_SYSTEM_MESSAGE
from metadata.errors import CatalogQueryError, ContextPersistenceError, MetadataShapeError
from metadata.models import SchemaSnapshot, TableInfo
from metadata.service import RefreshOutcome


@pytest.fixture
def app_config(metadata_config):
    cfg = AppConfig()
    cfg.metadata = metadata_config
    cfg.llm = LLMConfig(provider=LLMProvider.GROQ, groq_api_key="")
    return cfg


@pytest.fixture
def session():
    session = MagicMock()
    session.is_open = True
    session.db_type = DatabaseType.POSTGRESQL
    session.open = AsyncMock(return_value="POSTGRESQL connection successful")
    session.refresh = AsyncMock()
    session.close = AsyncMock()
    return session


@pytest.fixture
def llm():
    client = MagicMock()
    client.chat.return_value = LLMResponse(
        content="Try this:\n```sql\nselect email from users\n```",
        input_tokens=100, output_tokens=20, total_tokens=120,
    )
    return client


@pytest.fixture
def assistant(app_config, session, llm):
    return SchemaAssistant(app_config, llm_client=llm, session=session)


@pytest.mark.asyncio
async def test_connect_success(assistant, session):
    success, message = await assistant.connect("postgres", {"host": "h", "database": "d", "user": "u"})

    assert success
    assert message == "POSTGRESQL connection successful"
    db_config = session.open.await_args.args[0]
    assert db_config.db_type == DatabaseType.POSTGRESQL
    assert db_config.port == 5432
    assert db_config.username == "u"


@pytest.mark.asyncio
async def test_connect_failure_message_is_surfaced(assistant, session):
    session.open.side_effect = DatabaseConnectionError("Connection failed: timeout")

    success, message = await assistant.connect("mysql", {"host": "h"})

    assert not success
    assert message == "Connection failed: timeout"


@pytest.mark.asyncio
async def test_connect_rejects_unknown_engine(assistant, session):
    success, message = await assistant.connect("dynamodb", {})

    assert not success
    assert "dynamodb" in message
    session.open.assert_not_awaited()


@pytest.mark.asyncio
async def test_refresh_success(assistant, session, tmp_path):
    snapshot = SchemaSnapshot(tables=(TableInfo("users", "public"),))
    path = Path(tmp_path) / "schema_context.sql"
    session.refresh.return_value = RefreshOutcome(snapshot=snapshot, text="ctx", path=path)

    result = await assistant.refresh_schema()

    assert result.success
    assert result.snapshot is snapshot
    assert result.path == path
    assert assistant.last_snapshot is snapshot


@pytest.mark.parametrize("error,kind", [
    (NotConnectedError("Not connected to a database"), "not_connected"),
    (CatalogQueryError("routines", RuntimeError("denied")), "catalog"),
    (MetadataShapeError("columns", "data_type", 0), "shape"),
    (ContextPersistenceError(Path("/ro/schema_context.sql"), PermissionError("denied")), "persistence"),
])
@pytest.mark.asyncio
async def test_refresh_error_kinds(assistant, session, error, kind):
    session.refresh.side_effect = error

    result = await assistant.refresh_schema()

    assert not result.success
    assert result.error_kind == kind
    assert result.error == str(error)
    assert result.snapshot is None


@pytest.mark.asyncio
async def test_disconnect(assistant, session):
    success, _ = await assistant.disconnect()
    assert success
    session.close.assert_awaited_once()


def test_chat_grounds_prompt_and_extracts_sql(assistant, llm):
    assistant.store.save("-- Table: public.users")

    response = assistant.chat("emails?", [{"role": "user", "content": "hi"}])

    messages = llm.chat.call_args.args[0]
    assert messages[0]["role"] == "system"
    assert messages[0]["content"].startswith("-- Table: public.users\n\n-----\n\n" + BASE_SYSTEM_MESSAGE)
    assert "PostgreSQL" in messages[0]["content"]
    assert messages[-1] == {"role": "user", "content": "emails?"}
    assert response.sql_query.startswith("SELECT email")
    assert response.error is None
    assert response.token_usage == {"input": 100, "output": 20, "total": 120}


def test_chat_flags_write_queries(assistant, llm):
    llm.chat.return_value = LLMResponse(content="```sql\nDELETE FROM users\n```")

    response = assistant.chat("remove everyone")

    assert response.sql_query.replace("\n", " ") == "DELETE FROM users"
    assert "not read-only" in response.error


def test_chat_without_llm(app_config, session):
    response = SchemaAssistant(app_config, session=session).chat("hello")
    assert response.error == "Configure LLM client first"


def test_chat_llm_error_is_reported(assistant, llm):
    llm.chat.side_effect = RuntimeError("model not found")
    response = assistant.chat("hello")
    assert response.error == "model not found"


def test_llm_client_created_from_config(app_config, session):
    app_config.llm = LLMConfig(provider=LLMProvider.OLLAMA, ollama_url="http://localhost:11434/v1")
    assistant = SchemaAssistant(app_config, session=session)
    assert isinstance(assistant.llm_client, OllamaClient)


def test_apply_llm_settings_switches_provider(assistant, llm):
    success, message = assistant.apply_llm_settings(
        "openrouter", {"api_key": "or-key", "model": "x/y", "base_url": ""}
    )

    assert success
    assert message == "LLM client configured for openrouter"
    assert isinstance(assistant.llm_client, OpenRouterClient)
    assert assistant.llm_client.model == "x/y"
    assert assistant.llm_config.provider == LLMProvider.OPENROUTER
    assert assistant.llm_client is not llm


def test_apply_llm_settings_requires_key(assistant, llm):
    assistant.llm_config = LLMConfig(provider=LLMProvider.GROQ, openai_api_key="")

    success, message = assistant.apply_llm_settings("openai", {"api_key": "", "model": ""})

    assert not success
    assert "API key" in message
    assert assistant.llm_client is llm


def test_apply_llm_settings_rejects_unknown_provider(assistant, llm):
    success, message = assistant.apply_llm_settings("bard", {})

    assert not success
    assert message.startswith("Invalid LLM settings")
    assert assistant.llm_client is llm


def test_llm_available_asks_the_client(assistant, llm, app_config, session):
    llm.is_available.return_value = True
    assert assistant.llm_available()
    llm.is_available.assert_called_once_with()

    assert not SchemaAssistant(app_config, session=session).llm_available()
