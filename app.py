"""
Database Schema Copilot - Streamlit Application

Connects to a PostgreSQL or MySQL database, turns its catalog into a
schema context file and lets you chat with an LLM grounded in it.

Uses a local Ollama model by default.
"""

import asyncio
import logging
from pathlib import Path

# Load .env FIRST before any other imports
from dotenv import load_dotenv
load_dotenv(Path(__file__).parent / ".env")

import streamlit as st

# Page config must be first
st.set_page_config(
    page_title="Schema Copilot",
    page_icon="🗄️",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Imports
from config import DEFAULT_PORTS, DatabaseType, LLMProvider, config
from assistant import SchemaAssistant
from metadata import ContextPersistenceError

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)

DB_TYPE_LABELS = {
    "PostgreSQL": DatabaseType.POSTGRESQL,
    "MySQL": DatabaseType.MYSQL,
}

LLM_PROVIDER_LABELS = {
    "Ollama (local)": LLMProvider.OLLAMA,
    "Groq": LLMProvider.GROQ,
    "OpenAI": LLMProvider.OPENAI,
    "OpenRouter": LLMProvider.OPENROUTER,
}


def init_session_state():
    """Initialize Streamlit session state."""
    if "assistant" not in st.session_state:
        st.session_state.assistant = SchemaAssistant()

    if "messages" not in st.session_state:
        st.session_state.messages = []

    if "connected" not in st.session_state:
        st.session_state.connected = False


def render_sidebar():
    """Render the connection sidebar."""
    assistant: SchemaAssistant = st.session_state.assistant

    with st.sidebar:
        st.title("⚙️ Connection")

        label = st.selectbox("Database type", list(DB_TYPE_LABELS), index=0)
        db_type = DB_TYPE_LABELS[label]
        db = config.database

        with st.form("connection_form"):
            host = st.text_input("Host", value=db.host or "localhost")
            port = st.number_input(
                "Port",
                min_value=1,
                max_value=65535,
                value=db.port if db.db_type == db_type else DEFAULT_PORTS[db_type]
            )
            database = st.text_input("Database", value=db.database)
            user = st.text_input("User", value=db.username)
            password = st.text_input("Password", value=db.password, type="password")
            submitted = st.form_submit_button("🔌 Connect", use_container_width=True, type="primary")

        if submitted:
            values = {
                "host": host,
                "port": int(port),
                "database": database,
                "user": user,
                "password": password,
            }
            with st.spinner("Connecting to database..."):
                success, msg = asyncio.run(assistant.connect(db_type.value, values))
            if success:
                st.session_state.connected = True
                st.success(f"✅ {msg}")
                refresh_schema()
            else:
                st.session_state.connected = False
                st.error(f"Connection failed: {msg}")

        if st.session_state.connected:
            if st.button("🔄 Refresh Schema", use_container_width=True):
                refresh_schema()

            if st.button("⏏️ Disconnect", use_container_width=True):
                success, msg = asyncio.run(assistant.disconnect())
                st.session_state.connected = False
                st.info(msg)
                st.rerun()

        st.divider()
        render_llm_settings()
        st.divider()

        # Status
        st.subheader("📊 Status")
        if st.session_state.connected:
            st.success(f"Database: Connected ({assistant.session.db_type.value})")
            snapshot = assistant.last_snapshot
            if snapshot is not None:
                st.info(
                    f"Tables: {len(snapshot.tables)} | Views: {len(snapshot.views)} | "
                    f"Procedures: {len(snapshot.procedures)}"
                )
        else:
            st.warning("Not connected")

        if assistant.llm_client is None:
            st.warning(f"LLM not configured for provider: {assistant.llm_config.provider.value}")

        if st.button("➕ New Chat", use_container_width=True, type="secondary"):
            st.session_state.messages = []
            st.rerun()


def render_llm_settings():
    """Render the LLM provider settings form."""
    assistant: SchemaAssistant = st.session_state.assistant
    current = assistant.llm_config

    st.subheader("🤖 LLM")
    providers = list(LLM_PROVIDER_LABELS.values())
    label = st.selectbox(
        "Provider", list(LLM_PROVIDER_LABELS), index=providers.index(current.provider)
    )
    provider = LLM_PROVIDER_LABELS[label]
    same_provider = provider == current.provider

    with st.form("llm_form"):
        model = st.text_input(
            "Model",
            value=current.model if same_provider else "",
            placeholder="Provider default"
        )
        api_key = ""
        if provider != LLMProvider.OLLAMA:
            api_key = st.text_input(
                "API key",
                value=current.api_key if same_provider else "",
                type="password"
            )
        base_url = ""
        if provider == LLMProvider.OLLAMA:
            base_url = st.text_input("Server URL", value=current.ollama_url)
        elif provider == LLMProvider.OPENROUTER:
            base_url = st.text_input("Server URL", value=current.openrouter_url)
        submitted = st.form_submit_button("💾 Apply", use_container_width=True)

    if submitted:
        success, msg = assistant.apply_llm_settings(
            provider.value, {"model": model, "api_key": api_key, "base_url": base_url}
        )
        if success:
            st.success(f"✅ {msg}")
        else:
            st.error(msg)

    if assistant.llm_client is not None:
        if st.button("📡 Check LLM", use_container_width=True):
            with st.spinner("Contacting LLM provider..."):
                available = assistant.llm_available()
            if available:
                st.success(f"LLM reachable ({assistant.llm_config.provider.value})")
            else:
                st.error("LLM provider did not respond; check the settings and server")


def refresh_schema():
    """Refresh the schema context file and report the outcome."""
    assistant: SchemaAssistant = st.session_state.assistant
    with st.spinner("Reading schema metadata..."):
        result = asyncio.run(assistant.refresh_schema())

    if result.success:
        st.success(f"Schema context saved to {result.path}")
    elif result.error_kind == "persistence":
        st.error(f"Schema was read but could not be saved: {result.error}")
    elif result.error_kind == "not_connected":
        st.session_state.connected = False
        st.warning(result.error)
    else:
        st.error(f"Could not read schema: {result.error}")


def render_schema_explorer():
    """Render schema explorer grouped by schema."""
    snapshot = st.session_state.assistant.last_snapshot
    if snapshot is None:
        return

    with st.expander("📋 Database Schema", expanded=False):
        if snapshot.is_empty:
            st.caption("No tables, views or procedures found.")
            return

        columns_by_table = {}
        for col in snapshot.columns:
            columns_by_table.setdefault((col.schema, col.table), []).append(col)

        for schema_name, group in snapshot.group_by_schema().items():
            st.markdown(f"### {schema_name}")
            for table in group.tables:
                st.markdown(f"**{table.name}**")
                cols = [
                    f"`{col.name}` {col.data_type}"
                    for col in columns_by_table.get(table.key, [])
                ]
                st.caption(" | ".join(cols))
            for view in group.views:
                st.markdown(f"👁️ **{view.name}** (view)")
            for proc in group.procedures:
                st.markdown(f"⚙️ `{proc.name}()` {proc.kind.value.lower()}")
            st.divider()


def render_context_viewer():
    """Show the persisted schema context file."""
    with st.expander("🧾 Schema Context", expanded=False):
        try:
            context = st.session_state.assistant.get_formatted_context()
        except ContextPersistenceError as e:
            st.error(str(e))
            return
        if context is None:
            st.caption("No schema context saved yet. Connect and refresh to create one.")
        else:
            st.code(context, language="sql")


def render_chat_interface():
    """Render the main chat interface."""
    assistant: SchemaAssistant = st.session_state.assistant

    st.title("🗄️ Schema Copilot")
    st.caption(f"Ask about your database schema. LLM provider: {assistant.llm_config.provider.value}")

    render_schema_explorer()
    render_context_viewer()

    for msg in st.session_state.messages:
        with st.chat_message(msg["role"]):
            st.markdown(msg["content"])
            if msg["role"] == "assistant" and msg.get("sql_query"):
                with st.expander("SQL Query"):
                    st.code(msg["sql_query"], language="sql")

    if prompt := st.chat_input("Ask about your schema..."):
        history = [{"role": m["role"], "content": m["content"]} for m in st.session_state.messages]
        st.session_state.messages.append({"role": "user", "content": prompt})

        with st.chat_message("user"):
            st.markdown(prompt)

        with st.chat_message("assistant"):
            with st.spinner("Thinking..."):
                response = assistant.chat(prompt, history)

            st.markdown(response.answer)
            if response.sql_query:
                with st.expander("SQL Query"):
                    st.code(response.sql_query, language="sql")
            if response.error:
                st.warning(response.error)
            st.caption(f"Tokens: {response.token_usage['total']}")

        st.session_state.messages.append({
            "role": "assistant",
            "content": response.answer,
            "sql_query": response.sql_query,
        })


def main():
    """Main application entry point."""
    init_session_state()
    render_sidebar()
    render_chat_interface()


if __name__ == "__main__":
    main()
