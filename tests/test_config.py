import pytest

from config import (
    DatabaseConfig,
    DatabaseType,
    LLMConfig,
    LLMProvider,
    MetadataConfig,
    default_data_dir,
)


@pytest.mark.parametrize("raw,expected", [
    ("postgresql", DatabaseType.POSTGRESQL),
    ("Postgres", DatabaseType.POSTGRESQL),
    ("pg", DatabaseType.POSTGRESQL),
    ("mysql", DatabaseType.MYSQL),
    ("MariaDB", DatabaseType.MYSQL),
])
def test_database_type_aliases(raw, expected):
    assert DatabaseType.parse(raw) == expected


def test_from_form_applies_default_port():
    cfg = DatabaseConfig.from_form("mysql", {"host": "h", "database": "d", "user": "u", "password": "p"})
    assert cfg.port == 3306
    assert cfg.connection_string == "mysql+pymysql://u:p@h:3306/d"
    assert cfg.is_configured()


def test_postgres_ssl_connection_string():
    cfg = DatabaseConfig.from_form(
        "postgresql", {"host": "h", "port": 6543, "database": "d", "user": "u", "ssl_ca": "/ca.pem"}
    )
    assert cfg.connection_string.endswith("@h:6543/d?sslmode=verify-full&sslrootcert=/ca.pem")


def test_metadata_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("METADATA_EXCLUDED_SCHEMAS", "audit, staging")
    monkeypatch.setenv("METADATA_CHECK_EXCLUDE_PATTERNS", "")
    monkeypatch.setenv("METADATA_QUERY_TIMEOUT", "12.5")
    monkeypatch.setenv("METADATA_CONTEXT_DIR", str(tmp_path))
    monkeypatch.setenv("METADATA_CLEAR_ON_DISCONNECT", "true")

    cfg = MetadataConfig()

    assert cfg.schemas_to_exclude(DatabaseType.POSTGRESQL) == ["audit", "staging"]
    assert cfg.check_exclude_patterns == []
    assert cfg.query_timeout == 12.5
    assert cfg.context_dir == tmp_path
    assert cfg.clear_on_disconnect is True


def test_metadata_defaults(monkeypatch):
    for name in ("METADATA_EXCLUDED_SCHEMAS", "METADATA_CHECK_EXCLUDE_PATTERNS", "METADATA_CONTEXT_DIR"):
        monkeypatch.delenv(name, raising=False)

    cfg = MetadataConfig()

    assert "pg_catalog" in cfg.schemas_to_exclude(DatabaseType.POSTGRESQL)
    assert "performance_schema" in cfg.schemas_to_exclude(DatabaseType.MYSQL)
    assert cfg.check_exclude_patterns == [r"^\d+_\d+_\d+_not_null$"]
    assert cfg.context_dir == default_data_dir()
    assert default_data_dir().name == "schema-copilot"


def test_llm_client_kwargs_for_ollama():
    cfg = LLMConfig(provider=LLMProvider.OLLAMA, model="llama3", ollama_url="http://x:11434/v1")
    kwargs = cfg.client_kwargs()

    assert kwargs["base_url"] == "http://x:11434/v1"
    assert kwargs["model"] == "llama3"
    assert "api_key" not in kwargs
    assert cfg.is_configured()


def test_llm_requires_key_for_hosted_providers():
    assert not LLMConfig(provider=LLMProvider.OPENAI, openai_api_key="").is_configured()
    assert LLMConfig(provider=LLMProvider.GROQ, groq_api_key="gsk").api_key == "gsk"


def test_llm_from_form_keeps_unset_values():
    base = LLMConfig(provider=LLMProvider.OLLAMA, groq_api_key="env-key", ollama_url="http://x:11434/v1")

    groq = LLMConfig.from_form("Groq", {"api_key": "", "model": "llama-3.1-8b-instant"}, base=base)
    ollama = LLMConfig.from_form("ollama", {"base_url": "http://gpu:11434/v1"}, base=base)

    assert groq.provider == LLMProvider.GROQ
    assert groq.api_key == "env-key"
    assert groq.model == "llama-3.1-8b-instant"
    assert ollama.client_kwargs()["base_url"] == "http://gpu:11434/v1"
    assert "model" not in ollama.client_kwargs()
    assert base.provider == LLMProvider.OLLAMA


def test_llm_from_form_unknown_provider():
    with pytest.raises(ValueError):
        LLMConfig.from_form("bard", {})
