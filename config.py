"""
Configuration module for the Database Schema Copilot.

This module handles all configuration including:
- Database connection settings (PostgreSQL, MySQL)
- LLM provider settings (Groq / OpenAI / Ollama / OpenRouter)
- Schema metadata refresh and context file settings
"""

import os
import sys
from pathlib import Path
from dataclasses import dataclass, field, replace
from typing import Optional, List, Dict, Any
from enum import Enum

# Load .env file BEFORE any os.getenv calls
from dotenv import load_dotenv
env_path = Path(__file__).parent / ".env"
load_dotenv(env_path)


APP_DIR_NAME = "schema-copilot"


class DatabaseType(Enum):
    """Supported database types."""
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"

    @classmethod
    def parse(cls, value: str) -> "DatabaseType":
        """Parse a user-supplied engine name, accepting common aliases."""
        aliases = {"postgres": "postgresql", "pg": "postgresql", "mariadb": "mysql"}
        normalized = (value or "").strip().lower()
        return cls(aliases.get(normalized, normalized))


class LLMProvider(Enum):
    """Supported LLM providers."""
    GROQ = "groq"
    OPENAI = "openai"
    OLLAMA = "ollama"
    OPENROUTER = "openrouter"


def _split_env_list(name: str, default: str) -> List[str]:
    """Read a comma-separated environment variable. An empty value yields []."""
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def default_data_dir() -> Path:
    """Per-user application data directory for this app."""
    if sys.platform.startswith("win"):
        base = Path(os.getenv("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    return base / APP_DIR_NAME


DEFAULT_PORTS = {
    DatabaseType.POSTGRESQL: 5432,
    DatabaseType.MYSQL: 3306,
}

DEFAULT_EXCLUDED_SCHEMAS = {
    DatabaseType.POSTGRESQL: "pg_catalog,information_schema,pg_toast",
    DatabaseType.MYSQL: "mysql,information_schema,performance_schema,sys",
}

# Postgres names its implicit NOT NULL check constraints like "2200_16386_1_not_null"
DEFAULT_CHECK_EXCLUDE_PATTERNS = r"^\d+_\d+_\d+_not_null$"


@dataclass
class DatabaseConfig:
    """
    Database configuration supporting PostgreSQL and MySQL.

    All sensitive values are loaded from environment variables.
    """
    db_type: DatabaseType = field(
        default_factory=lambda: DatabaseType.parse(os.getenv("DB_TYPE", "postgresql"))
    )

    host: str = field(default_factory=lambda: os.getenv("DB_HOST", ""))
    port: int = field(default_factory=lambda: int(os.getenv("DB_PORT", "0")))
    database: str = field(default_factory=lambda: os.getenv("DB_DATABASE", ""))
    username: str = field(default_factory=lambda: os.getenv("DB_USERNAME", ""))
    password: str = field(default_factory=lambda: os.getenv("DB_PASSWORD", ""))

    # SSL configuration
    ssl_ca: Optional[str] = field(default_factory=lambda: os.getenv("DB_SSL_CA", None))

    def __post_init__(self):
        if not self.port:
            self.port = DEFAULT_PORTS[self.db_type]

    @classmethod
    def from_form(cls, db_type: str, values: Dict[str, Any]) -> "DatabaseConfig":
        """Build a config from connection-form values (host, port, database, user, password)."""
        parsed = DatabaseType.parse(db_type)
        return cls(
            db_type=parsed,
            host=str(values.get("host", "")),
            port=int(values.get("port") or DEFAULT_PORTS[parsed]),
            database=str(values.get("database", "")),
            username=str(values.get("user", values.get("username", ""))),
            password=str(values.get("password", "")),
            ssl_ca=values.get("ssl_ca") or None,
        )

    @property
    def connection_string(self) -> str:
        """Generate SQLAlchemy connection string based on database type."""
        if self.db_type == DatabaseType.POSTGRESQL:
            base_url = f"postgresql+psycopg2://{self.username}:{self.password}@{self.host}:{self.port}/{self.database}"
            if self.ssl_ca:
                return f"{base_url}?sslmode=verify-full&sslrootcert={self.ssl_ca}"
            return base_url

        else:  # MySQL
            base_url = f"mysql+pymysql://{self.username}:{self.password}@{self.host}:{self.port}/{self.database}"
            if self.ssl_ca:
                return f"{base_url}?ssl_ca={self.ssl_ca}"
            return base_url

    def is_configured(self) -> bool:
        """Check if all required database settings are configured."""
        return all([self.host, self.database, self.username])


@dataclass
class LLMConfig:
    """LLM configuration for SQL assistance."""
    provider: LLMProvider = field(
        default_factory=lambda: LLMProvider(os.getenv("LLM_PROVIDER", "ollama").lower())
    )
    model: str = field(default_factory=lambda: os.getenv("LLM_MODEL", ""))

    groq_api_key: str = field(default_factory=lambda: os.getenv("GROQ_API_KEY", ""))
    openai_api_key: str = field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))
    openrouter_api_key: str = field(default_factory=lambda: os.getenv("OPENROUTER_API_KEY", ""))

    ollama_url: str = field(
        default_factory=lambda: os.getenv("OLLAMA_URL", "http://localhost:11434/v1")
    )
    openrouter_url: str = field(
        default_factory=lambda: os.getenv("OPENROUTER_URL", "https://openrouter.ai/api/v1")
    )

    # Generation parameters
    temperature: float = 0.1  # Low temperature for more deterministic outputs
    max_tokens: int = 1024

    @classmethod
    def from_form(
        cls, provider: str, values: Dict[str, Any], base: Optional["LLMConfig"] = None
    ) -> "LLMConfig":
        """
        Build a config from LLM settings-form values (api_key, model, base_url).

        Blank fields keep the value from `base` (or the environment), except
        the model, which falls back to the provider default when blank.
        """
        parsed = LLMProvider((provider or "").strip().lower())
        cfg = replace(base or cls(), provider=parsed)
        cfg.model = str(values.get("model") or "").strip()

        api_key = str(values.get("api_key") or "").strip()
        if api_key:
            if parsed == LLMProvider.GROQ:
                cfg.groq_api_key = api_key
            elif parsed == LLMProvider.OPENAI:
                cfg.openai_api_key = api_key
            elif parsed == LLMProvider.OPENROUTER:
                cfg.openrouter_api_key = api_key

        base_url = str(values.get("base_url") or "").strip()
        if base_url:
            if parsed == LLMProvider.OLLAMA:
                cfg.ollama_url = base_url
            elif parsed == LLMProvider.OPENROUTER:
                cfg.openrouter_url = base_url
        return cfg

    @property
    def api_key(self) -> str:
        """API key for the selected provider (empty for Ollama)."""
        keys = {
            LLMProvider.GROQ: self.groq_api_key,
            LLMProvider.OPENAI: self.openai_api_key,
            LLMProvider.OPENROUTER: self.openrouter_api_key,
        }
        return keys.get(self.provider, "")

    def is_configured(self) -> bool:
        """Check if LLM is properly configured."""
        if self.provider == LLMProvider.OLLAMA:
            return bool(self.ollama_url)
        return bool(self.api_key)

    def client_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for llm.create_llm_client."""
        kwargs: Dict[str, Any] = {
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if self.model:
            kwargs["model"] = self.model
        if self.provider == LLMProvider.OLLAMA:
            kwargs["base_url"] = self.ollama_url
        else:
            kwargs["api_key"] = self.api_key
        if self.provider == LLMProvider.OPENROUTER:
            kwargs["base_url"] = self.openrouter_url
        return kwargs


@dataclass
class MetadataConfig:
    """Schema metadata refresh and context file settings."""

    # Overrides the per-engine default list of system schemas when set
    excluded_schemas: List[str] = field(
        default_factory=lambda: _split_env_list("METADATA_EXCLUDED_SCHEMAS", "")
    )

    # Regexes matched against CHECK constraint names; matches are left out of the model
    check_exclude_patterns: List[str] = field(
        default_factory=lambda: _split_env_list(
            "METADATA_CHECK_EXCLUDE_PATTERNS", DEFAULT_CHECK_EXCLUDE_PATTERNS
        )
    )

    query_timeout: float = field(
        default_factory=lambda: float(os.getenv("METADATA_QUERY_TIMEOUT", "30"))
    )

    context_dir: Path = field(
        default_factory=lambda: Path(os.getenv("METADATA_CONTEXT_DIR", "") or default_data_dir())
    )
    context_filename: str = field(
        default_factory=lambda: os.getenv("METADATA_CONTEXT_FILE", "schema_context.sql")
    )

    clear_on_disconnect: bool = field(
        default_factory=lambda: os.getenv("METADATA_CLEAR_ON_DISCONNECT", "false").lower()
        in ("1", "true", "yes")
    )

    def schemas_to_exclude(self, db_type: DatabaseType) -> List[str]:
        """System schemas hidden from every catalog query for this engine."""
        if self.excluded_schemas:
            return list(self.excluded_schemas)
        return [s for s in DEFAULT_EXCLUDED_SCHEMAS[db_type].split(",")]


class AppConfig:
    """
    Main application configuration aggregator.

    Combines all configuration sections and provides
    validation methods.
    """

    def __init__(self):
        self.database = DatabaseConfig()
        self.llm = LLMConfig()
        self.metadata = MetadataConfig()

    def validate(self) -> tuple[bool, List[str]]:
        """
        Validate all configuration settings.

        Returns:
            tuple: (is_valid, list of error messages)
        """
        errors = []

        if not self.database.is_configured():
            db_type = self.database.db_type.value.upper()
            errors.append(f"{db_type} configuration incomplete. Check DB_* environment variables.")

        if not self.llm.is_configured():
            errors.append(
                f"LLM configuration incomplete for provider: {self.llm.provider.value}. "
                "Check API keys or endpoint URLs."
            )

        if self.metadata.query_timeout <= 0:
            errors.append("METADATA_QUERY_TIMEOUT must be a positive number of seconds.")

        return len(errors) == 0, errors

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()


# Global configuration instance
config = AppConfig.from_env()
