"""
Openwave RAG Configuration Module
=================================

Centralized configuration management using environment variables.
Supports both .env files and system environment variables.

Environment Variables:
    EMBEDDING_PROVIDER: huggingface | openai (default: huggingface)
    EMBEDDING_MODEL: Embedding model id (default depends on the provider)
    EMBEDDING_DIMENSIONS: Vector dimension, must match the index (default: 384)
    EMBEDDING_TIMEOUT: Seconds before an embedding call is abandoned (default: 30)
    HUGGINGFACE_API_TOKEN: Hugging Face Inference API token
    HUGGINGFACE_INFERENCE_URL: Feature-extraction base URL

    QDRANT_URL: Qdrant endpoint, e.g. https://xyz.cloud.qdrant.io:6333
    QDRANT_API_KEY: Qdrant API key (optional for local instances)
    VECTOR_INDEX_NAME: Collection name (default: openwave)

    LLM_PROVIDER: anthropic | openai (default: detected from API keys)
    LLM_MODEL: Generation model id
    ANTHROPIC_API_KEY / OPENAI_API_KEY / GPT_API_KEY: Provider credentials

    DATABASE_URL: PostgreSQL DSN (or DATABASE_HOST, DATABASE_PORT, ...)
    PROJECT_TABLE: Table holding project records (default: project)

    RAG_TOP_K: Matches retrieved per query (default: 3)
    RAG_CONTEXT_MAX_TOKENS: Context block budget (default: 2000)
    RAG_ID_STRATEGY: source | positional (default: source)
    RAG_STREAM_PROTOCOL: data | text (default: data)

    LOG_LEVEL, LOG_FILE, LOG_JSON, LOG_LEVELS: see logging_config.py
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional
from pathlib import Path
from dotenv import load_dotenv

from ..rag.errors import ConfigurationError


# Load environment variables from .env file if present
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


DEFAULT_HF_INFERENCE_URL = "https://router.huggingface.co/hf-inference/models"

ID_STRATEGIES = ("source", "positional")
STREAM_PROTOCOLS = ("data", "text")


def get_env(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """
    Get environment variable with optional default and required validation.

    Args:
        key: Environment variable name
        default: Default value if not set
        required: If True, raises ConfigurationError when not set

    Returns:
        Environment variable value or default

    Raises:
        ConfigurationError: If required=True and variable is not set
    """
    value = os.getenv(key, default)
    if required and value is None:
        raise ConfigurationError(f"Required environment variable '{key}' is not set")
    return value


def get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Environment variable '{key}' must be an integer, got: {value}")


def get_env_float(key: str, default: float) -> float:
    """Get environment variable as float."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"Environment variable '{key}' must be a float, got: {value}")


def get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as boolean."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


@dataclass
class EmbeddingConfig:
    """Sentence-embedding model configuration."""

    provider: str = field(default_factory=lambda: get_env("EMBEDDING_PROVIDER", "huggingface"))
    # Unset means the provider default (see RAGEmbedder.DEFAULT_MODELS)
    model: Optional[str] = field(default_factory=lambda: get_env("EMBEDDING_MODEL"))

    # Must equal the dimension the vector index was created with
    dimensions: int = field(default_factory=lambda: get_env_int("EMBEDDING_DIMENSIONS", 384))

    timeout: float = field(default_factory=lambda: get_env_float("EMBEDDING_TIMEOUT", 30.0))

    huggingface_token: Optional[str] = field(default_factory=lambda: get_env("HUGGINGFACE_API_TOKEN"))
    huggingface_url: str = field(
        default_factory=lambda: get_env("HUGGINGFACE_INFERENCE_URL", DEFAULT_HF_INFERENCE_URL)
    )
    openai_api_key: Optional[str] = field(
        default_factory=lambda: get_env("OPENAI_API_KEY") or get_env("GPT_API_KEY")
    )

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.provider = self.provider.lower()
        if self.provider not in ("huggingface", "openai"):
            raise ConfigurationError(f"Unsupported EMBEDDING_PROVIDER: {self.provider}")
        if self.dimensions <= 0:
            raise ConfigurationError("EMBEDDING_DIMENSIONS must be positive")
        if self.timeout <= 0:
            raise ConfigurationError("EMBEDDING_TIMEOUT must be positive")

    def missing(self) -> List[str]:
        """Names of credentials required by the selected provider but unset."""
        if self.provider == "huggingface" and not self.huggingface_token:
            return ["HUGGINGFACE_API_TOKEN"]
        if self.provider == "openai" and not self.openai_api_key:
            return ["OPENAI_API_KEY"]
        return []


@dataclass
class VectorIndexConfig:
    """Qdrant vector index configuration."""

    url: Optional[str] = field(default_factory=lambda: get_env("QDRANT_URL"))
    api_key: Optional[str] = field(default_factory=lambda: get_env("QDRANT_API_KEY"))
    index_name: str = field(default_factory=lambda: get_env("VECTOR_INDEX_NAME", "openwave"))
    timeout: int = field(default_factory=lambda: get_env_int("VECTOR_INDEX_TIMEOUT", 30))

    def missing(self) -> List[str]:
        missing = []
        if not self.url:
            missing.append("QDRANT_URL")
        if not self.index_name:
            missing.append("VECTOR_INDEX_NAME")
        return missing


@dataclass
class GenerationConfig:
    """Answer generation model configuration."""

    provider: Optional[str] = field(default_factory=lambda: get_env("LLM_PROVIDER"))
    model: Optional[str] = field(default_factory=lambda: get_env("LLM_MODEL"))
    max_tokens: int = field(default_factory=lambda: get_env_int("LLM_MAX_TOKENS", 1024))
    temperature: float = field(default_factory=lambda: get_env_float("LLM_TEMPERATURE", 0.3))

    anthropic_api_key: Optional[str] = field(default_factory=lambda: get_env("ANTHROPIC_API_KEY"))
    openai_api_key: Optional[str] = field(
        default_factory=lambda: get_env("OPENAI_API_KEY") or get_env("GPT_API_KEY")
    )

    def __post_init__(self):
        if self.provider:
            self.provider = self.provider.lower()
            if self.provider not in ("anthropic", "openai"):
                raise ConfigurationError(f"Unsupported LLM_PROVIDER: {self.provider}")
        if self.max_tokens <= 0:
            raise ConfigurationError("LLM_MAX_TOKENS must be positive")

    @property
    def resolved_provider(self) -> Optional[str]:
        """
        Provider actually used.

        Priority:
        1. Explicit LLM_PROVIDER
        2. ANTHROPIC_API_KEY present → anthropic
        3. OPENAI_API_KEY or GPT_API_KEY present → openai
        """
        if self.provider:
            return self.provider
        if self.anthropic_api_key:
            return "anthropic"
        if self.openai_api_key:
            return "openai"
        return None

    def missing(self) -> List[str]:
        provider = self.resolved_provider
        if provider is None:
            return ["ANTHROPIC_API_KEY or OPENAI_API_KEY"]
        if provider == "anthropic" and not self.anthropic_api_key:
            return ["ANTHROPIC_API_KEY"]
        if provider == "openai" and not self.openai_api_key:
            return ["OPENAI_API_KEY"]
        return []


@dataclass
class DatabaseConfig:
    """PostgreSQL source store configuration."""

    url: Optional[str] = field(default_factory=lambda: get_env("DATABASE_URL"))
    host: str = field(default_factory=lambda: get_env("DATABASE_HOST", "localhost"))
    port: int = field(default_factory=lambda: get_env_int("DATABASE_PORT", 5432))
    name: str = field(default_factory=lambda: get_env("DATABASE_NAME", "openwave"))
    user: str = field(default_factory=lambda: get_env("DATABASE_USER", "postgres"))
    password: str = field(default_factory=lambda: get_env("DATABASE_PASSWORD", ""))

    # Connection timeout
    connect_timeout: int = field(default_factory=lambda: get_env_int("DATABASE_CONNECT_TIMEOUT", 10))

    # SSL mode: disable, allow, prefer, require, verify-ca, verify-full
    ssl_mode: str = field(default_factory=lambda: get_env("DATABASE_SSL_MODE", "prefer"))

    project_table: str = field(default_factory=lambda: get_env("PROJECT_TABLE", "project"))

    @property
    def connection_string(self) -> str:
        """Build PostgreSQL connection string."""
        if self.url:
            return self.url
        return (
            f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"
            f"?sslmode={self.ssl_mode}&connect_timeout={self.connect_timeout}"
        )

    def __post_init__(self):
        """Validate configuration."""
        if not self.project_table.replace("_", "").isalnum():
            raise ConfigurationError(f"Invalid PROJECT_TABLE name: {self.project_table}")


@dataclass
class RetrievalConfig:
    """Query-time and indexing behaviour."""

    top_k: int = field(default_factory=lambda: get_env_int("RAG_TOP_K", 3))
    context_max_tokens: int = field(default_factory=lambda: get_env_int("RAG_CONTEXT_MAX_TOKENS", 2000))
    id_strategy: str = field(default_factory=lambda: get_env("RAG_ID_STRATEGY", "source"))
    stream_protocol: str = field(default_factory=lambda: get_env("RAG_STREAM_PROTOCOL", "data"))

    def __post_init__(self):
        if self.top_k <= 0:
            raise ConfigurationError("RAG_TOP_K must be positive")
        if self.context_max_tokens <= 0:
            raise ConfigurationError("RAG_CONTEXT_MAX_TOKENS must be positive")
        if self.id_strategy not in ID_STRATEGIES:
            raise ConfigurationError(f"RAG_ID_STRATEGY must be one of {ID_STRATEGIES}")
        if self.stream_protocol not in STREAM_PROTOCOLS:
            raise ConfigurationError(f"RAG_STREAM_PROTOCOL must be one of {STREAM_PROTOCOLS}")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: get_env("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: get_env("LOG_FILE"))

    # Structured logging
    json_logs: bool = field(default_factory=lambda: get_env_bool("LOG_JSON", False))

    # Per-logger overrides, "src.rag=DEBUG,qdrant_client=WARNING"
    module_levels: Optional[str] = field(default_factory=lambda: get_env("LOG_LEVELS"))


@dataclass
class Settings:
    """Main application settings container."""

    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    vector_index: VectorIndexConfig = field(default_factory=VectorIndexConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Application metadata
    app_name: str = "openwave-rag"
    app_version: str = "0.1.0"
    environment: str = field(default_factory=lambda: get_env("ENVIRONMENT", "development"))

    def missing_credentials(self) -> List[str]:
        """Every required setting that is absent, across all collaborators."""
        return (
            self.embedding.missing()
            + self.vector_index.missing()
            + self.generation.missing()
        )

    def validate(self) -> "Settings":
        """
        Check that every external collaborator is configured.

        Called once at startup so per-request code never has to.

        Raises:
            ConfigurationError: listing all missing settings at once
        """
        missing = self.missing_credentials()
        if missing:
            raise ConfigurationError(
                "Missing required configuration: " + ", ".join(missing)
            )
        return self

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() in ("production", "prod")


def load_settings() -> Settings:
    """
    Load all application settings from the environment.

    Returns:
        Settings instance (not yet validated, see Settings.validate)

    Raises:
        ConfigurationError: If a value is present but malformed
    """
    return Settings()


# Global settings instance (lazy-loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton pattern).

    Returns:
        Global Settings instance
    """
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings
    _settings = None
