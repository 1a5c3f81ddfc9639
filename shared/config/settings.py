"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LLMProvider(str, Enum):
    """Supported LLM providers."""

    CLAUDE = "claude"
    OPENAI = "openai"


class EmbeddingProvider(str, Enum):
    """Supported embedding backends."""

    NONE = "none"
    OPENAI = "openai"
    OLLAMA = "ollama"


class ExtractionFailurePolicy(str, Enum):
    """What happens when no usable text can be recovered from a document."""

    ABORT = "abort"
    PLACEHOLDER = "placeholder"


class AnalysisMode(str, Enum):
    """How regulation context is retrieved for analysis."""

    AUTO = "auto"
    PER_CHUNK = "per_chunk"
    WHOLE_DOCUMENT = "whole_document"


class PostgresSettings(BaseSettings):
    """PostgreSQL database configuration."""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = "localhost"
    port: int = 5432
    user: str = "medreview"
    password: SecretStr = SecretStr("medreview_dev_password")
    db: str = "medreview"

    @property
    def async_url(self) -> str:
        """Generate async SQLAlchemy connection URL."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.db}"


class StorageSettings(BaseSettings):
    """Supabase Storage configuration."""

    model_config = SettingsConfigDict(env_prefix="SUPABASE_")

    url: str = ""
    service_role_key: SecretStr = SecretStr("")
    timeout_seconds: int = 60

    @property
    def is_configured(self) -> bool:
        """Check if both the project URL and service key are set."""
        return bool(self.url and self.service_role_key.get_secret_value())


class ClaudeSettings(BaseSettings):
    """Anthropic Claude API configuration."""

    model_config = SettingsConfigDict(env_prefix="CLAUDE_")

    api_key: SecretStr = Field(
        default=SecretStr(""),
        alias="ANTHROPIC_API_KEY",
    )
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 8192


class OpenAISettings(BaseSettings):
    """OpenAI (or OpenAI-compatible gateway) API configuration."""

    model_config = SettingsConfigDict(env_prefix="OPENAI_")

    api_key: SecretStr = SecretStr("")
    model: str = "gpt-4o"
    base_url: str | None = None
    max_tokens: int = 8192


class LLMSettings(BaseSettings):
    """LLM provider configuration."""

    model_config = SettingsConfigDict(env_prefix="LLM_")

    provider: LLMProvider = LLMProvider.CLAUDE
    temperature: float = 0.1
    max_retries: int = 3
    timeout_seconds: int = 120

    # Provider-specific settings
    claude: ClaudeSettings = Field(default_factory=ClaudeSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)

    @property
    def has_credentials(self) -> bool:
        """Check if the selected provider has an API key."""
        if self.provider == LLMProvider.CLAUDE:
            return bool(self.claude.api_key.get_secret_value())
        return bool(self.openai.api_key.get_secret_value())


class EmbeddingSettings(BaseSettings):
    """Embedding model configuration."""

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_")

    provider: EmbeddingProvider = EmbeddingProvider.NONE
    model: str = "text-embedding-3-small"
    dimensions: int = 768
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "nomic-embed-text"
    cache_size: int = Field(default=2048, ge=0)


class PipelineSettings(BaseSettings):
    """Document-to-findings pipeline tuning."""

    model_config = SettingsConfigDict(env_prefix="PIPELINE_")

    min_text_chars: int = 50
    submission_chunk_words: int = 500
    regulation_chunk_chars: int = 1000

    similarity_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    match_count: int = Field(default=10, ge=1)

    submission_context_chars: int = 15000
    regulation_context_chars: int = 12000

    max_concurrency: int = Field(default=5, ge=1)

    extraction_failure_policy: ExtractionFailurePolicy = ExtractionFailurePolicy.ABORT
    force_ocr: bool = False
    analysis_mode: AnalysisMode = AnalysisMode.AUTO


class JWTSettings(BaseSettings):
    """JWT authentication configuration."""

    model_config = SettingsConfigDict(env_prefix="JWT_")

    secret_key: SecretStr = SecretStr("your-jwt-secret-key-min-32-chars-long")
    algorithm: str = "HS256"
    audience: str | None = None
    access_token_expire_minutes: int = 30


class CORSSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into list."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables with sensible defaults.
    Use the global `settings` singleton or call `get_settings()`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO
    service_name: str = "medreview"

    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Project paths
    project_root: Path = Field(default_factory=lambda: Path(__file__).parent.parent.parent)

    # Backing services
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    # Models
    llm: LLMSettings = Field(default_factory=LLMSettings)
    embeddings: EmbeddingSettings = Field(default_factory=EmbeddingSettings)

    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)

    # Authentication
    jwt: JWTSettings = Field(default_factory=JWTSettings)

    # Security
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Ensure log level is uppercase."""
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.environment == Environment.TESTING


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()
