"""Type-safe environment configuration using Pydantic Settings."""

from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables.

    Every field has a default so the workflow can run without a .env file.
    The generation credential is NOT configured here: the user supplies it
    when starting a project and it lives in the session store only.
    Secrets are masked in string representations.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields in .env
        env_ignore_empty=True,
    )

    APP_NAME: str = Field(
        default="protoflow",
        description="Application name"
    )

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )

    DEBUG: bool = Field(
        default=False,
        description="Debug mode flag (echoes SQL for the sql storage backend)"
    )

    # Generation configuration
    LLM_PROVIDER: str = Field(
        default="gemini",
        description="LiteLLM provider used for step generation"
    )

    LLM_DEFAULT_MODEL: str = Field(
        default="gemini-2.5-flash",
        description="Model used for step generation"
    )

    LLM_TEMPERATURE: float = Field(
        default=0.7,
        description="Sampling temperature for step generation",
        ge=0.0,
        le=2.0
    )

    LLM_TIMEOUT: int = Field(
        default=120,
        description="Generation request timeout in seconds",
        gt=0
    )

    # Project entry validation
    MIN_CREDENTIAL_LENGTH: int = Field(
        default=20,
        description="Minimum accepted length of a generation API key",
        ge=1
    )

    MIN_PROMPT_LENGTH: int = Field(
        default=10,
        description="Minimum accepted length of a project description",
        ge=1
    )

    # Session storage
    STORAGE_BACKEND: Literal["memory", "sql"] = Field(
        default="memory",
        description="Medium backing the session store"
    )

    SESSION_DB_URL: SecretStr = Field(
        default=SecretStr("sqlite:///protoflow_session.db"),
        description="SQLAlchemy URL for the sql storage backend"
    )

    SESSION_ID: str = Field(
        default="default",
        description="Namespace for entries written to the sql storage backend",
        min_length=1
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                f"LOG_LEVEL must be one of {valid_levels}, got '{v}'"
            )
        return v_upper

    def get_session_db_url(self) -> str:
        """Get the session database URL value."""
        return self.SESSION_DB_URL.get_secret_value()


# Singleton instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Loads settings from environment variables and .env file on first call.
    Subsequent calls return the cached instance.

    Returns:
        Settings: The application settings instance

    Raises:
        ValidationError: If environment variables are invalid
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the settings singleton. Useful for testing."""
    global _settings
    _settings = None
