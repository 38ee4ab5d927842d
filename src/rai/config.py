"""
RAI Configuration.

Centralized configuration management using Pydantic Settings.
Loads configuration from environment variables.
"""

import os
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_xdg_state_dir() -> str:
    """
    Get XDG-compliant state directory for RAI logs.

    Follows XDG Base Directory Specification:
    - Uses $XDG_STATE_HOME/rai if XDG_STATE_HOME is set
    - Falls back to $HOME/.local/state/rai if not set
    - Returns relative path ./logs if HOME not available (dev/testing)

    Returns:
        str: Path to state/logs directory
    """
    xdg_state_home = os.getenv("XDG_STATE_HOME")
    if xdg_state_home:
        return str(Path(xdg_state_home) / "rai" / "logs")

    home = os.getenv("HOME")
    if home:
        return str(Path(home) / ".local" / "state" / "rai" / "logs")

    # Fallback for development/testing environments without HOME
    return "./logs"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    postgres_db: str = "rai"
    postgres_user: str = "rai"
    postgres_password: str = "rai_dev_password"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    # DATABASE_URL, e.g. sqlite:///rai.db, replaces the postgres components
    database_url_override: str = Field(
        "", validation_alias=AliasChoices("database_url", "database_url_override")
    )

    db_pool_size: int = 5
    db_pool_max_overflow: int = 5
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800

    @property
    def database_url(self) -> str:
        """Construct database URL from components."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # OpenAI (primary provider: chat, code, images, transcription)
    openai_api_key: str = ""
    openai_model: str = "gpt-4"
    openai_code_model: str = "gpt-4"
    openai_image_model: str = "dall-e-3"
    openai_image_size: str = "1024x1024"
    openai_transcription_model: str = "whisper-1"

    # Anthropic (fallback provider for text generation)
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-5-haiku-20241022"

    # Generation
    text_max_tokens: int = 1000
    text_temperature: float = 0.7
    code_max_tokens: int = 2000
    code_temperature: float = 0.3
    provider_timeout_seconds: float = 60.0

    # Chat behaviour
    history_window: int = 10  # Messages of context passed to the gateway
    title_length: int = 50  # Characters of the first message used as title
    max_message_length: int = 10_000

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = True
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Application
    environment: str = "development"

    # Logging
    log_level: str = "INFO"
    log_dir: str = ""  # XDG-compliant log directory (defaults to XDG state dir if empty)
    log_format: str = "standard"  # standard or json
    log_console_enabled: bool = True
    log_file_enabled: bool = True
    log_max_bytes: int = 10_485_760  # 10MB per log file
    log_backup_count: int = 5
    log_to_stdout: bool = True  # Log INFO/DEBUG to stdout
    log_to_stderr: bool = True  # Log WARNING/ERROR/CRITICAL to stderr

    @property
    def log_directory(self) -> Path:
        """Get the log directory path, using XDG default if not specified."""
        if self.log_dir:
            return Path(self.log_dir).expanduser()
        return Path(get_xdg_state_dir())


# Global settings instance
settings = Settings()
