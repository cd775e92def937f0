from typing import Final

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_DB_FILE,
    DEFAULT_METRICS_PORT,
    DEFAULT_PORT,
    TELEGRAM_API_URL,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env files."""

    # Server configuration
    debug: bool = Field(default=True, description="Enable debug mode")
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="Server port")

    # Storage configuration
    db_file: str = Field(
        default=DEFAULT_DB_FILE, description="Path of the JSON file holding all keys"
    )
    static_dir: str = Field(
        default="public", description="Directory with the dashboard's static files"
    )

    # Application configuration
    app_name: str = Field(default="Key Server", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")

    # Notification configuration
    telegram_bot_token: str | None = Field(
        default=None, description="Bot token used for low-stock notifications"
    )
    telegram_chat_id: str | None = Field(
        default=None, description="Chat that receives low-stock notifications"
    )
    telegram_api_url: str = Field(
        default=TELEGRAM_API_URL, description="Base URL of the Telegram Bot API"
    )
    telegram_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout for a single notification request"
    )

    # Logging configuration
    log_to_file: bool = Field(
        default=False, description="Force logging to file even in debug mode"
    )
    log_file: str | None = Field(
        default=None, description="Explicit log file path (implies file logging)"
    )

    # Observability configuration
    enable_telemetry: bool = Field(
        default=False, description="Export metrics and traces via OpenTelemetry"
    )
    metrics_port: int = Field(
        default=DEFAULT_METRICS_PORT,
        ge=1,
        le=65535,
        description="Port of the Prometheus metrics endpoint",
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @field_validator("telegram_bot_token", "telegram_chat_id")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """Treat empty environment values as unset."""
        if v is not None and not v.strip():
            return None
        return v

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return not self.debug

    @computed_field  # type: ignore[prop-decorator]
    @property
    def telegram_enabled(self) -> bool:
        """Notifications are only dispatched with both token and chat id."""
        return bool(self.telegram_bot_token and self.telegram_chat_id)


# Global settings instance
settings: Final = Settings()
