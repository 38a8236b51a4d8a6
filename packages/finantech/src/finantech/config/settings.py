"""Configuration settings for the Finantech backend."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class FlatSettings(BaseSettings):
    """Flat settings read from environment variables (and an optional .env)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Generative AI. The key is optional so the proxy route can report a
    # configuration error instead of failing at import time.
    google_api_key: SecretStr | None = Field(default=None, validation_alias="API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")

    # Persistence
    data_dir: Path = Field(default=Path(".finantech"), validation_alias="FINANTECH_DATA_DIR")

    # HTTP API
    api_host: str = Field(default="0.0.0.0", validation_alias="API_HOST")
    api_port: int = Field(default=8000, validation_alias="API_PORT")

    # Proxy client
    proxy_url: str = Field(default="http://localhost:8000", validation_alias="PROXY_URL")
    proxy_timeout: float = Field(default=60.0, validation_alias="PROXY_TIMEOUT")

    # WebSocket event feed
    ws_host: str = Field(default="0.0.0.0", validation_alias="WS_HOST")
    ws_port: int = Field(default=8765, validation_alias="WS_PORT")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )

    @property
    def has_api_key(self) -> bool:
        """True when a non-empty Gemini API key is configured."""
        return bool(self.google_api_key and self.google_api_key.get_secret_value())


@lru_cache
def get_settings() -> FlatSettings:
    """Get cached settings instance."""
    return FlatSettings()
