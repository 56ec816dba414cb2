"""Configuration management for the In-Mail client.

This module handles application configuration using Pydantic settings.
Configuration can be loaded from environment variables or .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_session_path() -> Path:
    return Path.home() / ".inmail" / "session.json"


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with
    the INMAIL_ prefix (e.g., INMAIL_API_URL).
    """

    model_config = SettingsConfigDict(
        env_prefix="INMAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Configuration
    api_url: str = Field(
        default="http://localhost:8080",
        description="Base URL of the In-Mail server (without the /api suffix)",
    )
    request_timeout: float = Field(
        default=30.0,
        description="Timeout for API requests in seconds",
    )

    # Client storage
    session_path: Path = Field(
        default_factory=_default_session_path,
        description="Path to the file holding the persisted session token and user",
    )
    download_dir: Path = Field(
        default=Path("downloads"),
        description="Directory where downloaded attachments are saved",
    )

    # Credential panel URLs (Docker network)
    docker_api_url: str = Field(
        default="http://api.inmail.local:8080",
        description="API URL for applications running on the inmail Docker network",
    )
    docker_smtp_host: str = Field(
        default="api.inmail.local",
        description="SMTP host for applications running on the inmail Docker network",
    )
    docker_web_url: str = Field(
        default="http://web.inmail.local:3000",
        description="Web UI URL on the inmail Docker network",
    )

    # Credential panel URLs (host machine)
    host_api_url: str = Field(
        default="http://localhost:8080",
        description="API URL for applications running on the host machine",
    )
    host_smtp_host: str = Field(
        default="localhost",
        description="SMTP host for applications running on the host machine",
    )
    host_web_url: str = Field(
        default="http://localhost:3000",
        description="Web UI URL on the host machine",
    )
    proxy_url: str = Field(
        default="http://inmail.local",
        description="Reverse proxy URL on the host machine",
    )
    default_smtp_port: int = Field(
        default=1025,
        description="SMTP port shown when the server config is unavailable",
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    @property
    def api_base_url(self) -> str:
        """Base URL of the JSON API, e.g. http://localhost:8080/api."""
        return f"{self.api_url.rstrip('/')}/api"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
