"""Application configuration using pydantic-settings."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DRIVETREE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "DriveTree"
    version: str = "0.1.0"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Server
    host: str = "127.0.0.1"
    port: int = Field(default=3333, description="Server port")

    # CORS
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins",
    )

    # Google OAuth (installed application client)
    google_client_id: str | None = Field(
        default=None,
        description="OAuth client ID from the Google Cloud console",
    )
    google_client_secret: str | None = Field(
        default=None,
        description="OAuth client secret from the Google Cloud console",
    )
    google_scopes: list[str] = Field(
        default=["https://www.googleapis.com/auth/drive.readonly"],
        description="OAuth scopes requested during consent",
    )
    google_oauth_port: int = Field(
        default=0,
        ge=0,
        le=65535,
        description="Local redirect port for the consent flow (0 picks a free port)",
    )
    google_open_browser: bool = Field(
        default=True,
        description="Open a browser window for the consent flow",
    )

    # Drive API requests
    google_request_delay: float = Field(
        default=0.0,
        ge=0.0,
        description="Minimum delay in seconds between Drive API requests",
    )
    google_requests_per_minute: int = Field(
        default=600,
        ge=1,
        description="Maximum Drive API requests per sliding minute",
    )
    google_http_timeout: int = Field(
        default=60,
        ge=1,
        description="Socket timeout in seconds for Drive API requests",
    )
    drive_page_size: int = Field(
        default=1000,
        ge=1,
        le=1000,
        description="Entries requested per listing page (1-1000)",
    )

    @property
    def google_oauth_configured(self) -> bool:
        """Check if Google OAuth client credentials are configured."""
        return bool(self.google_client_id and self.google_client_secret)


# Global settings instance
settings = Settings()
