"""Shared configuration management for the invoice app.

Based on Pydantic Settings v2 best practices:
https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with the prefix 'APP_'.
    Example: APP_API_BASE_URL=https://backend.example.com
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Service configuration
    service_name: str = Field(
        default="invoice-app",
        description="Service identifier for metrics and logs",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version",
    )
    host: str = Field(
        default="0.0.0.0",
        description="Interface the HTTP server binds to",
    )
    port: int = Field(
        default=8000,
        description="Port the HTTP server listens on",
    )

    # Backend API configuration
    api_base_url: str = Field(
        default="",
        description="Base URL of the backend API all data operations are proxied to",
    )
    upstream_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for backend API calls",
        gt=0,
    )

    # Auth cookie configuration
    auth_cookie_name: str = Field(
        default="invoiceapp_token",
        description="Name of the HTTP-only cookie holding the backend auth token",
    )
    auth_cookie_remember_seconds: int = Field(
        default=60 * 60 * 24 * 7,
        description="Cookie lifetime when the user asks to be remembered (7 days)",
    )
    auth_cookie_session_seconds: int = Field(
        default=60 * 60 * 8,
        description="Cookie lifetime for a regular login or signup (8 hours)",
    )

    # Uploads
    max_upload_mb: int = Field(
        default=5,
        description="Maximum size of an uploaded item picture in megabytes",
    )

    @property
    def cookie_secure(self) -> bool:
        """Whether the auth cookie is restricted to HTTPS."""
        return self.environment == "production"


def get_settings() -> Settings:
    """Factory function to get settings instance.

    Returns:
        Configured Settings instance
    """
    return Settings()
