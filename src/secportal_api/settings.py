"""Settings for the security portal API."""

from typing import Optional

from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the security portal API.

    [pydantic.BaseSettings](https://docs.pydantic.dev/latest/concepts/pydantic_settings/) is a popular
    framework for organizing, validating, and reading configuration values from a variety of sources
    including environment variables.

    This class automatically reads from:
    1. Environment variables (production - App Service configuration)
    2. .env file (local development)

    Environment variable names are treated case-insensitively, but the canonical
    names used in this project are lowercase (database_url, notification_webhook_url).
    """

    # PostgreSQL (requests, comments, roles, audit log)
    database_url: str
    """PostgreSQL connection string for the request database (required)."""

    db_pool_min_size: int = 1
    """Minimum connections kept in the pool."""

    db_pool_max_size: int = 1
    """Maximum connections in the pool (one logical connection per process by default)."""

    db_command_timeout: float = 60.0
    """Per-statement timeout in seconds."""

    db_run_migrations: bool = True
    """Apply schema.sql on first connection (idempotent)."""

    # New-report notifications
    notification_webhook_url: Optional[str] = None
    """Incoming webhook URL for new-report notifications. Unset disables notifications."""

    notification_timeout_seconds: float = 10.0
    """Timeout for the webhook POST."""

    dashboard_url: str = "http://localhost:3000/admin"
    """URL behind the "View Dashboard" action in notification cards."""

    # Request defaults
    default_owner_id: str = "anonymous"
    """Owner recorded for submissions that carry no userId."""

    system_actor_id: str = "system"
    """Author id for status comments when updatedBy is not supplied."""

    system_actor_name: str = "IT Support"
    """Author name for status comments when updatedByName is not supplied."""

    # Service metadata
    app_version: str = "1.0.0"
    """Version reported by /health."""

    service_name: str = "Security Portal API"
    """Service name used in the OpenAPI title and health message."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",  # Load from .env file if it exists (local development)
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra environment variables not defined in the model
        # In production, .env file won't exist and pydantic will read from system environment variables
        validate_default=True,  # Validate default values
    )
