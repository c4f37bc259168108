"""Centralized configuration management for Finboard.

This module provides a Pydantic Settings-based configuration system that
consolidates Plaid, database, email, logging and rollup settings with
environment variable integration, type validation, and clear error handling.

Settings are built once by the process entry point (the CLI or the API
factory) and passed explicitly to the components that need them.
"""

import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseModel):
    """Database configuration settings."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(
        default=Path("data/duckdb/finboard.duckdb"),
        description="Path to DuckDB database file",
    )
    create_dirs: bool = Field(
        default=True, description="Automatically create database directories"
    )

    @field_validator("path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Ensure database path has correct extension."""
        if str(v) == ":memory:":
            return v
        if not str(v).endswith((".db", ".duckdb")):
            raise ValueError("Database path must end with .db or .duckdb")
        return v


class PlaidConfig(BaseModel):
    """Plaid API configuration settings."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., description="Plaid client ID")
    secret: str = Field(..., description="Plaid secret key")
    environment: Literal["sandbox", "development", "production"] = Field(
        default="sandbox", description="Plaid environment"
    )
    client_name: str = Field(
        default="Personal Finance Dashboard",
        description="Application name shown in Plaid Link",
    )
    country_codes: list[str] = Field(
        default_factory=lambda: ["US"], description="Plaid country codes"
    )
    products: list[str] = Field(
        default_factory=lambda: ["transactions"],
        description="Plaid products requested when creating link tokens",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Timeout in seconds for each Plaid API request",
    )


class EmailConfig(BaseModel):
    """SMTP settings for balance-change notifications."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(default="", description="SMTP server host")
    port: int = Field(default=587, ge=1, le=65535, description="SMTP server port")
    username: str = Field(default="", description="SMTP login user")
    password: str = Field(default="", description="SMTP login password")
    use_tls: bool = Field(default=True, description="Upgrade with STARTTLS")
    sender: str = Field(default="", description="From address")
    recipient: str = Field(default="", description="To address")
    subject: str = Field(
        default="Daily Finance Update", description="Notification subject line"
    )
    timeout: float = Field(
        default=30.0, gt=0, le=300, description="SMTP socket timeout in seconds"
    )

    @property
    def is_configured(self) -> bool:
        """Whether enough settings are present to attempt delivery."""
        return bool(self.host and self.sender and self.recipient)


class LoggingConfig(BaseModel):
    """Logging configuration settings."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_to_file: bool = Field(default=False, description="Enable file logging")
    log_file_path: Path = Field(
        default=Path("logs/finboard.log"), description="Path to log file"
    )
    max_file_size_mb: int = Field(
        default=50, ge=1, le=1000, description="Maximum log file size in MB"
    )
    backup_count: int = Field(
        default=5, ge=1, le=50, description="Number of log file backups to keep"
    )


class RollupConfig(BaseModel):
    """Balance rollup and change-detection settings."""

    model_config = ConfigDict(frozen=True)

    timezone: str = Field(
        default="UTC",
        description="IANA timezone used to bucket snapshots into calendar days",
    )
    change_threshold: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Balance deltas must exceed this amount to be recorded",
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Ensure the timezone name resolves."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        """The configured timezone as a tzinfo object."""
        return ZoneInfo(self.timezone)


class FinboardSettings(BaseSettings):
    """Main application settings with environment variable integration.

    Environment variables are loaded with the FINBOARD_ prefix.
    For nested configs, use double underscores: FINBOARD_EMAIL__HOST
    """

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    plaid: PlaidConfig = Field(
        default_factory=lambda: PlaidConfig(
            client_id="", secret="", environment="sandbox"
        )
    )
    email: EmailConfig = Field(default_factory=EmailConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    rollup: RollupConfig = Field(default_factory=RollupConfig)

    host: str = Field(default="127.0.0.1", description="API bind address")
    port: int = Field(default=8000, ge=1, le=65535, description="API bind port")

    def __init__(self, **kwargs: Any):
        """Initialize settings with legacy environment variable overrides.

        Args:
            **kwargs: Additional configuration overrides
        """
        # Handle legacy Plaid environment variables
        if "plaid" not in kwargs:
            plaid_config: dict[str, Any] = {}
            client_id = os.getenv("PLAID_CLIENT_ID")
            secret = os.getenv("PLAID_SECRET")
            env = os.getenv("PLAID_ENV", "sandbox")

            if client_id:
                plaid_config["client_id"] = client_id
            if secret:
                plaid_config["secret"] = secret
            if env in ("sandbox", "development", "production"):
                plaid_config["environment"] = env

            if plaid_config and client_id and secret:
                kwargs["plaid"] = PlaidConfig(**plaid_config)

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FINBOARD_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    def create_directories(self) -> None:
        """Create necessary directories for the application."""
        directories: list[Path] = []
        if self.logging.log_to_file:
            directories.append(self.logging.log_file_path.parent)
        if str(self.database.path) != ":memory:":
            directories.append(self.database.path.parent)

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

    def validate_required_credentials(self) -> None:
        """Validate that required credentials are present."""
        errors: list[str] = []

        if not self.plaid.client_id:
            errors.append("PLAID_CLIENT_ID is required")
        if not self.plaid.secret:
            errors.append("PLAID_SECRET is required")

        if errors:
            raise ValueError(f"Missing required configuration: {', '.join(errors)}")


_settings: FinboardSettings | None = None


def get_settings() -> FinboardSettings:
    """Load and validate the settings for this process.

    The first call builds the settings from the environment and creates the
    data directories. Later calls return the same instance. Entry points that
    talk to Plaid call ``validate_required_credentials`` themselves.

    Returns:
        FinboardSettings: The validated configuration instance

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    global _settings

    if _settings is not None:
        return _settings

    try:
        settings = FinboardSettings()

        if settings.database.create_dirs:
            settings.create_directories()

        _settings = settings
        return settings

    except Exception as e:
        raise ValueError(f"Configuration error: {e}") from e


def clear_settings_cache() -> None:
    """Forget the loaded settings so the next call re-reads the environment."""
    global _settings
    _settings = None


def reload_settings() -> FinboardSettings:
    """Reload settings from environment variables.

    Returns:
        FinboardSettings: The reloaded configuration instance
    """
    clear_settings_cache()
    return get_settings()
