"""Application configuration using Pydantic v2 settings."""

from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from seriesdb.models.connection import ConnectionConfig


class Settings(BaseSettings):
    """Global settings with environment variable support (``SERIESDB_`` prefix)."""

    model_config = SettingsConfigDict(
        env_prefix="SERIESDB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    db_host: str = Field(default="localhost", description="PostgreSQL host")
    db_port: int | None = Field(default=5432, description="PostgreSQL port")
    db_user: str = Field(default="postgres", description="Database user")
    db_password: SecretStr = Field(default=SecretStr(""), description="Database password")
    db_name: str | None = Field(default=None, description="Physical database name")
    db_schema: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SERIESDB_DB_SCHEMA", "SERIESDB_DATABASE", "db_schema"),
        description="Schema activated on the search path after connecting",
    )

    # Reconnect policy (0 attempts = retry forever)
    reconnect_attempts: int = Field(default=5, ge=0, description="Reconnects before giving up")
    reconnect_backoff_seconds: float = Field(
        default=0.5, ge=0, description="Initial delay before a reconnect"
    )
    reconnect_backoff_max_seconds: float = Field(
        default=30.0, ge=0, description="Upper bound for the reconnect delay"
    )

    # Set-membership filter flavour
    set_filter: Literal["csv", "array"] = Field(
        default="csv", description="How series sets are bound into queries"
    )

    # Application
    log_level: str = Field(default="INFO", description="Logging level")

    # Observability
    observability_service_name: str = Field(
        default="seriesdb",
        validation_alias=AliasChoices("OTEL_SERVICE_NAME", "observability_service_name"),
        description="Service name reported in OpenTelemetry exports",
    )
    observability_environment: str = Field(
        default="production",
        validation_alias=AliasChoices("OTEL_ENVIRONMENT", "observability_environment"),
        description="Environment label attached to telemetry exports",
    )
    otlp_enabled: bool = Field(default=False, description="Export logs and spans over OTLP")

    def connection_config(self) -> ConnectionConfig:
        """Build the connection config described by these settings."""
        return ConnectionConfig(
            host=self.db_host,
            port=self.db_port,
            username=self.db_user,
            password=self.db_password,
            schema_name=self.db_schema,
            dbname=self.db_name,
        )


settings = Settings()
