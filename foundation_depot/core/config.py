"""
Configuration Settings.

This module defines the depot configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Database Configuration Models
# =====================================================================


class PostgreSQLConfig(BaseModel):
    """PostgreSQL database configuration."""

    db: str = Field(default="depot", alias="POSTGRES_DB", description="PostgreSQL database name")
    user: str = Field(default="depot", alias="POSTGRES_USER", description="PostgreSQL database user")
    password: str = Field(default="changeme", alias="POSTGRES_PASSWORD", description="PostgreSQL database password")
    host: str = Field(default="localhost", alias="POSTGRES_HOST", description="PostgreSQL database host address")
    port: int = Field(default=5432, alias="POSTGRES_PORT", description="PostgreSQL database port number")

    model_config = {"populate_by_name": True}

    @property
    def url(self) -> str:
        """Async connection URL assembled from the individual settings."""
        return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.db}"


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Depot settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Database Configuration
    # =====================================================================
    database_url: Optional[str] = Field(
        default=None,
        description="Async database connection URL; built from the POSTGRES_* settings when unset",
        alias="DEPOT_DATABASE_URL",
    )
    sql_echo: bool = Field(
        default=False,
        description="Echo emitted SQL statements through the sqlalchemy.engine logger",
        alias="DEPOT_SQL_ECHO",
    )
    postgres_db: str = Field(default="depot", alias="POSTGRES_DB")
    postgres_user: str = Field(default="depot", alias="POSTGRES_USER")
    postgres_password: str = Field(default="changeme", alias="POSTGRES_PASSWORD")
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")

    # =====================================================================
    # Logging Configuration
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Depot logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="DEPOT_LOG_LEVEL",
    )
    log_format: str = Field(
        default="detailed",
        description="Log line format (simple, detailed, json)",
        alias="DEPOT_LOG_FORMAT",
    )
    log_dir: str = Field(default="logs", description="Directory of the depot log file", alias="DEPOT_LOG_DIR")
    enable_file_logging: bool = Field(
        default=False,
        description="Also write logs to a rotating file under the log directory",
        alias="DEPOT_ENABLE_FILE_LOGGING",
    )

    # =====================================================================
    # View Configuration
    # =====================================================================
    max_page_range: int = Field(
        default=500,
        gt=0,
        description="Largest page size a depot view accepts",
        alias="DEPOT_MAX_PAGE_RANGE",
    )

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def postgres(self) -> PostgreSQLConfig:
        """Get PostgreSQL configuration from environment variables."""
        return PostgreSQLConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def url(self) -> str:
        """Effective database URL."""
        return self.database_url or self.postgres.url


settings = Settings()
