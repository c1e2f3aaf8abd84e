"""Application settings and configuration.

This module defines all configuration options for the Campus Chat service.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Campus Chat", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./campus_chat.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    auto_create_tables: bool = Field(default=True, alias="AUTO_CREATE_TABLES")

    # Message store selection: "sql" for the relational store, "memory" for fixtures
    chat_store_backend: Literal["sql", "memory"] = Field(
        default="sql",
        alias="CHAT_STORE_BACKEND",
    )
    chat_seed_demo_data: bool = Field(default=True, alias="CHAT_SEED_DEMO_DATA")

    # Redis configuration for the unread-count cache (disabled when unset)
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    unread_cache_ttl_seconds: int = Field(default=300, alias="UNREAD_CACHE_TTL_SECONDS")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Message limits and history pagination
    message_max_length: int = Field(default=5000, alias="MESSAGE_MAX_LENGTH")
    history_default_page_size: int = Field(default=50, alias="HISTORY_DEFAULT_PAGE_SIZE")
    history_max_page_size: int = Field(default=100, alias="HISTORY_MAX_PAGE_SIZE")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def use_memory_store(self) -> bool:
        """Return True when the in-memory fixture store is selected."""
        return self.chat_store_backend == "memory"


settings = Settings()  # type: ignore[call-arg]
