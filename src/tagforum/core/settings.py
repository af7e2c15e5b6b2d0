"""Application settings and configuration.

This module defines all configuration options for the Tagforum service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Tagforum", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    api_prefix: str = Field(default="/api", alias="API_PREFIX")

    # Community record storage
    database_url: str = Field(default="sqlite:///./tagforum.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Upstream AT Protocol service
    atproto_service_url: str = Field(
        default="https://public.api.bsky.app",
        alias="ATPROTO_SERVICE_URL",
    )
    atproto_identifier: str | None = Field(default=None, alias="ATPROTO_IDENTIFIER")
    atproto_app_password: str | None = Field(default=None, alias="ATPROTO_APP_PASSWORD")
    atproto_http_timeout_seconds: float = Field(
        default=10.0,
        alias="ATPROTO_HTTP_TIMEOUT_SECONDS",
    )
    atproto_user_agent: str = Field(default="tagforum/0.1", alias="ATPROTO_USER_AGENT")

    # Aggregation engine tuning
    search_page_size: int = Field(default=20, alias="SEARCH_PAGE_SIZE")
    parent_posts_per_page: int = Field(default=25, alias="PARENT_POSTS_PER_PAGE")
    thread_max_descent_depth: int = Field(default=50, alias="THREAD_MAX_DESCENT_DEPTH")

    # Polled single-tag feeds
    feed_watched_tags: list[str] = Field(default=[], alias="FEED_WATCHED_TAGS")
    feed_poll_interval_seconds: float = Field(
        default=15.0,
        alias="FEED_POLL_INTERVAL_SECONDS",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "DELETE", "OPTIONS"],
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


settings = Settings()
