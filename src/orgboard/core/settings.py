# src/orgboard/core/settings.py
"""Application settings and configuration.

This module defines all configuration options for the Orgboard application.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Orgboard", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Tokens are minted by the external auth provider with this shared secret
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration
    database_url: str = Field(default="sqlite:///./orgboard.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Every backend round trip is bounded; expiry surfaces as a NetworkError
    backend_timeout_seconds: float = Field(default=10.0, alias="BACKEND_TIMEOUT_SECONDS")

    # View-count dedup markers; in-process when no Redis is configured
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    view_marker_ttl_seconds: int = Field(default=60 * 60 * 24 * 30, alias="VIEW_MARKER_TTL_SECONDS")

    # Coin awards for the gamified leaderboard
    reward_points_vote: int = Field(default=10, alias="REWARD_POINTS_VOTE")
    reward_points_feedback: int = Field(default=50, alias="REWARD_POINTS_FEEDBACK")
    reward_points_rsvp: int = Field(default=20, alias="REWARD_POINTS_RSVP")
    reward_points_event_join: int = Field(default=30, alias="REWARD_POINTS_EVENT_JOIN")
    leaderboard_size: int = Field(default=10, alias="LEADERBOARD_SIZE")

    # CORS configuration for the dashboard frontends
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "PUT", "DELETE", "OPTIONS"],
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
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling such as Alembic."""
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def reward_points(self) -> dict[str, int]:
        """Return coin awards keyed by interaction action."""
        return {
            "vote": self.reward_points_vote,
            "feedback": self.reward_points_feedback,
            "rsvp": self.reward_points_rsvp,
            "event_join": self.reward_points_event_join,
        }


settings = Settings()  # type: ignore[call-arg]
