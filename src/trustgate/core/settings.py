"""Application settings and configuration.

This module defines all configuration options for the Trustgate service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_promotion_quorum() -> dict[str, dict[str, int]]:
    return {
        "researcher": {"moderator": 2, "admin": 1},
        "moderator": {"moderator": 2, "admin": 1},
        "admin": {"moderator": 2, "admin": 2},
    }


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    This class defines all configuration options for the Trustgate service.
    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Trustgate", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration
    database_url: str = Field(default="sqlite:///./trustgate.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Classification services
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    openai_moderation_model: str = Field(
        default="omni-moderation-latest",
        alias="OPENAI_MODERATION_MODEL",
    )
    openai_embedding_model: str = Field(
        default="text-embedding-3-small",
        alias="OPENAI_EMBEDDING_MODEL",
    )
    openai_confirmation_model: str = Field(
        default="gpt-4o-mini",
        alias="OPENAI_CONFIRMATION_MODEL",
    )
    embedding_dimensions: int = Field(default=1536, alias="EMBEDDING_DIMENSIONS")
    perspective_api_key: str | None = Field(default=None, alias="PERSPECTIVE_API_KEY")
    perspective_base_url: str = Field(
        default="https://commentanalyzer.googleapis.com/v1alpha1",
        alias="PERSPECTIVE_BASE_URL",
    )
    perspective_flag_threshold: float = Field(default=0.7, alias="PERSPECTIVE_FLAG_THRESHOLD")
    upstream_timeout_seconds: float = Field(default=10.0, alias="UPSTREAM_TIMEOUT_SECONDS")

    # Originality checking
    originality_min_length: int = Field(default=100, alias="ORIGINALITY_MIN_LENGTH")
    originality_similarity_floor: float = Field(
        default=0.70,
        alias="ORIGINALITY_SIMILARITY_FLOOR",
    )
    originality_confirm_threshold: float = Field(
        default=0.85,
        alias="ORIGINALITY_CONFIRM_THRESHOLD",
    )
    originality_definite_threshold: float = Field(
        default=0.90,
        alias="ORIGINALITY_DEFINITE_THRESHOLD",
    )
    originality_top_k: int = Field(default=3, alias="ORIGINALITY_TOP_K")
    originality_max_embed_chars: int = Field(default=8000, alias="ORIGINALITY_MAX_EMBED_CHARS")
    originality_max_confirm_chars: int = Field(
        default=2000,
        alias="ORIGINALITY_MAX_CONFIRM_CHARS",
    )

    # Moderation outcome
    moderation_block_similarity: float = Field(default=0.8, alias="MODERATION_BLOCK_SIMILARITY")

    # Governance
    jury_default_required_votes: int = Field(default=3, alias="JURY_DEFAULT_REQUIRED_VOTES")
    promotion_quorum: dict[str, dict[str, int]] = Field(
        default_factory=_default_promotion_quorum,
        alias="PROMOTION_QUORUM",
    )

    # Trust recalculation sweep
    trust_sweep_enabled: bool = Field(default=False, alias="TRUST_SWEEP_ENABLED")
    trust_sweep_interval_seconds: float = Field(
        default=30.0,
        alias="TRUST_SWEEP_INTERVAL_SECONDS",
    )
    trust_sweep_batch_size: int = Field(default=100, alias="TRUST_SWEEP_BATCH_SIZE")
    trust_sweep_claim_timeout_seconds: int = Field(
        default=300,
        alias="TRUST_SWEEP_CLAIM_TIMEOUT_SECONDS",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "OPTIONS"],
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
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    def quorum_for(self, target_role: str) -> tuple[int, int] | None:
        """Return the (moderator, admin) endorsement quorum for a target role."""
        entry = self.promotion_quorum.get(target_role)
        if entry is None:
            return None
        return max(1, int(entry.get("moderator", 1))), max(1, int(entry.get("admin", 1)))


settings = Settings()  # type: ignore[call-arg]
