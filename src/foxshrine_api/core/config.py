"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

DEFAULT_JWT_SECRET = "fox-shrine-vtuber-secret-key-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str | None = Field(
        default=None,
        description="Full async connection string; overrides the DB_* parts when set",
    )
    db_host: str = Field(default="localhost", description="Database host")
    db_port: int = Field(default=5432, description="Database port", gt=0)
    db_user: str = Field(default="foxshrine", description="Database user")
    db_password: str = Field(default="", description="Database password")
    db_name: str = Field(default="foxshrine", description="Database name")
    db_pool_size: int = Field(
        default=10,
        description="Maximum number of pooled database connections",
        gt=0,
    )

    # JWT
    jwt_secret_key: str = Field(
        default=DEFAULT_JWT_SECRET,
        min_length=32,
        description="Secret key for signing JWTs (minimum 32 characters)",
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_access_token_expire_minutes: int = Field(
        default=24 * 60,
        description="Access token expiration in minutes",
        gt=0,
    )
    jwt_refresh_token_expire_days: int = Field(
        default=7,
        description="Refresh token expiration in days",
        gt=0,
    )
    session_expire_hours: int = Field(
        default=24,
        description="Lifetime of a persisted login session row in hours",
        gt=0,
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )

    # CORS
    cors_origins: str = Field(
        default=(
            "http://localhost:3000,http://localhost:3001,"
            "https://foxshrinevtuber.com,https://www.foxshrinevtuber.com"
        ),
        description="Comma-separated list of allowed CORS origins",
    )

    # Environment
    environment: str = Field(
        default="development",
        description="Deployment environment name (e.g. production, development, test)",
    )

    # API
    api_prefix: str = Field(
        default="/api",
        description="API route prefix",
    )
    port: int = Field(default=3002, description="Port used by the serve command", gt=0)
    rate_limit_per_minute: int = Field(
        default=100,
        description="Maximum API requests per minute per IP address",
        gt=0,
    )
    trusted_proxy_headers: str = Field(
        default="CF-Connecting-IP,X-Forwarded-For,X-Real-IP",
        description="Comma-separated list of HTTP headers to check for real client IP, in priority order",
    )

    @model_validator(mode="after")
    def refuse_placeholder_secret_in_production(self) -> "Settings":
        if self.is_production and (not self.jwt_secret_key.strip() or self.jwt_secret_key == DEFAULT_JWT_SECRET):
            msg = "JWT_SECRET_KEY is missing or using the default placeholder in production"
            raise ValueError(msg)
        return self

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @property
    def sqlalchemy_url(self) -> str:
        """Return the async database URL, assembling it from DB_* parts when needed."""
        if self.database_url:
            return self.database_url
        url = URL.create(
            "postgresql+asyncpg",
            username=self.db_user,
            password=self.db_password or None,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        )
        return url.render_as_string(hide_password=False)

    @property
    def trusted_proxy_header_list(self) -> list[str]:
        """Parse trusted proxy headers string into a list."""
        if not self.trusted_proxy_headers.strip():
            return []
        return [h.strip() for h in self.trusted_proxy_headers.split(",") if h.strip()]

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        if not self.cors_origins.strip():
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
