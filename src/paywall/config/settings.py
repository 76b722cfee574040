"""Application configuration schema and validation."""

from typing import Literal

from pydantic import Field, PostgresDsn, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    env: Literal["dev", "staging", "prod"] = Field(
        ...,
        description="Application environment",
    )
    db_dsn: PostgresDsn = Field(
        ...,
        description="PostgreSQL database connection string",
    )
    db_pool_min: int = Field(
        default=2,
        ge=1,
        description="Minimum database connection pool size",
    )
    db_pool_max: int = Field(
        default=10,
        ge=1,
        description="Maximum database connection pool size",
    )
    stripe_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Stripe secret API key",
    )
    stripe_publishable_key: str = Field(
        default="",
        description="Stripe publishable key handed to Stripe.js in the browser",
    )
    stripe_webhook_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Signing secret shared with Stripe for webhook verification",
    )
    stripe_price_ids: list[str] = Field(
        default=[],
        description="Price identifiers that may be sold through /subscribe",
    )
    checkout_success_url: str = Field(
        default="http://localhost:3000/posts",
        description="Redirect target after a completed checkout",
    )
    checkout_cancel_url: str = Field(
        default="http://localhost:3000/",
        description="Redirect target after an abandoned checkout",
    )
    billing_portal_return_url: str = Field(
        default="http://localhost:3000/",
        description="Return target when leaving the Stripe billing portal",
    )
    github_client_id: str = Field(
        default="",
        description="GitHub OAuth application client ID",
    )
    github_client_secret: SecretStr = Field(
        default=SecretStr(""),
        description="GitHub OAuth application client secret",
    )
    public_base_url: str = Field(
        default="http://localhost:3000",
        description="Externally visible base URL, used for the OAuth callback",
    )
    session_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Key used to sign session cookies",
    )
    session_max_age_seconds: int = Field(
        default=60 * 60 * 24 * 30,
        ge=60,
        description="Lifetime of a signed-in session cookie",
    )
    server_host: str = Field(
        default="0.0.0.0",
        description="Interface the HTTP server binds to",
    )
    server_port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Port the HTTP server listens on",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    @field_validator("db_pool_max")
    @classmethod
    def validate_pool_max(cls, v: int, info) -> int:
        """Ensure pool_max >= pool_min."""
        if "db_pool_min" in info.data and v < info.data["db_pool_min"]:
            raise ValueError("db_pool_max must be >= db_pool_min")
        return v

    @field_validator("stripe_price_ids")
    @classmethod
    def validate_price_ids(cls, v: list[str]) -> list[str]:
        """Strip blanks and reject duplicate price identifiers."""
        cleaned = [p.strip() for p in v if p.strip()]
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("stripe_price_ids must not contain duplicates")
        return cleaned


_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create the singleton AppConfig instance."""
    global _config
    if _config is None:
        _config = AppConfig()
    return _config
