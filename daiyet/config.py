"""Application configuration via pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Daiyet"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    api_prefix: str = "/api"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "daiyet"
    postgres_password: str = Field(default="daiyet_secret")
    postgres_db: str = "daiyet"
    db_pool_size: int = 20
    db_max_overflow: int = 10
    database_url_override: Optional[str] = Field(default=None, alias="DATABASE_URL")

    @computed_field
    @property
    def database_url(self) -> str:
        """Async database connection URL."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @computed_field
    @property
    def redis_url(self) -> str:
        """Redis connection URL."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # JWT verification (tokens are issued by the hosted identity provider)
    jwt_secret_key: str = Field(default="your-super-secret-key-change-in-production")
    jwt_algorithm: str = "HS256"
    jwt_audience: Optional[str] = "authenticated"

    # Cache
    cache_backend: Literal["memory", "redis"] = "memory"
    cache_default_ttl_seconds: int = 300
    cache_sweep_interval_seconds: int = 60
    user_role_ttl_seconds: int = 300
    user_profile_ttl_seconds: int = 600
    user_onboarding_ttl_seconds: int = 3600

    # Rate Limiting (requests per window)
    rate_limit_window_seconds: int = 60
    rate_limit_authenticated: int = 100
    rate_limit_unauthenticated: int = 20
    rate_limit_auth: int = 10

    # Paystack
    paystack_secret_key: Optional[str] = None
    paystack_base_url: str = "https://api.paystack.co"
    paystack_currency: str = "NGN"
    site_url: str = "http://localhost:3000"

    @computed_field
    @property
    def paystack_callback_url(self) -> str:
        """Where Paystack returns the payer after checkout."""
        return f"{self.site_url}/payment/callback"

    # Video rooms (Daily.co)
    daily_api_key: Optional[str] = None
    daily_api_url: str = "https://api.daily.co/v1"
    room_max_participants: int = 10
    room_expiry_grace_hours: int = 24

    # Email (SendGrid)
    sendgrid_api_key: Optional[str] = None
    email_from_address: str = "noreply@daiyet.co"
    email_from_name: str = "Daiyet"

    # AI - Claude API
    anthropic_api_key: Optional[str] = None
    claude_model: str = "claude-sonnet-4-20250514"
    claude_max_tokens: int = 4096

    # Transcription (OpenAI-compatible Whisper endpoint)
    openai_api_key: Optional[str] = None
    transcription_api_url: str = "https://api.openai.com/v1/audio/transcriptions"
    transcription_model: str = "whisper-1"

    # Outbox
    outbox_max_attempts: int = 10
    outbox_redispatch_batch_size: int = 50

    # CORS
    cors_origins: List[str] = ["http://localhost:3000"]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
