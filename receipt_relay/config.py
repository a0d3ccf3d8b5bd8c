"""Configuration management for the application."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "change-me-in-production"  # noqa: S105


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    The instance is frozen: it is built once at startup and shared by
    reference with every component that needs credentials or endpoints.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", frozen=True
    )

    # Service
    environment: str = Field(default="development")
    service_name: str = Field(default="receipt-relay")
    service_version: str = Field(default="1.0.0")
    log_level: str = Field(default="INFO")

    # LLM
    llm_provider: Literal["openai", "anthropic"] = Field(default="openai")
    openai_api_key: str | None = Field(default=None)
    openai_base_url: str = Field(default="https://api.openai.com/v1")
    anthropic_api_key: str | None = Field(default=None)
    receipt_model: str = Field(default="gpt-4o-mini")
    assistant_model: str = Field(default="gpt-4o-mini")
    receipt_max_tokens: int = Field(default=2000)
    receipt_temperature: float = Field(default=0.1)
    assistant_max_tokens: int = Field(default=1000)
    assistant_temperature: float = Field(default=0.7)
    llm_timeout_seconds: float = Field(default=60.0)

    # Quota and input limits
    free_monthly_limit: int = Field(default=10)
    max_receipt_text_length: int = Field(default=10_000)
    max_prompt_length: int = Field(default=2_000)

    # Usage store (Firestore in production)
    usage_store_backend: Literal["memory", "firestore"] = Field(default="memory")
    firestore_project: str | None = Field(default=None)

    # Identity
    identity_backend: Literal["jwt", "firebase"] = Field(default="jwt")
    firebase_project_id: str | None = Field(default=None)
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET)
    jwt_algorithm: str = Field(default="HS256")

    # HTTP
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "https://budgyfinance.app"]
    )
    rate_limit_requests: int = Field(default=50)
    rate_limit_window_seconds: int = Field(default=15 * 60)

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate that production has secure settings."""
        if self.environment == "production":
            if self.identity_backend == "jwt" and self.jwt_secret == DEFAULT_JWT_SECRET:
                raise ValueError("JWT_SECRET must be changed in production")
            if self.usage_store_backend != "firestore":
                raise ValueError("USAGE_STORE_BACKEND must be 'firestore' in production")
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
