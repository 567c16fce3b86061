"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"

    # Groq (LLM provider)
    groq_api_key: str | None = None
    groq_base_url: str = "https://api.groq.com/openai/v1"
    groq_default_model: str = "mixtral-8x7b-32768"
    groq_timeout: float = 60.0

    # Keyword analysis batching
    llm_batch_size: int = 2
    llm_batch_delay_seconds: float = 3.0
    llm_max_retries: int = 3
    llm_retry_delay_seconds: float = 1.0
    llm_temperature: float = 0.3
    llm_max_tokens: int = 1000
    model_cache_ttl_seconds: int = 86400  # 24 hours

    # SERP provider
    serp_api_key: str | None = None
    serp_base_url: str | None = None
    serp_timeout: float = 30.0
    serp_monthly_credits: int = 1000
    serp_rate_limit_seconds: float = 1.0
    serp_low_credit_threshold: int = 100
    kgr_volume_ceiling: int = 250

    # Key-value persistence
    kv_backend: Literal["memory", "file", "redis"] = "file"
    kv_file_path: str = ".kgrlens_store.json"
    redis_url: str = "redis://localhost:6379/0"

    @field_validator("llm_batch_size")
    @classmethod
    def _validate_batch_size(cls, value: int) -> int:
        """Batch size must allow at least one keyword per chunk."""
        if value < 1:
            raise ValueError("LLM_BATCH_SIZE must be >= 1")
        return value

    @field_validator("llm_max_retries", "serp_monthly_credits")
    @classmethod
    def _validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("value must be >= 0")
        return value

    @field_validator("groq_base_url", "serp_base_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: object) -> object:
        """Normalize provider base URLs so paths can be appended safely."""
        if isinstance(value, str):
            return value.strip().rstrip("/")
        return value


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()

    return settings


settings = get_settings()
