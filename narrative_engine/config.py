"""Engine configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Carousel / Rate Limiting
    # ==========================================================================
    # Used when a carousel config omits estimated_tokens_per_iteration
    default_estimated_tokens: int = 1000

    # ==========================================================================
    # Composition
    # ==========================================================================
    # Cycle detection already bounds recursion; this caps legitimate depth too
    max_composition_depth: int = 16

    # ==========================================================================
    # Conversation History
    # ==========================================================================
    # Text inputs longer than this (characters) are summarized in history
    auto_summary_threshold: int = 10_000

    # Logging
    log_level: str = "INFO"
    log_llm_calls: bool = False
    llm_log_dir: str = "logs/llm"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience alias
settings = get_settings()
