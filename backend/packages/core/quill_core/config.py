"""
Translation pipeline configuration.

This module provides settings for the LLM client, the batch scheduler
and the staleness policy, loaded from environment variables.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Find .env file in project root
_env_file = Path(__file__).parent.parent.parent.parent.parent / ".env"


class TranslationSettings(BaseSettings):
    """
    Translation configuration from environment variables.

    Groq settings are read from GROQ_*; pipeline tuning from TRANSLATION_*.
    """

    model_config = SettingsConfigDict(
        env_file=str(_env_file) if _env_file.exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # External LLM (no key = mock translations)
    groq_api_key: str = ""
    groq_api_url: str = "https://api.groq.com/openai/v1/chat/completions"
    translation_model: str = "llama-3.3-70b-versatile"
    translation_timeout_seconds: float = Field(default=30.0, gt=0)
    translation_request_attempts: int = Field(default=3, ge=1, le=10)
    translation_request_base_delay: float = Field(default=1.0, ge=0)
    translation_parse_attempts: int = Field(default=2, ge=1, le=10)
    translation_parse_base_delay: float = Field(default=0.5, ge=0)

    # Batch scheduler
    translation_batch_size: int = Field(default=2, ge=1)
    translation_batch_delay_seconds: float = Field(default=1.0, ge=0)
    translation_retry_delay_seconds: int = Field(default=300, ge=0)

    # Staleness policy
    translation_stale_after_hours: float = Field(default=24.0, ge=0)
    translation_recent_window_hours: float = Field(default=1.0, ge=0)
    translation_max_attempts: int = Field(default=3, ge=1)

    # Housekeeping
    translation_job_retention_days: int = Field(default=30, ge=1)
    default_original_language: str = "en"

    @property
    def groq_configured(self) -> bool:
        """Whether a Groq credential is available."""
        return bool(self.groq_api_key.strip())


# Global instance
translation_settings = TranslationSettings()
