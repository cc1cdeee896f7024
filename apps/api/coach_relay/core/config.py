"""Application configuration for the coaching relay."""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

FallbackPolicy = Literal["never", "on_error", "always"]

DEFAULT_SYSTEM_PROMPT = (
    "You are a friendly networking coach. Roleplay as a person the user is meeting. "
    "Ask short follow-up questions. Keep responses under 2-3 sentences."
)


class Settings(BaseSettings):
    """Runtime configuration."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_env: str = Field(default="development")
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])
    port: int = Field(default=3100)
    log_level: str = Field(default="INFO")

    gemini_api_key: str = Field(default="")
    gemini_model: str = Field(default="gemini-2.5-flash")
    coach_system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT)
    request_timeout_ms: int = Field(default=30000)
    gemini_cooldown_ms: int = Field(default=60000)
    fallback_policy: FallbackPolicy = Field(default="on_error")

    elevenlabs_api_key: str = Field(default="")
    elevenlabs_voice_id: str = Field(default="")
    elevenlabs_base_url: str = Field(default="https://api.elevenlabs.io")
    elevenlabs_stt_model: str = Field(default="scribe_v2")
    elevenlabs_tts_model: str = Field(default="eleven_multilingual_v2")

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        """Allow comma-separated env values for CORS origins."""

        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("request_timeout_ms", "gemini_cooldown_ms")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("durations must be non-negative milliseconds")
        return value


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


settings = get_settings()
