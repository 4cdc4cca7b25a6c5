# study_ai/settings.py
import os
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Values shipped in sample .env files; treated the same as a missing key.
PLACEHOLDER_VALUES = {
    "demo-key",
    "demo-engine-id",
    "your_google_ai_key_here",
    "your_openai_api_key_here",
    "your_anthropic_api_key_here",
    "your_google_search_key_here",
    "your_search_engine_id_here",
    "changeme",
}

PROVIDER_PREFERENCES = ("google", "openai", "claude")


def is_configured(value: Optional[str]) -> bool:
    """True when a credential looks like a real value."""
    if value is None:
        return False
    value = value.strip()
    return bool(value) and value.lower() not in PLACEHOLDER_VALUES


class Settings(BaseSettings):
    # core
    APP_NAME: str = Field(default="Study AI")
    ENV: str = Field(default=os.getenv("APP_ENV", "dev"))
    DEBUG: bool = Field(default=True)
    LOG_LEVEL: str = Field(default="INFO")

    # generation providers
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    GOOGLE_AI_API_KEY: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("GOOGLE_AI_API_KEY", "GOOGLE")
    )
    GEMINI_MODEL: str = "gemini-2.5-flash"
    ANTHROPIC_API_KEY: Optional[str] = None
    CLAUDE_MODEL: str = "claude-3-5-sonnet-20241022"
    AI_PROVIDER_PREFERENCE: str = "google"

    # web search
    GOOGLE_SEARCH_API_KEY: Optional[str] = None
    GOOGLE_SEARCH_ENGINE_ID: Optional[str] = None
    SEARCH_RESULTS_LIMIT: int = 12
    SEARCH_MIN_INTERVAL_MS: int = 1000

    # timeouts (seconds)
    PROVIDER_TIMEOUT: float = 30.0
    SEARCH_TIMEOUT: float = 10.0
    SCRAPE_TIMEOUT: float = 15.0

    model_config = SettingsConfigDict(
        env_file=".env.dev",
        extra="ignore",
        populate_by_name=True,
    )

    # Bad values in the environment fall back to safe defaults instead of failing startup.
    @field_validator("SEARCH_RESULTS_LIMIT", mode="before")
    @classmethod
    def _clamp_results_limit(cls, v):
        try:
            limit = int(v)
        except (TypeError, ValueError):
            return 12
        return limit if 0 < limit <= 20 else 12

    @field_validator("SEARCH_MIN_INTERVAL_MS", mode="before")
    @classmethod
    def _interval(cls, v):
        try:
            interval = int(v)
        except (TypeError, ValueError):
            return 1000
        return interval if interval >= 0 else 1000

    @field_validator("PROVIDER_TIMEOUT", "SEARCH_TIMEOUT", "SCRAPE_TIMEOUT", mode="before")
    @classmethod
    def _timeout(cls, v, info):
        defaults = {"PROVIDER_TIMEOUT": 30.0, "SEARCH_TIMEOUT": 10.0, "SCRAPE_TIMEOUT": 15.0}
        try:
            timeout = float(v)
        except (TypeError, ValueError):
            return defaults[info.field_name]
        return timeout if timeout > 0 else defaults[info.field_name]

    @field_validator("AI_PROVIDER_PREFERENCE", mode="before")
    @classmethod
    def _preference(cls, v):
        value = str(v or "").strip().lower()
        return value if value in PROVIDER_PREFERENCES else "google"

    @property
    def app_name(self) -> str:
        return self.APP_NAME


settings = Settings()
