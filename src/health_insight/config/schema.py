"""Configuration schema and validation using Pydantic.

Defines the settings schema that validates and coerces values coming from the
environment, an optional ``.env`` file, or programmatic overrides.
"""

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from health_insight.constants import (
    DEFAULT_FALLBACK_MODEL,
    DEFAULT_MODEL,
    DEFAULT_TTS_MODEL,
    DEFAULT_VOICE_NAME,
)

ENV_PREFIX = "HEALTH_INSIGHT_"

# Operation-scoped keys; each falls back to ``api_key`` when unset.
OPERATION_KEY_FIELDS = (
    "report_api_key",
    "chat_api_key",
    "symptoms_api_key",
    "hospitals_api_key",
    "tips_api_key",
)


class HealthSettings(BaseSettings):
    """Pydantic settings schema for the health insight service.

    Reads ``HEALTH_INSIGHT_*`` environment variables.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=None,
        case_sensitive=False,
        extra="ignore",
    )

    # --- Credentials ---

    api_key: str | None = Field(default=None, description="Shared Gemini API key")
    report_api_key: str | None = Field(default=None, description="Key for report analysis")
    chat_api_key: str | None = Field(default=None, description="Key for chat and speech")
    symptoms_api_key: str | None = Field(default=None, description="Key for symptom prediction")
    hospitals_api_key: str | None = Field(default=None, description="Key for hospital lookup")
    tips_api_key: str | None = Field(default=None, description="Key for health tips")

    # --- Models ---

    model: str = Field(default=DEFAULT_MODEL, min_length=1)
    fallback_model: str = Field(default=DEFAULT_FALLBACK_MODEL, min_length=1)
    tts_model: str = Field(default=DEFAULT_TTS_MODEL, min_length=1)
    voice_name: str = Field(default=DEFAULT_VOICE_NAME, min_length=1)

    # --- Execution ---

    request_timeout: float | None = Field(
        default=None,
        description="Overall deadline in seconds for one call, retries included",
        gt=0,
    )

    # --- HTTP surface ---

    cors_origins: str = Field(
        default="*",
        description="Comma separated list of allowed CORS origins",
    )

    @field_validator(
        "api_key",
        *OPERATION_KEY_FIELDS,
        mode="before",
    )
    @classmethod
    def blank_key_is_unset(cls, v: Any) -> Any:
        """Treat empty or whitespace-only keys as not configured."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("request_timeout", mode="before")
    @classmethod
    def blank_timeout_is_unset(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()


def env_var_for(field_name: str) -> str:
    return f"{ENV_PREFIX}{field_name.upper()}"
