"""Configuration objects for the lead agent."""

from __future__ import annotations

from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration sourced from environment variables.

    Every credential is optional: a missing key degrades the endpoints that
    depend on it instead of preventing startup.
    """

    openai_api_key: Optional[SecretStr] = Field(None, alias="OPEN_AI_KEY")
    openai_model: str = Field("gpt-5-mini", alias="OPENAI_MODEL")
    openai_base_url: str = Field("https://api.openai.com/v1", alias="OPENAI_BASE_URL")

    calendly_token: Optional[SecretStr] = Field(None, alias="CALENDLY_TOKEN")
    calendly_base_url: str = Field("https://api.calendly.com", alias="CALENDLY_BASE_URL")

    resend_api_key: Optional[SecretStr] = Field(None, alias="RESEND_API_KEY")
    resend_from: str = Field("Ross Applied AI <hello@rossapplied.ai>", alias="RESEND_FROM")
    resend_base_url: str = Field("https://api.resend.com", alias="RESEND_BASE_URL")
    lead_notify_email: str = Field("hello@rossapplied.ai", alias="LEAD_NOTIFY_EMAIL")

    http_timeout_seconds: float = Field(20.0, alias="HTTP_TIMEOUT_SECONDS")
    rate_limit_window_seconds: float = Field(60.0, alias="RATE_LIMIT_WINDOW_SECONDS")
    rate_limit_max: int = Field(20, alias="RATE_LIMIT_MAX")
    rate_limit_sweep_seconds: float = Field(300.0, alias="RATE_LIMIT_SWEEP_SECONDS")

    default_timezone: str = Field("America/Chicago", alias="DEFAULT_TIMEZONE")
    host: str = Field("0.0.0.0", alias="HOST")
    port: int = Field(3000, alias="PORT")
    static_dir: Optional[str] = Field(None, alias="STATIC_DIR")

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @staticmethod
    def secret(value: Optional[SecretStr]) -> Optional[str]:
        """Return the plain secret, treating blank values as unset."""
        if value is None:
            return None
        plain = value.get_secret_value().strip()
        return plain or None
