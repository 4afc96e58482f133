"""
Configuration and settings for the chat web app.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Firebase (Auth REST API key of the web app; Firestore uses ADC)
    firebase_web_api_key: Optional[str] = Field(default=None)
    auth_request_timeout_seconds: Optional[float] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # UI surfaces
    login_url: str = Field(default="/login")
    chat_url: str = Field(default="/chat")
    failure_url: str = Field(default="/login/failed")
    failure_redirect_delay_seconds: float = Field(default=2.0, ge=0)

    default_avatar_url: str = Field(default="/images/profile_placeholder.png")
    session_cookie_name: str = Field(default="chat_session")
    session_idle_seconds: float = Field(default=3600.0, gt=0)
    stream_keepalive_seconds: float = Field(default=15.0, gt=0)
    executor_max_workers: int = Field(default=4, ge=1)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
