"""Runtime configuration, read from environment variables (prefix CHECKERS_)."""

import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field

ENV_PREFIX = "CHECKERS_"


class Settings(BaseModel):
    secret_key: str = "change-me-in-production"
    database_url: str = "sqlite:///checkers.db"
    # Inbound websocket payload limit (bytes)
    message_size_limit: int = Field(8 * 1024, gt=0)
    # Sliding window rate limit, per identity
    max_messages_per_minute: int = Field(100, gt=0)
    rate_limit_window_sec: float = Field(60.0, gt=0)
    # Signed session tokens expire after 30 days
    token_max_age_sec: int = Field(30 * 24 * 3600, gt=0)
    chat_max_length: int = Field(500, gt=0)
    log_level: str = "INFO"
    log_file: Optional[str] = None

    model_config = {"extra": "forbid"}

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "Settings":
        """Only the variables that are set override the defaults."""
        environ = os.environ if environ is None else environ
        values = {
            name: environ[f"{ENV_PREFIX}{name.upper()}"]
            for name in cls.model_fields
            if f"{ENV_PREFIX}{name.upper()}" in environ
        }
        return cls(**values)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
