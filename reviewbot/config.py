"""Bot configuration using Pydantic Settings."""

import os
import tempfile
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from reviewbot import __version__


class Settings(BaseSettings):
    """Bot settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # GitHub
    github_token: str = ""  # Required for remote commands
    github_username: str = ""
    github_api_url: str = "https://api.github.com"
    user_agent: str = f"api-review-bot/{__version__}"
    request_timeout: float = 30.0

    # Local git
    clone_dir: str = os.path.join(tempfile.gettempdir(), "api-review-bot")
    clone_timeout: int = 300  # 5 minutes
    git_author_name: str = "api-review-bot"
    git_author_email: str = "api-review-bot@users.noreply.github.com"

    # Logging
    log_level: str = "WARNING"

    @field_validator("log_level", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("github_api_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
