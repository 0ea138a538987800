"""Configuration settings for the application."""

import re

from pydantic_settings import BaseSettings

_CONTROL_CHARS = re.compile(r"[\x00-\x1F\x7F]")
_BEARER_PREFIX = re.compile(r"^Bearer\s+", re.IGNORECASE)


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # These will be loaded from environment variables or a .env file if not provided
    API_PORT: int = 8000
    DEBUG: bool = True
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical

    # Generation capability
    GENERATOR: str = "openai"  # Options: openai, anthropic
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o"
    ROUTER_MODEL: str | None = None  # falls back to the generation model
    ANTHROPIC_API_KEY: str | None = None
    ANTHROPIC_MODEL: str = "claude-3-5-haiku-latest"

    # Turn limits
    MAX_TOOL_ROUNDS: int = 10
    MAX_OUTPUT_TOKENS: int = 1024
    ROUTER_MAX_TOKENS: int = 256

    # Request admission
    RATE_LIMIT_MAX_REQUESTS: int = 20
    RATE_LIMIT_WINDOW_SECONDS: int = 600

    class Config:
        """Configuration for Pydantic settings."""

        # Load environment variables from a .env file
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


def normalize_api_key(raw: str | None) -> str | None:
    """
    Clean an API key pasted into the environment.

    Strips surrounding whitespace, an optional ``Bearer`` prefix and any control characters
    that would make the Authorization header invalid.  Returns *None* when nothing is left.
    """
    if raw is None:
        return None
    trimmed = _BEARER_PREFIX.sub("", raw.strip()).strip()
    sanitized = _CONTROL_CHARS.sub("", trimmed)
    return sanitized or None


def normalize_model(raw: str | None, default: str) -> str:
    """Return *raw* without control characters, or *default* when blank."""
    if raw is None:
        return default
    cleaned = _CONTROL_CHARS.sub("", raw.strip())
    return cleaned or default


settings = Settings()
