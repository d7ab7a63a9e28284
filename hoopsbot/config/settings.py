"""
Application settings and configuration management.

Uses Pydantic Settings for validation and environment variable support.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BotSettings(BaseSettings):
    """Discord bot configuration."""

    name: str = Field(default="HoopsBot", description="Bot display name")
    command_prefix: str = Field(default="!", description="Command prefix for bot commands")
    token: str = Field(default="", description="Discord bot token")
    allowed_channel_ids: list[int] = Field(
        default_factory=list,
        description="If non-empty, bot only responds in these channel IDs. "
                    "Set via BOT__ALLOWED_CHANNEL_IDS='[123456,789012]'",
    )
    dev_guild_id: int | None = Field(
        default=None,
        description="If set, syncs slash commands to this guild instantly (dev mode). "
                    "If None, syncs globally (up to 1 hour propagation).",
    )


class LLMSettings(BaseSettings):
    """LLM API configuration."""

    model: str = Field(
        default="openai/gpt-4-turbo",
        description="LiteLLM model string, e.g. 'openai/gpt-4-turbo', "
                    "'anthropic/claude-3-5-sonnet-20241022'. The provider prefix tells "
                    "LiteLLM which API to route the request to. The model must support "
                    "tool calling.",
    )
    max_tokens: int = Field(default=1000, description="Maximum tokens in each completion")
    temperature: float = Field(default=0.3, description="Sampling temperature")
    api_key: str = Field(default="", description="API key for the model's provider")

    model_config = SettingsConfigDict(env_prefix="LLM_")


class ESPNSettings(BaseSettings):
    """Upstream sports data API configuration."""

    site_api_base: str = Field(
        default="https://site.api.espn.com/apis/site/v2/sports/basketball/nba",
        description="ESPN site API (teams, schedules, scoreboard, athlete search, box scores)",
    )
    site_web_api_base: str = Field(
        default="https://site.web.api.espn.com/apis/v2/sports/basketball/nba",
        description="ESPN site web API (standings, athlete stats, game logs)",
    )
    timeout_seconds: float = Field(default=10.0, gt=0, description="HTTP timeout per request")
    search_limit: int = Field(default=5, ge=1, le=50, description="Max players per search")

    model_config = SettingsConfigDict(env_prefix="ESPN_")


class ChatSettings(BaseSettings):
    """Conversation and throttling configuration."""

    history_limit: int = Field(
        default=6,
        ge=1,
        description="Max prior messages sent to the model with each query",
    )
    cooldown_ms: int = Field(
        default=3000,
        ge=0,
        description="Minimum milliseconds between accepted requests per session",
    )
    retained_messages: int = Field(
        default=20,
        ge=1,
        description="Max messages a chat front-end keeps per conversation",
    )

    model_config = SettingsConfigDict(env_prefix="CHAT_")


class Settings(BaseSettings):
    """Main application settings."""

    # Environment
    environment: Literal["development", "production"] = Field(
        default="development", description="Deployment environment"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_file: Path | None = Field(default=None, description="Log file path")

    # Sub-configurations
    bot: BotSettings = Field(default_factory=BotSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    espn: ESPNSettings = Field(default_factory=ESPNSettings)
    chat: ChatSettings = Field(default_factory=ChatSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def load_settings(env_file: str | Path | None = None) -> Settings:
    """
    Load settings from file and environment.

    Args:
        env_file: Path to .env file (optional)

    Returns:
        Loaded settings instance
    """
    global _settings
    if env_file:
        _settings = Settings(_env_file=env_file)
    else:
        _settings = Settings()
    return _settings
