"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Copilot configuration. All values come from environment variables."""

    # Discord
    discord_bot_token: str = Field(default="")
    allowed_channel_ids: str = Field(default="")
    bot_name: str = Field(default="Figmenta Copilot")

    # Overrides the built-in instructions when the store has none
    system_instructions: str = Field(default="")

    # Anthropic
    anthropic_api_key: str = Field(default="")
    chat_model: str = Field(default="claude-sonnet-4-5-20250929")
    max_response_tokens: int = Field(default=1024)

    # Turso (hosted libSQL). A local database_path is the dev alternative.
    # With neither set the bot runs memory-only.
    turso_database_url: str = Field(default="")
    turso_auth_token: str = Field(default="")
    database_path: Path | None = Field(default=None)

    # Conversation memory
    memory_window_size: int = Field(default=20)
    context_window_size: int = Field(default=10)
    summary_interval: int = Field(default=5)
    max_cached_channels: int = Field(default=1000)

    # Discord rejects messages longer than this
    message_char_limit: int = Field(default=2000)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def get_allowed_channel_ids(self) -> set[str]:
        """Parse ALLOWED_CHANNEL_IDS into a set of channel ID strings."""
        if not self.allowed_channel_ids.strip():
            return set()
        return {cid.strip() for cid in self.allowed_channel_ids.split(",") if cid.strip()}

    def store_configured(self) -> bool:
        """True when a durable store (remote or local file) is configured."""
        return bool(self.turso_database_url) or self.database_path is not None


settings = Settings()
