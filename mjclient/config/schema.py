"""
Configuration schema definitions.

Design principles:
    - Predictable defaults
    - Environment override support
    - Strong typing + validation
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from mjclient.errors import ConfigError


# =============================
# Defaults
# =============================

DEFAULT_BASE_URL = "https://discord.com"
DEFAULT_WS_URL = "wss://gateway.discord.gg/?v=9&encoding=json"


# =============================
# Root Config
# =============================

class MidjourneyConfig(BaseSettings):
    """
    Connection and credential settings.

    Priority:
        env > config.json > defaults
    """

    model_config = SettingsConfigDict(
        env_prefix="MJCLIENT_",
        env_nested_delimiter="__",
    )

    base_url: str = DEFAULT_BASE_URL
    ws_url: str = DEFAULT_WS_URL

    token: str = ""
    guild_id: str = ""
    channel_id: str = ""

    heartbeat_interval_s: float = Field(default=40.0, gt=0)
    stream_buffer_size: int = Field(default=64, ge=1)
    http_timeout_s: float = Field(default=30.0, gt=0)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Values passed in (from config.json) lose to the environment.
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    # -------------------------
    # Runtime helpers
    # -------------------------

    @property
    def interactions_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/api/v9/interactions"

    def validate_required(self) -> "MidjourneyConfig":
        """
        Ensure credentials and identifiers are present.

        Raises:
            ConfigError: listing every missing field.
        """
        missing = [
            name
            for name in ("token", "guild_id", "channel_id")
            if not getattr(self, name).strip()
        ]
        if missing:
            raise ConfigError(f"Missing required config: {', '.join(missing)}")
        return self
