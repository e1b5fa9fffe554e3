"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from mjclient.config.schema import MidjourneyConfig
from mjclient.correlation.registry import CorrelationRegistry


@pytest.fixture
def config(monkeypatch: pytest.MonkeyPatch) -> MidjourneyConfig:
    """Config with every required field set and no env leakage."""
    for name in ("TOKEN", "GUILD_ID", "CHANNEL_ID", "WS_URL", "BASE_URL"):
        monkeypatch.delenv(f"MJCLIENT_{name}", raising=False)
    return MidjourneyConfig(
        token="user-token",
        guild_id="guild-1",
        channel_id="channel-1",
        base_url="https://discord.test",
        ws_url="wss://gateway.test",
    )


@pytest.fixture
def registry() -> CorrelationRegistry:
    return CorrelationRegistry()
