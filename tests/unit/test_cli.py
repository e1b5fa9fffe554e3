"""Unit tests for the command-line entry point."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from mjclient.cli.commands import app
from mjclient.config.schema import MidjourneyConfig
from mjclient.midjourney.api import Midjourney


runner = CliRunner()


@pytest.fixture
def offline(monkeypatch: pytest.MonkeyPatch, config: MidjourneyConfig) -> None:
    """Valid config and no network on init/close."""

    async def noop(self: Midjourney) -> None:
        return None

    monkeypatch.setattr("mjclient.config.loader.load_config", lambda *args, **kwargs: config)
    monkeypatch.setattr(Midjourney, "init", noop)
    monkeypatch.setattr(Midjourney, "close", noop)


class TestCommands:
    """Tests for error reporting of the streaming commands."""

    def test_empty_prompt_reports_error(self, offline: None) -> None:
        result = runner.invoke(app, ["imagine", "   "])

        assert result.exit_code == 1
        assert "prompt must not be empty" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)

    def test_missing_config_reports_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("TOKEN", "GUILD_ID", "CHANNEL_ID"):
            monkeypatch.delenv(f"MJCLIENT_{name}", raising=False)
        monkeypatch.setattr(
            "mjclient.config.loader.load_config",
            lambda *args, **kwargs: MidjourneyConfig(token="", guild_id="", channel_id=""),
        )

        result = runner.invoke(app, ["imagine", "cat"])

        assert result.exit_code == 1
        assert "Missing required config" in result.output

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "mjclient v" in result.output
