"""
Configuration loading and persistence utilities.

Design goals:
    - Deterministic loading & fallback
    - Strict schema validation
    - Stable persistence format (camelCase on disk, snake_case in memory)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from mjclient.config.schema import MidjourneyConfig
from mjclient.utils.helpers import get_data_path


# =============================
# Paths
# =============================

def get_config_path() -> Path:
    """
    Return default configuration file path.

    Default:
        ~/.mjclient/config.json
    """
    return get_data_path() / "config.json"


# =============================
# Load & Save
# =============================

def load_config(config_path: Path | None = None) -> MidjourneyConfig:
    """
    Load configuration from disk or fallback to defaults.

    Environment variables still override values from the file.
    """
    path = config_path or get_config_path()

    if not path.exists():
        logger.warning("Config file not found, using defaults | path={}", path)
        return MidjourneyConfig()

    try:
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)

        config = MidjourneyConfig(**convert_keys(raw))

        logger.debug("Config loaded | path={}", path)
        return config

    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in config | path={} err={}", path, e)

    except (ValidationError, TypeError) as e:
        logger.error("Invalid config values | path={} err={}", path, e)

    logger.warning("Falling back to default configuration")
    return MidjourneyConfig()


def save_config(config: MidjourneyConfig, config_path: Path | None = None) -> Path:
    """
    Persist configuration to disk (snake_case → camelCase, pretty JSON).
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_to_camel(config.model_dump())

    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

    logger.debug("Config saved | path={}", path)
    return path


# =============================
# Key Conversion
# =============================

def convert_keys(data: Any) -> Any:
    """
    Convert camelCase → snake_case recursively.
    """
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(x) for x in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """
    Convert snake_case → camelCase recursively.
    """
    if isinstance(data, dict):
        return {snake_to_camel(k): convert_to_camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_to_camel(x) for x in data]
    return data


# =============================
# Naming helpers
# =============================

def camel_to_snake(name: str) -> str:
    """
    Convert camelCase → snake_case.

    Example:
        channelId → channel_id
    """
    buf = []
    for i, ch in enumerate(name):
        if ch.isupper() and i > 0:
            buf.append("_")
        buf.append(ch.lower())
    return "".join(buf)


def snake_to_camel(name: str) -> str:
    """
    Convert snake_case → camelCase.

    Example:
        heartbeat_interval_s → heartbeatIntervalS
    """
    head, *tail = name.split("_")
    return head + "".join(w.capitalize() for w in tail)
