"""
Runtime utility helpers.

Design principles:
- Pure functional utilities
- Predictable IO boundaries
- Strong naming semantics
"""

from __future__ import annotations

import threading
from datetime import datetime
from pathlib import Path
from typing import Final


# ===========================
# Path System
# ===========================

def get_data_path() -> Path:
    """Return the mjclient data directory (~/.mjclient)."""
    return Path.home() / ".mjclient"


# ===========================
# Clock Utilities
# ===========================

def now_ms() -> int:
    """Return current unix time in milliseconds."""
    return int(datetime.now().timestamp() * 1000)


def now_us() -> int:
    """Return current unix time in microseconds."""
    return int(datetime.now().timestamp() * 1_000_000)


# ===========================
# String Utilities
# ===========================

def truncate(s: str, max_len: int = 120, suffix: str = "...") -> str:
    """Truncate a string with suffix."""
    if len(s) <= max_len:
        return s
    return s[: max_len - len(suffix)] + suffix


# ===========================
# Snowflake ids
# ===========================

# 2015-01-01T00:00:00Z, the Discord epoch
DISCORD_EPOCH_MS: Final[int] = 1420070400000

_WORKER_BITS = 5
_DATACENTER_BITS = 5
_SEQUENCE_BITS = 12
_MAX_SEQUENCE = (1 << _SEQUENCE_BITS) - 1


class Snowflake:
    """
    Monotonic 64-bit id generator in the Discord snowflake layout.

    Layout (high → low):
        timestamp ms since epoch | datacenter (5) | worker (5) | sequence (12)

    Ids are strictly increasing within one generator, which is what makes
    them usable as interaction nonces for concurrently issued commands.
    """

    def __init__(
        self,
        worker_id: int = 0,
        datacenter_id: int = 0,
        epoch: int = DISCORD_EPOCH_MS,
    ):
        if not 0 <= worker_id < (1 << _WORKER_BITS):
            raise ValueError(f"worker_id out of range: {worker_id}")
        if not 0 <= datacenter_id < (1 << _DATACENTER_BITS):
            raise ValueError(f"datacenter_id out of range: {datacenter_id}")

        self.worker_id = worker_id
        self.datacenter_id = datacenter_id
        self.epoch = epoch

        self._lock = threading.Lock()
        self._last_ms = -1
        self._sequence = 0

    def next_id(self) -> int:
        with self._lock:
            ts = now_ms()
            if ts < self._last_ms:
                # Clock went backwards; stay on the last timestamp.
                ts = self._last_ms

            if ts == self._last_ms:
                self._sequence = (self._sequence + 1) & _MAX_SEQUENCE
                if self._sequence == 0:
                    ts = self._last_ms + 1
            else:
                self._sequence = 0

            self._last_ms = ts

            return (
                ((ts - self.epoch) << (_WORKER_BITS + _DATACENTER_BITS + _SEQUENCE_BITS))
                | (self.datacenter_id << (_WORKER_BITS + _SEQUENCE_BITS))
                | (self.worker_id << _SEQUENCE_BITS)
                | self._sequence
            )
