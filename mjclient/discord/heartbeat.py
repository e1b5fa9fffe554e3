"""
Gateway keep-alive service.

Responsible for:
    - Fixed-interval heartbeat ticks
    - Incrementing sequence counter per tick
    - Running independently of the dispatch loop
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from loguru import logger


# ============================================================
# Constants
# ============================================================

DEFAULT_HEARTBEAT_INTERVAL_S = 40.0


# ============================================================
# Types
# ============================================================

HeartbeatSender = Callable[[int], Awaitable[None]]
HeartbeatFailure = Callable[[BaseException], Awaitable[None]]


# ============================================================
# Heartbeat Service
# ============================================================

class HeartbeatService:
    """
    Periodic keep-alive for one gateway connection.

    The first tick fires one full interval after start(); tick N sends
    sequence N.
    """

    def __init__(
        self,
        send: HeartbeatSender,
        interval_s: float = DEFAULT_HEARTBEAT_INTERVAL_S,
        on_failure: Optional[HeartbeatFailure] = None,
    ):
        self.send = send
        self.interval_s = interval_s
        self.on_failure = on_failure

        self._running = False
        self._seq = 0
        self._loop_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------

    @property
    def seq(self) -> int:
        return self._seq

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------
    # Lifecycle API
    # ------------------------------------------------------------

    async def start(self) -> None:
        if self._running:
            return

        self._running = True
        self._loop_task = asyncio.create_task(self._run_loop())

        logger.debug("Heartbeat started | interval={}s", self.interval_s)

    async def stop(self) -> None:
        if not self._running:
            return

        self._running = False

        if self._loop_task and self._loop_task is not asyncio.current_task():
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
        self._loop_task = None

        logger.debug("Heartbeat stopped")

    async def trigger_now(self) -> int:
        """
        Send one heartbeat immediately.

        Returns:
            The sequence number that was sent.
        """
        return await self._tick()

    # ------------------------------------------------------------
    # Internal Loop
    # ------------------------------------------------------------

    async def _run_loop(self) -> None:
        try:
            while self._running:
                await asyncio.sleep(self.interval_s)
                if self._running:
                    await self._tick()
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.exception("Heartbeat loop crashed")
            self._running = False
            if self.on_failure:
                await self.on_failure(e)

    async def _tick(self) -> int:
        self._seq += 1
        await self.send(self._seq)
        logger.debug("Heartbeat sent | seq={}", self._seq)
        return self._seq
