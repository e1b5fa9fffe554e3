"""
Caller-facing Midjourney client.

Each command yields a lazy async sequence of Progress events closed by a
single Finish. Nothing is sent until the sequence is iterated.
"""

from __future__ import annotations

from typing import AsyncIterator, Awaitable, Callable, Optional

from loguru import logger

from mjclient.config.schema import MidjourneyConfig
from mjclient.correlation.registry import CorrelationRegistry
from mjclient.correlation.stream import RequestStream
from mjclient.discord.gateway import GatewaySession
from mjclient.discord.interaction import InteractionClient
from mjclient.midjourney.messages import Finish, OutcomeEvent
from mjclient.utils.helpers import now_us


MIN_INDEX = 0
MAX_INDEX = 4

Submit = Callable[[str], Awaitable[str]]


def _check_index(index: int) -> None:
    if not MIN_INDEX <= index <= MAX_INDEX:
        raise ValueError(f"index must be between {MIN_INDEX} and {MAX_INDEX}, got {index}")


class Midjourney:
    """
    Midjourney bot client over one Discord Gateway session.

    Usage:
        async with Midjourney(config) as client:
            async for event in client.imagine("cat in a hat"):
                ...
    """

    def __init__(
        self,
        config: MidjourneyConfig,
        interactions: Optional[InteractionClient] = None,
        session: Optional[GatewaySession] = None,
    ):
        self.config = config
        self.session = session or GatewaySession(config, CorrelationRegistry())
        self.interactions = interactions or InteractionClient(config)

    @property
    def registry(self) -> CorrelationRegistry:
        return self.session.registry

    # ==========================================================
    # Lifecycle
    # ==========================================================

    async def init(self) -> None:
        """Validate configuration and bring the gateway session live. Releases everything on failure."""
        try:
            self.config.validate_required()
            await self.session.connect()
        except Exception:
            await self.close()
            raise

    async def close(self) -> None:
        await self.session.close()
        await self.interactions.aclose()

    async def __aenter__(self) -> "Midjourney":
        await self.init()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    # ==========================================================
    # Commands
    # ==========================================================

    def imagine(self, prompt: str) -> AsyncIterator[OutcomeEvent]:
        """Generate a new image grid for ``prompt``."""
        if not prompt.strip():
            raise ValueError("prompt must not be empty")

        # The prompt is the only thing shared by the placeholder and the
        # completion message; a seed makes identical prompts distinguishable.
        seeded = f"{prompt} --seed {now_us() % 1_000_000}"
        return self._run(lambda nonce: self.interactions.imagine(seeded, nonce=nonce))

    def variation(self, finish: Finish, index: int) -> AsyncIterator[OutcomeEvent]:
        """Create a variation of image ``index`` of a finished grid."""
        _check_index(index)
        return self._run(lambda nonce: self.interactions.variation(finish, index, nonce=nonce))

    def upscale(self, finish: Finish, index: int) -> AsyncIterator[OutcomeEvent]:
        """Upscale image ``index`` of a finished grid."""
        _check_index(index)
        return self._run(lambda nonce: self.interactions.upscale(finish, index, nonce=nonce))

    # ==========================================================
    # Internals
    # ==========================================================

    async def _run(self, submit: Submit) -> AsyncIterator[OutcomeEvent]:
        nonce = self.interactions.allocate_nonce()

        # Waiter first, so the placeholder event cannot outrun registration.
        stream = RequestStream(self.registry, nonce, buffer_size=self.config.stream_buffer_size)
        try:
            await submit(nonce)
            async for event in stream:
                yield event
        except Exception as e:
            logger.warning("Command failed | nonce={} err={}", nonce, e)
            raise
        finally:
            stream.close()
