"""
Per-command stream bridging the shared dispatch loop to one caller.

Flow:
    dispatch loop -> registry.dispatch -> RequestStream(event) -> queue -> async for

The dispatch side never awaits: events are converted and queued with
put_nowait, so a slow consumer cannot stall the gateway.
"""

from __future__ import annotations

import asyncio
import re
from typing import AsyncIterator, Optional, Union

from loguru import logger

from mjclient.correlation.registry import CorrelationRegistry
from mjclient.discord.events import InboundEvent, MessageCreated, MessageUpdated
from mjclient.errors import InvalidResultError
from mjclient.midjourney.messages import Finish, OutcomeEvent, Progress


DEFAULT_BUFFER_SIZE = 64

_PROGRESS_PATTERN = re.compile(r"\((\d+)%\)")

_Item = Union[OutcomeEvent, BaseException]


# ---------------------------------------------------------------------
# Event conversion
# ---------------------------------------------------------------------

def parse_percent(content: str) -> int:
    match = _PROGRESS_PATTERN.search(content or "")
    if not match:
        return 0
    return int(match.group(1))


def to_outcome(event: InboundEvent) -> Optional[OutcomeEvent]:
    """
    Convert a correlated inbound event into an outcome event.

    Raises:
        InvalidResultError: completion message without an image.
    """
    if isinstance(event, MessageCreated):
        if event.nonce is not None:
            return Progress(percent=0, id=event.id, content=event.content)
        if not event.attachments:
            raise InvalidResultError(f"Completion message {event.id} has no attachment")
        return Finish(id=event.id, content=event.content, uri=event.attachments[0].url)

    if isinstance(event, MessageUpdated):
        # Edits without a preview image carry no progress information.
        if not event.attachments:
            return None
        return Progress(
            percent=parse_percent(event.content),
            id=event.id,
            content=event.content,
            uri=event.attachments[0].url,
        )

    return None


# ---------------------------------------------------------------------
# Stream
# ---------------------------------------------------------------------

class RequestStream:
    """
    Finite, non-restartable sequence of outcome events for one token.

    The waiter is registered on construction, so it is in place before the
    command is submitted. The sequence ends after the first Finish or the
    first error; anything dispatched afterwards is discarded.
    """

    def __init__(
        self,
        registry: CorrelationRegistry,
        token: str,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ):
        self.token = token
        self._registry = registry
        self._queue: asyncio.Queue[_Item] = asyncio.Queue(maxsize=max(buffer_size, 1))
        self._terminated = False
        self._consumed = False

        registry.register(token, self)

    # ---------------------------------------------------------------------
    # Dispatch side
    # ---------------------------------------------------------------------

    def __call__(self, event: InboundEvent) -> None:
        if self._terminated:
            logger.debug("Stream terminated, event discarded | token={}", self.token)
            return

        try:
            outcome = to_outcome(event)
        except InvalidResultError as e:
            self.fail(e)
            return

        if outcome is None:
            return

        if isinstance(outcome, Finish):
            self._terminate(outcome)
        else:
            self._offer(outcome)

    def fail(self, error: BaseException) -> None:
        """Terminate the sequence with ``error``."""
        if self._terminated:
            return
        self._terminate(error)

    # ---------------------------------------------------------------------
    # Consumer side
    # ---------------------------------------------------------------------

    async def __aiter__(self) -> AsyncIterator[OutcomeEvent]:
        if self._consumed:
            raise RuntimeError(f"Stream for token {self.token} already consumed")
        self._consumed = True

        try:
            while True:
                item = await self._queue.get()
                if isinstance(item, BaseException):
                    raise item
                yield item
                if isinstance(item, Finish):
                    return
        finally:
            self.close()

    def close(self) -> None:
        """Stop waiting: unregister and discard further events. Idempotent."""
        self._terminated = True
        self._registry.unregister(self.token)

    @property
    def terminated(self) -> bool:
        return self._terminated

    # ---------------------------------------------------------------------
    # Internals
    # ---------------------------------------------------------------------

    def _terminate(self, item: _Item) -> None:
        self._terminated = True
        self._registry.unregister(self.token)

        # The terminal element must never be lost; make room by dropping
        # the oldest progress update.
        if self._queue.full():
            dropped = self._queue.get_nowait()
            logger.warning("Buffer full, progress dropped | token={} item={}", self.token, dropped)
        self._queue.put_nowait(item)

    def _offer(self, progress: Progress) -> None:
        try:
            self._queue.put_nowait(progress)
        except asyncio.QueueFull:
            logger.warning(
                "Slow consumer, progress dropped | token={} percent={}",
                self.token,
                progress.percent,
            )
