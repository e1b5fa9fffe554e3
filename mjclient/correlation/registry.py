"""
Correlation registry shared by all in-flight commands of one gateway session.

Two maps live here:
    - waiters:  token      -> callback feeding the command's sequence
    - pending:  message id -> (token, prompt) placeholder awaiting completion

Both are guarded by one lock. Callbacks are always invoked outside it.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from loguru import logger

from mjclient.discord.events import InboundEvent


WaiterCallback = Callable[[InboundEvent], None]


@dataclass(frozen=True, slots=True)
class PendingPrompt:
    token: str
    prompt: str


class CorrelationRegistry:
    """
    Token → waiter registry plus the content-keyed placeholder table.

    Invariants:
        - a token is registered at most once while pending
        - a placeholder belongs to exactly one registered token
        - a placeholder is consumed at most once
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._waiters: Dict[str, WaiterCallback] = {}
        self._pending: Dict[str, PendingPrompt] = {}

    # ==========================================================
    # Waiters
    # ==========================================================

    def register(self, token: str, on_event: WaiterCallback) -> None:
        """
        Register a waiter for ``token``.

        Raises:
            ValueError: token is already awaited by another command.
        """
        with self._lock:
            if token in self._waiters:
                raise ValueError(f"Token already registered: {token}")
            self._waiters[token] = on_event

        logger.debug("Waiter registered | token={}", token)

    def dispatch(self, token: str, event: InboundEvent) -> None:
        """Invoke the waiter for ``token``; no-op when nobody waits."""
        with self._lock:
            callback = self._waiters.get(token)

        if callback is None:
            logger.debug("No waiter for token={}, event dropped", token)
            return

        try:
            callback(event)
        except Exception:
            logger.exception("Waiter callback failed | token={}", token)

    def unregister(self, token: str) -> None:
        """Remove the waiter and any placeholder it still owns. Idempotent."""
        with self._lock:
            removed = self._waiters.pop(token, None)
            stale = [mid for mid, p in self._pending.items() if p.token == token]
            for mid in stale:
                del self._pending[mid]

        if removed is not None:
            logger.debug(
                "Waiter unregistered | token={} placeholders_dropped={}",
                token,
                len(stale),
            )

    def is_registered(self, token: str) -> bool:
        with self._lock:
            return token in self._waiters

    # ==========================================================
    # Placeholders
    # ==========================================================

    def remember(self, message_id: str, token: str, prompt: str) -> bool:
        """
        Record the placeholder message of an awaited command.

        Placeholders of tokens nobody waits for (other users' commands on
        the same channel) are not kept.
        """
        with self._lock:
            if token not in self._waiters:
                return False
            self._pending[message_id] = PendingPrompt(token=token, prompt=prompt)
        return True

    def token_for_message(self, message_id: str) -> Optional[str]:
        """Token owning placeholder ``message_id``, without consuming it."""
        with self._lock:
            pending = self._pending.get(message_id)
        return pending.token if pending else None

    def consume_by_prompt(self, prompt: str) -> Optional[str]:
        """
        Remove and return the token of the first placeholder with ``prompt``.

        First registered wins; identical prompts in flight at the same time
        are only told apart by issue order.
        """
        with self._lock:
            for message_id, pending in self._pending.items():
                if pending.prompt == prompt:
                    del self._pending[message_id]
                    return pending.token
        return None

    # ==========================================================
    # Introspection
    # ==========================================================

    @property
    def waiter_count(self) -> int:
        with self._lock:
            return len(self._waiters)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)
