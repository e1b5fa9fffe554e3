"""
Map an inbound event to the correlation token it belongs to.

Precedence:
    1. Created with nonce     → the nonce; placeholder remembered by message id
    2. Created without nonce  → token of the first placeholder with the same prompt (consumed)
    3. Updated                → token of the placeholder with the same message id (kept)
    4. anything else          → None
"""

from __future__ import annotations

import re
from typing import Optional

from loguru import logger

from mjclient.correlation.registry import CorrelationRegistry
from mjclient.discord.events import InboundEvent, MessageCreated, MessageUpdated
from mjclient.utils.helpers import truncate


_PROMPT_PATTERN = re.compile(r"\*\*(.*?)\*\*")


def extract_prompt(content: Optional[str]) -> str:
    """
    Return the first ``**...**`` run of ``content``.

    Falls back to the whole content when the bot message has no marker.
    """
    if not content:
        return ""

    match = _PROMPT_PATTERN.search(content)
    if match:
        return match.group(1)

    logger.warning("Failed to parse prompt from content | content={}", truncate(content))
    return content


def resolve_token(event: InboundEvent, registry: CorrelationRegistry) -> Optional[str]:
    """Return the correlation token of ``event`` or None when unrelated."""
    if isinstance(event, MessageCreated):
        if event.nonce is not None:
            registry.remember(event.id, event.nonce, extract_prompt(event.content))
            logger.debug("Created message | id={} nonce={}", event.id, event.nonce)
            return event.nonce

        token = registry.consume_by_prompt(extract_prompt(event.content))
        if token is not None:
            logger.debug("Associated message | id={} nonce={}", event.id, token)
        return token

    if isinstance(event, MessageUpdated):
        token = registry.token_for_message(event.id)
        if token is not None:
            logger.debug("Updated message | id={} nonce={}", event.id, token)
        return token

    return None
