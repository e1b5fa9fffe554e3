"""
Inbound gateway event types and decoder.

Every raw frame decodes into exactly one of:
    - MessageCreated   (t == "MESSAGE_CREATE")
    - MessageUpdated   (t == "MESSAGE_UPDATE")
    - Unsupported      (anything else, never dropped)

Identifying fields (id, author, embeds, channel_id) are strict; optional
fields (nonce, attachments, bot flag) may be absent.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Union

from mjclient.errors import DecodeError


MESSAGE_CREATE = "MESSAGE_CREATE"
MESSAGE_UPDATE = "MESSAGE_UPDATE"


# ---------------------------------------------------------------------
# Payload parts
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Author:
    id: str
    username: str
    bot: bool | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "Author":
        return cls(
            id=_require(data, "id", str),
            username=_require(data, "username", str),
            bot=data.get("bot"),
        )


@dataclass(frozen=True, slots=True)
class Embed:
    title: str | None = None
    description: str | None = None
    color: int | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "Embed":
        return cls(
            title=data.get("title"),
            description=data.get("description"),
            color=data.get("color"),
        )


@dataclass(frozen=True, slots=True)
class Attachment:
    id: str
    url: str
    filename: str = ""
    proxy_url: str | None = None
    size: int = 0
    width: int | None = None
    height: int | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "Attachment":
        return cls(
            id=_require(data, "id", str),
            url=_require(data, "url", str),
            filename=data.get("filename") or "",
            proxy_url=data.get("proxy_url"),
            size=data.get("size") or 0,
            width=data.get("width"),
            height=data.get("height"),
        )


# ---------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class MessageCreated:
    """A new message in a channel. Only the first bot reply echoes the nonce."""

    id: str
    content: str
    channel_id: str
    author: Author
    embeds: tuple[Embed, ...] = ()
    nonce: str | None = None
    attachments: tuple[Attachment, ...] = ()


@dataclass(frozen=True, slots=True)
class MessageUpdated:
    """An edit of an existing message (progress updates from the bot)."""

    id: str
    content: str
    channel_id: str
    author: Author
    embeds: tuple[Embed, ...] = ()
    attachments: tuple[Attachment, ...] = ()


@dataclass(frozen=True, slots=True)
class Unsupported:
    kind: str
    raw_payload: Any = field(default=None)


InboundEvent = Union[MessageCreated, MessageUpdated, Unsupported]


# ---------------------------------------------------------------------
# Decoder
# ---------------------------------------------------------------------

def decode_event(raw: str | bytes) -> InboundEvent:
    """
    Decode one raw gateway frame.

    Raises:
        DecodeError: frame is not a JSON object, or a recognized event
            misses one of its identifying fields.
    """
    try:
        envelope = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"Invalid gateway JSON: {e}") from e

    if not isinstance(envelope, dict):
        raise DecodeError("Expected a JSON object")

    kind = envelope.get("t")
    data = envelope.get("d")

    if not isinstance(kind, str) or not isinstance(data, dict):
        return Unsupported(kind="Unknown", raw_payload=envelope)

    if kind == MESSAGE_CREATE:
        return MessageCreated(
            id=_require(data, "id", str),
            content=_require(data, "content", str),
            channel_id=_require(data, "channel_id", str),
            author=Author.from_json(_require(data, "author", dict)),
            embeds=_embeds(data),
            nonce=_nonce(data),
            attachments=_attachments(data),
        )

    if kind == MESSAGE_UPDATE:
        return MessageUpdated(
            id=_require(data, "id", str),
            # partial updates may omit content
            content=data.get("content") or "",
            channel_id=_require(data, "channel_id", str),
            author=Author.from_json(_require(data, "author", dict)),
            embeds=_embeds(data),
            attachments=_attachments(data),
        )

    return Unsupported(kind=kind, raw_payload=data)


# ---------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------

def _require(data: dict[str, Any], key: str, kind: type) -> Any:
    value = data.get(key)
    if not isinstance(value, kind):
        raise DecodeError(f"Missing or invalid field '{key}'")
    return value


def _embeds(data: dict[str, Any]) -> tuple[Embed, ...]:
    embeds = _require(data, "embeds", list)
    return tuple(Embed.from_json(e) for e in embeds if isinstance(e, dict))


def _attachments(data: dict[str, Any]) -> tuple[Attachment, ...]:
    items = data.get("attachments") or []
    return tuple(Attachment.from_json(a) for a in items if isinstance(a, dict))


def _nonce(data: dict[str, Any]) -> str | None:
    nonce = data.get("nonce")
    if nonce is None or nonce == "":
        return None
    # Discord echoes whatever type was sent; tokens are compared as strings.
    return str(nonce)
