"""Unit tests for the gateway session."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import pytest

from mjclient.config.schema import MidjourneyConfig
from mjclient.correlation.stream import RequestStream
from mjclient.discord.gateway import (
    GatewaySession,
    SessionState,
    auth_frame,
    heartbeat_frame,
)
from mjclient.errors import TransportError
from mjclient.midjourney.messages import Finish
from tests.frames import created_frame, updated_frame


class FakeWebSocket:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.closed = False
        self.fail_sends = False
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def send(self, data: str) -> None:
        if self.fail_sends:
            raise OSError("broken pipe")
        self.sent.append(json.loads(data))

    async def close(self) -> None:
        self.closed = True
        self._inbox.put_nowait(None)

    def feed(self, raw: str) -> None:
        self._inbox.put_nowait(raw)

    def drop(self) -> None:
        self._inbox.put_nowait(None)

    def __aiter__(self) -> "FakeWebSocket":
        return self

    async def __anext__(self) -> str:
        item = await self._inbox.get()
        if item is None:
            raise StopAsyncIteration
        return item


async def _wait_for(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def ws() -> FakeWebSocket:
    return FakeWebSocket()


@pytest.fixture
def session(config: MidjourneyConfig, ws: FakeWebSocket) -> GatewaySession:
    async def connector(url: str, **kwargs: Any) -> FakeWebSocket:
        assert url == "wss://gateway.test"
        return ws

    return GatewaySession(config, connector=connector)


# =============================================================================
# Frames
# =============================================================================


class TestFrames:
    """Tests for outbound frame shapes."""

    def test_auth_frame(self) -> None:
        frame = auth_frame("secret")

        assert frame["op"] == 2
        assert frame["d"]["token"] == "secret"

    def test_heartbeat_frame(self) -> None:
        assert heartbeat_frame(7) == {"op": 1, "d": 7}


# =============================================================================
# Lifecycle
# =============================================================================


class TestLifecycle:
    """Tests for connect / close and state observers."""

    @pytest.mark.asyncio
    async def test_connect_authenticates_and_goes_live(
        self, session: GatewaySession, ws: FakeWebSocket
    ) -> None:
        states: list[SessionState] = []
        session.add_state_observer(lambda state, error: states.append(state))

        await session.connect()

        assert session.is_live
        assert states == [SessionState.CONNECTING, SessionState.AUTHENTICATING, SessionState.LIVE]
        assert ws.sent[0] == auth_frame("user-token")

        await session.close()
        assert session.state is SessionState.DISCONNECTED
        assert ws.closed

    @pytest.mark.asyncio
    async def test_connect_failure(self, config: MidjourneyConfig) -> None:
        async def connector(url: str, **kwargs: Any) -> FakeWebSocket:
            raise OSError("refused")

        session = GatewaySession(config, connector=connector)
        errors: list = []
        session.add_state_observer(lambda state, error: errors.append(error))

        with pytest.raises(TransportError):
            await session.connect()

        assert session.state is SessionState.DISCONNECTED
        assert isinstance(errors[-1], TransportError)

    @pytest.mark.asyncio
    async def test_connect_timeout_reported(self, config: MidjourneyConfig) -> None:
        """Timeouts that are not OSError still end in DISCONNECTED."""
        async def connector(url: str, **kwargs: Any) -> FakeWebSocket:
            raise asyncio.TimeoutError()

        session = GatewaySession(config, connector=connector)
        states: list[SessionState] = []
        session.add_state_observer(lambda state, error: states.append(state))

        with pytest.raises(TransportError):
            await session.connect()

        assert session.state is SessionState.DISCONNECTED
        assert states[-1] is SessionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_heartbeat_failure_disconnects(
        self, config: MidjourneyConfig, ws: FakeWebSocket
    ) -> None:
        async def connector(url: str, **kwargs: Any) -> FakeWebSocket:
            return ws

        fast = config.model_copy(update={"heartbeat_interval_s": 0.01})
        session = GatewaySession(fast, connector=connector)
        errors: list = []
        session.add_state_observer(lambda state, error: errors.append((state, error)))
        await session.connect()

        ws.fail_sends = True
        await _wait_for(lambda: session.state is SessionState.DISCONNECTED)

        state, error = errors[-1]
        assert state is SessionState.DISCONNECTED
        assert isinstance(error, TransportError)
        assert ws.closed

    @pytest.mark.asyncio
    async def test_session_not_reusable(self, session: GatewaySession) -> None:
        await session.connect()
        await session.close()

        with pytest.raises(RuntimeError):
            await session.connect()

    @pytest.mark.asyncio
    async def test_heartbeat_sends_incrementing_seq(
        self, config: MidjourneyConfig, ws: FakeWebSocket
    ) -> None:
        async def connector(url: str, **kwargs: Any) -> FakeWebSocket:
            return ws

        fast = config.model_copy(update={"heartbeat_interval_s": 0.01})
        session = GatewaySession(fast, connector=connector)
        await session.connect()

        await _wait_for(lambda: len(ws.sent) >= 3)
        await session.close()

        beats = [frame["d"] for frame in ws.sent[1:] if frame["op"] == 1]
        assert beats[:2] == [1, 2]

    @pytest.mark.asyncio
    async def test_drop_reported_but_waiters_kept(
        self, session: GatewaySession, ws: FakeWebSocket
    ) -> None:
        states: list[SessionState] = []
        session.add_state_observer(lambda state, error: states.append(state))
        await session.connect()
        RequestStream(session.registry, "T")

        ws.drop()
        await _wait_for(lambda: session.state is SessionState.DISCONNECTED)

        assert states[-1] is SessionState.DISCONNECTED
        assert session.registry.is_registered("T")


# =============================================================================
# Dispatch
# =============================================================================


class TestDispatch:
    """Tests for frame routing through decode → resolve → registry."""

    @pytest.mark.asyncio
    async def test_full_lifecycle_over_socket(
        self, session: GatewaySession, ws: FakeWebSocket
    ) -> None:
        await session.connect()
        stream = RequestStream(session.registry, "T")

        ws.feed(created_frame("m1", "**cat --seed 1** - <@1> (Waiting to start)", nonce="T"))
        ws.feed("not json")
        ws.feed(json.dumps({"op": 0, "t": "TYPING_START", "d": {}}))
        ws.feed(updated_frame("m1", "**cat --seed 1** - <@1> (50%)", attachments=["https://cdn/p.webp"]))
        ws.feed(created_frame("m2", "**cat --seed 1** - <@1> (fast)", attachments=["https://cdn/u_cat_h.png"]))

        events = [event async for event in stream]
        await session.close()

        assert [getattr(e, "percent", None) for e in events] == [0, 50, None]
        assert events[-1] == Finish(
            id="m2", content="**cat --seed 1** - <@1> (fast)", uri="https://cdn/u_cat_h.png"
        )
        assert session.registry.pending_count == 0

    def test_unrelated_traffic_ignored(self, session: GatewaySession) -> None:
        seen: list = []
        session.registry.register("T", seen.append)

        session.handle_frame(created_frame("x1", "**dog**", nonce="other"))
        session.handle_frame(created_frame("x2", "**dog**", attachments=["https://cdn/d.png"]))
        session.handle_frame(updated_frame("x1", "**dog** (10%)"))

        assert seen == []

    def test_concurrent_commands_isolated(self, session: GatewaySession) -> None:
        seen_a: list = []
        seen_b: list = []
        session.registry.register("A", seen_a.append)
        session.registry.register("B", seen_b.append)

        session.handle_frame(created_frame("m1", "**cat**", nonce="A"))
        session.handle_frame(created_frame("m2", "**dog**", nonce="B"))
        session.handle_frame(created_frame("m3", "**dog**", attachments=["https://cdn/d.png"]))

        assert [e.id for e in seen_a] == ["m1"]
        assert [e.id for e in seen_b] == ["m2", "m3"]
