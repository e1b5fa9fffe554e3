"""Discord Gateway session: connection lifecycle, keep-alive and dispatch."""

from __future__ import annotations

import asyncio
import json
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import websockets
from loguru import logger

from mjclient.config.schema import MidjourneyConfig
from mjclient.correlation.registry import CorrelationRegistry
from mjclient.correlation.resolver import resolve_token
from mjclient.discord.events import Unsupported, decode_event
from mjclient.discord.heartbeat import HeartbeatService
from mjclient.errors import DecodeError, TransportError
from mjclient.utils.helpers import truncate


OP_HEARTBEAT = 1
OP_IDENTIFY = 2


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    LIVE = "live"


StateObserver = Callable[[SessionState, Optional[BaseException]], None]
Connector = Callable[..., Awaitable[Any]]


# ==========================================================
# Frames
# ==========================================================

def auth_frame(token: str) -> Dict[str, Any]:
    return {
        "op": OP_IDENTIFY,
        "d": {
            "token": token,
            "properties": {
                "os": "linux",
                "browser": "mjclient",
                "device": "mjclient",
            },
            "compress": False,
        },
    }


def heartbeat_frame(seq: int) -> Dict[str, Any]:
    return {"op": OP_HEARTBEAT, "d": seq}


# ==========================================================
# Session
# ==========================================================

class GatewaySession:
    """
    One persistent Gateway connection for the lifetime of the client.

    State machine:
        DISCONNECTED -> CONNECTING -> AUTHENTICATING -> LIVE -> DISCONNECTED

    There is no reconnect transition: once closed (or dropped) the session
    stays DISCONNECTED. A drop is reported to state observers; pending
    waiters are left registered.
    """

    def __init__(
        self,
        config: MidjourneyConfig,
        registry: Optional[CorrelationRegistry] = None,
        connector: Optional[Connector] = None,
    ):
        self.config = config
        self.registry = registry or CorrelationRegistry()

        self._connector: Connector = connector or websockets.connect
        self._ws: Any = None
        self._state = SessionState.DISCONNECTED
        self._used = False

        self._heartbeat: Optional[HeartbeatService] = None
        self._dispatch_task: Optional[asyncio.Task] = None
        self._observers: List[StateObserver] = []

    # ==========================================================
    # State
    # ==========================================================

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_live(self) -> bool:
        return self._state is SessionState.LIVE

    def add_state_observer(self, observer: StateObserver) -> None:
        self._observers.append(observer)

    def _set_state(self, state: SessionState, error: Optional[BaseException] = None) -> None:
        if state is self._state and error is None:
            return

        logger.info("Gateway state | {} -> {}", self._state.value, state.value)
        self._state = state

        for observer in list(self._observers):
            try:
                observer(state, error)
            except Exception:
                logger.exception("State observer failed: {}", observer)

    # ==========================================================
    # Lifecycle
    # ==========================================================

    async def connect(self) -> None:
        """
        Connect, authenticate, start keep-alive and the dispatch loop.

        Returns once the session is LIVE.

        Raises:
            TransportError: connecting or sending the auth frame failed.
        """
        if self._used:
            raise RuntimeError("Gateway session already started")
        self._used = True

        self._set_state(SessionState.CONNECTING)
        logger.info("Connecting to Discord Gateway | url={}", self.config.ws_url)

        try:
            self._ws = await self._connector(self.config.ws_url, max_size=None)
        except Exception as e:
            # includes open timeouts (asyncio.TimeoutError)
            error = TransportError(f"Gateway connect failed: {e}")
            self._set_state(SessionState.DISCONNECTED, error)
            raise error from e

        self._set_state(SessionState.AUTHENTICATING)

        try:
            await self.send_json(auth_frame(self.config.token))
        except TransportError as e:
            await self._close_socket()
            self._set_state(SessionState.DISCONNECTED, e)
            raise
        logger.debug("Auth sent")

        self._heartbeat = HeartbeatService(
            self._send_heartbeat,
            interval_s=self.config.heartbeat_interval_s,
            on_failure=self._on_heartbeat_failure,
        )
        await self._heartbeat.start()

        self._dispatch_task = asyncio.create_task(self._dispatch_loop())
        self._set_state(SessionState.LIVE)

    async def close(self) -> None:
        if self._dispatch_task and self._dispatch_task is not asyncio.current_task():
            self._dispatch_task.cancel()
            try:
                await self._dispatch_task
            except asyncio.CancelledError:
                pass
        self._dispatch_task = None

        await self._teardown(None)

    # ==========================================================
    # Outbound
    # ==========================================================

    async def send_json(self, payload: Dict[str, Any]) -> None:
        if self._ws is None:
            raise TransportError("Gateway not connected")

        try:
            await self._ws.send(json.dumps(payload))
        except (OSError, websockets.WebSocketException) as e:
            raise TransportError(f"Gateway send failed: {e}") from e

    async def _send_heartbeat(self, seq: int) -> None:
        await self.send_json(heartbeat_frame(seq))

    async def _on_heartbeat_failure(self, error: BaseException) -> None:
        logger.warning("Heartbeat failed, closing session: {}", error)

        if self._dispatch_task and not self._dispatch_task.done():
            self._dispatch_task.cancel()
            try:
                await self._dispatch_task
            except asyncio.CancelledError:
                pass
        self._dispatch_task = None

        if not isinstance(error, TransportError):
            error = TransportError(f"Heartbeat failed: {error}")
        await self._teardown(error)

    # ==========================================================
    # Inbound
    # ==========================================================

    async def _dispatch_loop(self) -> None:
        assert self._ws is not None

        error: Optional[BaseException] = None
        try:
            async for raw in self._ws:
                self.handle_frame(raw)
        except asyncio.CancelledError:
            return
        except websockets.ConnectionClosed as e:
            logger.warning("Gateway connection dropped: {}", e)
            error = TransportError(f"Gateway connection dropped: {e}")
        except Exception as e:
            logger.exception("Gateway dispatch loop crashed")
            error = e

        if error is None:
            logger.info("Gateway stream ended")
        await self._teardown(error)

    def handle_frame(self, raw: str | bytes) -> None:
        """
        Decode one frame, resolve its token and hand it to the waiter.

        Never awaits: waiters queue events, so one slow consumer does not
        hold up the frames of other commands.
        """
        try:
            event = decode_event(raw)
        except DecodeError as e:
            logger.warning("Dropping undecodable frame: {} | raw={}", e, truncate(str(raw), 200))
            return

        if isinstance(event, Unsupported):
            return

        token = resolve_token(event, self.registry)
        if token is None:
            return

        self.registry.dispatch(token, event)

    # ==========================================================
    # Teardown
    # ==========================================================

    async def _teardown(self, error: Optional[BaseException]) -> None:
        if self._heartbeat:
            await self._heartbeat.stop()
            self._heartbeat = None

        await self._close_socket()
        self._set_state(SessionState.DISCONNECTED, error)

    async def _close_socket(self) -> None:
        if self._ws is None:
            return

        ws, self._ws = self._ws, None
        try:
            await ws.close()
        except Exception as e:
            logger.warning("Gateway close failed: {}", e)
