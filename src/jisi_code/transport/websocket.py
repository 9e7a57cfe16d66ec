"""
WebSocket connection manager for the orchestrator.

Owns at most one live socket and drives

    disconnected -> connecting -> connected | error -> disconnected -> ...

with a fixed reconnect delay and a bounded number of attempts. A successful
open resets the attempt counter. `send()` never blocks, never buffers across
connections and never retries; it reports whether the frame was accepted.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from jisi_code.models.events import ClientMessage, ServerMessage
from jisi_code.transport.codec import decode, encode

logger = logging.getLogger(__name__)

DEFAULT_WS_URL = "ws://127.0.0.1:3001/ws"
RECONNECT_DELAY_S = 3.0
MAX_RECONNECT_ATTEMPTS = 5

Frame = Union[str, bytes]
ConnectFactory = Callable[[str], Awaitable[Any]]
StatusHandler = Callable[["ConnectionStatus"], None]
MessageHandler = Callable[[ServerMessage], None]


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class ConnectionManager:
    def __init__(
        self,
        url: str = DEFAULT_WS_URL,
        reconnect_delay: float = RECONNECT_DELAY_S,
        max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS,
        connect_factory: Optional[ConnectFactory] = None,
    ):
        self._url = url
        self._reconnect_delay = reconnect_delay
        self._max_reconnect_attempts = max_reconnect_attempts
        self._connect_factory = connect_factory or websockets.connect
        self._status = ConnectionStatus.DISCONNECTED
        self._attempts = 0
        self._ws: Any = None
        self._outbox: Optional[asyncio.Queue[str]] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._status_handlers: list[StatusHandler] = []
        self._message_handlers: list[MessageHandler] = []

    @property
    def url(self) -> str:
        return self._url

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def connected(self) -> bool:
        return self._status == ConnectionStatus.CONNECTED and self._outbox is not None

    @property
    def reconnect_attempts(self) -> int:
        return self._attempts

    def add_status_handler(self, handler: StatusHandler) -> Callable[[], None]:
        """Add a status-change handler. Returns a cleanup function."""
        return _register(self._status_handlers, handler)

    def add_message_handler(self, handler: MessageHandler) -> Callable[[], None]:
        """Add a decoded-message handler. Returns a cleanup function."""
        return _register(self._message_handlers, handler)

    def connect(self) -> None:
        """Start the connection loop. No-op while connecting or connected."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def disconnect(self) -> None:
        """Close the socket and stop reconnecting."""
        self._attempts = self._max_reconnect_attempts
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._set_status(ConnectionStatus.DISCONNECTED)

    def send(self, command: ClientMessage) -> bool:
        """Queue a command on the open socket. Returns False when not connected."""
        if not self.connected:
            logger.warning("WebSocket is not connected; dropping %s", command.type)
            return False
        self._outbox.put_nowait(encode(command))  # type: ignore[union-attr]
        return True

    async def _run(self) -> None:
        while True:
            self._set_status(ConnectionStatus.CONNECTING)
            try:
                ws = await self._connect_factory(self._url)
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                logger.warning("WebSocket connect to %s failed: %s", self._url, e)
                self._set_status(ConnectionStatus.ERROR)
            else:
                await self._serve(ws)
            self._set_status(ConnectionStatus.DISCONNECTED)
            if self._attempts >= self._max_reconnect_attempts:
                logger.info("Reconnect budget exhausted after %d attempts", self._attempts)
                return
            self._attempts += 1
            logger.debug("Reconnecting in %ss (attempt %d/%d)",
                         self._reconnect_delay, self._attempts, self._max_reconnect_attempts)
            await asyncio.sleep(self._reconnect_delay)

    async def _serve(self, ws: Any) -> None:
        self._ws = ws
        self._outbox = asyncio.Queue()
        self._attempts = 0
        writer = asyncio.get_running_loop().create_task(self._write(ws, self._outbox))
        self._set_status(ConnectionStatus.CONNECTED)
        try:
            async for frame in ws:
                self._dispatch(frame)
        except ConnectionClosed as e:
            logger.warning("WebSocket closed: %s", e)
            self._set_status(ConnectionStatus.ERROR)
        finally:
            self._outbox = None
            self._ws = None
            writer.cancel()
            try:
                await ws.close()
            except WebSocketException as e:
                logger.debug("Error while closing WebSocket: %s", e)

    async def _write(self, ws: Any, outbox: "asyncio.Queue[str]") -> None:
        while True:
            text = await outbox.get()
            try:
                await ws.send(text)
            except ConnectionClosed as e:
                logger.error("Send failed, connection closed: %s", e)
                return

    def _dispatch(self, frame: Frame) -> None:
        message = decode(frame)
        if message is None:
            return
        for handler in list(self._message_handlers):
            try:
                handler(message)
            except Exception:
                logger.exception("Message handler failed for %s", message.type)

    def _set_status(self, status: ConnectionStatus) -> None:
        if status == self._status:
            return
        self._status = status
        logger.debug("Connection status: %s", status.value)
        for handler in list(self._status_handlers):
            try:
                handler(status)
            except Exception:
                logger.exception("Status handler failed for %s", status.value)


def _register(handlers: list[Any], handler: Any) -> Callable[[], None]:
    handlers.append(handler)

    def remove() -> None:
        try:
            handlers.remove(handler)
        except ValueError:
            pass
    return remove
