"""
AsyncJisiClient — owns the connection, the session store and the
session-creation timer, and turns user intents into outbound commands.
"""

import asyncio
import logging
from typing import Any, AsyncGenerator, Callable, Optional, Union

from jisi_code.config import ClientConfig
from jisi_code.errors import ApplicationError, ConnectionError, LocalTimeoutError, SendFailure
from jisi_code.filesystem import FilesystemAPI
from jisi_code.models.events import (
    CloseSession,
    CreateSession,
    ListAgents,
    ListSessions,
    SendPrompt,
    ServerError,
    ServerMessage,
    SessionCreated,
)
from jisi_code.models.session import ModelConfig, SessionInfo, normalize_model_config
from jisi_code.state import SessionSnapshot, SessionStore
from jisi_code.timer import DEFAULT_CREATE_TIMEOUT_S, PendingOperationTimer, Scheduler
from jisi_code.transport.http import DEFAULT_API_URL, HttpClient
from jisi_code.transport.websocket import (
    DEFAULT_WS_URL,
    MAX_RECONNECT_ATTEMPTS,
    RECONNECT_DELAY_S,
    ConnectFactory,
    ConnectionManager,
    ConnectionStatus,
)

logger = logging.getLogger(__name__)

PROMPT_SEND_FAILED = "WebSocket is disconnected. Unable to send prompt."
CREATE_SEND_FAILED = "WebSocket is disconnected. Unable to create session."
CLOSE_SEND_FAILED = "WebSocket is disconnected. Unable to close session."

ConfigLike = Union[ModelConfig, dict[str, Any], None]


class AsyncJisiClient:
    """Async client for a Jisi Code orchestrator."""

    def __init__(
        self,
        ws_url: str = DEFAULT_WS_URL,
        api_url: str = DEFAULT_API_URL,
        reconnect_delay: float = RECONNECT_DELAY_S,
        max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS,
        create_timeout: float = DEFAULT_CREATE_TIMEOUT_S,
        project_path: str = ".",
        connect_factory: Optional[ConnectFactory] = None,
        scheduler: Optional[Scheduler] = None,
        http: Optional[HttpClient] = None,
    ):
        self.store = SessionStore(SessionSnapshot(project_path=project_path))
        self.connection = ConnectionManager(
            url=ws_url,
            reconnect_delay=reconnect_delay,
            max_reconnect_attempts=max_reconnect_attempts,
            connect_factory=connect_factory,
        )
        self.http = http or HttpClient(base_url=api_url)
        self.fs = FilesystemAPI(self.http)

        self._create_timer = PendingOperationTimer(create_timeout, scheduler)
        self._creation_waiters: list[asyncio.Future[SessionInfo]] = []

        self.connection.add_status_handler(self._on_status)
        self.connection.add_message_handler(self._on_message)

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs: Any) -> "AsyncJisiClient":
        return cls(
            ws_url=config.ws_url,
            api_url=config.api_url,
            reconnect_delay=config.reconnect_delay,
            max_reconnect_attempts=config.max_reconnect_attempts,
            create_timeout=config.create_timeout,
            project_path=config.project_path,
            **kwargs,
        )

    @property
    def snapshot(self) -> SessionSnapshot:
        return self.store.snapshot

    @property
    def connected(self) -> bool:
        return self.connection.connected

    def subscribe(self, listener: Callable[[SessionSnapshot], None]) -> Callable[[], None]:
        return self.store.subscribe(listener)

    # -- connection ---------------------------------------------------------------

    async def connect(self, wait: bool = True, timeout: float = 10.0) -> None:
        """Start connecting. With `wait`, return once connected or raise ConnectionError."""
        self.connection.connect()
        if wait:
            await self.wait_until_connected(timeout)

    async def disconnect(self) -> None:
        self._create_timer.cancel()
        await self.connection.disconnect()

    async def close(self) -> None:
        await self.disconnect()
        await self.http.close()

    async def wait_until_connected(self, timeout: float = 10.0) -> None:
        try:
            await self.wait_for(lambda s: s.connection_status == ConnectionStatus.CONNECTED, timeout)
        except asyncio.TimeoutError:
            raise ConnectionError(f"Not connected to {self.connection.url} after {timeout}s")

    def _on_status(self, status: ConnectionStatus) -> None:
        self.store.set_connection_status(status)
        if status == ConnectionStatus.CONNECTED:
            # Anything learned before this connection may be stale.
            self.refresh()

    def _on_message(self, message: ServerMessage) -> None:
        if isinstance(message, (SessionCreated, ServerError)):
            self._create_timer.cancel()
        self.store.apply_server_event(message)
        if isinstance(message, SessionCreated):
            session = self.store.snapshot.find_session(message.session_id)
            self._resolve_creation(lambda f: f.set_result(session))
        elif isinstance(message, ServerError):
            self._resolve_creation(lambda f: f.set_exception(ApplicationError(message.message)))

    def _on_create_timeout(self) -> None:
        timeout = self._create_timer.timeout
        text = f"Session creation timed out after {timeout:g}s"
        logger.warning(text)
        self.store.fail_pending_creation(text)
        self._resolve_creation(lambda f: f.set_exception(LocalTimeoutError(text, timeout)))

    def _resolve_creation(self, settle: Callable[["asyncio.Future[SessionInfo]"], None]) -> None:
        waiters, self._creation_waiters = self._creation_waiters, []
        for future in waiters:
            if not future.done():
                settle(future)

    # -- intents ------------------------------------------------------------------

    def refresh(self) -> bool:
        """Re-request the agent catalog and session list."""
        agents_sent = self.connection.send(ListAgents())
        sessions_sent = self.connection.send(ListSessions())
        return agents_sent and sessions_sent

    def create_session(
        self,
        agent_id: str,
        project_path: Optional[str] = None,
        model_config: ConfigLike = None,
    ) -> bool:
        """Request a new session. Without an explicit config the agent's last one is reused."""
        config = normalize_model_config(model_config) or self.store.get_agent_model_config(agent_id)
        command = CreateSession(
            agent_id=agent_id,
            project_path=project_path or self.store.snapshot.project_path,
            session_model_config=config,
        )
        self.store.start_creating_session(agent_id)
        self._create_timer.start(self._on_create_timeout)
        if self.connection.send(command):
            return True
        self._create_timer.cancel()
        self.store.finish_creating_session()
        self.store.set_last_error(CREATE_SEND_FAILED)
        return False

    async def create_session_and_wait(
        self,
        agent_id: str,
        project_path: Optional[str] = None,
        model_config: ConfigLike = None,
    ) -> SessionInfo:
        """Create a session and wait for the orchestrator's answer.

        Raises SendFailure, ApplicationError or LocalTimeoutError.
        """
        future: asyncio.Future[SessionInfo] = asyncio.get_running_loop().create_future()
        self._creation_waiters.append(future)
        if not self.create_session(agent_id, project_path, model_config):
            self._creation_waiters.remove(future)
            raise SendFailure(CREATE_SEND_FAILED, command="create_session")
        return await future

    def send_prompt(self, session_id: str, prompt: str) -> bool:
        """Append the prompt to the transcript, then send it.

        The transcript entry stays even when the send fails; the failure is
        reported through `last_error` and the return value.
        """
        self.store.set_last_error(None)
        self.store.add_user_message(session_id, prompt)
        if self.connection.send(SendPrompt(session_id=session_id, prompt=prompt)):
            return True
        self.store.set_last_error(PROMPT_SEND_FAILED)
        return False

    def close_session(self, session_id: str) -> bool:
        if self.connection.send(CloseSession(session_id=session_id)):
            return True
        self.store.set_last_error(CLOSE_SEND_FAILED)
        return False

    def remove_session(self, session_id: str) -> None:
        """Drop a session locally without asking the orchestrator."""
        self.store.remove_session(session_id)

    def select_session(self, session_id: Optional[str]) -> None:
        self.store.set_active_session(session_id)

    def set_model_config(self, session_id: str, config: ConfigLike) -> None:
        self.store.set_session_model_config(session_id, config)

    def set_project_path(self, path: str) -> None:
        self.store.set_project_path(path)

    # -- observation ----------------------------------------------------------------

    async def wait_for(
        self,
        predicate: Callable[[SessionSnapshot], bool],
        timeout: Optional[float] = None,
    ) -> SessionSnapshot:
        """Wait until a snapshot satisfies `predicate`. Raises asyncio.TimeoutError."""
        snapshot = self.store.snapshot
        if predicate(snapshot):
            return snapshot
        future: asyncio.Future[SessionSnapshot] = asyncio.get_running_loop().create_future()

        def listener(snap: SessionSnapshot) -> None:
            if not future.done() and predicate(snap):
                future.set_result(snap)

        unsubscribe = self.store.subscribe(listener)
        try:
            return await asyncio.wait_for(future, timeout=timeout)
        finally:
            unsubscribe()

    async def stream(
        self,
        session_id: str,
        idle_timeout: Optional[float] = None,
    ) -> AsyncGenerator[SessionSnapshot, None]:
        """Yield a snapshot each time the session's transcript or metadata changes.

        Stops when the session is removed, or after `idle_timeout` seconds
        without a change.
        """
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[SessionSnapshot] = asyncio.Queue()
        unsubscribe = self.store.subscribe(queue.put_nowait)
        deadline = None if idle_timeout is None else loop.time() + idle_timeout
        seen = (self.store.snapshot.messages.get(session_id),
                self.store.snapshot.session_metadata.get(session_id))
        try:
            while True:
                remaining = None if deadline is None else max(0.0, deadline - loop.time())
                try:
                    snapshot = await asyncio.wait_for(queue.get(), timeout=remaining)
                except asyncio.TimeoutError:
                    return
                if session_id not in snapshot.messages:
                    return
                current = (snapshot.messages.get(session_id), snapshot.session_metadata.get(session_id))
                if current[0] is seen[0] and current[1] is seen[1]:
                    continue
                seen = current
                if idle_timeout is not None:
                    deadline = loop.time() + idle_timeout
                yield snapshot
        finally:
            unsubscribe()
