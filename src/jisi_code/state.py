"""
Client-side session state.

`SessionSnapshot` is an immutable view of everything the client knows: agent
catalog, session list, per-session transcripts and metadata, remembered
per-agent model configuration, pending session creation and the last error.
`transition()` derives the next snapshot from a server event; `SessionStore`
holds the current snapshot, applies server events and local intents, and
notifies subscribers after every change.

Invariants kept by every transition:

- each listed session has a transcript entry (possibly empty)
- `active_session_id` is None or names a listed session
- at most one session creation is pending
- removing a session drops its transcript and metadata with it
"""

import logging
from typing import Any, Callable, Optional, Union, assert_never

from pydantic import BaseModel, ConfigDict

from jisi_code.models.agent import AgentInfo
from jisi_code.models.events import (
    AgentList,
    ContentDelta,
    FileChange,
    PromptAccepted,
    ServerError,
    ServerMessage,
    SessionClosed,
    SessionCreated,
    SessionList,
    Thinking,
    TokenUsageUpdate,
    ToolCall,
)
from jisi_code.models.message import ChatMessage, FileChangeInfo, ToolCallInfo
from jisi_code.models.session import (
    ModelConfig,
    SessionInfo,
    SessionMetadata,
    SessionStatus,
    TokenUsage,
    normalize_model_config,
)
from jisi_code.transport.websocket import ConnectionStatus

logger = logging.getLogger(__name__)

Transcript = tuple[ChatMessage, ...]
Listener = Callable[["SessionSnapshot"], None]


class SessionSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: int = 0
    connection_status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    agents: tuple[AgentInfo, ...] = ()
    sessions: tuple[SessionInfo, ...] = ()
    active_session_id: Optional[str] = None
    creating_session_agent_id: Optional[str] = None
    last_error: Optional[str] = None
    messages: dict[str, Transcript] = {}
    session_metadata: dict[str, SessionMetadata] = {}
    agent_model_configs: dict[str, ModelConfig] = {}
    project_path: str = "."

    def find_session(self, session_id: str) -> Optional[SessionInfo]:
        for session in self.sessions:
            if session.session_id == session_id:
                return session
        return None

    def find_agent(self, agent_id: str) -> Optional[AgentInfo]:
        for agent in self.agents:
            if agent.id == agent_id:
                return agent
        return None

    def transcript(self, session_id: Optional[str]) -> Transcript:
        if session_id is None:
            return ()
        return self.messages.get(session_id, ())

    @property
    def active_session(self) -> Optional[SessionInfo]:
        if self.active_session_id is None:
            return None
        return self.find_session(self.active_session_id)

    @property
    def creating_session(self) -> bool:
        return self.creating_session_agent_id is not None


def _derive(snapshot: SessionSnapshot, **changes: Any) -> SessionSnapshot:
    changes["version"] = snapshot.version + 1
    return snapshot.model_copy(update=changes)


def _close_streaming(transcript: Transcript) -> Transcript:
    if transcript and transcript[-1].is_streaming:
        return transcript[:-1] + (transcript[-1].model_copy(update={"is_streaming": False}),)
    return transcript


def _with_transcript(snapshot: SessionSnapshot, session_id: str, transcript: Transcript) -> SessionSnapshot:
    return _derive(snapshot, messages={**snapshot.messages, session_id: transcript})


# -- server event rules --------------------------------------------------------

def _session_created(s: SessionSnapshot, m: SessionCreated) -> SessionSnapshot:
    config = normalize_model_config(m.session_model_config)
    existing = s.session_metadata.get(m.session_id)
    metadata = SessionMetadata(
        token_usage=existing.token_usage if existing else None,
        session_model_config=config,
    )
    agent_configs = s.agent_model_configs
    if config:
        agent_configs = {**agent_configs, m.agent_name: config}
    session = SessionInfo(
        session_id=m.session_id,
        agent_name=m.agent_name,
        status=SessionStatus.READY,
        session_model_config=config,
    )
    # A repeated session_created replaces the entry so ids stay unique.
    sessions = tuple(x for x in s.sessions if x.session_id != m.session_id) + (session,)
    return _derive(
        s,
        creating_session_agent_id=None,
        last_error=None,
        messages={**s.messages, m.session_id: s.messages.get(m.session_id, ())},
        session_metadata={**s.session_metadata, m.session_id: metadata},
        agent_model_configs=agent_configs,
        sessions=sessions,
        active_session_id=m.session_id,
    )


def _prompt_accepted(s: SessionSnapshot, m: PromptAccepted) -> SessionSnapshot:
    session = s.find_session(m.session_id)
    if session is None:
        return s
    updated = session.model_copy(update={"status": SessionStatus.PROCESSING})
    return _derive(s, sessions=tuple(updated if x is session else x for x in s.sessions))


def _content_delta(s: SessionSnapshot, m: ContentDelta) -> SessionSnapshot:
    transcript = s.messages.get(m.session_id)
    if transcript is None:
        return s
    last = transcript[-1] if transcript else None
    if last is not None and last.is_plain_assistant:
        grown = last.model_copy(update={"content": last.content + m.content, "is_streaming": True})
        return _with_transcript(s, m.session_id, transcript[:-1] + (grown,))
    opened = ChatMessage(role="assistant", content=m.content, is_streaming=True)
    return _with_transcript(s, m.session_id, transcript + (opened,))


def _tool_call(s: SessionSnapshot, m: ToolCall) -> SessionSnapshot:
    transcript = s.messages.get(m.session_id)
    if transcript is None:
        return s
    block = ChatMessage(
        role="assistant",
        tool_call=ToolCallInfo(tool_name=m.tool_name, args=m.args, status="running"),
    )
    return _with_transcript(s, m.session_id, _close_streaming(transcript) + (block,))


def _file_change(s: SessionSnapshot, m: FileChange) -> SessionSnapshot:
    transcript = s.messages.get(m.session_id)
    if transcript is None:
        return s
    block = ChatMessage(
        role="assistant",
        file_change=FileChangeInfo(path=m.path, action=m.action, content=m.content, diff=m.diff),
    )
    return _with_transcript(s, m.session_id, _close_streaming(transcript) + (block,))


def _token_usage(s: SessionSnapshot, m: TokenUsageUpdate) -> SessionSnapshot:
    # No metadata slot for unknown sessions; it would outlive any session_closed.
    if m.session_id not in s.messages:
        return s
    metadata = s.session_metadata.get(m.session_id) or SessionMetadata()
    metadata = metadata.model_copy(update={"token_usage": m.usage})
    return _derive(s, session_metadata={**s.session_metadata, m.session_id: metadata})


def _thinking(s: SessionSnapshot, m: Thinking) -> SessionSnapshot:
    transcript = s.messages.get(m.session_id)
    if transcript is None:
        return s
    last = transcript[-1] if transcript else None
    if last is not None and last.thinking:
        grown = last.model_copy(update={"thinking": last.thinking + m.content})
        return _with_transcript(s, m.session_id, transcript[:-1] + (grown,))
    opened = ChatMessage(role="assistant", thinking=m.content)
    return _with_transcript(s, m.session_id, transcript + (opened,))


def _remove_session(s: SessionSnapshot, session_id: str) -> SessionSnapshot:
    if (
        s.find_session(session_id) is None
        and session_id not in s.messages
        and session_id not in s.session_metadata
    ):
        return s
    sessions = tuple(x for x in s.sessions if x.session_id != session_id)
    messages = {k: v for k, v in s.messages.items() if k != session_id}
    metadata = {k: v for k, v in s.session_metadata.items() if k != session_id}
    active = s.active_session_id
    if active == session_id:
        active = sessions[0].session_id if sessions else None
    return _derive(
        s,
        sessions=sessions,
        messages=messages,
        session_metadata=metadata,
        active_session_id=active,
    )


def _sync_sessions(s: SessionSnapshot, listed: tuple[SessionInfo, ...]) -> SessionSnapshot:
    # Transcripts and metadata of sessions missing from the list are kept;
    # only session_closed or a local remove drops them.
    messages = dict(s.messages)
    metadata = dict(s.session_metadata)
    agent_configs = dict(s.agent_model_configs)
    sessions = []
    for session in listed:
        messages.setdefault(session.session_id, ())
        config = normalize_model_config(session.session_model_config)
        slot = metadata.get(session.session_id) or SessionMetadata()
        metadata[session.session_id] = slot.model_copy(update={"session_model_config": config})
        if config:
            agent_configs[session.agent_name] = config
        sessions.append(session.model_copy(update={"session_model_config": config}))
    active = s.active_session_id
    if active is not None and all(x.session_id != active for x in sessions):
        active = sessions[0].session_id if sessions else None
    return _derive(
        s,
        sessions=tuple(sessions),
        messages=messages,
        session_metadata=metadata,
        agent_model_configs=agent_configs,
        active_session_id=active,
    )


def _fail(s: SessionSnapshot, message: str) -> SessionSnapshot:
    changes: dict[str, Any] = {"creating_session_agent_id": None, "last_error": message}
    if s.active_session_id is not None:
        transcript = _close_streaming(s.messages.get(s.active_session_id, ()))
        notice = ChatMessage(role="system", content=message)
        changes["messages"] = {**s.messages, s.active_session_id: transcript + (notice,)}
    return _derive(s, **changes)


def transition(snapshot: SessionSnapshot, message: ServerMessage) -> SessionSnapshot:
    """Apply one server event. Returns `snapshot` itself when nothing changes."""
    match message:
        case SessionCreated():
            return _session_created(snapshot, message)
        case PromptAccepted():
            return _prompt_accepted(snapshot, message)
        case ContentDelta():
            return _content_delta(snapshot, message)
        case ToolCall():
            return _tool_call(snapshot, message)
        case FileChange():
            return _file_change(snapshot, message)
        case TokenUsageUpdate():
            return _token_usage(snapshot, message)
        case Thinking():
            return _thinking(snapshot, message)
        case SessionClosed():
            return _remove_session(snapshot, message.session_id)
        case AgentList():
            return _derive(snapshot, agents=message.agents)
        case SessionList():
            return _sync_sessions(snapshot, message.sessions)
        case ServerError():
            return _fail(snapshot, message.message)
        case _:
            assert_never(message)


class SessionStore:
    """Owner of the current snapshot. The only writer of session state."""

    def __init__(self, snapshot: Optional[SessionSnapshot] = None):
        self._snapshot = snapshot or SessionSnapshot()
        self._listeners: list[Listener] = []

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with every new snapshot. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass
        return unsubscribe

    def _commit(self, snapshot: SessionSnapshot) -> SessionSnapshot:
        if snapshot is self._snapshot:
            return snapshot
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Snapshot listener failed")
        return snapshot

    def apply_server_event(self, message: ServerMessage) -> SessionSnapshot:
        new = transition(self._snapshot, message)
        if new is self._snapshot:
            logger.debug("Ignored %s: no matching session", message.type)
        else:
            logger.debug("Applied %s -> version %d", message.type, new.version)
        return self._commit(new)

    # -- local intents ----------------------------------------------------------

    def set_connection_status(self, status: ConnectionStatus) -> SessionSnapshot:
        if status == self._snapshot.connection_status:
            return self._snapshot
        return self._commit(_derive(self._snapshot, connection_status=status))

    def set_agents(self, agents: list[AgentInfo]) -> SessionSnapshot:
        return self._commit(_derive(self._snapshot, agents=tuple(agents)))

    def set_sessions(self, sessions: list[SessionInfo]) -> SessionSnapshot:
        return self._commit(_sync_sessions(self._snapshot, tuple(sessions)))

    def set_active_session(self, session_id: Optional[str]) -> SessionSnapshot:
        s = self._snapshot
        if session_id == s.active_session_id:
            return s
        if session_id is not None and s.find_session(session_id) is None:
            logger.debug("Not activating unknown session %s", session_id)
            return s
        return self._commit(_derive(s, active_session_id=session_id))

    def start_creating_session(self, agent_id: str) -> SessionSnapshot:
        return self._commit(_derive(self._snapshot, creating_session_agent_id=agent_id))

    def finish_creating_session(self) -> SessionSnapshot:
        if self._snapshot.creating_session_agent_id is None:
            return self._snapshot
        return self._commit(_derive(self._snapshot, creating_session_agent_id=None))

    def set_last_error(self, message: Optional[str]) -> SessionSnapshot:
        if message == self._snapshot.last_error:
            return self._snapshot
        return self._commit(_derive(self._snapshot, last_error=message))

    def fail_pending_creation(self, message: str) -> SessionSnapshot:
        """Local failure with the same visible treatment as a server error."""
        return self._commit(_fail(self._snapshot, message))

    def add_user_message(self, session_id: str, content: str) -> SessionSnapshot:
        s = self._snapshot
        transcript = s.messages.get(session_id, ()) + (ChatMessage(role="user", content=content),)
        return self._commit(_with_transcript(s, session_id, transcript))

    def remove_session(self, session_id: str) -> SessionSnapshot:
        return self._commit(_remove_session(self._snapshot, session_id))

    def set_agent_model_config(
        self, agent_id: str, config: Union[ModelConfig, dict[str, Any], None],
    ) -> SessionSnapshot:
        s = self._snapshot
        normalized = normalize_model_config(config)
        configs = {k: v for k, v in s.agent_model_configs.items() if k != agent_id}
        if normalized:
            configs[agent_id] = normalized
        return self._commit(_derive(s, agent_model_configs=configs))

    def set_session_model_config(
        self, session_id: str, config: Union[ModelConfig, dict[str, Any], None],
    ) -> SessionSnapshot:
        """Set a session's own config. A concrete config also becomes its agent's default."""
        s = self._snapshot
        normalized = normalize_model_config(config)
        slot = s.session_metadata.get(session_id) or SessionMetadata()
        changes: dict[str, Any] = {
            "session_metadata": {
                **s.session_metadata,
                session_id: slot.model_copy(update={"session_model_config": normalized}),
            },
        }
        session = s.find_session(session_id)
        if session is not None:
            updated = session.model_copy(update={"session_model_config": normalized})
            changes["sessions"] = tuple(updated if x is session else x for x in s.sessions)
            if normalized:
                changes["agent_model_configs"] = {**s.agent_model_configs, session.agent_name: normalized}
        return self._commit(_derive(s, **changes))

    def set_project_path(self, path: str) -> SessionSnapshot:
        return self._commit(_derive(self._snapshot, project_path=path))

    # -- queries ------------------------------------------------------------------

    def get_session_token_usage(self, session_id: str) -> Optional[TokenUsage]:
        metadata = self._snapshot.session_metadata.get(session_id)
        return metadata.token_usage if metadata else None

    def get_session_model_config(self, session_id: str) -> Optional[ModelConfig]:
        metadata = self._snapshot.session_metadata.get(session_id)
        return metadata.session_model_config if metadata else None

    def get_agent_model_config(self, agent_id: str) -> Optional[ModelConfig]:
        return self._snapshot.agent_model_configs.get(agent_id)

    def effective_model_config(self, session_id: str) -> Optional[ModelConfig]:
        """Session-level config, else the remembered config of the session's agent."""
        own = self.get_session_model_config(session_id)
        if own is not None:
            return own
        session = self._snapshot.find_session(session_id)
        return self.get_agent_model_config(session.agent_name) if session else None

    def active_messages(self) -> Transcript:
        return self._snapshot.transcript(self._snapshot.active_session_id)
