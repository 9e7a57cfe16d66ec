"""
Wire messages exchanged with the orchestrator over the WebSocket.

Every frame is a JSON object with a `type` discriminator. Outbound commands
are `ClientMessage`s, inbound events are `ServerMessage`s.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from jisi_code.models.agent import AgentInfo
from jisi_code.models.session import ModelConfig, SessionInfo, TokenUsage


class ClientEvent:
    CREATE_SESSION = "create_session"
    SEND_PROMPT = "send_prompt"
    CLOSE_SESSION = "close_session"
    LIST_AGENTS = "list_agents"
    LIST_SESSIONS = "list_sessions"


class ServerEvent:
    SESSION_CREATED = "session_created"
    PROMPT_ACCEPTED = "prompt_accepted"
    CONTENT_DELTA = "content_delta"
    TOOL_CALL = "tool_call"
    FILE_CHANGE = "file_change"
    TOKEN_USAGE = "token_usage"
    THINKING = "thinking"
    SESSION_CLOSED = "session_closed"
    AGENT_LIST = "agent_list"
    SESSION_LIST = "session_list"
    ERROR = "error"


class _Message(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


# -- client -> server --------------------------------------------------------

class CreateSession(_Message):
    type: Literal["create_session"] = "create_session"
    agent_id: str
    project_path: str
    session_model_config: Optional[ModelConfig] = Field(default=None, alias="model_config")


class SendPrompt(_Message):
    type: Literal["send_prompt"] = "send_prompt"
    session_id: str
    prompt: str


class CloseSession(_Message):
    type: Literal["close_session"] = "close_session"
    session_id: str


class ListAgents(_Message):
    type: Literal["list_agents"] = "list_agents"


class ListSessions(_Message):
    type: Literal["list_sessions"] = "list_sessions"


ClientMessage = Union[CreateSession, SendPrompt, CloseSession, ListAgents, ListSessions]


# -- server -> client --------------------------------------------------------

class SessionCreated(_Message):
    type: Literal["session_created"] = "session_created"
    session_id: str
    agent_name: str
    session_model_config: Optional[ModelConfig] = Field(default=None, alias="model_config")


class PromptAccepted(_Message):
    type: Literal["prompt_accepted"] = "prompt_accepted"
    session_id: str


class ContentDelta(_Message):
    type: Literal["content_delta"] = "content_delta"
    session_id: str
    content: str


class ToolCall(_Message):
    type: Literal["tool_call"] = "tool_call"
    session_id: str
    tool_name: str
    args: Any = None


class FileChange(_Message):
    type: Literal["file_change"] = "file_change"
    session_id: str
    path: str
    action: str
    content: Optional[str] = None
    diff: Optional[str] = None


class TokenUsageUpdate(_Message):
    type: Literal["token_usage"] = "token_usage"
    session_id: str
    usage: TokenUsage


class Thinking(_Message):
    type: Literal["thinking"] = "thinking"
    session_id: str
    content: str


class SessionClosed(_Message):
    type: Literal["session_closed"] = "session_closed"
    session_id: str


class AgentList(_Message):
    type: Literal["agent_list"] = "agent_list"
    agents: tuple[AgentInfo, ...] = ()


class SessionList(_Message):
    type: Literal["session_list"] = "session_list"
    sessions: tuple[SessionInfo, ...] = ()


class ServerError(_Message):
    type: Literal["error"] = "error"
    message: str


ServerMessage = Annotated[
    Union[
        SessionCreated,
        PromptAccepted,
        ContentDelta,
        ToolCall,
        FileChange,
        TokenUsageUpdate,
        Thinking,
        SessionClosed,
        AgentList,
        SessionList,
        ServerError,
    ],
    Field(discriminator="type"),
]

SERVER_MESSAGE_ADAPTER: TypeAdapter[ServerMessage] = TypeAdapter(ServerMessage)
