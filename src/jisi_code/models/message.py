"""
Chat transcript models.

Messages are frozen; the state machine replaces the last message of a
session with an updated copy while it is still streaming.
"""

import itertools
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from jisi_code.models.session import TokenUsage

MessageRole = Literal["user", "assistant", "system"]
ToolStatus = Literal["pending", "running", "completed", "error"]

_message_ids = itertools.count(1)


def next_message_id() -> int:
    """Process-wide, strictly increasing."""
    return next(_message_ids)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ToolCallInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    tool_name: str
    args: Any = None
    status: ToolStatus = "running"
    output: Optional[str] = None


class FileChangeInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    action: str  # read/write/edit/delete, or whatever the agent sends ("unknown" from codex)
    content: Optional[str] = None
    diff: Optional[str] = None


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int = Field(default_factory=next_message_id)
    role: MessageRole
    content: str = ""
    timestamp: datetime = Field(default_factory=_now)
    tool_call: Optional[ToolCallInfo] = None
    file_change: Optional[FileChangeInfo] = None
    thinking: Optional[str] = None
    token_usage: Optional[TokenUsage] = None
    is_streaming: bool = False

    @property
    def is_plain_assistant(self) -> bool:
        """Assistant text that content deltas may still extend."""
        return self.role == "assistant" and self.tool_call is None and self.file_change is None
