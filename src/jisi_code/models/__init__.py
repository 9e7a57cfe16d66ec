from jisi_code.models.agent import (
    AGENT_CAPABILITIES,
    REASONING_EFFORT_OPTIONS,
    AgentCapabilities,
    AgentInfo,
    AgentType,
    ModelOption,
    capabilities_for,
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

__all__ = [
    "AGENT_CAPABILITIES",
    "REASONING_EFFORT_OPTIONS",
    "AgentCapabilities",
    "AgentInfo",
    "AgentType",
    "ModelOption",
    "capabilities_for",
    "ChatMessage",
    "FileChangeInfo",
    "ToolCallInfo",
    "ModelConfig",
    "SessionInfo",
    "SessionMetadata",
    "SessionStatus",
    "TokenUsage",
    "normalize_model_config",
]
