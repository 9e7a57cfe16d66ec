"""
Agent catalog models and per-agent-type capabilities.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class AgentType(str, Enum):
    CLAUDE_SDK = "claude_sdk"
    ACP = "acp"
    CODEX = "codex"
    OPENCODE = "opencode"


class AgentInfo(BaseModel):
    """agent_list entry"""
    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    agent_type: str
    enabled: bool = True


class ModelOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    description: Optional[str] = None


class ReasoningEffortOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str  # "low" | "medium" | "high"
    display_name: str
    description: str


class AgentCapabilities(BaseModel):
    model_config = ConfigDict(frozen=True)

    supports_reasoning_effort: bool = False
    default_models: tuple[ModelOption, ...] = ()


AGENT_CAPABILITIES: dict[str, AgentCapabilities] = {
    AgentType.CLAUDE_SDK.value: AgentCapabilities(
        supports_reasoning_effort=False,
        default_models=(
            ModelOption(id="claude-sonnet-4-20250514", display_name="Claude Sonnet 4"),
            ModelOption(id="claude-3-5-sonnet-20241022", display_name="Claude 3.5 Sonnet"),
            ModelOption(id="claude-3-5-haiku-20241022", display_name="Claude 3.5 Haiku"),
        ),
    ),
    AgentType.CODEX.value: AgentCapabilities(
        supports_reasoning_effort=True,
        default_models=(
            ModelOption(id="o4-mini", display_name="o4-mini"),
            ModelOption(id="gpt-4o", display_name="GPT-4o"),
            ModelOption(id="gpt-4o-mini", display_name="GPT-4o Mini"),
        ),
    ),
    AgentType.OPENCODE.value: AgentCapabilities(
        supports_reasoning_effort=False,
        default_models=(
            ModelOption(id="claude-sonnet-4-20250514", display_name="Claude Sonnet 4"),
            ModelOption(id="gpt-4o", display_name="GPT-4o"),
            ModelOption(id="gemini-2.5-pro", display_name="Gemini 2.5 Pro"),
        ),
    ),
    AgentType.ACP.value: AgentCapabilities(),
}

REASONING_EFFORT_OPTIONS: tuple[ReasoningEffortOption, ...] = (
    ReasoningEffortOption(id="low", display_name="Low", description="Quick responses, minimal reasoning"),
    ReasoningEffortOption(id="medium", display_name="Medium", description="Balanced reasoning and speed"),
    ReasoningEffortOption(id="high", display_name="High", description="Deep reasoning, thorough analysis"),
)


def capabilities_for(agent_type: str) -> AgentCapabilities:
    """Unknown agent types get no model presets and no reasoning effort."""
    return AGENT_CAPABILITIES.get(agent_type, AgentCapabilities())
