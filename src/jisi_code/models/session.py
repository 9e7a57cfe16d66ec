"""
Session list entries, model configuration and token usage.

`model_config` is reserved by pydantic, so models carrying a session's model
configuration store it as `session_model_config` with `model_config` as the
wire alias.
"""

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CONTEXT_WINDOW = 200_000

ReasoningEffort = Literal["low", "medium", "high"]


class SessionStatus:
    """Status values the client assigns itself. The server may report others."""
    READY = "Ready"
    PROCESSING = "Processing"


class ModelConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: Optional[str] = None
    reasoning_effort: Optional[ReasoningEffort] = None

    @field_validator("model", "reasoning_effort", mode="before")
    @classmethod
    def empty_is_unset(cls, value: Any) -> Any:
        return value or None


def normalize_model_config(
    config: Union[ModelConfig, dict[str, Any], None],
) -> Optional[ModelConfig]:
    """Drop falsy fields. A config with nothing left is no config at all."""
    if config is None:
        return None
    if isinstance(config, dict):
        config = ModelConfig.model_validate({k: v for k, v in config.items() if v})
    fields = {k: v for k, v in config.model_dump().items() if v}
    if not fields:
        return None
    return ModelConfig(**fields)


class SessionInfo(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    session_id: str
    agent_name: str
    status: str = SessionStatus.READY
    session_model_config: Optional[ModelConfig] = Field(default=None, alias="model_config")


class TokenUsage(BaseModel):
    """token_usage payload. Unknown counters from the agent are kept as extras."""
    model_config = ConfigDict(frozen=True, extra="allow")

    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    remaining_tokens: Optional[int] = None
    context_window: Optional[int] = None

    @property
    def used_tokens(self) -> int:
        if self.total_tokens:
            return self.total_tokens
        return (self.input_tokens or 0) + (self.output_tokens or 0)

    @property
    def window(self) -> int:
        return self.context_window if self.context_window is not None else DEFAULT_CONTEXT_WINDOW

    @property
    def remaining(self) -> int:
        if self.remaining_tokens is not None:
            return self.remaining_tokens
        return max(0, self.window - self.used_tokens)

    @property
    def percentage(self) -> float:
        if self.window <= 0:
            return 0.0
        return min(100.0, max(0.0, self.used_tokens / self.window * 100))


class SessionMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    token_usage: Optional[TokenUsage] = None
    session_model_config: Optional[ModelConfig] = Field(default=None, alias="model_config")
