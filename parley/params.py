"""Execution parameters handed over by the job scheduler."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from .errors import InvalidParamsError
from .models.adapter import ModelSettings, ProtocolKind

DEFAULT_MODEL = "gpt-4o"


@dataclass(frozen=True)
class ExecutionParams:
    """Everything one execution needs; validated on construction."""

    first_user_message: str
    system_prompt: str | None = None
    interlocutor_prompt: str | None = None
    max_turns: int = 1
    provider: str = "openai"
    api: str | None = None
    model: str = DEFAULT_MODEL
    assistant_id: str | None = None
    temperature: float = 0.7
    max_tokens: int | None = None
    tools: tuple[Any, ...] = ()
    tool_config: dict[str, Any] = field(default_factory=dict)
    mock_function_outputs: dict[str, Any] = field(default_factory=dict)
    function_handlers: dict[str, str] = field(default_factory=dict)
    tool_mode: str = "simulated"
    live: bool = False
    interlocutor_model: str | None = None
    execution_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def __post_init__(self) -> None:
        if not isinstance(self.first_user_message, str):
            raise InvalidParamsError(
                "first_user_message must be a string",
                hint="The first turn always comes from the caller, never from the interlocutor.",
            )
        if isinstance(self.max_turns, bool) or not isinstance(self.max_turns, int) or self.max_turns < 1:
            raise InvalidParamsError(f"max_turns must be an integer >= 1, got {self.max_turns!r}")
        if self.tool_mode not in ("simulated", "live"):
            raise InvalidParamsError(f"tool_mode must be 'simulated' or 'live', got {self.tool_mode!r}")
        if self.protocol is ProtocolKind.THREAD_RUN and not self.assistant_id:
            raise InvalidParamsError("assistant_id is required when api is 'assistants'")
        object.__setattr__(self, "tools", tuple(self.tools or ()))

    @property
    def protocol(self) -> ProtocolKind:
        return ProtocolKind.from_config(self.provider, self.api)

    @property
    def model_settings(self) -> ModelSettings:
        return ModelSettings(model=self.model, temperature=self.temperature, max_tokens=self.max_tokens)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "ExecutionParams":
        if not isinstance(data, dict):
            raise InvalidParamsError(f"Execution params must be a mapping, got {type(data).__name__}")
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(data) - known)
        if unknown:
            raise InvalidParamsError(f"Unknown execution params: {', '.join(unknown)}")
        values = {k: v for k, v in data.items() if v is not None}
        if "first_user_message" not in data:
            raise InvalidParamsError("first_user_message is required")
        values["first_user_message"] = data["first_user_message"]
        return cls(**values)

    def to_map(self) -> dict[str, Any]:
        return {
            "execution_id": self.execution_id,
            "first_user_message": self.first_user_message,
            "system_prompt": self.system_prompt,
            "interlocutor_prompt": self.interlocutor_prompt,
            "max_turns": self.max_turns,
            "provider": self.provider,
            "api": self.api,
            "model": self.model,
            "assistant_id": self.assistant_id,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "tools": list(self.tools),
            "tool_config": dict(self.tool_config),
            "mock_function_outputs": dict(self.mock_function_outputs),
            "function_handlers": dict(self.function_handlers),
            "tool_mode": self.tool_mode,
            "live": self.live,
            "interlocutor_model": self.interlocutor_model,
        }
