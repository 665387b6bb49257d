"""Conversation message and result records."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .response import ToolCall, Usage


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class RunStatus(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"
    MAX_TURNS_REACHED = "max_turns_reached"

    @property
    def is_terminal(self) -> bool:
        return self in (RunStatus.COMPLETED, RunStatus.ERROR, RunStatus.MAX_TURNS_REACHED)


@dataclass(frozen=True)
class ConversationMessage:
    """One entry of a conversation transcript."""

    role: Role
    content: str
    turn: int
    usage: Usage | None = None
    tool_calls: tuple[ToolCall, ...] = ()
    file_search_results: tuple[dict[str, Any], ...] = ()
    web_search_results: tuple[dict[str, Any], ...] = ()
    code_interpreter_results: tuple[dict[str, Any], ...] = ()
    provider_metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.role, Role):
            object.__setattr__(self, "role", Role(self.role))
        if self.turn < 1:
            raise ValueError(f"turn must be >= 1, got {self.turn}")
        if self.content is None:
            object.__setattr__(self, "content", "")
        object.__setattr__(self, "tool_calls", tuple(self.tool_calls or ()))
        for name in ("file_search_results", "web_search_results", "code_interpreter_results"):
            object.__setattr__(self, name, tuple(getattr(self, name) or ()))

    @property
    def is_user(self) -> bool:
        return self.role is Role.USER

    @property
    def is_assistant(self) -> bool:
        return self.role is Role.ASSISTANT

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0

    def to_map(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "role": self.role.value,
            "content": self.content,
            "turn": self.turn,
        }
        if self.usage is not None:
            data["usage"] = self.usage.to_map()
        if self.tool_calls:
            data["tool_calls"] = [tc.to_map() for tc in self.tool_calls]
        if self.file_search_results:
            data["file_search_results"] = [dict(r) for r in self.file_search_results]
        if self.web_search_results:
            data["web_search_results"] = [dict(r) for r in self.web_search_results]
        if self.code_interpreter_results:
            data["code_interpreter_results"] = [dict(r) for r in self.code_interpreter_results]
        if self.provider_metadata:
            data["provider_metadata"] = dict(self.provider_metadata)
        return data

    @classmethod
    def from_map(cls, data: dict[str, Any]) -> "ConversationMessage":
        usage = data.get("usage")
        return cls(
            role=Role(data["role"]),
            content=str(data.get("content") or ""),
            turn=int(data["turn"]),
            usage=Usage.from_mapping(usage) if usage is not None else None,
            tool_calls=tuple(ToolCall.from_mapping(tc) for tc in data.get("tool_calls") or []),
            file_search_results=tuple(data.get("file_search_results") or []),
            web_search_results=tuple(data.get("web_search_results") or []),
            code_interpreter_results=tuple(data.get("code_interpreter_results") or []),
            provider_metadata=dict(data.get("provider_metadata") or {}),
        )


@dataclass(frozen=True)
class ConversationResult:
    """Immutable outcome of one execution, built once when the run ends."""

    messages: tuple[ConversationMessage, ...]
    status: RunStatus
    provider_metadata: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "messages", tuple(self.messages))
        if not isinstance(self.status, RunStatus):
            object.__setattr__(self, "status", RunStatus(self.status))
        if not self.status.is_terminal:
            raise ValueError(f"result status must be terminal, got {self.status.value}")

    @property
    def total_turns(self) -> int:
        return sum(1 for m in self.messages if m.is_assistant)

    @property
    def is_completed(self) -> bool:
        return self.status is RunStatus.COMPLETED

    @property
    def is_error(self) -> bool:
        return self.status is RunStatus.ERROR

    @property
    def is_max_turns_reached(self) -> bool:
        return self.status is RunStatus.MAX_TURNS_REACHED

    @property
    def user_messages(self) -> list[ConversationMessage]:
        return [m for m in self.messages if m.is_user]

    @property
    def assistant_messages(self) -> list[ConversationMessage]:
        return [m for m in self.messages if m.is_assistant]

    @property
    def last_assistant_message(self) -> ConversationMessage | None:
        assistants = self.assistant_messages
        return assistants[-1] if assistants else None

    @property
    def last_user_message(self) -> ConversationMessage | None:
        users = self.user_messages
        return users[-1] if users else None

    def messages_for_turn(self, turn: int) -> list[ConversationMessage]:
        return [m for m in self.messages if m.turn == turn]

    def to_map(self) -> dict[str, Any]:
        return {
            "messages": [m.to_map() for m in self.messages],
            "total_turns": self.total_turns,
            "status": self.status.value,
            "provider_metadata": dict(self.provider_metadata),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_map(cls, data: dict[str, Any]) -> "ConversationResult":
        """Rebuild a result from its persisted map.

        ``total_turns`` is derived from the messages and is not read back.
        """
        return cls(
            messages=tuple(ConversationMessage.from_map(m) for m in data.get("messages") or []),
            status=RunStatus(data["status"]),
            provider_metadata=dict(data.get("provider_metadata") or {}),
            metadata=dict(data.get("metadata") or {}),
        )
