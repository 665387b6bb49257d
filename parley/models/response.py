"""Canonical response types shared by every provider protocol."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def _non_negative_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return max(0, int(value))
    return 0


@dataclass(frozen=True)
class Usage:
    """Token counts for one or more provider calls."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: "Usage") -> "Usage":
        if not isinstance(other, Usage):
            return NotImplemented
        return Usage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )

    @classmethod
    def from_counts(cls, prompt: Any, completion: Any, total: Any = None) -> "Usage":
        """Build usage from raw counts; ``total`` defaults to the sum."""
        p = _non_negative_int(prompt)
        c = _non_negative_int(completion)
        t = _non_negative_int(total) if total is not None else p + c
        return cls(prompt_tokens=p, completion_tokens=c, total_tokens=t)

    @classmethod
    def from_mapping(cls, data: Any) -> "Usage":
        if isinstance(data, Usage):
            return data
        if not isinstance(data, dict):
            return cls()
        return cls(
            prompt_tokens=_non_negative_int(data.get("prompt_tokens")),
            completion_tokens=_non_negative_int(data.get("completion_tokens")),
            total_tokens=_non_negative_int(data.get("total_tokens")),
        )

    def to_map(self) -> dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass(frozen=True)
class ToolCall:
    """A function call requested by the model."""

    id: str
    function_name: str
    arguments: dict[str, Any] = field(default_factory=dict)

    def to_map(self) -> dict[str, Any]:
        return {"id": self.id, "function_name": self.function_name, "arguments": dict(self.arguments)}

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "ToolCall":
        arguments = data.get("arguments")
        return cls(
            id=str(data.get("id") or ""),
            function_name=str(data.get("function_name") or data.get("name") or ""),
            arguments=dict(arguments) if isinstance(arguments, dict) else {},
        )


@dataclass(frozen=True)
class CanonicalResponse:
    """Normalized result of one provider call, whatever the protocol."""

    text: str = ""
    usage: Usage = field(default_factory=Usage)
    model: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    file_search_results: tuple[dict[str, Any], ...] = ()
    web_search_results: tuple[dict[str, Any], ...] = ()
    code_interpreter_results: tuple[dict[str, Any], ...] = ()
    provider_metadata: dict[str, Any] = field(default_factory=dict)
    raw_response: Any = field(default=None, compare=False, repr=False)  # debug only

    def __post_init__(self) -> None:
        # Frozen: floors are applied through object.__setattr__.
        if self.text is None:
            object.__setattr__(self, "text", "")
        if self.tool_calls is None:
            object.__setattr__(self, "tool_calls", ())
        elif not isinstance(self.tool_calls, tuple):
            object.__setattr__(self, "tool_calls", tuple(self.tool_calls))
        for name in ("file_search_results", "web_search_results", "code_interpreter_results"):
            value = getattr(self, name)
            if value is None:
                object.__setattr__(self, name, ())
            elif not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value))
        if self.usage is None:
            object.__setattr__(self, "usage", Usage())
        if self.provider_metadata is None:
            object.__setattr__(self, "provider_metadata", {})

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0

    @property
    def response_id(self) -> str | None:
        return self.provider_metadata.get("response_id")

    @property
    def thread_id(self) -> str | None:
        return self.provider_metadata.get("thread_id")

    @property
    def run_id(self) -> str | None:
        return self.provider_metadata.get("run_id")
