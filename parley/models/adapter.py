"""Provider adapter interface and base types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from .response import CanonicalResponse, ToolCall, Usage


class ProtocolKind(str, Enum):
    """Conversation protocol spoken by a provider API."""

    STATELESS = "stateless"  # chat completions, full history resent
    CONTINUATION = "continuation"  # responses API, previous_response_id
    THREAD_RUN = "thread_run"  # assistants API, thread + polled run

    @classmethod
    def from_config(cls, provider: str | None, api: str | None) -> "ProtocolKind":
        """Map a ``provider`` / ``api`` pair from execution params to a protocol."""
        provider_name = (provider or "").strip().lower()
        api_name = (api or "").strip().lower().replace("-", "_")
        if provider_name == "openai":
            if api_name in {"responses", "response_api"}:
                return cls.CONTINUATION
            if api_name in {"assistants", "assistant", "assistants_api"}:
                return cls.THREAD_RUN
        return cls.STATELESS


@dataclass(frozen=True)
class ModelSettings:
    """Frozen settings for a model run."""

    model: str
    temperature: float = 0.7
    max_tokens: int | None = None
    seed: int | None = None
    timeout_s: float | None = None


@dataclass(frozen=True)
class ContinuationContext:
    """Protocol state carried from one turn to the next.

    Only the fields relevant to ``protocol`` are ever set: the chat history for
    stateless providers, a response id for continuation providers, and the
    thread/run ids for thread-run providers.
    """

    protocol: ProtocolKind
    history: tuple[dict[str, Any], ...] = ()
    previous_response_id: str | None = None
    thread_id: str | None = None
    run_id: str | None = None

    def provider_metadata(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.previous_response_id:
            data["previous_response_id"] = self.previous_response_id
        if self.thread_id:
            data["thread_id"] = self.thread_id
        if self.run_id:
            data["run_id"] = self.run_id
        return data


@dataclass(frozen=True)
class TurnResult:
    """Everything one adapter turn produced, function-call rounds included."""

    response: CanonicalResponse
    context: ContinuationContext
    tool_calls: tuple[ToolCall, ...] = ()
    usage: Usage = field(default_factory=Usage)
    responses: tuple[CanonicalResponse, ...] = ()


class ProviderAdapter(Protocol):
    """Protocol for provider adapters; every API style implements it."""

    protocol: ProtocolKind

    def initial_context(self) -> ContinuationContext:
        """Return the empty context for a fresh conversation."""
        ...

    def run_turn(
        self,
        system_prompt: str | None,
        user_message: str,
        context: ContinuationContext,
        *,
        turn: int | None = None,
    ) -> TurnResult:
        """Execute a single conversational turn, function-call rounds included."""
        ...
