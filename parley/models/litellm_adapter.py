"""LiteLLM-based stateless adapter (chat completions for OpenAI, Anthropic, Gemini and local models)."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any, Callable

import litellm

from ..errors import ProviderError, status_code_of
from ..normalizers import ChatCompletionsNormalizer
from .adapter import ContinuationContext, ModelSettings, ProtocolKind, TurnResult
from .response import CanonicalResponse
from .tools import format_chat_tools

if TYPE_CHECKING:
    from ..orchestrator.resolution import FunctionCallLoop

# litellm prints provider hints to stdout otherwise
litellm.suppress_debug_info = True

logger = logging.getLogger(__name__)


RETRYABLE_STATUS_CODES = {408, 409, 429, 500, 502, 503, 504}

_FATAL_MARKERS = ("invalid api key", "authentication", "unauthorized", "forbidden", "bad request", "invalid request")
_TRANSIENT_MARKERS = (
    "connection error",
    "timed out",
    "timeout",
    "temporarily unavailable",
    "rate limit",
    "too many requests",
    "overloaded",
    "internal server error",
)


def is_retryable(exc: BaseException) -> bool:
    """Whether a failed completion is worth repeating.

    The HTTP status decides when the SDK exposes one; otherwise the error
    text and finally the litellm exception type.
    """
    status = status_code_of(exc)
    if status is not None:
        return status in RETRYABLE_STATUS_CODES

    text = str(exc).lower()
    if any(marker in text for marker in _FATAL_MARKERS):
        return False
    if any(marker in text for marker in _TRANSIENT_MARKERS):
        return True

    transient_types = tuple(
        t
        for t in (
            getattr(litellm, "APIConnectionError", None),
            getattr(litellm, "RateLimitError", None),
            getattr(litellm, "InternalServerError", None),
            getattr(litellm, "ServiceUnavailableError", None),
            getattr(litellm, "Timeout", None),
        )
        if isinstance(t, type)
    )
    return bool(transient_types) and isinstance(exc, transient_types)


def _assistant_tool_message(response: CanonicalResponse) -> dict[str, Any]:
    """Assistant message echoing the calls it made, in chat-completions shape."""
    return {
        "role": "assistant",
        "content": response.text or None,
        "tool_calls": [
            {
                "id": tc.id,
                "type": "function",
                "function": {"name": tc.function_name, "arguments": json.dumps(tc.arguments)},
            }
            for tc in response.tool_calls
        ],
    }


class LiteLLMAdapter:
    """Stateless protocol: every call resends the system prompt and full history."""

    protocol = ProtocolKind.STATELESS

    def __init__(
        self,
        settings: ModelSettings,
        *,
        loop: FunctionCallLoop | None = None,
        tools: list[Any] | None = None,
        tool_config: dict[str, Any] | None = None,
        api_key: str | None = None,
        api_base: str | None = None,
        extra_headers: dict[str, str] | None = None,
        max_retries: int = 0,
        retry_backoff_seconds: float = 1.0,
        retry_backoff_multiplier: float = 2.0,
        completion_fn: Callable[..., Any] | None = None,
    ):
        self.settings = settings
        self.loop = loop
        self.tools = format_chat_tools(tools, tool_config)
        self.api_key = api_key
        self.api_base = api_base
        self.extra_headers = extra_headers or {}
        self.max_retries = max(0, int(max_retries))
        self.retry_backoff_seconds = max(0.0, float(retry_backoff_seconds))
        self.retry_backoff_multiplier = max(1.0, float(retry_backoff_multiplier))
        self.normalizer = ChatCompletionsNormalizer()
        self._completion_fn = completion_fn

    def _request_kwargs(
        self,
        messages: list[dict[str, Any]],
        settings: ModelSettings,
        tools: list[dict[str, Any]] | None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": settings.model,
            "messages": messages,
            "temperature": settings.temperature,
        }
        if settings.max_tokens is not None:
            kwargs["max_tokens"] = settings.max_tokens
        if settings.seed is not None:
            kwargs["seed"] = settings.seed
        if settings.timeout_s:
            kwargs["timeout"] = float(settings.timeout_s)

        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.extra_headers:
            kwargs["extra_headers"] = self.extra_headers

        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"
        return kwargs

    def _call(self, kwargs: dict[str, Any]) -> Any:
        completion = self._completion_fn or litellm.completion
        for attempt in range(self.max_retries + 1):
            try:
                return completion(**kwargs)
            except Exception as exc:
                should_retry = attempt < self.max_retries and is_retryable(exc)
                if not should_retry:
                    raise ProviderError(
                        f"Chat completion failed: {exc}",
                        provider="litellm",
                        phase="completion",
                        status_code=status_code_of(exc),
                    ) from exc
                backoff = self.retry_backoff_seconds * (self.retry_backoff_multiplier ** attempt)
                logger.debug("Retrying completion after %s (attempt %d)", exc, attempt + 1)
                if backoff > 0:
                    time.sleep(backoff)
        raise ProviderError("No response returned from completion call.", provider="litellm", phase="completion")

    def complete(
        self,
        messages: list[dict[str, Any]],
        settings: ModelSettings | None = None,
        tools: list[dict[str, Any]] | None = None,
    ) -> CanonicalResponse:
        """One completion request, normalized. No function-call resolution."""
        kwargs = self._request_kwargs(messages, settings or self.settings, tools)
        return self.normalizer.normalize(self._call(kwargs))

    def initial_context(self) -> ContinuationContext:
        return ContinuationContext(protocol=self.protocol)

    def run_turn(
        self,
        system_prompt: str | None,
        user_message: str,
        context: ContinuationContext,
        *,
        turn: int | None = None,
    ) -> TurnResult:
        messages: list[dict[str, Any]] = list(context.history)
        if system_prompt and not any(m.get("role") == "system" for m in messages):
            messages.insert(0, {"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_message})

        initial = self.complete(messages, tools=self.tools or None)

        def continue_with(response: CanonicalResponse, outputs: list) -> CanonicalResponse:
            messages.append(_assistant_tool_message(response))
            for output in outputs:
                messages.append({"role": "tool", "tool_call_id": output.call_id, "content": output.output})
            return self.complete(messages, tools=self.tools or None)

        if self.loop is not None:
            resolution = self.loop.resolve(initial, continue_with, turn=turn)
            final = resolution.final_response
            responses = resolution.all_responses
            tool_calls = resolution.all_tool_calls
            usage = resolution.aggregated_usage
        else:
            final, responses, tool_calls, usage = initial, (initial,), initial.tool_calls, initial.usage

        messages.append({"role": "assistant", "content": final.text})
        return TurnResult(
            response=final,
            context=ContinuationContext(protocol=self.protocol, history=tuple(messages)),
            tool_calls=tuple(tool_calls),
            usage=usage,
            responses=tuple(responses),
        )
