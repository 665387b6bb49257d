"""Shared helpers for turning raw provider payloads into canonical responses."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Iterable

from ..errors import MalformedPayloadError
from ..models.response import CanonicalResponse, ToolCall

logger = logging.getLogger(__name__)


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return []


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def to_payload(raw: Any) -> dict[str, Any]:
    """Return ``raw`` as a plain dict, or raise when it is not mapping-shaped.

    SDK objects (pydantic models from ``openai`` / ``litellm``) are dumped to
    dicts so every normalizer reads one representation.
    """
    if isinstance(raw, dict):
        return raw
    for dumper in ("model_dump", "to_dict"):
        fn = getattr(raw, dumper, None)
        if callable(fn):
            dumped = fn()
            if isinstance(dumped, dict):
                return dumped
    raise MalformedPayloadError(
        f"Provider payload must be a mapping, got {type(raw).__name__}",
        hint="Pass the provider's JSON object or SDK response unchanged.",
    )


def parse_arguments(value: Any) -> dict[str, Any]:
    """Parse tool-call arguments; anything that is not a JSON object becomes ``{}``."""
    if isinstance(value, dict):
        return dict(value)
    if not isinstance(value, str) or not value.strip():
        return {}
    try:
        parsed = json.loads(value)
    except (json.JSONDecodeError, TypeError):
        logger.debug("Unparseable tool-call arguments: %r", value[:200])
        return {}
    return parsed if isinstance(parsed, dict) else {}


def tool_call_from_item(item: Any, index: int = 0) -> ToolCall | None:
    """Read one tool call in either the nested or the flat shape.

    Nested: ``{"id", "function": {"name", "arguments"}}``.
    Flat: ``{"id"|"call_id", "function_name"|"name", "arguments"|"input"}``.
    """
    if not isinstance(item, dict):
        return None

    function = item.get("function")
    if isinstance(function, dict):
        name = function.get("name")
        raw_args = function.get("arguments")
    else:
        name = item.get("function_name") or item.get("name")
        raw_args = item.get("arguments", item.get("input"))
    if not name:
        return None

    call_id = item.get("call_id") or item.get("id") or f"call_{index}"
    return ToolCall(id=str(call_id), function_name=str(name), arguments=parse_arguments(raw_args))


def tool_calls_from_items(items: Iterable[Any]) -> tuple[ToolCall, ...]:
    calls = []
    for item in items:
        call = tool_call_from_item(item, index=len(calls))
        if call is not None:
            calls.append(call)
    return tuple(calls)


def first_present(payload: dict[str, Any], strategies: Iterable[Callable[[dict[str, Any]], Any]]) -> Any:
    """Return the first strategy result that is not absent (``None``)."""
    for strategy in strategies:
        value = strategy(payload)
        if value is not None:
            return value
    return None


def detect_code_language(code: str | None) -> str | None:
    """Guess the language of interpreter code from a few telltale tokens."""
    if not code:
        return None
    if "import " in code or "def " in code or "print(" in code:
        return "python"
    if "const " in code or "let " in code or "function " in code:
        return "javascript"
    if "require " in code:
        return "ruby"
    return None


class ResponseNormalizer:
    """Base class: one subclass per provider protocol."""

    def normalize(self, raw: Any) -> CanonicalResponse:
        payload = to_payload(raw)
        return self._normalize_payload(payload, raw)

    def _normalize_payload(self, payload: dict[str, Any], raw: Any) -> CanonicalResponse:
        raise NotImplementedError
