"""Normalizer for chat-completions payloads (and content-block style replies)."""

from __future__ import annotations

import re
from typing import Any

from ..models.response import CanonicalResponse, Usage
from .base import (
    ResponseNormalizer,
    _as_dict,
    _as_list,
    first_present,
    tool_calls_from_items,
)

_THINK_RE = re.compile(r"<think>(.*?)</think>", flags=re.DOTALL)


def _extract_think_tags(content: str | None) -> tuple[str | None, str | None]:
    """Extract <think>...</think> blocks from content. Returns (think_content, remaining_content)."""
    if not content:
        return None, content

    match = _THINK_RE.search(content)
    if match:
        return match.group(1).strip(), _THINK_RE.sub("", content).strip()
    return None, content


def _first_message(payload: dict[str, Any]) -> dict[str, Any]:
    choices = _as_list(payload.get("choices"))
    if not choices:
        return {}
    return _as_dict(_as_dict(choices[0]).get("message"))


def _blocks_text(blocks: list[Any]) -> str | None:
    parts = [
        str(block.get("text"))
        for block in blocks
        if isinstance(block, dict) and block.get("type") in ("text", "output_text") and block.get("text") is not None
    ]
    return "\n".join(parts) if parts else None


def _text_from_choice(payload: dict[str, Any]) -> str | None:
    content = _first_message(payload).get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return _blocks_text(content)
    return None


def _text_from_content_blocks(payload: dict[str, Any]) -> str | None:
    content = payload.get("content")
    if isinstance(content, list):
        return _blocks_text(content)
    return None


def _text_from_top_level(payload: dict[str, Any]) -> str | None:
    text = payload.get("text")
    return text if isinstance(text, str) else None


def _tool_items_from_choice(payload: dict[str, Any]) -> list[Any] | None:
    calls = _as_list(_first_message(payload).get("tool_calls"))
    return calls or None


def _tool_items_from_content_blocks(payload: dict[str, Any]) -> list[Any] | None:
    blocks = [
        block
        for block in _as_list(payload.get("content"))
        if isinstance(block, dict) and block.get("type") == "tool_use"
    ]
    return blocks or None


def _tool_items_from_top_level(payload: dict[str, Any]) -> list[Any] | None:
    calls = _as_list(payload.get("tool_calls"))
    return calls or None


class ChatCompletionsNormalizer(ResponseNormalizer):
    """Stateless protocol: ``choices[0].message`` with prompt/completion usage."""

    text_strategies = (_text_from_choice, _text_from_content_blocks, _text_from_top_level)
    tool_call_strategies = (_tool_items_from_choice, _tool_items_from_content_blocks, _tool_items_from_top_level)

    def _normalize_payload(self, payload: dict[str, Any], raw: Any) -> CanonicalResponse:
        text = first_present(payload, self.text_strategies) or ""
        message = _first_message(payload)

        reasoning = message.get("reasoning_content")
        if not reasoning:
            reasoning, text = _extract_think_tags(text)
            text = text or ""

        metadata: dict[str, Any] = {}
        if payload.get("id"):
            metadata["completion_id"] = payload["id"]
        finish_reason = self._finish_reason(payload)
        if finish_reason:
            metadata["finish_reason"] = finish_reason
        if reasoning:
            metadata["reasoning"] = reasoning

        return CanonicalResponse(
            text=text,
            usage=self._usage(payload),
            model=str(payload.get("model") or ""),
            tool_calls=tool_calls_from_items(first_present(payload, self.tool_call_strategies) or []),
            provider_metadata=metadata,
            raw_response=raw,
        )

    @staticmethod
    def _finish_reason(payload: dict[str, Any]) -> str | None:
        choices = _as_list(payload.get("choices"))
        if choices:
            return _as_dict(choices[0]).get("finish_reason")
        return payload.get("stop_reason")

    @staticmethod
    def _usage(payload: dict[str, Any]) -> Usage:
        usage = _as_dict(payload.get("usage"))
        if "prompt_tokens" in usage or "completion_tokens" in usage:
            return Usage.from_counts(
                usage.get("prompt_tokens"), usage.get("completion_tokens"), usage.get("total_tokens")
            )
        # content-block replies report input/output tokens
        return Usage.from_counts(usage.get("input_tokens"), usage.get("output_tokens"), usage.get("total_tokens"))
