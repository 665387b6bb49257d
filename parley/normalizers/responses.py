"""Normalizer for Responses API payloads (continuation protocol)."""

from __future__ import annotations

from typing import Any

from ..models.response import CanonicalResponse, Usage
from .base import (
    ResponseNormalizer,
    _as_dict,
    _as_list,
    detect_code_language,
    first_present,
    tool_calls_from_items,
)


def _output_items(payload: dict[str, Any], item_type: str) -> list[dict[str, Any]]:
    return [
        item
        for item in _as_list(payload.get("output"))
        if isinstance(item, dict) and item.get("type") == item_type
    ]


def _message_blocks(payload: dict[str, Any]) -> list[dict[str, Any]]:
    blocks = []
    for item in _output_items(payload, "message"):
        blocks.extend(block for block in _as_list(item.get("content")) if isinstance(block, dict))
    return blocks


def _text_from_output(payload: dict[str, Any]) -> str | None:
    parts = [
        str(block["text"])
        for block in _message_blocks(payload)
        if block.get("type") == "output_text" and block.get("text") is not None
    ]
    joined = "\n".join(parts)
    return joined or None


def _text_from_output_text(payload: dict[str, Any]) -> str | None:
    value = payload.get("output_text")
    return value if isinstance(value, str) and value else None


def _text_from_top_level(payload: dict[str, Any]) -> str | None:
    # `text` is a format-config object on real payloads; only a string counts.
    value = payload.get("text")
    return value if isinstance(value, str) else None


class ResponsesNormalizer(ResponseNormalizer):
    """Continuation protocol: typed ``output`` items, input/output token usage."""

    text_strategies = (_text_from_output, _text_from_output_text, _text_from_top_level)

    def _normalize_payload(self, payload: dict[str, Any], raw: Any) -> CanonicalResponse:
        metadata: dict[str, Any] = {}
        if payload.get("id"):
            metadata["response_id"] = payload["id"]
        if payload.get("status"):
            metadata["status"] = payload["status"]

        return CanonicalResponse(
            text=first_present(payload, self.text_strategies) or "",
            usage=self._usage(payload),
            model=str(payload.get("model") or ""),
            tool_calls=tool_calls_from_items(_output_items(payload, "function_call")),
            file_search_results=self._file_search_results(payload),
            web_search_results=self._web_search_results(payload),
            code_interpreter_results=self._code_interpreter_results(payload),
            provider_metadata=metadata,
            raw_response=raw,
        )

    @staticmethod
    def _usage(payload: dict[str, Any]) -> Usage:
        usage = _as_dict(payload.get("usage"))
        return Usage.from_counts(usage.get("input_tokens"), usage.get("output_tokens"), usage.get("total_tokens"))

    @staticmethod
    def _file_search_results(payload: dict[str, Any]) -> tuple[dict[str, Any], ...]:
        results = []
        for item in _output_items(payload, "file_search_call"):
            hits = [hit for hit in _as_list(item.get("results")) if isinstance(hit, dict)]
            query = item.get("query")
            if query is None:
                queries = _as_list(item.get("queries"))
                query = queries[0] if queries else None
            results.append(
                {
                    "query": query,
                    "files": [hit.get("filename") for hit in hits],
                    "scores": [hit.get("score") for hit in hits],
                }
            )
        return tuple(results)

    @staticmethod
    def _url_citations(payload: dict[str, Any]) -> list[dict[str, Any]]:
        citations = []
        for block in _message_blocks(payload):
            for annotation in _as_list(block.get("annotations")):
                if not isinstance(annotation, dict) or annotation.get("type") != "url_citation":
                    continue
                citations.append(
                    {
                        "title": annotation.get("title"),
                        "url": annotation.get("url"),
                        "start_index": annotation.get("start_index"),
                        "end_index": annotation.get("end_index"),
                    }
                )
        return citations

    def _web_search_results(self, payload: dict[str, Any]) -> tuple[dict[str, Any], ...]:
        calls = _output_items(payload, "web_search_call")
        if not calls:
            return ()
        citations = self._url_citations(payload)
        results = []
        for item in calls:
            action = _as_dict(item.get("action"))
            queries = _as_list(action.get("queries"))
            query = action.get("query") or (queries[0] if queries else None) or item.get("query")
            sources = [
                {"title": src.get("title"), "url": src.get("url"), "snippet": src.get("snippet")}
                for src in _as_list(action.get("sources"))
                if isinstance(src, dict)
            ]
            results.append(
                {
                    "id": item.get("id"),
                    "status": item.get("status"),
                    "query": query,
                    "sources": sources,
                    "citations": list(citations),
                }
            )
        return tuple(results)

    @staticmethod
    def _code_interpreter_results(payload: dict[str, Any]) -> tuple[dict[str, Any], ...]:
        results = []
        for item in _output_items(payload, "code_interpreter_call"):
            nested = _as_dict(item.get("code_interpreter"))
            code = nested.get("code") or item.get("code")
            outputs = nested.get("output", item.get("outputs"))
            results.append(
                {
                    "id": item.get("id"),
                    "status": item.get("status"),
                    "code": code,
                    "language": nested.get("language") or detect_code_language(code),
                    "output": _interpreter_output_text(outputs),
                    "files_created": _interpreter_files(nested, outputs),
                    "error": nested.get("error") or item.get("error"),
                }
            )
        return tuple(results)


def _interpreter_output_text(outputs: Any) -> str:
    if outputs is None:
        return ""
    if isinstance(outputs, str):
        return outputs
    if isinstance(outputs, list):
        parts = []
        for entry in outputs:
            if isinstance(entry, dict):
                text = entry.get("text") or entry.get("logs")
                if text:
                    parts.append(str(text))
        return "\n".join(parts)
    return str(outputs)


def _interpreter_files(nested: dict[str, Any], outputs: Any) -> list[Any]:
    files = list(_as_list(nested.get("files_created")))
    for entry in _as_list(outputs):
        if isinstance(entry, dict) and entry.get("type") in ("image", "file"):
            ref = entry.get("url") or entry.get("file_id")
            if ref:
                files.append(ref)
    return files
