"""Normalizer for thread/run (assistants) payloads.

The adapter assembles one mapping per observation of a run::

    {
        "assistant_id": "asst_…",
        "thread_id": "thread_…",
        "run": {…},            # the run object as last polled
        "run_steps": {"data": [...]},
        "message": {…} | None, # latest assistant message when the run completed
    }

A run waiting in ``requires_action`` surfaces its pending function calls as
``tool_calls``. A terminal run's function steps were already answered, so they
stay in ``provider_metadata["run_steps"]`` only.
"""

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


def _text_from_content(payload: dict[str, Any]) -> str | None:
    content = payload.get("content")
    return content if isinstance(content, str) else None


def _message_text_blocks(payload: dict[str, Any]) -> list[dict[str, Any]]:
    message = _as_dict(payload.get("message"))
    return [
        _as_dict(block.get("text"))
        for block in _as_list(message.get("content"))
        if isinstance(block, dict) and block.get("type") == "text"
    ]


def _text_from_message(payload: dict[str, Any]) -> str | None:
    parts = [str(block["value"]) for block in _message_text_blocks(payload) if block.get("value") is not None]
    return "\n".join(parts) if parts else None


def _step_tool_calls(payload: dict[str, Any], call_type: str) -> list[dict[str, Any]]:
    calls = []
    for step in _as_list(_as_dict(payload.get("run_steps")).get("data")):
        if not isinstance(step, dict) or step.get("type") != "tool_calls":
            continue
        details = _as_dict(step.get("step_details"))
        calls.extend(
            call
            for call in _as_list(details.get("tool_calls"))
            if isinstance(call, dict) and call.get("type") == call_type
        )
    return calls


class ThreadRunNormalizer(ResponseNormalizer):
    """Thread/run protocol: run object plus run steps plus latest message."""

    text_strategies = (_text_from_content, _text_from_message)

    def _normalize_payload(self, payload: dict[str, Any], raw: Any) -> CanonicalResponse:
        run = _as_dict(payload.get("run"))
        thread_id = payload.get("thread_id") or run.get("thread_id")
        run_id = payload.get("run_id") or run.get("id")

        metadata: dict[str, Any] = {
            "annotations": self._annotations(payload),
            "run_steps": _as_dict(payload.get("run_steps")),
        }
        if thread_id:
            metadata["thread_id"] = thread_id
        if run_id:
            metadata["run_id"] = run_id
        if run.get("status"):
            metadata["run_status"] = run["status"]

        return CanonicalResponse(
            text=first_present(payload, self.text_strategies) or "",
            usage=self._usage(payload, run),
            model=str(payload.get("assistant_id") or run.get("assistant_id") or ""),
            tool_calls=tool_calls_from_items(self._pending_calls(run)),
            file_search_results=self._file_search_results(payload),
            code_interpreter_results=self._code_interpreter_results(payload),
            provider_metadata=metadata,
            raw_response=raw,
        )

    @staticmethod
    def _pending_calls(run: dict[str, Any]) -> list[Any]:
        if run.get("status") != "requires_action":
            return []
        required = _as_dict(run.get("required_action"))
        return _as_list(_as_dict(required.get("submit_tool_outputs")).get("tool_calls"))

    @staticmethod
    def _usage(payload: dict[str, Any], run: dict[str, Any]) -> Usage:
        usage = _as_dict(payload.get("usage"))
        if not usage and run.get("status") != "requires_action":
            # run usage is cumulative and only final once the run is terminal
            usage = _as_dict(run.get("usage"))
        return Usage.from_counts(usage.get("prompt_tokens"), usage.get("completion_tokens"), usage.get("total_tokens"))

    @staticmethod
    def _annotations(payload: dict[str, Any]) -> list[Any]:
        annotations: list[Any] = []
        for block in _message_text_blocks(payload):
            annotations.extend(_as_list(block.get("annotations")))
        return annotations

    @staticmethod
    def _file_search_results(payload: dict[str, Any]) -> tuple[dict[str, Any], ...]:
        results = []
        for call in _step_tool_calls(payload, "file_search"):
            for hit in _as_list(_as_dict(call.get("file_search")).get("results")):
                if not isinstance(hit, dict):
                    continue
                results.append(
                    {
                        "file_id": hit.get("file_id"),
                        "file_name": hit.get("file_name"),
                        "score": hit.get("score"),
                        "content": hit.get("content"),
                    }
                )
        return tuple(results)

    @staticmethod
    def _code_interpreter_results(payload: dict[str, Any]) -> tuple[dict[str, Any], ...]:
        results = []
        for call in _step_tool_calls(payload, "code_interpreter"):
            interpreter = _as_dict(call.get("code_interpreter"))
            code = interpreter.get("input")
            logs = []
            files = []
            for output in _as_list(interpreter.get("outputs")):
                if not isinstance(output, dict):
                    continue
                if output.get("type") == "logs" and output.get("logs"):
                    logs.append(str(output["logs"]))
                elif output.get("type") == "image":
                    file_id = _as_dict(output.get("image")).get("file_id")
                    if file_id:
                        files.append(file_id)
            results.append(
                {
                    "id": call.get("id"),
                    "status": "completed",
                    "code": code,
                    "language": detect_code_language(code),
                    "output": "\n".join(logs),
                    "files_created": files,
                    "error": None,
                }
            )
        return tuple(results)
