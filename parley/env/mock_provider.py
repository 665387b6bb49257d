"""Deterministic stand-ins for provider transports, used when an execution is not live.

The fakes return raw payloads in each protocol's wire shape, so simulated runs
still exercise the normalizers and adapters end to end. Ids come from
per-instance counters; nothing is random.
"""

from __future__ import annotations

from typing import Any

MOCK_USAGE = {"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30}
AFTER_FUNCTION_CALL_TEXT = "Mock response after function call"


class SimulatedCompletion:
    """Drop-in for ``litellm.completion`` returning chat-completions dicts."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    def __call__(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(kwargs)
        messages = kwargs.get("messages") or []
        if messages and messages[-1].get("role") == "tool":
            text = AFTER_FUNCTION_CALL_TEXT
        else:
            turn = sum(1 for m in messages if m.get("role") == "user")
            text = f"Mock LLM response for testing (turn {turn})"
        return {
            "id": f"chatcmpl_mock_{len(self.calls)}",
            "model": kwargs.get("model", ""),
            "choices": [{"index": 0, "message": {"role": "assistant", "content": text}, "finish_reason": "stop"}],
            "usage": dict(MOCK_USAGE),
        }


class _Responses:
    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    def create(self, **params: Any) -> dict[str, Any]:
        self.calls.append(params)
        n = len(self.calls)
        items = params.get("input") or []
        if any(isinstance(i, dict) and i.get("type") == "function_call_output" for i in items):
            text = AFTER_FUNCTION_CALL_TEXT
        else:
            text = f"Mock Response API response for testing ({n})"
        return {
            "id": f"resp_mock_{n}",
            "object": "response",
            "status": "completed",
            "model": params.get("model", ""),
            "output": [
                {
                    "type": "message",
                    "id": f"msg_mock_{n}",
                    "role": "assistant",
                    "content": [{"type": "output_text", "text": text, "annotations": []}],
                }
            ],
            "usage": {"input_tokens": 10, "output_tokens": 20, "total_tokens": 30},
        }


class _Steps:
    def list(self, *, thread_id: str, run_id: str, **_: Any) -> dict[str, Any]:
        return {"object": "list", "data": [], "has_more": False}


class _Runs:
    def __init__(self, threads: "_Threads") -> None:
        self._threads = threads
        self._runs: dict[str, dict[str, Any]] = {}
        self.steps = _Steps()

    def create(self, *, thread_id: str, assistant_id: str, **_: Any) -> dict[str, Any]:
        run_id = f"run_mock_{len(self._runs) + 1}"
        run = {
            "id": run_id,
            "object": "thread.run",
            "thread_id": thread_id,
            "assistant_id": assistant_id,
            "status": "completed",
            "usage": dict(MOCK_USAGE),
        }
        self._runs[run_id] = run
        self._threads.messages.reply(thread_id, f"Mock Assistants API response for testing ({len(self._runs)})")
        return dict(run)

    def retrieve(self, *, thread_id: str, run_id: str, **_: Any) -> dict[str, Any]:
        return dict(self._runs[run_id])

    def submit_tool_outputs(self, *, thread_id: str, run_id: str, tool_outputs: list[Any], **_: Any) -> dict[str, Any]:
        run = self._runs[run_id]
        run["status"] = "completed"
        self._threads.messages.reply(thread_id, AFTER_FUNCTION_CALL_TEXT)
        return dict(run)

    def cancel(self, *, thread_id: str, run_id: str, **_: Any) -> dict[str, Any]:
        run = self._runs[run_id]
        run["status"] = "cancelled"
        return dict(run)


class _Messages:
    def __init__(self) -> None:
        self._by_thread: dict[str, list[dict[str, Any]]] = {}

    def create(self, *, thread_id: str, role: str, content: str, **_: Any) -> dict[str, Any]:
        message = {"role": role, "content": [{"type": "text", "text": {"value": content, "annotations": []}}]}
        self._by_thread.setdefault(thread_id, []).append(message)
        return message

    def reply(self, thread_id: str, text: str) -> None:
        self.create(thread_id=thread_id, role="assistant", content=text)

    def list(self, *, thread_id: str, order: str = "desc", limit: int = 20, **_: Any) -> dict[str, Any]:
        messages = list(self._by_thread.get(thread_id, []))
        if order == "desc":
            messages.reverse()
        return {"object": "list", "data": messages[:limit]}


class _Threads:
    def __init__(self) -> None:
        self._count = 0
        self.messages = _Messages()
        self.runs = _Runs(self)

    def create(self, **_: Any) -> dict[str, Any]:
        self._count += 1
        return {"id": f"thread_mock_{self._count}", "object": "thread"}


class _Beta:
    def __init__(self) -> None:
        self.threads = _Threads()


class SimulatedOpenAIClient:
    """Offline stand-in for ``openai.OpenAI`` covering responses and beta threads."""

    def __init__(self) -> None:
        self.responses = _Responses()
        self.beta = _Beta()
