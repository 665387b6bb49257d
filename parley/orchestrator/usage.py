"""Token and tool-result aggregation across the responses of a run."""

from __future__ import annotations

from typing import Any, Iterable

from ..models.conversation import ConversationMessage, Role
from ..models.response import CanonicalResponse, Usage


def _usage_of(item: Any) -> Usage:
    if isinstance(item, CanonicalResponse):
        return item.usage
    if isinstance(item, Usage):
        return item
    if isinstance(item, dict):
        return Usage.from_mapping(item.get("usage"))
    return Usage.from_mapping(getattr(item, "usage", None))


class TokenAggregator:
    """Sums token usage; missing fields count as zero."""

    def aggregate(self, responses: Iterable[Any]) -> Usage:
        total = Usage()
        for response in responses:
            total = total + _usage_of(response)
        return total

    def aggregate_from_messages(self, messages: Iterable[ConversationMessage | dict[str, Any]]) -> Usage:
        """Sum usage over assistant messages only (objects or persisted maps)."""
        total = Usage()
        for message in messages:
            if isinstance(message, ConversationMessage):
                if message.role is Role.ASSISTANT and message.usage is not None:
                    total = total + message.usage
            elif isinstance(message, dict) and message.get("role") == Role.ASSISTANT.value:
                total = total + Usage.from_mapping(message.get("usage"))
        return total


class ToolResultExtractor:
    """Flattens built-in tool results across every response of a run."""

    def __init__(self, responses: Iterable[CanonicalResponse]):
        self.responses = list(responses)

    def web_search_results(self) -> list[dict[str, Any]]:
        return [dict(r) for resp in self.responses for r in resp.web_search_results]

    def code_interpreter_results(self) -> list[dict[str, Any]]:
        return [dict(r) for resp in self.responses for r in resp.code_interpreter_results]

    def file_search_results(self) -> list[dict[str, Any]]:
        return [dict(r) for resp in self.responses for r in resp.file_search_results]

    def extract(self) -> dict[str, list[dict[str, Any]]]:
        return {
            "web_search_results": self.web_search_results(),
            "code_interpreter_results": self.code_interpreter_results(),
            "file_search_results": self.file_search_results(),
        }
