"""Provider payload normalizers, one per conversation protocol."""

from ..models.adapter import ProtocolKind
from .base import ResponseNormalizer, parse_arguments, to_payload, tool_call_from_item
from .chat import ChatCompletionsNormalizer
from .responses import ResponsesNormalizer
from .threads import ThreadRunNormalizer

_NORMALIZERS: dict[ProtocolKind, type[ResponseNormalizer]] = {
    ProtocolKind.STATELESS: ChatCompletionsNormalizer,
    ProtocolKind.CONTINUATION: ResponsesNormalizer,
    ProtocolKind.THREAD_RUN: ThreadRunNormalizer,
}


def normalizer_for(protocol: ProtocolKind) -> ResponseNormalizer:
    """Return a fresh normalizer for the given protocol."""
    return _NORMALIZERS[ProtocolKind(protocol)]()


__all__ = [
    "ChatCompletionsNormalizer",
    "ResponseNormalizer",
    "ResponsesNormalizer",
    "ThreadRunNormalizer",
    "normalizer_for",
    "parse_arguments",
    "to_payload",
    "tool_call_from_item",
]
