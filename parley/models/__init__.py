"""Canonical data types and provider adapter interfaces."""

from .adapter import ContinuationContext, ModelSettings, ProtocolKind, ProviderAdapter, TurnResult
from .conversation import ConversationMessage, ConversationResult, Role, RunStatus
from .response import CanonicalResponse, ToolCall, Usage

__all__ = [
    "CanonicalResponse",
    "ContinuationContext",
    "ConversationMessage",
    "ConversationResult",
    "ModelSettings",
    "ProtocolKind",
    "ProviderAdapter",
    "Role",
    "RunStatus",
    "ToolCall",
    "TurnResult",
    "Usage",
]
