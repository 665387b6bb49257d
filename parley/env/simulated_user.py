"""Simulated interlocutor that plays the user side of multi-turn conversations."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from ..models.adapter import ModelSettings
from ..models.conversation import ConversationMessage

if TYPE_CHECKING:
    from ..models.litellm_adapter import LiteLLMAdapter

logger = logging.getLogger(__name__)

END_SENTINEL = "[END_CONVERSATION]"
SIMULATED_REPLY = "I have another question."

PROMPT_TEMPLATE = (
    "You are simulating a user in a conversation. Based on the following context and "
    "conversation history, generate your NEXT response.\n\n"
    "Context: {persona}\n\n"
    "Conversation so far:\n{history}\n\n"
    "If the conversation has naturally concluded, respond with exactly: " + END_SENTINEL + "\n"
    "Otherwise, generate ONLY the user's next message, nothing else."
)


def _role_and_content(message: ConversationMessage | dict[str, Any]) -> tuple[str, str]:
    if isinstance(message, ConversationMessage):
        return message.role.value, message.content
    return str(message.get("role", "")), str(message.get("content") or "")


def format_history(history: Iterable[ConversationMessage | dict[str, Any]]) -> str:
    """Render messages as ``Role: content`` blocks separated by blank lines."""
    blocks = []
    for message in history:
        role, content = _role_and_content(message)
        blocks.append(f"{role.capitalize()}: {content}")
    return "\n\n".join(blocks)


def build_interlocutor_prompt(persona_prompt: str, history: Iterable[ConversationMessage | dict[str, Any]]) -> str:
    return PROMPT_TEMPLATE.format(persona=persona_prompt, history=format_history(history))


class InterlocutorSimulator:
    """Generates the next user message, or ``None`` when the conversation is over."""

    def __init__(
        self,
        adapter: LiteLLMAdapter | None = None,
        settings: ModelSettings | None = None,
        *,
        live: bool = False,
    ):
        if live and adapter is None:
            raise ValueError("A live interlocutor needs a completion adapter")
        self.adapter = adapter
        self.settings = settings or ModelSettings(model="gpt-4o-mini", temperature=0.7)
        self.live = live

    def next_user_message(
        self,
        persona_prompt: str,
        history: list[ConversationMessage],
        turn: int,
    ) -> str | None:
        if not self.live:
            return SIMULATED_REPLY

        prompt = build_interlocutor_prompt(persona_prompt, history)
        response = self.adapter.complete([{"role": "user", "content": prompt}], settings=self.settings)
        reply = response.text.strip()
        if END_SENTINEL in reply:
            logger.debug("Interlocutor ended the conversation at turn %d", turn)
            return None
        return reply
