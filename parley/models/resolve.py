"""Credential resolution and provider adapter construction."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable

from ..config import EnginePolicy
from ..errors import InvalidParamsError
from ..orchestrator.resolution import FunctionCallLoop
from ..plugins import load_callable_from_spec
from .adapter import ModelSettings, ProtocolKind, ProviderAdapter
from .assistants_adapter import AssistantsAdapter
from .litellm_adapter import LiteLLMAdapter
from .responses_adapter import ResponsesAdapter

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


@dataclass(frozen=True)
class Credentials:
    resolved_model: str
    api_key: str | None = None
    api_base: str | None = None
    extra_headers: dict[str, str] | None = None
    provider_note: str | None = None  # e.g. "openrouter" | "openai"


def _openrouter_headers() -> dict[str, str]:
    headers: dict[str, str] = {}
    if os.getenv("OPENROUTER_SITE_URL"):
        headers["HTTP-Referer"] = os.getenv("OPENROUTER_SITE_URL", "")
    if os.getenv("OPENROUTER_APP_NAME"):
        headers["X-Title"] = os.getenv("OPENROUTER_APP_NAME", "")
    return headers


def resolve_credentials(
    *,
    model: str,
    protocol: ProtocolKind = ProtocolKind.STATELESS,
    api_key: str | None = None,
    api_base: str | None = None,
) -> Credentials:
    """
    Resolve the API key, base URL and model name for one execution.

    Continuation and thread/run protocols talk to OpenAI directly, so only
    ``OPENAI_API_KEY`` applies to them. Stateless calls go through LiteLLM and
    may use OpenRouter or Anthropic keys as well.
    """
    resolved_base = api_base or os.getenv("LLM_BASE_URL")

    if protocol is not ProtocolKind.STATELESS:
        resolved_key = api_key or os.getenv("OPENAI_API_KEY")
        if not resolved_key:
            raise InvalidParamsError(
                f"No OpenAI API key found for the {protocol.value} protocol.",
                hint="Set OPENAI_API_KEY in .env or pass --api-key.",
            )
        return Credentials(resolved_model=model, api_key=resolved_key, api_base=resolved_base, provider_note="openai")

    model_lower = model.lower()
    openrouter_hint = model_lower.startswith("openrouter/") or model_lower.endswith(":free")

    if api_key:
        if openrouter_hint:
            return Credentials(
                resolved_model=model,
                api_key=api_key,
                api_base=resolved_base or OPENROUTER_BASE_URL,
                extra_headers=_openrouter_headers(),
                provider_note="openrouter",
            )
        return Credentials(resolved_model=model, api_key=api_key, api_base=resolved_base)

    openrouter_key = os.getenv("OPENROUTER_API_KEY")
    if openrouter_key and (openrouter_hint or not os.getenv("OPENAI_API_KEY")):
        resolved_model = model if model.startswith("openrouter/") else f"openrouter/{model}"
        return Credentials(
            resolved_model=resolved_model,
            api_key=openrouter_key,
            api_base=resolved_base or OPENROUTER_BASE_URL,
            extra_headers=_openrouter_headers(),
            provider_note="openrouter",
        )
    if os.getenv("OPENAI_API_KEY"):
        return Credentials(
            resolved_model=model, api_key=os.getenv("OPENAI_API_KEY"), api_base=resolved_base, provider_note="openai"
        )
    if os.getenv("ANTHROPIC_API_KEY"):
        return Credentials(
            resolved_model=model,
            api_key=os.getenv("ANTHROPIC_API_KEY"),
            api_base=resolved_base,
            provider_note="anthropic",
        )
    raise InvalidParamsError(
        "No API key found.",
        hint="Set one in .env (e.g., OPENAI_API_KEY, OPENROUTER_API_KEY, ANTHROPIC_API_KEY).",
    )


def _build_stateless(settings, loop, policy, creds, options) -> LiteLLMAdapter:
    return LiteLLMAdapter(
        settings,
        loop=loop,
        tools=options.get("tools"),
        tool_config=options.get("tool_config"),
        api_key=creds.api_key if creds else None,
        api_base=creds.api_base if creds else None,
        extra_headers=creds.extra_headers if creds else None,
        completion_fn=options.get("completion_fn"),
    )


def _build_continuation(settings, loop, policy, creds, options) -> ResponsesAdapter:
    return ResponsesAdapter(
        settings,
        loop=loop,
        tools=options.get("tools"),
        tool_config=options.get("tool_config"),
        max_vector_store_ids=policy.max_vector_store_ids,
        api_key=creds.api_key if creds else None,
        api_base=creds.api_base if creds else None,
        client=options.get("client"),
    )


def _build_thread_run(settings, loop, policy, creds, options) -> AssistantsAdapter:
    assistant_id = options.get("assistant_id")
    if not assistant_id:
        raise InvalidParamsError(
            "assistant_id is required when api is 'assistants'.",
            hint="Set assistant_id in the execution params.",
        )
    return AssistantsAdapter(
        settings,
        assistant_id=assistant_id,
        loop=loop,
        poll_interval_s=policy.run_poll_interval_s,
        poll_timeout_s=policy.run_poll_timeout_s,
        api_key=creds.api_key if creds else None,
        api_base=creds.api_base if creds else None,
        client=options.get("client"),
    )


AdapterFactory = Callable[..., ProviderAdapter]

_ADAPTER_FACTORIES: dict[ProtocolKind, AdapterFactory] = {
    ProtocolKind.STATELESS: _build_stateless,
    ProtocolKind.CONTINUATION: _build_continuation,
    ProtocolKind.THREAD_RUN: _build_thread_run,
}


def build_adapter(
    protocol: ProtocolKind,
    settings: ModelSettings,
    *,
    loop: FunctionCallLoop,
    policy: EnginePolicy,
    credentials: Credentials | None = None,
    **options: Any,
) -> ProviderAdapter:
    """Construct the adapter for ``protocol``.

    ``PARLEY_ADAPTER_RESOLVER_PLUGIN`` (``module:function``) may supply a
    custom adapter; it receives the same arguments and must return an object
    with ``run_turn`` and ``initial_context``.
    """
    plugin_spec = os.getenv("PARLEY_ADAPTER_RESOLVER_PLUGIN", "").strip()
    if plugin_spec:
        plugin = load_callable_from_spec(plugin_spec)
        adapter = plugin(protocol=protocol, settings=settings, loop=loop, policy=policy, credentials=credentials, **options)
        if not callable(getattr(adapter, "run_turn", None)):
            raise InvalidParamsError("Adapter resolver plugin must return an object with run_turn().")
        return adapter

    factory = _ADAPTER_FACTORIES[ProtocolKind(protocol)]
    return factory(settings, loop, policy, credentials, options)
