"""Continuation adapter for the OpenAI Responses API."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from ..errors import ProviderError, status_code_of
from ..normalizers import ResponsesNormalizer
from .adapter import ContinuationContext, ModelSettings, ProtocolKind, TurnResult
from .response import CanonicalResponse
from .tools import format_responses_tools, has_web_search

if TYPE_CHECKING:
    from ..env.mock_tools import ToolOutput
    from ..orchestrator.resolution import FunctionCallLoop

logger = logging.getLogger(__name__)

WEB_SEARCH_INCLUDE = "web_search_call.action.sources"


def function_output_items(response: CanonicalResponse, outputs: list[ToolOutput]) -> list[dict[str, Any]]:
    """Interleave each call with its output: call, output, call, output…"""
    by_id = {output.call_id: output for output in outputs}
    items: list[dict[str, Any]] = []
    for tc in response.tool_calls:
        output = by_id.get(tc.id)
        if output is None:
            continue
        items.append(
            {
                "type": "function_call",
                "call_id": tc.id,
                "name": tc.function_name,
                "arguments": json.dumps(tc.arguments),
            }
        )
        items.append({"type": "function_call_output", "call_id": tc.id, "output": output.output})
    return items


class ResponsesAdapter:
    """Continuation protocol: the provider keeps history behind ``previous_response_id``."""

    protocol = ProtocolKind.CONTINUATION

    def __init__(
        self,
        settings: ModelSettings,
        *,
        loop: FunctionCallLoop | None = None,
        tools: list[Any] | None = None,
        tool_config: dict[str, Any] | None = None,
        max_vector_store_ids: int = 2,
        api_key: str | None = None,
        api_base: str | None = None,
        client: Any | None = None,
    ):
        self.settings = settings
        self.loop = loop
        self.web_search = has_web_search(tools)
        self.tools = format_responses_tools(tools, tool_config, max_vector_store_ids=max_vector_store_ids)
        self.api_key = api_key
        self.api_base = api_base
        self.normalizer = ResponsesNormalizer()
        self._client = client

    def _get_client(self) -> Any:
        """Lazily initialize and return the OpenAI client."""
        if self._client is None:
            try:
                from openai import OpenAI
            except ImportError as e:
                raise ProviderError("openai package not installed", hint="pip install openai") from e
            kwargs: dict[str, Any] = {}
            if self.api_key:
                kwargs["api_key"] = self.api_key
            if self.api_base:
                kwargs["base_url"] = self.api_base
            self._client = OpenAI(**kwargs)
        return self._client

    def build_request(
        self,
        input_items: list[dict[str, Any]],
        *,
        instructions: str | None = None,
        previous_response_id: str | None = None,
    ) -> dict[str, Any]:
        """Request params for one call.

        The first call carries sampling params and the web-search include;
        continuations only add ``previous_response_id``. Tools go on every call.
        """
        params: dict[str, Any] = {"model": self.settings.model, "input": input_items}
        if instructions:
            params["instructions"] = instructions
        if previous_response_id:
            params["previous_response_id"] = previous_response_id
        else:
            params["temperature"] = self.settings.temperature
            if self.settings.max_tokens is not None:
                params["max_output_tokens"] = self.settings.max_tokens
            if self.web_search:
                params["include"] = [WEB_SEARCH_INCLUDE]
        if self.tools:
            params["tools"] = self.tools
        if self.settings.timeout_s:
            params["timeout"] = float(self.settings.timeout_s)
        return params

    def _create(self, params: dict[str, Any]) -> CanonicalResponse:
        logger.debug(
            "responses.create previous_response_id=%s input=%s",
            params.get("previous_response_id"),
            params.get("input"),
        )
        try:
            raw = self._get_client().responses.create(**params)
        except ProviderError:
            raise
        except Exception as exc:
            raise ProviderError(
                f"Responses API call failed: {exc}",
                provider="openai",
                phase="create_response",
                status_code=status_code_of(exc),
            ) from exc
        return self.normalizer.normalize(raw)

    def initial_context(self) -> ContinuationContext:
        return ContinuationContext(protocol=self.protocol)

    def run_turn(
        self,
        system_prompt: str | None,
        user_message: str,
        context: ContinuationContext,
        *,
        turn: int | None = None,
    ) -> TurnResult:
        initial = self._create(
            self.build_request(
                [{"role": "user", "content": user_message}],
                instructions=system_prompt,
                previous_response_id=context.previous_response_id,
            )
        )

        def continue_with(response: CanonicalResponse, outputs: list[ToolOutput]) -> CanonicalResponse:
            return self._create(
                self.build_request(
                    function_output_items(response, outputs),
                    previous_response_id=response.response_id,
                )
            )

        if self.loop is not None:
            resolution = self.loop.resolve(initial, continue_with, turn=turn)
            final, responses = resolution.final_response, resolution.all_responses
            tool_calls, usage = resolution.all_tool_calls, resolution.aggregated_usage
        else:
            final, responses, tool_calls, usage = initial, (initial,), initial.tool_calls, initial.usage

        return TurnResult(
            response=final,
            context=ContinuationContext(
                protocol=self.protocol,
                previous_response_id=final.response_id or context.previous_response_id,
            ),
            tool_calls=tuple(tool_calls),
            usage=usage,
            responses=tuple(responses),
        )
