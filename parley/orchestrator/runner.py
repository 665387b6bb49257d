"""Parley Conversation Orchestrator: drives one execution turn by turn."""

from __future__ import annotations

import logging
import time
from typing import Any, Protocol

from ..config import EnginePolicy, load_engine_policy
from ..env.mock_provider import SimulatedCompletion, SimulatedOpenAIClient
from ..env.mock_tools import ExecutorMode, FunctionCallExecutor
from ..env.simulated_user import InterlocutorSimulator
from ..errors import InvalidParamsError
from ..models.adapter import ContinuationContext, ModelSettings, ProtocolKind, ProviderAdapter, TurnResult
from ..models.conversation import ConversationMessage, ConversationResult, Role, RunStatus
from ..models.litellm_adapter import LiteLLMAdapter
from ..models.resolve import Credentials, build_adapter, resolve_credentials
from ..params import ExecutionParams
from .resolution import FunctionCallLoop
from .usage import TokenAggregator, ToolResultExtractor

logger = logging.getLogger(__name__)


class ResultStore(Protocol):
    def save_result(self, execution_id: str, payload: dict[str, Any]) -> str:
        ...


def render_prompt(system_prompt: str | None, user_prompt: str) -> str:
    if system_prompt:
        return f"[System]\n{system_prompt}\n\n[User]\n{user_prompt}"
    return user_prompt


class ConversationOrchestrator:
    """Runs one execution: user/assistant turns until max turns or a natural end.

    Single use: a second ``execute`` call raises. The result is handed to the
    store exactly once, whatever the terminal status.
    """

    def __init__(
        self,
        adapter: ProviderAdapter,
        simulator: InterlocutorSimulator,
        *,
        aggregator: TokenAggregator | None = None,
        store: ResultStore | None = None,
    ):
        self.adapter = adapter
        self.simulator = simulator
        self.aggregator = aggregator or TokenAggregator()
        self.store = store
        self.status = RunStatus.NOT_STARTED
        self.result_uri: str | None = None

    def execute(self, params: ExecutionParams) -> ConversationResult:
        if self.status is not RunStatus.NOT_STARTED:
            raise RuntimeError("ConversationOrchestrator instances are single-use")
        if not isinstance(params.first_user_message, str):
            raise InvalidParamsError("first_user_message must be a string")

        self.status = RunStatus.RUNNING
        start = time.time()
        messages: list[ConversationMessage] = []
        responses: list = []
        context: ContinuationContext = self.adapter.initial_context()
        error: str | None = None
        termination_reason = "max_turns"

        for turn in range(1, params.max_turns + 1):
            try:
                if turn == 1:
                    user_message = params.first_user_message
                else:
                    user_message = self.simulator.next_user_message(
                        params.interlocutor_prompt or "", list(messages), turn
                    )
                    if user_message is None:
                        termination_reason = "interlocutor_ended"
                        break

                messages.append(ConversationMessage(role=Role.USER, content=user_message, turn=turn))

                outcome: TurnResult = self.adapter.run_turn(
                    params.system_prompt if turn == 1 else None,
                    user_message,
                    context,
                    turn=turn,
                )
            except Exception as e:
                error = f"{type(e).__name__}: {e}"
                termination_reason = "error"
                logger.error("Execution %s failed at turn %d: %s", params.execution_id, turn, error)
                break

            response = outcome.response
            messages.append(
                ConversationMessage(
                    role=Role.ASSISTANT,
                    content=response.text,
                    turn=turn,
                    usage=outcome.usage,
                    tool_calls=outcome.tool_calls,
                    file_search_results=response.file_search_results,
                    web_search_results=response.web_search_results,
                    code_interpreter_results=response.code_interpreter_results,
                    provider_metadata=dict(response.provider_metadata),
                )
            )
            responses.extend(outcome.responses or (response,))
            context = outcome.context

        self.status = RunStatus.ERROR if error else RunStatus.COMPLETED
        result = ConversationResult(
            messages=tuple(messages),
            status=self.status,
            provider_metadata=context.provider_metadata(),
            metadata=self._build_metadata(
                params,
                messages=messages,
                responses=responses,
                elapsed_ms=int((time.time() - start) * 1000),
                termination_reason=termination_reason,
                error=error,
            ),
        )
        if self.store is not None:
            self.result_uri = self.store.save_result(params.execution_id, result.to_map())
        return result

    def _build_metadata(
        self,
        params: ExecutionParams,
        *,
        messages: list[ConversationMessage],
        responses: list,
        elapsed_ms: int,
        termination_reason: str,
        error: str | None,
    ) -> dict[str, Any]:
        tools_used = sorted({tc.function_name for m in messages for tc in m.tool_calls})
        metadata: dict[str, Any] = {
            "execution_id": params.execution_id,
            "model": params.model,
            "provider": params.provider,
            "protocol": params.protocol.value,
            "max_turns": params.max_turns,
            "interlocutor_prompt": params.interlocutor_prompt,
            "rendered_system_prompt": params.system_prompt,
            "rendered_user_prompt": params.first_user_message,
            "rendered_prompt": render_prompt(params.system_prompt, params.first_user_message),
            "response_time_ms": elapsed_ms,
            "tokens": self.aggregator.aggregate_from_messages(messages).to_map(),
            "tools_used": tools_used,
            "termination_reason": termination_reason,
        }
        metadata.update(ToolResultExtractor(responses).extract())
        if error:
            metadata["error"] = error
        return metadata


def build_orchestrator(
    params: ExecutionParams,
    *,
    policy: EnginePolicy | None = None,
    api_key: str | None = None,
    api_base: str | None = None,
    store: ResultStore | None = None,
    **adapter_options: Any,
) -> ConversationOrchestrator:
    """Wire a fresh orchestrator for one execution.

    Non-live executions use the simulated transports and never need
    credentials; ``adapter_options`` (``client``, ``completion_fn``) override
    the transports explicitly.
    """
    policy = policy or load_engine_policy()
    protocol = params.protocol
    aggregator = TokenAggregator()
    executor = FunctionCallExecutor.from_config(
        mode=ExecutorMode.LIVE if params.tool_mode == "live" else ExecutorMode.SIMULATED,
        mock_function_outputs=params.mock_function_outputs,
        function_handlers=params.function_handlers,
    )
    loop = FunctionCallLoop(executor, aggregator, max_iterations=policy.max_tool_iterations)

    options: dict[str, Any] = {
        "tools": list(params.tools),
        "tool_config": params.tool_config,
        "assistant_id": params.assistant_id,
    }
    options.update(adapter_options)

    settings = params.model_settings
    credentials: Credentials | None = None
    if params.live:
        credentials = resolve_credentials(model=params.model, protocol=protocol, api_key=api_key, api_base=api_base)
        settings = ModelSettings(
            model=credentials.resolved_model,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
        )
    elif protocol is ProtocolKind.STATELESS:
        options.setdefault("completion_fn", SimulatedCompletion())
    else:
        options.setdefault("client", SimulatedOpenAIClient())

    adapter = build_adapter(protocol, settings, loop=loop, policy=policy, credentials=credentials, **options)

    interlocutor_settings = ModelSettings(
        model=params.interlocutor_model or policy.interlocutor_model,
        temperature=policy.interlocutor_temperature,
    )
    interlocutor_adapter = None
    if params.live:
        interlocutor_creds = resolve_credentials(
            model=interlocutor_settings.model, api_key=api_key, api_base=api_base
        )
        interlocutor_settings = ModelSettings(
            model=interlocutor_creds.resolved_model, temperature=interlocutor_settings.temperature
        )
        interlocutor_adapter = LiteLLMAdapter(
            interlocutor_settings,
            api_key=interlocutor_creds.api_key,
            api_base=interlocutor_creds.api_base,
            extra_headers=interlocutor_creds.extra_headers,
        )
    simulator = InterlocutorSimulator(interlocutor_adapter, interlocutor_settings, live=params.live)

    return ConversationOrchestrator(adapter, simulator, aggregator=aggregator, store=store)
