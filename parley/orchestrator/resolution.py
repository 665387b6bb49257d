"""Bounded resolution of model-requested function calls within one turn."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from ..env.mock_tools import FunctionCallExecutor, ToolOutput
from ..models.response import CanonicalResponse, ToolCall, Usage
from .usage import TokenAggregator

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10

# (response that requested the calls, paired outputs) -> next response
ContinueFn = Callable[[CanonicalResponse, list[ToolOutput]], CanonicalResponse]


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving every function call of one turn."""

    final_response: CanonicalResponse
    all_tool_calls: tuple[ToolCall, ...] = ()
    aggregated_usage: Usage = field(default_factory=Usage)
    all_responses: tuple[CanonicalResponse, ...] = ()
    iterations: int = 0
    exhausted: bool = False


class FunctionCallLoop:
    """Execute calls, send outputs back, repeat until the model stops calling.

    The loop never performs more than ``max_iterations`` continuation calls.
    If the bound is hit while calls are still pending, they are recorded as
    unresolved and the turn continues with the last response.
    """

    def __init__(
        self,
        executor: FunctionCallExecutor,
        aggregator: TokenAggregator | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ):
        self.executor = executor
        self.aggregator = aggregator or TokenAggregator()
        self.max_iterations = max(0, int(max_iterations))

    def resolve(
        self,
        initial_response: CanonicalResponse,
        continue_with: ContinueFn,
        *,
        turn: int | None = None,
    ) -> Resolution:
        response = initial_response
        all_responses = [initial_response]
        all_tool_calls: list[ToolCall] = []
        iteration = 0

        while response.tool_calls and iteration < self.max_iterations:
            all_tool_calls.extend(response.tool_calls)
            logger.debug(
                "Turn %s iteration %d: model requested %s",
                turn,
                iteration + 1,
                [tc.function_name for tc in response.tool_calls],
            )
            outputs = self.executor.execute_all(response.tool_calls)
            response = continue_with(response, outputs)
            all_responses.append(response)
            iteration += 1

        exhausted = bool(response.tool_calls)
        if exhausted:
            all_tool_calls.extend(response.tool_calls)
            logger.warning(
                "Iteration limit (%d) reached for turn %s. Model may be stuck in a function calling loop.",
                self.max_iterations,
                turn,
            )

        return Resolution(
            final_response=response,
            all_tool_calls=tuple(all_tool_calls),
            aggregated_usage=self.aggregator.aggregate(all_responses),
            all_responses=tuple(all_responses),
            iterations=iteration,
            exhausted=exhausted,
        )
