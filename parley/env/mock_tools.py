"""Function-call execution for tool-using conversations.

In simulated mode every call resolves to a deterministic output: a fixture
registered for the function name, or a generic success envelope echoing the
arguments. Simulated mode has no side effects.

In live mode calls are dispatched to registered handler callables; functions
without a handler fall back to the simulated output.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping

from ..models.response import ToolCall
from ..plugins import load_handlers

logger = logging.getLogger(__name__)

FunctionHandler = Callable[[dict[str, Any]], Any]


class ExecutorMode(str, Enum):
    SIMULATED = "simulated"
    LIVE = "live"


@dataclass(frozen=True)
class ToolOutput:
    """Output of one executed call, paired with the id the provider gave it."""

    call_id: str
    function_name: str
    output: str

    def to_map(self) -> dict[str, Any]:
        return {"call_id": self.call_id, "function_name": self.function_name, "output": self.output}


def _serialize(value: Any) -> str:
    return json.dumps(value, default=str)


def mock_envelope(function_name: str, arguments: dict[str, Any]) -> str:
    """Generic simulated result for a function with no fixture."""
    return _serialize(
        {
            "success": True,
            "message": f"Mock result for {function_name}",
            "data": arguments,
        }
    )


@dataclass
class FunctionCallExecutor:
    """Executes model-requested function calls and returns string outputs."""

    mode: ExecutorMode = ExecutorMode.SIMULATED
    fixtures: dict[str, Any] = field(default_factory=dict)
    handlers: dict[str, FunctionHandler] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.mode = ExecutorMode(self.mode)
        self.fixtures = dict(self.fixtures or {})
        self.handlers = dict(self.handlers or {})

    @classmethod
    def from_config(
        cls,
        *,
        mode: str | ExecutorMode = ExecutorMode.SIMULATED,
        mock_function_outputs: Mapping[str, Any] | None = None,
        function_handlers: Mapping[str, str | FunctionHandler] | None = None,
    ) -> "FunctionCallExecutor":
        """Build an executor from execution params.

        ``function_handlers`` values are callables or ``module:function`` specs.
        """
        return cls(
            mode=ExecutorMode(mode),
            fixtures=dict(mock_function_outputs or {}),
            handlers=load_handlers(function_handlers or {}),
        )

    def execute(self, tool_call: ToolCall) -> str:
        """Execute one call and return its output as a string."""
        arguments = tool_call.arguments if isinstance(tool_call.arguments, dict) else {}
        if self.mode is ExecutorMode.LIVE:
            handler = self.handlers.get(tool_call.function_name)
            if handler is not None:
                return self._execute_live(handler, tool_call.function_name, arguments)
            logger.debug("No live handler for %s; using simulated output", tool_call.function_name)
        return self._execute_simulated(tool_call.function_name, arguments)

    def execute_all(self, tool_calls: list[ToolCall] | tuple[ToolCall, ...]) -> list[ToolOutput]:
        """Execute calls strictly in order, pairing each output with its call id."""
        return [
            ToolOutput(call_id=tc.id, function_name=tc.function_name, output=self.execute(tc))
            for tc in tool_calls
        ]

    def _execute_simulated(self, function_name: str, arguments: dict[str, Any]) -> str:
        if function_name in self.fixtures:
            fixture = self.fixtures[function_name]
            if isinstance(fixture, str):
                return fixture
            return _serialize(fixture)
        return mock_envelope(function_name, arguments)

    @staticmethod
    def _execute_live(handler: FunctionHandler, function_name: str, arguments: dict[str, Any]) -> str:
        try:
            result = handler(dict(arguments))
        except Exception as exc:
            # a failing handler still yields an output for its call id
            logger.warning("Function handler %s raised: %s", function_name, exc)
            return _serialize({"success": False, "error": f"{type(exc).__name__}: {exc}"})
        if isinstance(result, str):
            return result
        return _serialize(result)
