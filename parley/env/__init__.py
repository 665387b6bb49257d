"""Execution environment: function calls, simulated providers, simulated user."""

from .mock_tools import ExecutorMode, FunctionCallExecutor, ToolOutput
from .simulated_user import InterlocutorSimulator

__all__ = ["ExecutorMode", "FunctionCallExecutor", "InterlocutorSimulator", "ToolOutput"]
