"""Turn orchestration: function-call resolution, usage aggregation, conversation runs."""

from .resolution import FunctionCallLoop, Resolution
from .usage import TokenAggregator, ToolResultExtractor

__all__ = ["FunctionCallLoop", "Resolution", "TokenAggregator", "ToolResultExtractor"]
