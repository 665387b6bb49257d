"""Parley: multi-turn conversation orchestration across LLM provider protocols."""

import logging

from .errors import (
    InvalidParamsError,
    MalformedPayloadError,
    ParleyError,
    ProviderError,
    RunFailedError,
    RunTimeoutError,
)

logging.getLogger("parley").addHandler(logging.NullHandler())

__version__ = "0.3.0"

__all__ = [
    "InvalidParamsError",
    "MalformedPayloadError",
    "ParleyError",
    "ProviderError",
    "RunFailedError",
    "RunTimeoutError",
    "__version__",
]
