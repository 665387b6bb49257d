"""Exception hierarchy for Parley."""

from __future__ import annotations


class ParleyError(Exception):
    """Base exception for all Parley errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class InvalidParamsError(ParleyError):
    """Execution parameters violate the caller contract."""


class MalformedPayloadError(ParleyError):
    """A provider payload could not be interpreted at all."""


class ProviderError(ParleyError):
    """A provider call failed at the transport or protocol level.

    ``phase`` names the step that failed (``create_response``, ``poll_run``,
    ``submit_tool_outputs`` …) so a record can say where a run broke.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        provider: str | None = None,
        phase: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.provider = provider
        self.phase = phase
        self.status_code = status_code


class RunFailedError(ProviderError):
    """A thread run ended in a non-success terminal state."""

    def __init__(self, message: str, *, status: str, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.status = status


class RunTimeoutError(ProviderError):
    """A thread run did not reach a terminal state before the polling deadline."""


def status_code_of(exc: BaseException) -> int | None:
    """Best-effort HTTP status extraction from an SDK exception."""
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None
