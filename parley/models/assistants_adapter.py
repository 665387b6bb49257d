"""Thread/run adapter for the OpenAI Assistants API.

One turn: add the user message to the thread, start a run, poll it. A run
that stops in ``requires_action`` hands its pending calls to the function
loop; outputs go back through ``submit_tool_outputs`` and polling resumes.
A completed run yields the latest assistant message and the run steps.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Callable

from ..errors import ProviderError, RunFailedError, RunTimeoutError, status_code_of
from ..normalizers import ThreadRunNormalizer, to_payload
from .adapter import ContinuationContext, ModelSettings, ProtocolKind, TurnResult
from .response import CanonicalResponse

if TYPE_CHECKING:
    from ..env.mock_tools import ToolOutput
    from ..orchestrator.resolution import FunctionCallLoop

logger = logging.getLogger(__name__)

PENDING_STATUSES = {"queued", "in_progress", "cancelling"}
FAILED_STATUSES = {"failed", "cancelled", "expired", "incomplete"}


class AssistantsAdapter:
    """Thread/run protocol against a pre-configured assistant."""

    protocol = ProtocolKind.THREAD_RUN

    def __init__(
        self,
        settings: ModelSettings,
        *,
        assistant_id: str,
        loop: FunctionCallLoop | None = None,
        poll_interval_s: float = 1.0,
        poll_timeout_s: float = 60.0,
        api_key: str | None = None,
        api_base: str | None = None,
        client: Any | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not assistant_id:
            raise ValueError("assistant_id is required for the thread/run protocol")
        self.settings = settings
        self.assistant_id = assistant_id
        self.loop = loop
        self.poll_interval_s = poll_interval_s
        self.poll_timeout_s = poll_timeout_s
        self.api_key = api_key
        self.api_base = api_base
        self.normalizer = ThreadRunNormalizer()
        self._client = client
        self._sleep = sleep
        self._clock = clock

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

    def _threads(self) -> Any:
        return self._get_client().beta.threads

    def _call(self, phase: str, fn: Callable[..., Any], **kwargs: Any) -> dict[str, Any]:
        try:
            return to_payload(fn(**kwargs))
        except ProviderError:
            raise
        except Exception as exc:
            raise ProviderError(
                f"Assistants API {phase} failed: {exc}",
                provider="openai",
                phase=phase,
                status_code=status_code_of(exc),
            ) from exc

    def _poll(self, thread_id: str, run: dict[str, Any]) -> dict[str, Any]:
        """Poll until the run leaves the pending states or the deadline passes."""
        deadline = self._clock() + self.poll_timeout_s
        while run.get("status") in PENDING_STATUSES:
            if self._clock() >= deadline:
                raise RunTimeoutError(
                    f"Run {run.get('id')} timed out after {self.poll_timeout_s}s (status: {run.get('status')})",
                    provider="openai",
                    phase="poll_run",
                )
            self._sleep(self.poll_interval_s)
            run = self._call("poll_run", self._threads().runs.retrieve, thread_id=thread_id, run_id=run["id"])
            logger.debug("Run %s status=%s", run.get("id"), run.get("status"))
        return run

    def _observe(self, thread_id: str, run: dict[str, Any]) -> CanonicalResponse:
        """Normalize the run as it stands once polling stopped."""
        status = run.get("status")
        if status in FAILED_STATUSES:
            last_error = run.get("last_error") or {}
            detail = last_error.get("message") if isinstance(last_error, dict) else None
            raise RunFailedError(
                f"Run {status}: {detail or 'no error detail'}",
                status=str(status),
                provider="openai",
                phase="poll_run",
            )

        payload: dict[str, Any] = {
            "assistant_id": self.assistant_id,
            "thread_id": thread_id,
            "run": run,
            "run_steps": {},
            "message": None,
        }
        if status == "completed":
            threads = self._threads()
            listing = self._call(
                "list_messages", threads.messages.list, thread_id=thread_id, order="desc", limit=1
            )
            messages = listing.get("data") or []
            payload["message"] = messages[0] if messages else None
            payload["run_steps"] = self._call(
                "list_run_steps", threads.runs.steps.list, thread_id=thread_id, run_id=run["id"]
            )
        return self.normalizer.normalize(payload)

    def _cancel(self, thread_id: str, run_id: str | None) -> None:
        """Cancel a run left in ``requires_action`` so the thread accepts new messages."""
        if not run_id:
            return
        logger.warning("Cancelling run %s with unresolved function calls", run_id)
        run = self._call("cancel_run", self._threads().runs.cancel, thread_id=thread_id, run_id=run_id)
        run = self._poll(thread_id, run)
        logger.debug("Run %s ended as %s", run_id, run.get("status"))

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
        # Instructions live on the assistant; system_prompt is not sent.
        threads = self._threads()
        thread_id = context.thread_id
        if not thread_id:
            thread_id = self._call("create_thread", threads.create)["id"]

        self._call("add_message", threads.messages.create, thread_id=thread_id, role="user", content=user_message)

        run_kwargs: dict[str, Any] = {"thread_id": thread_id, "assistant_id": self.assistant_id}
        if self.settings.temperature is not None:
            run_kwargs["temperature"] = self.settings.temperature
        if self.settings.max_tokens is not None:
            run_kwargs["max_completion_tokens"] = self.settings.max_tokens
        run = self._poll(thread_id, self._call("create_run", threads.runs.create, **run_kwargs))
        initial = self._observe(thread_id, run)

        def continue_with(response: CanonicalResponse, outputs: list[ToolOutput]) -> CanonicalResponse:
            submitted = self._call(
                "submit_tool_outputs",
                threads.runs.submit_tool_outputs,
                thread_id=thread_id,
                run_id=response.run_id,
                tool_outputs=[{"tool_call_id": o.call_id, "output": o.output} for o in outputs],
            )
            return self._observe(thread_id, self._poll(thread_id, submitted))

        if self.loop is not None:
            resolution = self.loop.resolve(initial, continue_with, turn=turn)
            final, responses = resolution.final_response, resolution.all_responses
            tool_calls, usage = resolution.all_tool_calls, resolution.aggregated_usage
        else:
            final, responses, tool_calls, usage = initial, (initial,), initial.tool_calls, initial.usage

        if final.tool_calls:
            self._cancel(thread_id, final.run_id)

        return TurnResult(
            response=final,
            context=ContinuationContext(protocol=self.protocol, thread_id=thread_id, run_id=final.run_id),
            tool_calls=tuple(tool_calls),
            usage=usage,
            responses=tuple(responses),
        )
