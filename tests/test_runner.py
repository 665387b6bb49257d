"""Orchestrator behavior tests: turn loop, termination, persistence."""

from __future__ import annotations

from types import SimpleNamespace
import unittest
from unittest.mock import MagicMock

from parley.config import EnginePolicy
from parley.errors import InvalidParamsError, ProviderError
from parley.models.adapter import ContinuationContext, ProtocolKind, TurnResult
from parley.models.conversation import Role, RunStatus
from parley.models.response import CanonicalResponse, ToolCall, Usage
from parley.orchestrator.runner import ConversationOrchestrator, build_orchestrator, render_prompt
from parley.params import ExecutionParams


class FakeAdapter:
    """Deterministic adapter returning one canned reply per turn."""

    protocol = ProtocolKind.STATELESS

    def __init__(self, replies: list, usage: Usage | None = None):
        self._replies = list(replies)
        self._usage = usage or Usage(10, 20, 30)
        self.calls: list[tuple] = []

    def initial_context(self) -> ContinuationContext:
        return ContinuationContext(protocol=self.protocol)

    def run_turn(self, system_prompt, user_message, context, *, turn=None):  # noqa: ANN001
        self.calls.append((system_prompt, user_message, turn))
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        tool_calls = ()
        if isinstance(reply, tuple):
            reply, tool_calls = reply
        response = CanonicalResponse(text=reply, usage=self._usage, model="fake", tool_calls=tool_calls)
        return TurnResult(
            response=response,
            context=ContinuationContext(protocol=self.protocol, history=context.history + ({"turn": turn},)),
            tool_calls=tuple(tool_calls),
            usage=self._usage,
            responses=(response,),
        )


class ScriptedSimulator:
    def __init__(self, replies: list):
        self._replies = list(replies)
        self.seen: list[int] = []

    def next_user_message(self, persona_prompt, history, turn):  # noqa: ANN001
        self.seen.append(turn)
        return self._replies.pop(0)


class ConversationOrchestratorTests(unittest.TestCase):
    def test_single_turn_completes(self) -> None:
        adapter = FakeAdapter(["Hi there"])
        orchestrator = ConversationOrchestrator(adapter, ScriptedSimulator([]))

        result = orchestrator.execute(ExecutionParams(first_user_message="Hello", system_prompt="Be kind."))

        self.assertEqual(result.status, RunStatus.COMPLETED)
        self.assertEqual(orchestrator.status, RunStatus.COMPLETED)
        self.assertEqual(len(result.messages), 2)
        self.assertEqual(result.total_turns, 1)
        self.assertEqual(result.messages[0].role, Role.USER)
        self.assertEqual(result.messages[0].content, "Hello")
        self.assertEqual(result.messages[1].content, "Hi there")
        self.assertEqual(result.messages[1].usage, Usage(10, 20, 30))
        self.assertEqual(adapter.calls, [("Be kind.", "Hello", 1)])
        self.assertEqual(result.metadata["tokens"]["total_tokens"], 30)
        self.assertEqual(result.metadata["termination_reason"], "max_turns")
        self.assertEqual(result.metadata["rendered_prompt"], render_prompt("Be kind.", "Hello"))

    def test_system_prompt_is_only_sent_on_the_first_turn(self) -> None:
        adapter = FakeAdapter(["a", "b", "c"])
        simulator = ScriptedSimulator(["second", "third"])
        result = ConversationOrchestrator(adapter, simulator).execute(
            ExecutionParams(first_user_message="first", system_prompt="sys", max_turns=3, interlocutor_prompt="p")
        )

        self.assertEqual(result.total_turns, 3)
        self.assertEqual([c[0] for c in adapter.calls], ["sys", None, None])
        self.assertEqual([c[1] for c in adapter.calls], ["first", "second", "third"])
        self.assertEqual(simulator.seen, [2, 3])
        self.assertEqual([m.turn for m in result.messages], [1, 1, 2, 2, 3, 3])
        self.assertEqual(result.metadata["tokens"]["total_tokens"], 90)

    def test_interlocutor_can_end_the_conversation(self) -> None:
        adapter = FakeAdapter(["a", "b"])
        result = ConversationOrchestrator(adapter, ScriptedSimulator([None])).execute(
            ExecutionParams(first_user_message="Hi", max_turns=3)
        )

        self.assertEqual(result.status, RunStatus.COMPLETED)
        self.assertEqual(len(result.messages), 2)
        self.assertEqual(result.total_turns, 1)
        self.assertEqual(result.metadata["termination_reason"], "interlocutor_ended")

    def test_adapter_error_keeps_partial_history(self) -> None:
        adapter = FakeAdapter(["ok", ProviderError("upstream 500", provider="litellm", phase="completion")])
        store = MagicMock()
        store.save_result.return_value = "file:///tmp/results/x.json"
        orchestrator = ConversationOrchestrator(adapter, ScriptedSimulator(["again"]), store=store)

        result = orchestrator.execute(ExecutionParams(first_user_message="Hi", max_turns=3, execution_id="x"))

        self.assertTrue(result.is_error)
        self.assertEqual(orchestrator.status, RunStatus.ERROR)
        # the failed turn's user message stays in the transcript
        self.assertEqual([m.role for m in result.messages], [Role.USER, Role.ASSISTANT, Role.USER])
        self.assertEqual(result.total_turns, 1)
        self.assertIn("upstream 500", result.metadata["error"])
        self.assertEqual(result.metadata["termination_reason"], "error")
        store.save_result.assert_called_once()
        self.assertEqual(store.save_result.call_args.args[0], "x")
        self.assertEqual(store.save_result.call_args.args[1]["status"], "error")
        self.assertEqual(orchestrator.result_uri, "file:///tmp/results/x.json")

    def test_tool_calls_are_recorded_on_the_assistant_message(self) -> None:
        call = ToolCall(id="call_1", function_name="get_weather", arguments={"city": "Paris"})
        adapter = FakeAdapter([("Sunny", (call,))])
        result = ConversationOrchestrator(adapter, ScriptedSimulator([])).execute(
            ExecutionParams(first_user_message="Weather?")
        )

        self.assertEqual(result.messages[1].tool_calls, (call,))
        self.assertEqual(result.metadata["tools_used"], ["get_weather"])

    def test_orchestrator_is_single_use(self) -> None:
        orchestrator = ConversationOrchestrator(FakeAdapter(["a", "b"]), ScriptedSimulator([]))
        params = ExecutionParams(first_user_message="Hi")
        orchestrator.execute(params)
        with self.assertRaises(RuntimeError):
            orchestrator.execute(params)

    def test_store_is_written_once_on_success(self) -> None:
        store = MagicMock()
        ConversationOrchestrator(FakeAdapter(["a"]), ScriptedSimulator([]), store=store).execute(
            ExecutionParams(first_user_message="Hi", execution_id="exec_1")
        )
        store.save_result.assert_called_once()
        payload = store.save_result.call_args.args[1]
        self.assertEqual(payload["status"], "completed")
        self.assertEqual(payload["total_turns"], 1)

    def test_missing_first_message_is_rejected(self) -> None:
        with self.assertRaises(InvalidParamsError):
            ExecutionParams(first_user_message=None)  # type: ignore[arg-type]


class StuckThreadClient:
    """Assistants client whose runs always ask for another function call.

    Like the real thread API, adding a message while a run is still active fails.
    """

    ACTIVE = {"queued", "in_progress", "requires_action", "cancelling"}

    def __init__(self) -> None:
        self.runs: dict[str, dict] = {}
        self.cancelled: list[str] = []
        runs = SimpleNamespace(
            create=self._create_run,
            retrieve=lambda *, thread_id, run_id: dict(self.runs[run_id]),
            submit_tool_outputs=self._submit,
            cancel=self._cancel,
            steps=SimpleNamespace(list=lambda **_: {"data": []}),
        )
        messages = SimpleNamespace(create=self._add_message, list=lambda **_: {"data": []})
        threads = SimpleNamespace(create=lambda: {"id": "thread_1"}, messages=messages, runs=runs)
        self.beta = SimpleNamespace(threads=threads)

    def _pending(self, run_id: str) -> dict:
        n = len(self.runs)
        run = {
            "id": run_id,
            "status": "requires_action",
            "required_action": {
                "submit_tool_outputs": {
                    "tool_calls": [
                        {"id": f"call_{n}", "type": "function", "function": {"name": "lookup", "arguments": "{}"}}
                    ]
                }
            },
        }
        self.runs[run_id] = run
        return dict(run)

    def _add_message(self, *, thread_id: str, role: str, content: str) -> dict:
        if any(run["status"] in self.ACTIVE for run in self.runs.values()):
            raise RuntimeError("Can't add messages to thread while a run is active.")
        return {"id": "msg", "role": role}

    def _create_run(self, *, thread_id: str, assistant_id: str, **_: object) -> dict:
        return self._pending(f"run_{len(self.runs) + 1}")

    def _submit(self, *, thread_id: str, run_id: str, tool_outputs: list) -> dict:
        return self._pending(run_id)

    def _cancel(self, *, thread_id: str, run_id: str) -> dict:
        self.cancelled.append(run_id)
        self.runs[run_id] = {"id": run_id, "status": "cancelled"}
        return {"id": run_id, "status": "cancelling"}


class SimulatedEndToEndTests(unittest.TestCase):
    def test_single_turn_simulated_run(self) -> None:
        params = ExecutionParams(first_user_message="Hello", max_turns=1)
        result = build_orchestrator(params, policy=EnginePolicy()).execute(params)

        self.assertEqual(result.status, RunStatus.COMPLETED)
        self.assertEqual(result.total_turns, 1)
        self.assertEqual(len(result.messages), 2)
        self.assertEqual(result.messages[0].role, Role.USER)
        self.assertEqual(result.messages[0].content, "Hello")
        self.assertEqual(result.messages[1].role, Role.ASSISTANT)
        self.assertEqual(result.metadata["termination_reason"], "max_turns")

    def test_thread_run_stuck_in_function_calls_is_cancelled_between_turns(self) -> None:
        client = StuckThreadClient()
        params = ExecutionParams(first_user_message="Hello", api="assistants", assistant_id="asst_1", max_turns=2)
        policy = EnginePolicy(max_tool_iterations=1, run_poll_interval_s=0)
        result = build_orchestrator(params, policy=policy, client=client).execute(params)

        self.assertEqual(result.status, RunStatus.COMPLETED)
        self.assertEqual(result.total_turns, 2)
        self.assertEqual(client.cancelled, ["run_1", "run_2"])
        self.assertNotIn("error", result.metadata)

    def test_stateless_simulated_run(self) -> None:
        params = ExecutionParams(first_user_message="Hello", max_turns=2)
        result = build_orchestrator(params, policy=EnginePolicy()).execute(params)

        self.assertTrue(result.is_completed)
        self.assertEqual(result.total_turns, 2)
        self.assertEqual(result.messages[2].content, "I have another question.")
        self.assertEqual(result.messages[1].content, "Mock LLM response for testing (turn 1)")
        self.assertEqual(result.messages[3].content, "Mock LLM response for testing (turn 2)")
        self.assertEqual(result.metadata["tokens"]["total_tokens"], 60)

    def test_responses_simulated_run_chains_response_ids(self) -> None:
        params = ExecutionParams(first_user_message="Hello", api="responses", max_turns=2)
        result = build_orchestrator(params, policy=EnginePolicy()).execute(params)

        self.assertTrue(result.is_completed)
        self.assertEqual(result.messages[3].content, "Mock Response API response for testing (2)")
        self.assertEqual(result.provider_metadata["previous_response_id"], "resp_mock_2")
        self.assertEqual(result.metadata["protocol"], "continuation")

    def test_assistants_simulated_run_reuses_thread(self) -> None:
        params = ExecutionParams(first_user_message="Hello", api="assistants", assistant_id="asst_1", max_turns=2)
        result = build_orchestrator(params, policy=EnginePolicy(run_poll_interval_s=0)).execute(params)

        self.assertTrue(result.is_completed)
        self.assertEqual(result.messages[1].content, "Mock Assistants API response for testing (1)")
        self.assertEqual(result.messages[3].content, "Mock Assistants API response for testing (2)")
        self.assertEqual(result.provider_metadata["thread_id"], "thread_mock_1")
        self.assertEqual(result.provider_metadata["run_id"], "run_mock_2")

    def test_simulated_function_calls_resolve_within_the_turn(self) -> None:
        completion = MagicMock(
            side_effect=[
                {
                    "choices": [
                        {
                            "message": {
                                "content": "",
                                "tool_calls": [
                                    {"id": "call_1", "function": {"name": "get_weather", "arguments": '{"city":"Rome"}'}}
                                ],
                            }
                        }
                    ],
                    "usage": {"prompt_tokens": 5, "completion_tokens": 5},
                },
                {"choices": [{"message": {"content": "It is sunny."}}], "usage": {"prompt_tokens": 8, "completion_tokens": 2}},
            ]
        )
        params = ExecutionParams(
            first_user_message="Weather in Rome?",
            tools=["functions"],
            tool_config={"functions": [{"name": "get_weather", "parameters": {"type": "object"}}]},
            mock_function_outputs={"get_weather": {"temp": 25}},
        )
        result = build_orchestrator(params, policy=EnginePolicy(), completion_fn=completion).execute(params)

        assistant = result.messages[1]
        self.assertEqual(assistant.content, "It is sunny.")
        self.assertEqual([tc.function_name for tc in assistant.tool_calls], ["get_weather"])
        self.assertEqual(assistant.usage, Usage(13, 7, 20))
        tool_messages = [m for m in completion.call_args_list[1].kwargs["messages"] if m["role"] == "tool"]
        self.assertEqual(tool_messages, [{"role": "tool", "tool_call_id": "call_1", "content": '{"temp": 25}'}])


if __name__ == "__main__":
    unittest.main()
