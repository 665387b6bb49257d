"""Tests for provider payload normalization."""

from __future__ import annotations

import unittest

from parley.errors import MalformedPayloadError
from parley.models.adapter import ProtocolKind
from parley.models.response import Usage
from parley.normalizers import (
    ChatCompletionsNormalizer,
    ResponsesNormalizer,
    ThreadRunNormalizer,
    normalizer_for,
    parse_arguments,
)


class ParseArgumentsTests(unittest.TestCase):
    def test_invalid_json_yields_empty_map(self) -> None:
        self.assertEqual(parse_arguments("{invalid json"), {})

    def test_non_object_json_yields_empty_map(self) -> None:
        self.assertEqual(parse_arguments("[1, 2]"), {})
        self.assertEqual(parse_arguments("null"), {})

    def test_map_and_json_string_are_accepted(self) -> None:
        self.assertEqual(parse_arguments({"a": 1}), {"a": 1})
        self.assertEqual(parse_arguments('{"city": "Paris"}'), {"city": "Paris"})
        self.assertEqual(parse_arguments(None), {})


class ChatCompletionsNormalizerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.normalizer = ChatCompletionsNormalizer()

    def test_empty_payload_gets_canonical_defaults(self) -> None:
        response = self.normalizer.normalize({})
        self.assertEqual(response.text, "")
        self.assertEqual(response.tool_calls, ())
        self.assertEqual(response.usage, Usage(0, 0, 0))
        self.assertEqual(response.model, "")

    def test_text_usage_and_nested_tool_calls(self) -> None:
        payload = {
            "id": "chatcmpl_1",
            "model": "gpt-4o",
            "choices": [
                {
                    "message": {
                        "role": "assistant",
                        "content": "Checking the weather.",
                        "tool_calls": [
                            {
                                "id": "call_abc",
                                "type": "function",
                                "function": {"name": "get_weather", "arguments": '{"city": "Paris"}'},
                            },
                            {
                                "id": "call_bad",
                                "type": "function",
                                "function": {"name": "lookup", "arguments": "{invalid json"},
                            },
                        ],
                    },
                    "finish_reason": "tool_calls",
                }
            ],
            "usage": {"prompt_tokens": 12, "completion_tokens": 5},
        }
        response = self.normalizer.normalize(payload)

        self.assertEqual(response.text, "Checking the weather.")
        self.assertEqual(response.model, "gpt-4o")
        self.assertEqual(response.usage, Usage(12, 5, 17))
        self.assertEqual([tc.id for tc in response.tool_calls], ["call_abc", "call_bad"])
        self.assertEqual(response.tool_calls[0].arguments, {"city": "Paris"})
        self.assertEqual(response.tool_calls[1].arguments, {})
        self.assertEqual(response.provider_metadata["finish_reason"], "tool_calls")
        self.assertIs(response.raw_response, payload)

    def test_flat_tool_call_shape_is_accepted(self) -> None:
        payload = {"tool_calls": [{"id": "c1", "function_name": "ping", "arguments": {"n": 1}}]}
        response = self.normalizer.normalize(payload)
        self.assertEqual(response.tool_calls[0].function_name, "ping")
        self.assertEqual(response.tool_calls[0].arguments, {"n": 1})

    def test_content_blocks_with_tool_use(self) -> None:
        payload = {
            "model": "claude-sonnet",
            "content": [
                {"type": "text", "text": "Let me check."},
                {"type": "tool_use", "id": "toolu_1", "name": "get_weather", "input": {"city": "Oslo"}},
            ],
            "usage": {"input_tokens": 7, "output_tokens": 3},
        }
        response = self.normalizer.normalize(payload)
        self.assertEqual(response.text, "Let me check.")
        self.assertEqual(response.usage, Usage(7, 3, 10))
        self.assertEqual(response.tool_calls[0].id, "toolu_1")
        self.assertEqual(response.tool_calls[0].arguments, {"city": "Oslo"})

    def test_think_tags_are_moved_to_metadata(self) -> None:
        payload = {"choices": [{"message": {"content": "<think>plan it</think>Final answer"}}]}
        response = self.normalizer.normalize(payload)
        self.assertEqual(response.text, "Final answer")
        self.assertEqual(response.provider_metadata["reasoning"], "plan it")

    def test_non_mapping_payload_raises(self) -> None:
        with self.assertRaises(MalformedPayloadError):
            self.normalizer.normalize("not a payload")

    def test_negative_usage_is_clamped(self) -> None:
        response = self.normalizer.normalize({"usage": {"prompt_tokens": -4, "completion_tokens": 2}})
        self.assertEqual(response.usage.prompt_tokens, 0)
        self.assertEqual(response.usage.total_tokens, 2)


class ResponsesNormalizerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.normalizer = ResponsesNormalizer()

    def test_message_text_joined_and_usage_mapped(self) -> None:
        payload = {
            "id": "resp_1",
            "model": "gpt-4o",
            "output": [
                {"type": "message", "content": [{"type": "output_text", "text": "Hello"}]},
                {"type": "message", "content": [{"type": "output_text", "text": "World"}]},
            ],
            "usage": {"input_tokens": 3, "output_tokens": 4},
        }
        response = self.normalizer.normalize(payload)
        self.assertEqual(response.text, "Hello\nWorld")
        self.assertEqual(response.usage, Usage(3, 4, 7))
        self.assertEqual(response.response_id, "resp_1")

    def test_function_calls_prefer_call_id(self) -> None:
        payload = {
            "output": [
                {
                    "type": "function_call",
                    "id": "fc_item_1",
                    "call_id": "call_1",
                    "name": "get_weather",
                    "arguments": '{"city": "Rome"}',
                }
            ]
        }
        response = self.normalizer.normalize(payload)
        self.assertEqual(response.text, "")
        self.assertEqual(response.tool_calls[0].id, "call_1")
        self.assertEqual(response.tool_calls[0].arguments, {"city": "Rome"})

    def test_text_config_object_is_not_treated_as_text(self) -> None:
        response = self.normalizer.normalize({"text": {"format": {"type": "text"}}, "output": []})
        self.assertEqual(response.text, "")

    def test_builtin_tool_results(self) -> None:
        payload = {
            "output": [
                {
                    "type": "web_search_call",
                    "id": "ws_1",
                    "status": "completed",
                    "action": {
                        "queries": ["python release"],
                        "sources": [{"title": "Python", "url": "https://python.org", "snippet": "News"}],
                    },
                },
                {
                    "type": "file_search_call",
                    "query": "refund policy",
                    "results": [{"filename": "policy.pdf", "score": 0.91}],
                },
                {
                    "type": "code_interpreter_call",
                    "id": "ci_1",
                    "status": "completed",
                    "code": "print(1 + 1)",
                    "outputs": [{"type": "logs", "logs": "2"}],
                },
                {
                    "type": "message",
                    "content": [
                        {
                            "type": "output_text",
                            "text": "See python.org",
                            "annotations": [
                                {
                                    "type": "url_citation",
                                    "title": "Python",
                                    "url": "https://python.org",
                                    "start_index": 4,
                                    "end_index": 14,
                                }
                            ],
                        }
                    ],
                },
            ]
        }
        response = self.normalizer.normalize(payload)

        web = response.web_search_results[0]
        self.assertEqual(web["query"], "python release")
        self.assertEqual(web["sources"][0]["url"], "https://python.org")
        self.assertEqual(web["citations"][0]["start_index"], 4)

        self.assertEqual(response.file_search_results[0], {"query": "refund policy", "files": ["policy.pdf"], "scores": [0.91]})

        code = response.code_interpreter_results[0]
        self.assertEqual(code["language"], "python")
        self.assertEqual(code["output"], "2")


class ThreadRunNormalizerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.normalizer = ThreadRunNormalizer()

    def _completed_payload(self) -> dict:
        return {
            "assistant_id": "asst_1",
            "thread_id": "thread_1",
            "run": {
                "id": "run_1",
                "status": "completed",
                "usage": {"prompt_tokens": 100, "completion_tokens": 20, "total_tokens": 120},
            },
            "message": {
                "role": "assistant",
                "content": [{"type": "text", "text": {"value": "Here you go", "annotations": [{"type": "file_citation"}]}}],
            },
            "run_steps": {
                "data": [
                    {
                        "type": "tool_calls",
                        "step_details": {
                            "tool_calls": [
                                {
                                    "type": "file_search",
                                    "file_search": {
                                        "results": [
                                            {"file_id": "file_1", "file_name": "menu.pdf", "score": 0.8, "content": []}
                                        ]
                                    },
                                },
                                {
                                    "type": "function",
                                    "id": "call_done",
                                    "function": {"name": "lookup", "arguments": "{}"},
                                },
                            ]
                        },
                    }
                ]
            },
        }

    def test_completed_run(self) -> None:
        response = self.normalizer.normalize(self._completed_payload())
        self.assertEqual(response.text, "Here you go")
        self.assertEqual(response.model, "asst_1")
        self.assertEqual(response.usage, Usage(100, 20, 120))
        self.assertEqual(response.thread_id, "thread_1")
        self.assertEqual(response.run_id, "run_1")
        self.assertEqual(response.provider_metadata["annotations"], [{"type": "file_citation"}])
        self.assertEqual(response.file_search_results[0]["file_name"], "menu.pdf")
        # Answered function steps are not re-surfaced as pending calls.
        self.assertEqual(response.tool_calls, ())

    def test_requires_action_surfaces_pending_calls(self) -> None:
        payload = {
            "thread_id": "thread_1",
            "run": {
                "id": "run_2",
                "status": "requires_action",
                "required_action": {
                    "submit_tool_outputs": {
                        "tool_calls": [
                            {"id": "call_9", "type": "function", "function": {"name": "get_weather", "arguments": '{"city":"Lima"}'}}
                        ]
                    }
                },
            },
        }
        response = self.normalizer.normalize(payload)
        self.assertEqual(response.tool_calls[0].id, "call_9")
        self.assertEqual(response.tool_calls[0].arguments, {"city": "Lima"})
        self.assertEqual(response.usage, Usage(0, 0, 0))
        self.assertEqual(response.provider_metadata["run_status"], "requires_action")

    def test_explicit_content_wins(self) -> None:
        response = self.normalizer.normalize({"content": "Direct", "run": {"status": "completed"}})
        self.assertEqual(response.text, "Direct")


class NormalizerRegistryTests(unittest.TestCase):
    def test_normalizer_for_each_protocol(self) -> None:
        self.assertIsInstance(normalizer_for(ProtocolKind.STATELESS), ChatCompletionsNormalizer)
        self.assertIsInstance(normalizer_for(ProtocolKind.CONTINUATION), ResponsesNormalizer)
        self.assertIsInstance(normalizer_for(ProtocolKind.THREAD_RUN), ThreadRunNormalizer)


if __name__ == "__main__":
    unittest.main()
