"""Tests for execution params and their schema."""

from __future__ import annotations

from pathlib import Path
import tempfile
import unittest

from parley.errors import InvalidParamsError
from parley.models.adapter import ProtocolKind
from parley.params import ExecutionParams
from parley.schema_validator import validate_params, validate_params_file

SAMPLES = Path(__file__).resolve().parent.parent / "samples"


class ExecutionParamsTests(unittest.TestCase):
    def test_defaults(self) -> None:
        params = ExecutionParams(first_user_message="Hi")
        self.assertEqual(params.max_turns, 1)
        self.assertEqual(params.protocol, ProtocolKind.STATELESS)
        self.assertEqual(params.model_settings.temperature, 0.7)
        self.assertEqual(len(params.execution_id), 12)

    def test_protocol_selection(self) -> None:
        self.assertEqual(ExecutionParams(first_user_message="x", api="responses").protocol, ProtocolKind.CONTINUATION)
        self.assertEqual(
            ExecutionParams(first_user_message="x", api="assistants", assistant_id="asst_1").protocol,
            ProtocolKind.THREAD_RUN,
        )
        # Only OpenAI speaks the continuation protocols
        self.assertEqual(
            ExecutionParams(first_user_message="x", provider="anthropic", api="responses").protocol,
            ProtocolKind.STATELESS,
        )

    def test_invalid_values_raise(self) -> None:
        with self.assertRaises(InvalidParamsError):
            ExecutionParams(first_user_message="x", max_turns=0)
        with self.assertRaises(InvalidParamsError):
            ExecutionParams(first_user_message="x", max_turns=True)  # type: ignore[arg-type]
        with self.assertRaises(InvalidParamsError):
            ExecutionParams(first_user_message="x", tool_mode="real")
        with self.assertRaises(InvalidParamsError):
            ExecutionParams(first_user_message="x", api="assistants")

    def test_from_mapping(self) -> None:
        params = ExecutionParams.from_mapping(
            {"first_user_message": "", "max_turns": 2, "tools": ["web_search"], "system_prompt": None}
        )
        self.assertEqual(params.first_user_message, "")
        self.assertEqual(params.tools, ("web_search",))
        self.assertIsNone(params.system_prompt)

        with self.assertRaises(InvalidParamsError):
            ExecutionParams.from_mapping({"max_turns": 2})
        with self.assertRaises(InvalidParamsError):
            ExecutionParams.from_mapping({"first_user_message": "x", "colour": "blue"})
        with self.assertRaises(InvalidParamsError):
            ExecutionParams.from_mapping({"first_user_message": None})

    def test_to_map_round_trips(self) -> None:
        params = ExecutionParams(
            first_user_message="Hi",
            max_turns=3,
            tools=["functions"],
            tool_config={"functions": [{"name": "get_weather"}]},
            mock_function_outputs={"get_weather": {"temp": 20}},
            function_handlers={"get_weather": "handlers:get_weather"},
            tool_mode="live",
            interlocutor_model="gpt-4o-mini",
        )
        data = params.to_map()
        self.assertEqual(data["mock_function_outputs"], {"get_weather": {"temp": 20}})
        self.assertEqual(data["function_handlers"], {"get_weather": "handlers:get_weather"})
        self.assertEqual(data["interlocutor_model"], "gpt-4o-mini")
        self.assertEqual(ExecutionParams.from_mapping(data), params)


class SchemaValidatorTests(unittest.TestCase):
    def test_samples_are_valid(self) -> None:
        for path in sorted(SAMPLES.glob("*.yaml")):
            params, errors = validate_params_file(path)
            self.assertEqual(errors, [], msg=str(path))
            ExecutionParams.from_mapping(params)

    def test_schema_errors_carry_paths(self) -> None:
        errors = validate_params({"first_user_message": "x", "temperature": 3, "tools": ["teleport"]})
        self.assertTrue(any(e.startswith("[temperature]") for e in errors))
        self.assertTrue(any(e.startswith("[tools.0]") for e in errors))

    def test_assistants_requires_assistant_id(self) -> None:
        errors = validate_params({"first_user_message": "x", "api": "assistants"})
        self.assertEqual(len(errors), 1)
        self.assertIn("assistant_id", errors[0])

    def test_unreadable_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "bad.yaml"
            path.write_text("first_user_message: [unclosed", encoding="utf-8")
            params, errors = validate_params_file(path)
        self.assertIsNone(params)
        self.assertTrue(errors[0].startswith("Failed to load params file"))


if __name__ == "__main__":
    unittest.main()
