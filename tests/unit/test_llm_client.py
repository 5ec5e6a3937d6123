import unittest
from pathlib import Path
from unittest.mock import patch

from google.api_core import exceptions as google_exceptions

from workspace_ai.commands.parser import interpret_model_output
from workspace_ai.config import Settings
from workspace_ai.errors import InvalidModelResponse, ModelTransportError, ModelUnavailable
from workspace_ai.llm import GEMINI_MODELS, call_llm, parse_llm_json


class TestParseLLMJson(unittest.TestCase):
    def test_tolerates_surrounding_prose(self):
        raw = 'Sure! Here is the JSON: {"action":"list","params":{}} Thanks'
        self.assertEqual(parse_llm_json(raw), {"action": "list", "params": {}})

    def test_code_fence(self):
        raw = '```json\n{"action": "search", "params": {"query": "tax"}}\n```'
        self.assertEqual(parse_llm_json(raw)["params"], {"query": "tax"})

    def test_recovers_truncated_steps(self):
        raw = '{"steps": [{"action": "list", "params": {}}, {"action": "mo'
        parsed = parse_llm_json(raw)
        steps = interpret_model_output(parsed)
        self.assertEqual([s.action for s in steps], ["list"])

    def test_unparseable(self):
        for raw in ("", "   ", "I cannot help with that", "[1, 2, 3]"):
            with self.assertRaises(InvalidModelResponse, msg=raw):
                parse_llm_json(raw)


class TestInterpretModelOutput(unittest.TestCase):
    def test_single_action(self):
        steps = interpret_model_output({"action": "Delete", "params": {"path": "a.txt"}, "requiresConfirm": False})
        self.assertEqual(len(steps), 1)
        self.assertEqual(steps[0].action, "delete")
        self.assertTrue(steps[0].requires_confirm)

    def test_steps_win_and_unknown_actions_are_dropped(self):
        steps = interpret_model_output({
            "action": "list",
            "steps": [{"action": "create_folder", "params": {"name": "X"}}, {"action": "fly"}],
        })
        self.assertEqual([s.action for s in steps], ["create_folder"])

    def test_nothing_usable(self):
        self.assertIsNone(interpret_model_output({"action": "explode"}))
        self.assertIsNone(interpret_model_output({"answer": 42}))
        self.assertIsNone(interpret_model_output({"steps": [{"action": "fly"}]}))


class TestCallLLM(unittest.TestCase):
    def setUp(self):
        self.settings = Settings(
            workspace_path=Path("."),
            api_key="test-key",
            model="flash",
            fallback_model="flash-1.5",
            timeout=5.0,
        )
        patcher = patch("workspace_ai.llm.client.configure_gemini", return_value=True)
        patcher.start()
        self.addCleanup(patcher.stop)

    @patch("workspace_ai.llm.client._generate")
    def test_primary_success(self, mock_generate):
        mock_generate.return_value = '{"action": "list"}'
        self.assertEqual(call_llm("prompt", settings=self.settings), '{"action": "list"}')
        mock_generate.assert_called_once_with(GEMINI_MODELS["flash"], ["prompt"], "command", 5.0)

    @patch("workspace_ai.llm.client._generate")
    def test_bad_model_retries_once_with_fallback(self, mock_generate):
        mock_generate.side_effect = [google_exceptions.NotFound("no such model"), '{"action": "list"}']

        result = call_llm(["prompt"], purpose="suggest", settings=self.settings)

        self.assertEqual(result, '{"action": "list"}')
        used = [c.args[0] for c in mock_generate.call_args_list]
        self.assertEqual(used, [GEMINI_MODELS["flash"], GEMINI_MODELS["flash-1.5"]])

    @patch("workspace_ai.llm.client._generate")
    def test_timeout_takes_fallback_path(self, mock_generate):
        mock_generate.side_effect = [google_exceptions.DeadlineExceeded("slow"), '{}']
        self.assertEqual(call_llm("prompt", settings=self.settings), '{}')
        self.assertEqual(mock_generate.call_count, 2)

    @patch("workspace_ai.llm.client._generate")
    def test_fallback_failure_surfaces(self, mock_generate):
        mock_generate.side_effect = [
            google_exceptions.InvalidArgument("bad"),
            google_exceptions.NotFound("also bad"),
            '{"never": "reached"}',
        ]
        with self.assertRaises(ModelTransportError):
            call_llm("prompt", settings=self.settings)
        self.assertEqual(mock_generate.call_count, 2)

    @patch("workspace_ai.llm.client._generate")
    def test_other_api_errors_do_not_retry(self, mock_generate):
        mock_generate.side_effect = google_exceptions.PermissionDenied("key revoked")
        with self.assertRaises(ModelTransportError):
            call_llm("prompt", settings=self.settings)
        self.assertEqual(mock_generate.call_count, 1)


class TestCallLLMWithoutKey(unittest.TestCase):
    @patch("workspace_ai.llm.client._generate")
    def test_missing_key(self, mock_generate):
        settings = Settings(workspace_path=Path("."), api_key=None)
        with self.assertRaises(ModelUnavailable):
            call_llm("prompt", settings=settings)
        mock_generate.assert_not_called()


if __name__ == "__main__":
    unittest.main()
