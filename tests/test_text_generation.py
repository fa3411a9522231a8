import unittest
from types import SimpleNamespace
from unittest.mock import patch

import anthropic
import httpx

from fitforge.errors import TextGenerationError
from fitforge.text_generation import (
    JSON_INSTRUCTION,
    TextGenerator,
    parse_json_content,
    strip_code_fences,
)


CONFIG = {"claude": {"model": "claude-test", "timeout": 12}}


def fake_message(text, input_tokens=10, output_tokens=5):
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
    )


class ParseJsonContentTests(unittest.TestCase):
    def test_strips_json_fence(self):
        self.assertEqual(strip_code_fences('```json\n{"a": 1}\n```'), '{"a": 1}')

    def test_strips_bare_fence(self):
        self.assertEqual(strip_code_fences('```\n{"a": 1}\n```'), '{"a": 1}')

    def test_leaves_plain_text_alone(self):
        self.assertEqual(strip_code_fences('  {"a": 1} '), '{"a": 1}')

    def test_parses_object(self):
        self.assertEqual(parse_json_content('{"name": "Plan"}'), {"name": "Plan"})

    def test_empty_content(self):
        for content in (None, "", "   "):
            with self.assertRaises(TextGenerationError) as ctx:
                parse_json_content(content)
            self.assertEqual(str(ctx.exception), "No response from AI")

    def test_invalid_json(self):
        with self.assertRaises(TextGenerationError) as ctx:
            parse_json_content("not json")
        self.assertEqual(str(ctx.exception), "Invalid JSON response from AI")

    def test_non_object_json(self):
        with self.assertRaises(TextGenerationError):
            parse_json_content("[1, 2, 3]")


class TextGeneratorTests(unittest.TestCase):
    def setUp(self):
        patcher = patch("fitforge.text_generation.anthropic.Anthropic")
        self.anthropic_cls = patcher.start()
        self.addCleanup(patcher.stop)
        self.client = self.anthropic_cls.return_value

    def test_client_uses_configured_timeout_without_retries(self):
        generator = TextGenerator("sk-test", CONFIG)

        self.anthropic_cls.assert_called_once_with(api_key="sk-test", timeout=12, max_retries=0)
        self.assertEqual(generator.model, "claude-test")

    def test_explicit_model_and_timeout_override_config(self):
        generator = TextGenerator("sk-test", CONFIG, model="claude-other", timeout=5)

        self.anthropic_cls.assert_called_once_with(api_key="sk-test", timeout=5, max_retries=0)
        self.assertEqual(generator.model, "claude-other")

    def test_json_mode_adds_instruction_and_reports_usage(self):
        self.client.messages.create.return_value = fake_message('{"ok": true}', 40, 12)
        generator = TextGenerator("sk-test", CONFIG)

        result = generator.complete("You are a trainer.", "Make a plan", temperature=0.3, max_tokens=900)

        kwargs = self.client.messages.create.call_args.kwargs
        self.assertIn(JSON_INSTRUCTION, kwargs["system"])
        self.assertEqual(kwargs["messages"], [{"role": "user", "content": "Make a plan"}])
        self.assertEqual(kwargs["temperature"], 0.3)
        self.assertEqual(kwargs["max_tokens"], 900)
        self.assertEqual(kwargs["model"], "claude-test")
        self.assertEqual(result["content"], '{"ok": true}')
        self.assertEqual(
            result["usage"],
            {"prompt_tokens": 40, "completion_tokens": 12, "total_tokens": 52},
        )

    def test_text_mode_keeps_history(self):
        self.client.messages.create.return_value = fake_message("Rest 2-3 minutes.")
        generator = TextGenerator("sk-test", CONFIG)
        history = [
            {"role": "user", "content": "How long should I rest?"},
            {"role": "assistant", "content": "Depends on the lift."},
        ]

        result = generator.complete("You are a trainer.", "For squats?", response_format="text", messages=history)

        kwargs = self.client.messages.create.call_args.kwargs
        self.assertEqual(kwargs["system"], "You are a trainer.")
        self.assertEqual(len(kwargs["messages"]), 3)
        self.assertEqual(kwargs["messages"][-1], {"role": "user", "content": "For squats?"})
        self.assertEqual(len(history), 2)
        self.assertEqual(result["content"], "Rest 2-3 minutes.")

    def test_empty_response_has_no_content(self):
        self.client.messages.create.return_value = SimpleNamespace(content=[], usage=None)
        generator = TextGenerator("sk-test", CONFIG)

        result = generator.complete("system", "user")

        self.assertIsNone(result["content"])
        self.assertEqual(result["usage"]["total_tokens"], 0)

    def test_timeout_is_wrapped(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        self.client.messages.create.side_effect = anthropic.APITimeoutError(request=request)
        generator = TextGenerator("sk-test", CONFIG)

        with self.assertRaises(TextGenerationError) as ctx:
            generator.complete("system", "user")
        self.assertEqual(str(ctx.exception), "AI request timed out")

    def test_connection_error_is_wrapped(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        self.client.messages.create.side_effect = anthropic.APIConnectionError(request=request)
        generator = TextGenerator("sk-test", CONFIG)

        with self.assertRaises(TextGenerationError) as ctx:
            generator.complete("system", "user")
        self.assertIn("AI request failed", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
