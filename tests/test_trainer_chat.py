import json
import unittest
from unittest.mock import MagicMock

from fitforge.errors import ErrorKind, TextGenerationError
from fitforge.trainer_chat import TrainerChat


USAGE = {"prompt_tokens": 300, "completion_tokens": 90, "total_tokens": 390}


class TrainerChatTests(unittest.TestCase):
    def setUp(self):
        self.text_generator = MagicMock()
        self.text_generator.complete.return_value = {"content": "Keep your elbows tucked.", "usage": USAGE}

        self.catalog = MagicMock()
        self.catalog.list_exercises.return_value = [{"name": "Bench Press"}, {"name": "Push-up"}]

        self.logs = MagicMock()
        self.logs.list_logs.return_value = [
            {
                "name": "Upper A",
                "status": "completed",
                "started_at": "2026-02-10T10:00:00+00:00",
                "completed_at": "2026-02-10T11:00:00+00:00",
            }
        ]

        self.trainer = TrainerChat(self.text_generator, self.catalog, self.logs)

    def test_successful_chat(self):
        result = self.trainer.chat("user-1", "How do I bench without shoulder pain?")

        self.assertEqual(result, {"success": True, "response": "Keep your elbows tucked.", "usage": USAGE})
        self.logs.list_logs.assert_called_once_with("user-1", limit=10)

        args = self.text_generator.complete.call_args.args
        kwargs = self.text_generator.complete.call_args.kwargs
        system_prompt, user_prompt = args
        self.assertIn("Bench Press, Push-up", system_prompt)
        self.assertIn(json.dumps("You've completed 1 workout recently. Keep it up!"), system_prompt)
        self.assertEqual(user_prompt, "How do I bench without shoulder pain?")
        self.assertEqual(kwargs["response_format"], "text")
        self.assertEqual(kwargs["temperature"], 0.8)
        self.assertEqual(kwargs["max_tokens"], 500)
        self.assertEqual(kwargs["messages"], [])

    def test_history_is_forwarded(self):
        history = [
            {"role": "user", "content": "Is 3x a week enough?"},
            {"role": "assistant", "content": "For most beginners, yes."},
            {"role": "system", "content": "ignored"},
        ]

        self.trainer.chat("user-1", "What about 4x?", conversation_history=history)

        messages = self.text_generator.complete.call_args.kwargs["messages"]
        self.assertEqual([m["role"] for m in messages], ["user", "assistant"])

    def test_invalid_messages(self):
        for message in ("", "   ", "x" * 2001, None):
            result = self.trainer.chat("user-1", message)
            self.assertFalse(result["success"])
            self.assertEqual(result["error_kind"], ErrorKind.INVALID_INPUT)
        self.text_generator.complete.assert_not_called()
        self.logs.list_logs.assert_not_called()

    def test_generation_failure(self):
        self.text_generator.complete.side_effect = TextGenerationError("AI request timed out")

        result = self.trainer.chat("user-1", "Any tips?")

        self.assertEqual(result["error_kind"], ErrorKind.GENERATION_FAILED)
        self.assertEqual(result["error"], "AI request timed out")

    def test_empty_reply(self):
        self.text_generator.complete.return_value = {"content": None, "usage": USAGE}

        result = self.trainer.chat("user-1", "Any tips?")

        self.assertEqual(result["error_kind"], ErrorKind.GENERATION_FAILED)
        self.assertEqual(result["error"], "No response from AI")

    def test_configured_settings(self):
        trainer = TrainerChat(
            self.text_generator,
            self.catalog,
            self.logs,
            {"generation": {"chat_temperature": 0.4, "chat_max_tokens": 250}},
        )

        trainer.chat("user-1", "Any tips?")

        kwargs = self.text_generator.complete.call_args.kwargs
        self.assertEqual((kwargs["temperature"], kwargs["max_tokens"]), (0.4, 250))


if __name__ == "__main__":
    unittest.main()
