"""
Conversational personal-trainer assistant grounded in the user's history.
"""

import json

from fitforge.errors import ErrorKind, TextGenerationError
from fitforge.progression_context import build_progression_context
from fitforge.text_generation import empty_usage


MAX_MESSAGE_LENGTH = 2000
RECENT_LOG_LIMIT = 10


class TrainerChat:
    """Answers training questions using recent workout logs and the catalog."""

    def __init__(self, text_generator, catalog, logs, config=None):
        self.text_generator = text_generator
        self.catalog = catalog
        self.logs = logs
        generation = ((config or {}).get("generation", {}) or {})
        self.temperature = generation.get("chat_temperature", 0.8)
        self.max_tokens = generation.get("chat_max_tokens", 500)

    def _build_system_prompt(self, progression_context, exercise_names):
        return f"""You are a knowledgeable and supportive personal trainer.
You help users with:
- Exercise form and technique advice
- Workout programming questions
- Nutrition and recovery tips (general guidance only)
- Motivation and encouragement
- Analyzing their workout progression

User's Recent Activity:
{json.dumps(progression_context, indent=2)}

Available Exercises:
{", ".join(exercise_names)}

Guidelines:
- Be concise, helpful, and encouraging
- If asked about exercises, reference the available exercise database
- Provide evidence-based advice
- If you don't know something, say so rather than guessing
- Keep responses under 300 words unless specifically asked for more detail
- For medical or injury-related questions, always recommend consulting a healthcare professional"""

    def _failure(self, kind, message):
        print(f"AI chat error ({kind}): {message}")
        return {"success": False, "error_kind": kind, "error": message}

    def chat(self, user_id, message, conversation_history=None):
        """
        Answer one user message.

        Args:
            user_id: Whose workout history to consult
            message: The user's question (1-2000 characters)
            conversation_history: Earlier turns as [{"role", "content"}, ...]

        Returns:
            {"success": True, "response", "usage"} or
            {"success": False, "error_kind", "error"}
        """
        if not isinstance(message, str) or not message.strip():
            return self._failure(ErrorKind.INVALID_INPUT, "Message cannot be empty")
        if len(message) > MAX_MESSAGE_LENGTH:
            return self._failure(
                ErrorKind.INVALID_INPUT, f"Message must be less than {MAX_MESSAGE_LENGTH} characters"
            )

        recent_logs = self.logs.list_logs(user_id, limit=RECENT_LOG_LIMIT)
        exercise_names = [exercise["name"] for exercise in self.catalog.list_exercises()]
        system_prompt = self._build_system_prompt(build_progression_context(recent_logs), exercise_names)

        history = [
            {"role": turn["role"], "content": turn["content"]}
            for turn in (conversation_history or [])
            if turn.get("role") in ("user", "assistant")
        ]

        try:
            result = self.text_generator.complete(
                system_prompt,
                message,
                response_format="text",
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                messages=history,
            )
        except TextGenerationError as exc:
            return self._failure(ErrorKind.GENERATION_FAILED, str(exc))

        response = result.get("content")
        if not response:
            return self._failure(ErrorKind.GENERATION_FAILED, "No response from AI")

        return {
            "success": True,
            "response": response,
            "usage": result.get("usage") or empty_usage(),
        }
