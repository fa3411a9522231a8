"""
Text generation through the Claude API.
"""

import json
import re

import anthropic

from fitforge.errors import TextGenerationError


JSON_INSTRUCTION = "Return ONLY valid JSON, no markdown formatting, no code blocks."


def strip_code_fences(text):
    """Remove a surrounding ```json ... ``` fence if the model added one."""
    text = (text or "").strip()
    if text.startswith("```"):
        text = re.sub(r"^```\w*\n?", "", text)
        text = re.sub(r"\n?```$", "", text)
        text = text.strip()
    return text


def parse_json_content(content):
    """
    Parse model output as a JSON object.

    Raises TextGenerationError for empty content, unparsable text, or JSON
    that is not an object.
    """
    if not content or not content.strip():
        raise TextGenerationError("No response from AI")

    try:
        data = json.loads(strip_code_fences(content))
    except json.JSONDecodeError as exc:
        raise TextGenerationError("Invalid JSON response from AI") from exc

    if not isinstance(data, dict):
        raise TextGenerationError("Invalid JSON response from AI: expected an object")
    return data


def empty_usage():
    return {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}


class TextGenerator:
    """Thin wrapper around the Anthropic Messages API."""

    def __init__(self, api_key, config, model=None, timeout=None):
        """
        Initialize the text generator.

        Args:
            api_key: Anthropic API key
            config: Full configuration dictionary
            model: Claude model to use (defaults to config value)
            timeout: Per-request timeout in seconds (defaults to config value)
        """
        claude_config = config.get("claude", {}) or {}
        self.client = anthropic.Anthropic(
            api_key=api_key,
            timeout=timeout or claude_config.get("timeout", 30),
            max_retries=0,
        )
        self.model = model or claude_config["model"]

    def complete(self, system_prompt, user_prompt, response_format="json", temperature=0.7, max_tokens=2000, messages=None):
        """
        Run one completion.

        Args:
            system_prompt: System instruction
            user_prompt: Final user turn
            response_format: "json" to ask for a bare JSON object, "text" otherwise
            temperature: Sampling temperature
            max_tokens: Output token cap
            messages: Optional earlier conversation turns (role/content dicts)

        Returns:
            {"content": str or None, "usage": {prompt_tokens, completion_tokens, total_tokens}}
        """
        system = system_prompt
        if response_format == "json" and JSON_INSTRUCTION not in system:
            system = f"{system}\n\n{JSON_INSTRUCTION}"

        conversation = list(messages or [])
        conversation.append({"role": "user", "content": user_prompt})

        try:
            message = self.client.messages.create(
                model=self.model,
                system=system,
                messages=conversation,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except anthropic.APITimeoutError as exc:
            raise TextGenerationError("AI request timed out") from exc
        except anthropic.APIError as exc:
            raise TextGenerationError(f"AI request failed: {exc}") from exc

        text_blocks = [block.text for block in message.content if getattr(block, "type", "") == "text"]
        content = "".join(text_blocks) or None

        usage = empty_usage()
        if message.usage is not None:
            usage["prompt_tokens"] = message.usage.input_tokens
            usage["completion_tokens"] = message.usage.output_tokens
            usage["total_tokens"] = message.usage.input_tokens + message.usage.output_tokens

        return {"content": content, "usage": usage}
