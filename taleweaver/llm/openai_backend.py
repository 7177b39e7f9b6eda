from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import openai

LOGGER = logging.getLogger(__name__)


class OpenAIStoryGenerator:
    """Chat Completions backend for story outlines and node prose.

    Outlines must come back as JSON, so callers can pass ``json_mode=True`` to
    request a JSON object response from the API.
    """

    def __init__(self, model_name: str, api_key: str, default_max_tokens: int = 2048) -> None:
        self.model_name = (model_name or "").strip()
        if not self.model_name:
            raise ValueError("An OpenAI model name is required.")
        self.default_max_tokens = int(default_max_tokens or 2048)
        self._client = openai.OpenAI(api_key=(api_key or "").strip())

    def generate_response(
        self,
        prompt: str,
        *,
        max_new_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        json_mode: bool = False,
        **_: Any,
    ) -> str:
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValueError("prompt must be a non-empty string.")
        max_tokens = int(max_new_tokens if max_new_tokens is not None else self.default_max_tokens)
        if max_tokens <= 0:
            raise ValueError("max_new_tokens must be positive.")

        kwargs: Dict[str, Any] = {
            "model": self.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "n": 1,
        }
        if temperature is not None:
            kwargs["temperature"] = float(temperature)
        if top_p is not None:
            kwargs["top_p"] = float(top_p)
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = self._client.chat.completions.create(**kwargs)
        text = _extract_text(response).strip()
        if text:
            return text

        snippet = _shorten(str(response))
        raise RuntimeError(f"Chat completion returned no text. Raw response (truncated): {snippet}")


def _extract_text(response: Any) -> str:
    choices = getattr(response, "choices", []) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    content = message.get("content") if isinstance(message, dict) else getattr(message, "content", None)
    if isinstance(content, list):
        parts: List[str] = [
            str(part.get("text") or "")
            for part in content
            if isinstance(part, dict) and part.get("type") == "text"
        ]
        return "\n".join(part for part in parts if part)
    return str(content or "")


def _shorten(text: str, limit: int = 600) -> str:
    text = text.replace("\n", " ")
    return (text[:limit] + "…") if len(text) > limit else text
