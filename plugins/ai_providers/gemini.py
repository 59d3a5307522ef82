"""Gemini LLM provider -- calls the Google generateContent API via httpx.

No SDK dependency. The API key travels as a query parameter.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from core.protocols import LLMError

logger = logging.getLogger(__name__)

PLUGIN_META = {
    "name": "gemini",
    "display_name": "Google Gemini",
    "description": "Gemini models via the Google Generative Language API",
    "category": "ai_provider",
    "protocols": ["llm"],
    "class_name": "GeminiProvider",
    "pip_dependencies": [],
    "setup_instructions": """
1. Go to aistudio.google.com
2. Click "Get API key"
3. Create a key for a project
4. Paste it below
""",
    "config_fields": [
        {
            "key": "api_key",
            "label": "API Key",
            "type": "secret",
            "required": True,
            "env_var": "GEMINI_API_KEY",
            "description": "Your Gemini API key",
            "placeholder": "AIza...",
        },
        {
            "key": "model",
            "label": "Model",
            "type": "string",
            "required": False,
            "default": "gemini-2.0-flash",
            "description": "Model name to use",
            "placeholder": "gemini-2.0-flash",
        },
        {
            "key": "temperature",
            "label": "Temperature",
            "type": "number",
            "required": False,
            "default": 0.3,
            "description": "Sampling temperature (0.0 = deterministic, 1.0 = creative)",
            "placeholder": "0.3",
        },
    ],
}

_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"


class GeminiProvider:
    """LLM provider for the Gemini generateContent API.

    Implements the LLMProvider protocol.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        base_url: str = _BASE_URL,
        max_tokens: int = 500,
        temperature: float = 0.3,
        top_p: float = 0.8,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._top_p = top_p
        self._client = client or httpx.AsyncClient(
            timeout=60.0,
            headers={"Content-Type": "application/json"},
        )

    @property
    def name(self) -> str:
        return "gemini"

    @staticmethod
    def _to_contents(messages: list[dict]) -> tuple[str, list[dict[str, Any]]]:
        """Split out the system prompt and map chat roles onto Gemini's."""
        system_msg = ""
        contents: list[dict[str, Any]] = []
        for msg in messages:
            role = str(msg.get("role", "user"))
            text = str(msg.get("content", ""))
            if role == "system":
                system_msg = text
                continue
            contents.append({
                "role": "model" if role == "assistant" else "user",
                "parts": [{"text": text}],
            })
        return system_msg, contents

    async def complete(self, messages: list[dict], **kwargs: Any) -> str:
        """Send messages and return the first candidate's text."""
        system_msg, contents = self._to_contents(messages)
        body: dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "temperature": kwargs.get("temperature", self._temperature),
                "maxOutputTokens": kwargs.get("max_tokens", self._max_tokens),
                "topP": self._top_p,
            },
        }
        if system_msg:
            body["systemInstruction"] = {"parts": [{"text": system_msg}]}

        model = kwargs.get("model", self._model)
        url = f"{self._base_url}/{model}:generateContent"
        try:
            response = await self._client.post(url, params={"key": self._api_key}, json=body)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise LLMError(self.name, f"API returned {exc.response.status_code}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise LLMError(self.name, f"request failed: {exc}") from exc

        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMError(self.name, "response has no candidates") from exc

        text = "".join(str(part.get("text", "")) for part in parts if isinstance(part, dict))
        if not text.strip():
            raise LLMError(self.name, "empty response")
        return text.strip()

    async def close(self) -> None:
        await self._client.aclose()
