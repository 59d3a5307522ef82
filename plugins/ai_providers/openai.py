"""OpenAI LLM provider -- calls the OpenAI-compatible chat API via httpx.

No SDK dependency. Works with any OpenAI-compatible API (OpenAI, Azure,
OpenRouter, local servers) through `base_url`.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from core.protocols import LLMError

logger = logging.getLogger(__name__)

PLUGIN_META = {
    "name": "openai",
    "display_name": "OpenAI (GPT)",
    "description": "GPT models via the OpenAI API (also works with compatible APIs)",
    "category": "ai_provider",
    "protocols": ["llm"],
    "class_name": "OpenAIProvider",
    "pip_dependencies": [],
    "setup_instructions": """
1. Go to platform.openai.com
2. Navigate to API Keys
3. Create a new secret key
4. Paste it below
""",
    "config_fields": [
        {
            "key": "api_key",
            "label": "API Key",
            "type": "secret",
            "required": True,
            "env_var": "OPENAI_API_KEY",
            "description": "Your OpenAI API key",
            "placeholder": "sk-...",
        },
        {
            "key": "model",
            "label": "Model",
            "type": "string",
            "required": False,
            "default": "gpt-4o-mini",
            "description": "Model name to use",
            "placeholder": "gpt-4o-mini",
        },
        {
            "key": "base_url",
            "label": "Endpoint",
            "type": "string",
            "required": False,
            "default": "https://api.openai.com/v1/chat/completions",
            "description": "Chat completions URL of a compatible API",
        },
    ],
}

_DEFAULT_URL = "https://api.openai.com/v1/chat/completions"


class OpenAIProvider:
    """LLM provider for OpenAI-compatible APIs.

    Implements the LLMProvider protocol.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = _DEFAULT_URL,
        max_tokens: int = 500,
        temperature: float = 0.3,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._url = base_url or _DEFAULT_URL
        self._client = client or httpx.AsyncClient(
            timeout=60.0,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    @property
    def name(self) -> str:
        return "openai"

    async def complete(self, messages: list[dict], **kwargs: Any) -> str:
        """Send messages and return the text response."""
        body = {
            "model": kwargs.get("model", self._model),
            "messages": messages,
            "max_tokens": kwargs.get("max_tokens", self._max_tokens),
            "temperature": kwargs.get("temperature", self._temperature),
        }

        try:
            response = await self._client.post(self._url, json=body)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise LLMError(self.name, f"API returned {exc.response.status_code}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise LLMError(self.name, f"request failed: {exc}") from exc

        try:
            text = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMError(self.name, "response has no choices") from exc

        if not text.strip():
            raise LLMError(self.name, "empty response")
        return text.strip()

    async def close(self) -> None:
        await self._client.aclose()
