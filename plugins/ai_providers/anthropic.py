"""Anthropic LLM provider -- calls the Claude API via httpx.

No SDK dependency. Direct HTTP calls to the Anthropic messages API.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from core.protocols import LLMError

logger = logging.getLogger(__name__)

PLUGIN_META = {
    "name": "anthropic",
    "display_name": "Anthropic (Claude)",
    "description": "Claude models via the Anthropic API",
    "category": "ai_provider",
    "protocols": ["llm"],
    "class_name": "AnthropicProvider",
    "pip_dependencies": [],
    "setup_instructions": """
1. Go to console.anthropic.com
2. Navigate to API Keys
3. Create a new key
4. Paste it below
""",
    "config_fields": [
        {
            "key": "api_key",
            "label": "API Key",
            "type": "secret",
            "required": True,
            "env_var": "ANTHROPIC_API_KEY",
            "description": "Your Anthropic API key",
            "placeholder": "sk-ant-...",
        },
        {
            "key": "model",
            "label": "Model",
            "type": "string",
            "required": False,
            "default": "claude-3-5-haiku-latest",
            "description": "Model name to use",
            "placeholder": "claude-3-5-haiku-latest",
        },
    ],
}

_DEFAULT_URL = "https://api.anthropic.com/v1/messages"


class AnthropicProvider:
    """LLM provider for the Anthropic Claude API.

    Implements the LLMProvider protocol.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-haiku-latest",
        max_tokens: int = 500,
        temperature: float = 0.3,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._url = _DEFAULT_URL
        self._client = client or httpx.AsyncClient(
            timeout=60.0,
            headers={
                "x-api-key": api_key,
                "anthropic-version": "2023-06-01",
                "Content-Type": "application/json",
            },
        )

    @property
    def name(self) -> str:
        return "anthropic"

    @staticmethod
    def _split_messages(messages: list[dict]) -> tuple[str, list[dict[str, Any]]]:
        """Split out the system message; Anthropic takes it as a top-level field."""
        system_msg = ""
        chat: list[dict[str, Any]] = []
        for msg in messages:
            role = str(msg.get("role", "user"))
            content = str(msg.get("content", ""))
            if role == "system":
                system_msg = content
            else:
                chat.append({"role": role, "content": content})
        return system_msg, chat

    async def complete(self, messages: list[dict], **kwargs: Any) -> str:
        """Send messages and return the text response."""
        system_msg, chat = self._split_messages(messages)

        body: dict[str, Any] = {
            "model": kwargs.get("model", self._model),
            "max_tokens": kwargs.get("max_tokens", self._max_tokens),
            "temperature": kwargs.get("temperature", self._temperature),
            "messages": chat,
        }
        if system_msg:
            body["system"] = system_msg

        try:
            response = await self._client.post(self._url, json=body)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise LLMError(self.name, f"API returned {exc.response.status_code}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise LLMError(self.name, f"request failed: {exc}") from exc

        # Extract text from content blocks
        content = data.get("content") if isinstance(data, dict) else None
        text_parts = [
            block.get("text", "")
            for block in content or []
            if isinstance(block, dict) and block.get("type") == "text"
        ]
        text = "\n".join(text_parts).strip()
        if not text:
            raise LLMError(self.name, "empty response")
        return text

    async def close(self) -> None:
        await self._client.aclose()
