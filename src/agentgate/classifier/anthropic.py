"""
Anthropic classifier adapter.

Sends the input to the Anthropic messages API with the guard system prompt
and validates the first text block of the answer as a GuardResponse.
"""

import os
from dataclasses import dataclass
from typing import Any

import httpx

from agentgate.classifier.base import (
    DEFAULT_CLASSIFIER_TIMEOUT,
    GUARD_SYSTEM_PROMPT,
    Classifier,
)
from agentgate.classifier.structured import parse_structured_output
from agentgate.errors import ClassifierConfigError, ClassifierHTTPError
from agentgate.schema import GuardResponse

ANTHROPIC_API_KEY_ENV = "ANTHROPIC_API_KEY"
ANTHROPIC_VERSION = "2023-06-01"


@dataclass
class AnthropicConfig:
    """Configuration for the Anthropic adapter."""

    api_key: str | None = None
    model: str = "claude-3-5-haiku-latest"
    base_url: str = "https://api.anthropic.com/v1/messages"
    timeout_seconds: float = DEFAULT_CLASSIFIER_TIMEOUT
    max_tokens: int = 256
    system_prompt: str = GUARD_SYSTEM_PROMPT


class AnthropicClassifier(Classifier):
    """Classifier backed by the Anthropic messages API."""

    def __init__(
        self,
        config: AnthropicConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or AnthropicConfig()
        self.api_key = self.config.api_key or os.environ.get(ANTHROPIC_API_KEY_ENV, "")
        if not self.api_key:
            raise ClassifierConfigError(
                provider="anthropic",
                model=self.config.model,
                env_var=ANTHROPIC_API_KEY_ENV,
            )
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "AnthropicClassifier":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def classify(self, text: str) -> GuardResponse:
        """Classify `text` with a single messages call."""
        payload = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "system": self.config.system_prompt,
            "messages": [{"role": "user", "content": text}],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }

        response = await self._get_client().post(self.config.base_url, json=payload, headers=headers)
        if response.status_code >= 400:
            raise ClassifierHTTPError(
                provider="anthropic",
                model=self.config.model,
                status_code=response.status_code,
                body=response.text,
            )

        data = response.json()
        content = next(
            (block.get("text", "") for block in data.get("content", []) if block.get("type") == "text"),
            "",
        )
        return parse_structured_output(content, GuardResponse, provider="anthropic")

    def get_name(self) -> str:
        return f"AnthropicClassifier({self.config.model})"
