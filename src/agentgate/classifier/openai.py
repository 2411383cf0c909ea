"""
OpenAI classifier adapter.

Sends the input to an OpenAI-compatible chat completions endpoint in JSON
mode and validates the answer as a GuardResponse. Works with any proxy
that speaks the same wire format (Azure OpenAI, vLLM, LiteLLM) via
base_url.

Usage:
    from agentgate.classifier import OpenAIClassifier
    from agentgate.guard import GuardOptions, guard

    classifier = OpenAIClassifier(OpenAIConfig(api_key="sk-..."))
    result = await guard(text, policy, GuardOptions(deep_scan=True, classifier=classifier))
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

OPENAI_API_KEY_ENV = "OPENAI_API_KEY"


@dataclass
class OpenAIConfig:
    """Configuration for the OpenAI adapter."""

    api_key: str | None = None
    model: str = "gpt-4o-mini"
    base_url: str = "https://api.openai.com/v1/chat/completions"
    timeout_seconds: float = DEFAULT_CLASSIFIER_TIMEOUT
    system_prompt: str = GUARD_SYSTEM_PROMPT


class OpenAIClassifier(Classifier):
    """
    Classifier backed by OpenAI chat completions.

    The API key comes from the config or the OPENAI_API_KEY environment
    variable; a missing key is a configuration error raised at
    construction time, not at classification time.
    """

    def __init__(
        self,
        config: OpenAIConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or OpenAIConfig()
        self.api_key = self.config.api_key or os.environ.get(OPENAI_API_KEY_ENV, "")
        if not self.api_key:
            raise ClassifierConfigError(
                provider="openai",
                model=self.config.model,
                env_var=OPENAI_API_KEY_ENV,
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

    async def __aenter__(self) -> "OpenAIClassifier":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def classify(self, text: str) -> GuardResponse:
        """Classify `text` with a single chat completion."""
        payload = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": self.config.system_prompt},
                {"role": "user", "content": text},
            ],
            "temperature": 0,
            "response_format": {"type": "json_object"},
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        response = await self._get_client().post(self.config.base_url, json=payload, headers=headers)
        if response.status_code >= 400:
            raise ClassifierHTTPError(
                provider="openai",
                model=self.config.model,
                status_code=response.status_code,
                body=response.text,
            )

        data = response.json()
        choices = data.get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content") or ""
        return parse_structured_output(content, GuardResponse, provider="openai")

    def get_name(self) -> str:
        return f"OpenAIClassifier({self.config.model})"
