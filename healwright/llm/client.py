from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from healwright.config.schema import OracleConfig
from healwright.utils.http import post_json


class TextCompletionClient(ABC):
    """Provider-neutral text completion used by the repair oracle."""

    provider_name = "unknown"
    default_model = ""

    def __init__(self, config: OracleConfig) -> None:
        self.config = config
        self.api_key = config.api_key
        self.model = config.model or self.default_model

    @abstractmethod
    def complete(self, system_prompt: str, user_prompt: str) -> str:
        raise NotImplementedError


class OpenAICompatibleClient(TextCompletionClient):
    provider_name = "openai"
    default_model = "gpt-4o-mini"
    default_base_url = "https://api.openai.com/v1"

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        base_url = (self.config.base_url or self.default_base_url).rstrip("/")
        body = {
            "model": self.model,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        response = post_json(
            f"{base_url}/chat/completions",
            body,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            timeout=self.config.request_timeout_seconds,
        )
        choices = response.get("choices", [])
        if not choices:
            raise RuntimeError(f"{self.provider_name} returned no choices")
        return choices[0].get("message", {}).get("content") or ""


class OpenRouterClient(OpenAICompatibleClient):
    provider_name = "openrouter"
    default_model = "xiaomi/mimo-v2-flash:free"
    default_base_url = "https://openrouter.ai/api/v1"


class AnthropicClient(TextCompletionClient):
    provider_name = "anthropic"
    default_model = "claude-3-5-sonnet-latest"
    endpoint = "https://api.anthropic.com/v1/messages"

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        body = {
            "model": self.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "system": system_prompt,
            "messages": [
                {"role": "user", "content": user_prompt},
            ],
        }
        response = post_json(
            self.config.base_url or self.endpoint,
            body,
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": "2023-06-01",
                "Content-Type": "application/json",
            },
            timeout=self.config.request_timeout_seconds,
        )
        blocks = response.get("content", [])
        return "".join(block.get("text", "") for block in blocks if isinstance(block, dict))


class GeminiClient(TextCompletionClient):
    provider_name = "gemini"
    default_model = "gemini-2.5-flash"
    endpoint_template = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        body: dict[str, Any] = {
            "system_instruction": {
                "parts": [
                    {"text": system_prompt},
                ]
            },
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": user_prompt},
                    ],
                }
            ],
            "generationConfig": {
                "temperature": self.config.temperature,
                "maxOutputTokens": self.config.max_tokens,
            },
        }
        response = post_json(
            self.endpoint_template.format(model=self.model),
            body,
            headers={
                "x-goog-api-key": self.api_key,
                "x-goog-api-client": "healwright/0.1.0",
                "Content-Type": "application/json",
            },
            timeout=self.config.request_timeout_seconds,
        )
        candidates = response.get("candidates", [])
        if not candidates:
            raise RuntimeError("Gemini returned no candidates")
        parts = candidates[0].get("content", {}).get("parts", [])
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


PROVIDERS: dict[str, type[TextCompletionClient]] = {
    "openai": OpenAICompatibleClient,
    "openrouter": OpenRouterClient,
    "anthropic": AnthropicClient,
    "gemini": GeminiClient,
}


def create_completion_client(config: OracleConfig) -> TextCompletionClient:
    client_class = PROVIDERS.get(config.provider)
    if client_class is None:
        raise RuntimeError(f"Unsupported LLM provider: {config.provider}")
    if not config.api_key:
        raise RuntimeError(f"An API key is required when LLM_PROVIDER={config.provider}")
    return client_class(config)
