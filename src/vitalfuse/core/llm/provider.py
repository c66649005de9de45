"""LLM provider protocol and the inference error taxonomy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass
class ProviderResponse:
    """Response from an LLM provider."""

    content: str
    input_tokens: int
    output_tokens: int
    model: str
    latency_ms: float


@runtime_checkable
class LLMProvider(Protocol):
    """Abstract interface for the external inference collaborator."""

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 4096,
        temperature: float = 0.3,
    ) -> ProviderResponse: ...


# ------------------------------------------------------------------
# Exceptions
# ------------------------------------------------------------------

class InferenceError(Exception):
    """Base exception for inference collaborator failures."""

    transient = False


class InferenceTransientError(InferenceError):
    """The collaborator is temporarily unavailable (HTTP 503 and friends).

    Safe to retry: the request is a pure prompt/response exchange.
    """

    transient = True

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InferenceResponseError(InferenceError):
    """The collaborator answered, but the answer is unusable."""


# HTTP statuses the providers treat as "try again later".
TRANSIENT_STATUS_CODES = frozenset({503, 529})


def create_provider(
    provider_name: str,
    api_key: str = "",
    model: str = "",
) -> LLMProvider:
    """Factory function to create an LLM provider by name.

    Args:
        provider_name: "anthropic", "openai", or "mock"
        api_key: API key for the provider.
        model: Model identifier override.

    Returns:
        An LLMProvider instance.
    """
    if provider_name == "anthropic":
        from vitalfuse.core.llm.providers.anthropic import AnthropicProvider

        return AnthropicProvider(api_key=api_key, model=model or "claude-sonnet-4-5-20250929")
    elif provider_name == "openai":
        from vitalfuse.core.llm.providers.openai import OpenAIProvider

        return OpenAIProvider(api_key=api_key, model=model or "gpt-4o")
    elif provider_name == "mock":
        from vitalfuse.core.llm.providers.mock import MockProvider

        return MockProvider()
    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")
