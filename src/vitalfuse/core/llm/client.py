"""Inference client — the bridge between the integration engine and an LLM provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from vitalfuse.core.llm.provider import LLMProvider, ProviderResponse
from vitalfuse.core.llm.retry import RetryPolicy, SleepFn, call_with_retry, is_transient_error
from vitalfuse.core.llm.system_prompt import build_full_system_prompt

logger = logging.getLogger(__name__)


@dataclass
class CompletionResult:
    """Raw text returned by the provider plus call accounting."""

    content: str
    model: str
    attempts: int
    usage: dict[str, int] = field(default_factory=dict)
    latency_ms: float = 0.0


class InferenceClient:
    """Calls the inference provider with bounded retry on transient failures.

    Usage::

        client = InferenceClient(create_provider("anthropic", api_key="..."))
        completion = await client.complete(prompt)
        payload = extract_first_json_object(completion.content)
    """

    def __init__(
        self,
        provider: LLMProvider,
        *,
        provider_name: str = "",
        retry_policy: RetryPolicy | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.3,
        sleep: SleepFn | None = None,
    ) -> None:
        self.provider = provider
        self.provider_name = provider_name or type(provider).__name__
        self.retry_policy = retry_policy or RetryPolicy()
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._sleep = sleep

    async def complete(self, user_message: str, task_instructions: str = "") -> CompletionResult:
        """Send one prompt and return the provider's text.

        Raises:
            InferenceTransientError: still unavailable after the last attempt.
            Exception: any non-transient provider failure, unchanged.
        """
        system_message = build_full_system_prompt(task_instructions)
        attempts = 0

        async def _attempt() -> ProviderResponse:
            nonlocal attempts
            attempts += 1
            return await self.provider.generate(
                system_message=system_message,
                user_message=user_message,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )

        retry_kwargs = {"sleep": self._sleep} if self._sleep is not None else {}
        provider_response = await call_with_retry(
            _attempt,
            policy=self.retry_policy,
            is_retryable=is_transient_error,
            **retry_kwargs,
        )

        logger.info(
            "Inference call: provider=%s, model=%s, attempts=%d, tokens=%d+%d, latency=%.0fms",
            self.provider_name,
            provider_response.model,
            attempts,
            provider_response.input_tokens,
            provider_response.output_tokens,
            provider_response.latency_ms,
        )

        return CompletionResult(
            content=provider_response.content,
            model=provider_response.model,
            attempts=attempts,
            usage={
                "input_tokens": provider_response.input_tokens,
                "output_tokens": provider_response.output_tokens,
            },
            latency_ms=provider_response.latency_ms,
        )
