"""Anthropic Claude provider."""

from __future__ import annotations

import time

from vitalfuse.core.llm.provider import (
    TRANSIENT_STATUS_CODES,
    InferenceTransientError,
    ProviderResponse,
)


class AnthropicProvider:
    """Claude provider using the Anthropic SDK."""

    def __init__(self, api_key: str, model: str = "claude-sonnet-4-5-20250929") -> None:
        import anthropic

        # Retries are owned by call_with_retry; the SDK must not retry underneath it.
        self.client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)
        self.model = model

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 4096,
        temperature: float = 0.3,
    ) -> ProviderResponse:
        import anthropic

        start = time.monotonic()
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_message,
                messages=[{"role": "user", "content": user_message}],
            )
        except anthropic.APIStatusError as exc:
            if exc.status_code in TRANSIENT_STATUS_CODES:
                raise InferenceTransientError(
                    f"Anthropic unavailable ({exc.status_code}): {exc.message}",
                    status_code=exc.status_code,
                ) from exc
            raise
        except anthropic.APIConnectionError as exc:
            raise InferenceTransientError(f"Anthropic unreachable: {exc}") from exc
        elapsed_ms = (time.monotonic() - start) * 1000

        content = response.content[0].text if response.content else ""
        return ProviderResponse(
            content=content,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=self.model,
            latency_ms=elapsed_ms,
        )
