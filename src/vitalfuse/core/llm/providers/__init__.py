"""Inference providers: Anthropic, OpenAI, and a canned mock for tests."""

from vitalfuse.core.llm.providers.anthropic import AnthropicProvider
from vitalfuse.core.llm.providers.mock import MockProvider
from vitalfuse.core.llm.providers.openai import OpenAIProvider

__all__ = ["AnthropicProvider", "MockProvider", "OpenAIProvider"]
