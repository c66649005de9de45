"""Application settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """VitalFuse server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default; session data is biometric and there is no auth layer.
    vf_host: str = "127.0.0.1"
    vf_port: int = 8001
    vf_log_level: str = "info"
    vf_allow_insecure_bind: bool = False

    # Inference collaborator. A provider without an API key (or "mock")
    # means offline mode: the integration engine uses its deterministic fallback.
    llm_provider: Literal["anthropic", "openai", "mock"] = "anthropic"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"

    # Retry policy for the inference call
    inference_max_attempts: int = 3
    inference_backoff_base_ms: float = 1000.0
    inference_backoff_cap_ms: float = 5000.0
    inference_max_tokens: int = 4096
    inference_temperature: float = 0.3

    # Storage (session time series + audit trail)
    db_path: str = "~/.vitalfuse/sessions.db"
    encryption_key: str = ""

    # Analysis
    default_privacy_mode: Literal["strict", "standard", "explicit"] = "strict"
    analysis_downsample_length: int = 60
    engine_version: str = "1.0.0"


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
