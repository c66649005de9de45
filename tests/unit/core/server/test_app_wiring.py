"""Tests for settings-driven server wiring."""

from __future__ import annotations

import pytest

from vitalfuse.core.config.settings import Settings
from vitalfuse.core.llm.client import InferenceClient
from vitalfuse.core.server import main
from vitalfuse.core.server.app import build_inference_client


class TestBuildInferenceClient:
    def test_mock_provider_is_offline(self):
        assert build_inference_client(Settings(llm_provider="mock")) is None

    def test_missing_key_is_offline(self):
        assert build_inference_client(Settings(llm_provider="anthropic", anthropic_api_key="")) is None

    def test_configured_provider(self):
        client = build_inference_client(Settings(
            llm_provider="openai",
            openai_api_key="sk-test",
            inference_max_attempts=5,
            inference_backoff_base_ms=250,
        ))
        assert isinstance(client, InferenceClient)
        assert client.provider_name == "openai"
        assert client.retry_policy.max_attempts == 5
        assert client.retry_policy.delay_seconds(1) == 0.25


class TestSettings:
    def test_defaults_from_env(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_PRIVACY_MODE", "standard")
        monkeypatch.setenv("ANALYSIS_DOWNSAMPLE_LENGTH", "30")
        settings = Settings()
        assert settings.llm_provider == "mock"
        assert settings.default_privacy_mode == "standard"
        assert settings.analysis_downsample_length == 30
        assert settings.vf_host == "127.0.0.1"


class TestLoopbackGuard:
    @pytest.mark.parametrize("host", ["127.0.0.1", "::1", "localhost"])
    def test_loopback_hosts(self, host):
        assert main._is_loopback_host(host)

    @pytest.mark.parametrize("host", ["0.0.0.0", "192.168.1.20", "example.com"])
    def test_non_loopback_hosts(self, host):
        assert not main._is_loopback_host(host)

    def test_refuses_public_bind(self, monkeypatch):
        monkeypatch.setenv("VF_HOST", "0.0.0.0")
        with pytest.raises(RuntimeError, match="VF_ALLOW_INSECURE_BIND"):
            main.run()
