"""Tests for LLMClient provider abstraction."""

import logging

import pytest
from assistant.common.config import LLMConfig
from assistant.common.llm_client import DEFAULT_MODELS, LLMClient


class TestLLMClientInit:
    @pytest.mark.parametrize("provider", ["google", "anthropic", "openai"])
    def test_missing_key_logs_info(self, provider, caplog):
        with caplog.at_level(logging.INFO, logger="assistant.common.llm_client"):
            client = LLMClient(provider=provider)
        assert not client.is_available
        assert "API key not provided" in caplog.text

    def test_unsupported_provider_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="assistant.common.llm_client"):
            client = LLMClient(provider="unsupported_xyz")
        assert not client.is_available
        assert "Unsupported" in caplog.text

    def test_default_provider_is_gemini(self):
        client = LLMClient()
        assert client.provider == "google"
        assert client.model == DEFAULT_MODELS["google"] == "gemini-2.0-flash"

    def test_explicit_model_wins(self):
        client = LLMClient(provider="openai", model="gpt-4o")
        assert client.model == "gpt-4o"

    def test_from_config_picks_provider_model(self):
        cfg = LLMConfig(provider="anthropic", anthropic_model="claude-x", timeout=12.0)
        client = LLMClient.from_config(cfg)
        assert client.provider == "anthropic"
        assert client.model == "claude-x"
        assert client.timeout == 12.0
        assert not client.is_available


class TestLLMClientGenerate:
    def test_generate_raises_when_unavailable(self):
        client = LLMClient(provider="anthropic")
        with pytest.raises(RuntimeError, match="not available"):
            client.generate("test")
