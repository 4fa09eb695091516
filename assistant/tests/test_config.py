"""Tests for configuration loading and saving."""

import json
import logging
import os
import stat

import pytest
from unittest.mock import patch


ENV_KEYS = [
    "GOOGLE_API_KEY", "GEMINI_API_KEY", "GOOGLE_MODEL",
    "ANTHROPIC_API_KEY", "ANTHROPIC_MODEL",
    "OPENAI_API_KEY", "OPENAI_MODEL",
    "ASSISTANT_LLM_PROVIDER", "ASSISTANT_CONFIDENCE_THRESHOLD", "ASSISTANT_QUERY_LIMIT",
]


@pytest.fixture
def clean_env():
    """Environment without any assistant-related variables"""
    env = {k: v for k, v in os.environ.items() if k not in ENV_KEYS}
    with patch.dict(os.environ, env, clear=True):
        yield


class TestDefaults:
    def test_section_defaults(self):
        from assistant.common.config import AssistantConfig
        cfg = AssistantConfig()
        assert cfg.llm.provider == "google"
        assert cfg.llm.google_model == "gemini-2.0-flash"
        assert cfg.router.confidence_threshold == 0.5
        assert cfg.router.default_confidence == 0.8
        assert cfg.router.command_prefix == "/"
        assert cfg.query.show_limit == 10
        assert cfg.query.query_limit == 50
        assert cfg.builder.pipeline_hint_limit == 5

    def test_missing_file_gives_defaults(self, tmp_path, clean_env):
        from assistant.common.config import load_config
        with patch("assistant.common.config.CONFIG_PATH", tmp_path / "missing.json"):
            cfg = load_config()
        assert cfg.llm.provider == "google"
        assert cfg.query.query_limit == 50


class TestLoadConfig:
    def test_reads_sections(self, tmp_path, clean_env):
        from assistant.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({
            "llm": {"provider": "openai", "openai_api_key": "sk-file"},
            "router": {"confidence_threshold": 0.7},
            "query": {"show_limit": 5},
        }))

        with patch("assistant.common.config.CONFIG_PATH", config_file):
            cfg = load_config()

        assert cfg.llm.provider == "openai"
        assert cfg.llm.openai_api_key == "sk-file"
        assert cfg.router.confidence_threshold == 0.7
        assert cfg.query.show_limit == 5
        assert cfg.query.query_limit == 50

    def test_malformed_file_logs_warning(self, tmp_path, clean_env, caplog):
        from assistant.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text("{not json")

        with patch("assistant.common.config.CONFIG_PATH", config_file), \
             caplog.at_level(logging.WARNING, logger="assistant.common.config"):
            cfg = load_config()

        assert cfg.llm.provider == "google"
        assert "Failed to load config file" in caplog.text

    def test_env_overrides_file(self, tmp_path, clean_env):
        from assistant.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"llm": {"provider": "openai"}}))

        env = {
            "ASSISTANT_LLM_PROVIDER": "anthropic",
            "ANTHROPIC_API_KEY": "sk-ant-env",
            "ASSISTANT_CONFIDENCE_THRESHOLD": "0.65",
            "ASSISTANT_QUERY_LIMIT": "20",
        }
        with patch("assistant.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, env):
            cfg = load_config()

        assert cfg.llm.provider == "anthropic"
        assert cfg.llm.anthropic_api_key == "sk-ant-env"
        assert cfg.router.confidence_threshold == 0.65
        assert cfg.query.query_limit == 20

    def test_gemini_key_alias(self, tmp_path, clean_env):
        from assistant.common.config import load_config
        with patch("assistant.common.config.CONFIG_PATH", tmp_path / "none.json"), \
             patch.dict(os.environ, {"GEMINI_API_KEY": "g-key"}):
            cfg = load_config()
        assert cfg.llm.google_api_key == "g-key"

    def test_invalid_numeric_env_is_ignored(self, tmp_path, clean_env, caplog):
        from assistant.common.config import load_config
        env = {"ASSISTANT_CONFIDENCE_THRESHOLD": "high", "ASSISTANT_QUERY_LIMIT": "lots"}
        with patch("assistant.common.config.CONFIG_PATH", tmp_path / "none.json"), \
             patch.dict(os.environ, env), \
             caplog.at_level(logging.WARNING, logger="assistant.common.config"):
            cfg = load_config()

        assert cfg.router.confidence_threshold == 0.5
        assert cfg.query.query_limit == 50
        assert "ASSISTANT_CONFIDENCE_THRESHOLD" in caplog.text
        assert "ASSISTANT_QUERY_LIMIT" in caplog.text


class TestSaveConfig:
    def test_save_blanks_env_sourced_keys(self, tmp_path, clean_env):
        from assistant.common.config import load_config, save_config
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"llm": {"openai_api_key": "sk-file"}}))

        with patch("assistant.common.config.CONFIG_PATH", config_file), \
             patch("assistant.common.config.CONFIG_DIR", tmp_path), \
             patch.dict(os.environ, {"GOOGLE_API_KEY": "g-secret"}):
            cfg = load_config()
            save_config(cfg)

        saved = json.loads(config_file.read_text())
        assert saved["llm"]["google_api_key"] == ""
        assert saved["llm"]["openai_api_key"] == "sk-file"

    def test_save_sets_owner_only_permissions(self, tmp_path, clean_env):
        from assistant.common.config import AssistantConfig, save_config
        config_file = tmp_path / "config.json"

        with patch("assistant.common.config.CONFIG_PATH", config_file), \
             patch("assistant.common.config.CONFIG_DIR", tmp_path):
            save_config(AssistantConfig())

        mode = stat.S_IMODE(config_file.stat().st_mode)
        assert mode == 0o600

    def test_round_trip_preserves_sections(self, tmp_path, clean_env):
        from assistant.common.config import AssistantConfig, load_config, save_config
        config_file = tmp_path / "config.json"
        cfg = AssistantConfig()
        cfg.router.confidence_threshold = 0.6
        cfg.builder.max_tokens = 1024

        with patch("assistant.common.config.CONFIG_PATH", config_file), \
             patch("assistant.common.config.CONFIG_DIR", tmp_path):
            save_config(cfg)
            loaded = load_config()

        assert loaded.router.confidence_threshold == 0.6
        assert loaded.builder.max_tokens == 1024
