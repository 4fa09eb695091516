"""
Configuration Management for the CRM Assistant

Loads configuration from ~/.crm-assistant/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field

logger = logging.getLogger("assistant.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".crm-assistant"
CONFIG_PATH = CONFIG_DIR / "config.json"


@dataclass
class LLMConfig:
    """Text classifier provider configuration"""
    provider: str = "google"
    google_api_key: str = ""
    google_model: str = "gemini-2.0-flash"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-haiku-4-5-20251001"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    timeout: float = 30.0


@dataclass
class RouterConfig:
    """Intent routing configuration"""
    command_prefix: str = "/"
    confidence_threshold: float = 0.5  # strictly greater than this is accepted
    default_confidence: float = 0.8  # used when the classifier omits a score


@dataclass
class QueryConfig:
    """Read/query handler paging"""
    show_limit: int = 10
    query_limit: int = 50


@dataclass
class BuilderConfig:
    """Workflow synthesizer configuration"""
    pipeline_hint_limit: int = 5
    node_spacing_x: int = 150
    max_tokens: int = 2048


@dataclass
class AssistantConfig:
    """Main assistant configuration"""
    llm: LLMConfig = field(default_factory=LLMConfig)
    router: RouterConfig = field(default_factory=RouterConfig)
    query: QueryConfig = field(default_factory=QueryConfig)
    builder: BuilderConfig = field(default_factory=BuilderConfig)
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict"""
    llm_data = data.get("llm", {})
    return LLMConfig(
        provider=llm_data.get("provider", "google"),
        google_api_key=llm_data.get("google_api_key", ""),
        google_model=llm_data.get("google_model", "gemini-2.0-flash"),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        anthropic_model=llm_data.get("anthropic_model", "claude-haiku-4-5-20251001"),
        openai_api_key=llm_data.get("openai_api_key", ""),
        openai_model=llm_data.get("openai_model", "gpt-4o-mini"),
        timeout=float(llm_data.get("timeout", 30.0)),
    )


def _parse_router_config(data: dict) -> RouterConfig:
    """Parse router section from config dict"""
    router_data = data.get("router", {})
    return RouterConfig(
        command_prefix=router_data.get("command_prefix", "/"),
        confidence_threshold=float(router_data.get("confidence_threshold", 0.5)),
        default_confidence=float(router_data.get("default_confidence", 0.8)),
    )


def _parse_query_config(data: dict) -> QueryConfig:
    """Parse query section from config dict"""
    query_data = data.get("query", {})
    return QueryConfig(
        show_limit=int(query_data.get("show_limit", 10)),
        query_limit=int(query_data.get("query_limit", 50)),
    )


def _parse_builder_config(data: dict) -> BuilderConfig:
    """Parse builder section from config dict"""
    builder_data = data.get("builder", {})
    return BuilderConfig(
        pipeline_hint_limit=int(builder_data.get("pipeline_hint_limit", 5)),
        node_spacing_x=int(builder_data.get("node_spacing_x", 150)),
        max_tokens=int(builder_data.get("max_tokens", 2048)),
    )


def load_config() -> AssistantConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.crm-assistant/config.json)
    3. Default values
    """
    config = AssistantConfig()

    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.llm = _parse_llm_config(data)
            config.router = _parse_router_config(data)
            config.query = _parse_query_config(data)
            config.builder = _parse_builder_config(data)
        except (json.JSONDecodeError, IOError, ValueError, TypeError) as e:
            logger.warning("Failed to load config file: %s", e)

    # LLM env var overrides (track env-sourced keys so they are never persisted)
    _env_llm_map = {
        "GOOGLE_API_KEY": "google_api_key",
        "GEMINI_API_KEY": "google_api_key",
        "GOOGLE_MODEL": "google_model",
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "ANTHROPIC_MODEL": "anthropic_model",
        "OPENAI_API_KEY": "openai_api_key",
        "OPENAI_MODEL": "openai_model",
        "ASSISTANT_LLM_PROVIDER": "provider",
    }
    for env_var, attr in _env_llm_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.llm, attr, val)
            config._env_sourced_keys.add(attr)

    if os.getenv("ASSISTANT_CONFIDENCE_THRESHOLD"):
        try:
            config.router.confidence_threshold = float(os.getenv("ASSISTANT_CONFIDENCE_THRESHOLD"))
        except ValueError:
            logger.warning("Ignoring non-numeric ASSISTANT_CONFIDENCE_THRESHOLD")
    if os.getenv("ASSISTANT_QUERY_LIMIT"):
        try:
            config.query.query_limit = int(os.getenv("ASSISTANT_QUERY_LIMIT"))
        except ValueError:
            logger.warning("Ignoring non-integer ASSISTANT_QUERY_LIMIT")

    return config


def save_config(config: AssistantConfig) -> None:
    """Save configuration to file.

    API key fields that were sourced from environment variables are written
    as empty strings so that secrets are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    llm_section = {
        "provider": config.llm.provider,
        "google_api_key": config.llm.google_api_key,
        "google_model": config.llm.google_model,
        "anthropic_api_key": config.llm.anthropic_api_key,
        "anthropic_model": config.llm.anthropic_model,
        "openai_api_key": config.llm.openai_api_key,
        "openai_model": config.llm.openai_model,
        "timeout": config.llm.timeout,
    }
    for key in ("google_api_key", "anthropic_api_key", "openai_api_key"):
        if key in env_sourced:
            llm_section[key] = ""

    data = {
        "llm": llm_section,
        "router": {
            "command_prefix": config.router.command_prefix,
            "confidence_threshold": config.router.confidence_threshold,
            "default_confidence": config.router.default_confidence,
        },
        "query": {
            "show_limit": config.query.show_limit,
            "query_limit": config.query.query_limit,
        },
        "builder": {
            "pipeline_hint_limit": config.builder.pipeline_hint_limit,
            "node_spacing_x": config.builder.node_spacing_x,
            "max_tokens": config.builder.max_tokens,
        },
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)
