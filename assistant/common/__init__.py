"""
CRM Assistant Common Module

Shared infrastructure for the router, action handlers and workflow builder.
"""

from .config import AssistantConfig, load_config, save_config
from .llm_client import LLMClient
from .llm_utils import parse_llm_json

__all__ = [
    "AssistantConfig",
    "load_config",
    "save_config",
    "LLMClient",
    "parse_llm_json",
]
