"""
Router - Message to Intent

Decides which catalog intent a message expresses and gathers the parameters
its handler needs.

Key Components:
- intents: Immutable intent catalog
- IntentClassifier: Command match first, LLM classification second
- argument_parser: Deterministic field extraction from explicit commands
- entities: Folds pre-resolved @mentions into parameters
"""

from .intents import IntentDefinition, IntentKind, INTENT_CATALOG, get_available_intents, get_intent_by_name
from .classifier import IntentClassifier, RouteResult
from .argument_parser import ParsedArguments, parse
from .entities import EntityReference, EntityType, extract_params

__all__ = [
    "IntentDefinition",
    "IntentKind",
    "INTENT_CATALOG",
    "get_available_intents",
    "get_intent_by_name",
    "IntentClassifier",
    "RouteResult",
    "ParsedArguments",
    "parse",
    "EntityReference",
    "EntityType",
    "extract_params",
]
