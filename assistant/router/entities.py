"""
Entity Extractor

Folds pre-resolved record mentions (the "@Acme Corp" chips a user inserts
into a message) into named parameters for the action handlers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

# Reserved parameter key holding the user's message verbatim
RAW_MESSAGE_KEY = "rawMessage"


class EntityType(str, Enum):
    CONTACT = "contact"
    DEAL = "deal"
    PIPELINE = "pipeline"
    WORKFLOW = "workflow"


@dataclass(frozen=True)
class EntityReference:
    """A CRM record mentioned in the message, already resolved by the caller"""
    type: str
    id: str
    name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EntityReference":
        return cls(
            type=str(data.get("type", "")).lower(),
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
        )


# entity type -> (ids key, names key)
_PARAM_KEYS = {
    EntityType.CONTACT.value: ("contactIds", "contactNames"),
    EntityType.DEAL.value: ("dealIds", "dealNames"),
    EntityType.PIPELINE.value: ("pipelineIds", "pipelineNames"),
    EntityType.WORKFLOW.value: ("workflowIds", "workflowNames"),
}


def extract_params(message: str, entities: Optional[Iterable[EntityReference]] = None) -> Dict[str, Any]:
    """
    Group mentioned entities by type into id/name lists.

    Args:
        message: The raw user message, kept verbatim under ``rawMessage``
        entities: Pre-resolved mentions; unknown types are ignored

    Returns:
        Dict such as ``{"contactIds": [...], "contactNames": [...], "rawMessage": "..."}``.
        Keys for types with no mentions are omitted.
    """
    params: Dict[str, Any] = {}
    grouped: Dict[str, List[EntityReference]] = {}

    for entity in entities or ():
        if isinstance(entity, dict):
            entity = EntityReference.from_dict(entity)
        entity_type = (entity.type or "").lower()
        if entity_type in _PARAM_KEYS:
            grouped.setdefault(entity_type, []).append(entity)

    for entity_type, (ids_key, names_key) in _PARAM_KEYS.items():
        mentions = grouped.get(entity_type)
        if mentions:
            params[ids_key] = [e.id for e in mentions]
            params[names_key] = [e.name for e in mentions]

    params[RAW_MESSAGE_KEY] = message
    return params
