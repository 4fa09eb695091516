"""
Generated Workflow Schema

Shape of an automation graph emitted by the workflow synthesizer, before it is
persisted. Node ids are caller-local ("node_1", "node_2", ...); storage ids are
assigned on persistence and connections are remapped by (name, type).
"""

from typing import Any, Dict, List, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator


def _id_to_str(value: Any) -> Any:
    # LLMs often emit numeric ids; bools stay invalid
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class NodePosition(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float = 0
    y: float = 0


class GeneratedNode(BaseModel):
    """A node in a generated graph"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Caller-local id")
    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1, description="Node kind from the closed catalog")
    position: NodePosition = Field(default_factory=NodePosition)
    data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return _id_to_str(value)

    @property
    def identity(self) -> Tuple[str, str]:
        """(name, type) pair used to find this node again after persistence"""
        return (self.name, self.type)


class GeneratedConnection(BaseModel):
    """Directed edge between two caller-local node ids"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source_id: str = Field(..., alias="sourceId")
    target_id: str = Field(..., alias="targetId")

    @field_validator("source_id", "target_id", mode="before")
    @classmethod
    def coerce_ids(cls, value: Any) -> Any:
        return _id_to_str(value)


class GeneratedWorkflow(BaseModel):
    """A validated, not-yet-persisted automation graph"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    description: str = ""
    nodes: List[GeneratedNode]
    connections: List[GeneratedConnection]
    is_bundle: bool = False

    def to_prompt_dict(self) -> dict:
        """Serialize with the camelCase keys the LLM and callers expect"""
        return self.model_dump(mode="json", by_alias=True, exclude={"is_bundle"})
