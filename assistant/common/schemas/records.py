"""
CRM Record Schemas

Minimal shapes of the records the assistant reads and writes through the
record store. The authoritative schema lives with the record store itself;
these models carry only the fields the action handlers touch.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from enum import Enum


def new_id() -> str:
    """Generate a storage id"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Enums
# ============================================================================

class ContactType(str, Enum):
    """Contact categories"""
    LEAD = "LEAD"
    CUSTOMER = "CUSTOMER"
    PARTNER = "PARTNER"
    VENDOR = "VENDOR"
    OTHER = "OTHER"


class LifecycleStage(str, Enum):
    """Marketing lifecycle stage of a contact"""
    SUBSCRIBER = "SUBSCRIBER"
    LEAD = "LEAD"
    MQL = "MQL"
    SQL = "SQL"
    OPPORTUNITY = "OPPORTUNITY"
    CUSTOMER = "CUSTOMER"
    EVANGELIST = "EVANGELIST"
    OTHER = "OTHER"


# Stages every new pipeline starts with, in order
DEFAULT_PIPELINE_STAGES = ["Lead In", "Qualified", "Proposal", "Negotiation", "Won"]


# ============================================================================
# Records
# ============================================================================

class TeamMember(BaseModel):
    """A user's membership in a subaccount"""
    id: str = Field(default_factory=new_id)
    subaccount_id: str
    user_id: str = ""
    name: str


class Contact(BaseModel):
    id: str = Field(default_factory=new_id)
    organization_id: str
    subaccount_id: Optional[str] = None
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company_name: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    type: ContactType = ContactType.LEAD
    lifecycle_stage: Optional[LifecycleStage] = None
    assignee_ids: List[str] = Field(default_factory=list, description="TeamMember ids")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class PipelineStage(BaseModel):
    id: str = Field(default_factory=new_id)
    pipeline_id: str = ""
    name: str
    position: int = 0


class Pipeline(BaseModel):
    id: str = Field(default_factory=new_id)
    organization_id: str
    subaccount_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    is_default: bool = False
    stages: List[PipelineStage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def first_stage(self) -> Optional[PipelineStage]:
        ordered = sorted(self.stages, key=lambda s: s.position)
        return ordered[0] if ordered else None


class Deal(BaseModel):
    id: str = Field(default_factory=new_id)
    organization_id: str
    subaccount_id: Optional[str] = None
    name: str
    value: Optional[float] = None
    currency: str = "USD"
    deadline: Optional[datetime] = None
    pipeline_id: Optional[str] = None
    pipeline_stage_id: Optional[str] = None
    contact_ids: List[str] = Field(default_factory=list)
    member_ids: List[str] = Field(default_factory=list, description="TeamMember ids")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class WorkflowNode(BaseModel):
    id: str = Field(default_factory=new_id)
    workflow_id: str = ""
    name: str
    type: str
    position: Dict[str, float] = Field(default_factory=lambda: {"x": 0, "y": 0})
    data: Dict[str, Any] = Field(default_factory=dict)


class WorkflowConnection(BaseModel):
    id: str = Field(default_factory=new_id)
    workflow_id: str
    from_node_id: str
    to_node_id: str


class Workflow(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    organization_id: Optional[str] = None
    subaccount_id: Optional[str] = None
    name: str
    description: str = ""
    is_bundle: bool = False
    archived: bool = False
    nodes: List[WorkflowNode] = Field(default_factory=list)
    connections: List[WorkflowConnection] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
