"""
CRM Assistant Schemas

Record shapes exchanged with the record store, and the generated workflow graph.
"""

from .records import (
    Contact,
    ContactType,
    Deal,
    LifecycleStage,
    Pipeline,
    PipelineStage,
    TeamMember,
    Workflow,
    WorkflowConnection,
    WorkflowNode,
    DEFAULT_PIPELINE_STAGES,
    new_id,
)
from .generated_workflow import (
    GeneratedWorkflow,
    GeneratedNode,
    GeneratedConnection,
    NodePosition,
)

__all__ = [
    "Contact",
    "ContactType",
    "Deal",
    "LifecycleStage",
    "Pipeline",
    "PipelineStage",
    "TeamMember",
    "Workflow",
    "WorkflowConnection",
    "WorkflowNode",
    "DEFAULT_PIPELINE_STAGES",
    "new_id",
    "GeneratedWorkflow",
    "GeneratedNode",
    "GeneratedConnection",
    "NodePosition",
]
