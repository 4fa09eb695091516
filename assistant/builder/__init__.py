"""
Builder - Description to Workflow Graph

Generates trigger/execution node graphs from free-text automation requests
and validates them against the closed node catalog.
"""

from .nodes import (
    EXECUTION_NODES,
    TRIGGER_NODES,
    NodeDefinition,
    NodeKind,
    get_node_definition,
    is_trigger,
)
from .synthesizer import WorkflowSynthesizer, remap_connections

__all__ = [
    "EXECUTION_NODES",
    "TRIGGER_NODES",
    "NodeDefinition",
    "NodeKind",
    "get_node_definition",
    "is_trigger",
    "WorkflowSynthesizer",
    "remap_connections",
]
