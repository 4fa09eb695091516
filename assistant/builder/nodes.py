"""
Workflow Node Catalog

Closed vocabulary of node types the workflow engine can execute. Every
generated graph may only use types listed here. Trigger nodes start a
workflow; execution nodes do the work.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class NodeKind(str, Enum):
    TRIGGER = "trigger"
    EXECUTION = "execution"


@dataclass(frozen=True)
class NodeDefinition:
    type: str
    name: str
    description: str
    kind: NodeKind


def _trigger(type_: str, name: str, description: str) -> NodeDefinition:
    return NodeDefinition(type_, name, description, NodeKind.TRIGGER)


def _execution(type_: str, name: str, description: str) -> NodeDefinition:
    return NodeDefinition(type_, name, description, NodeKind.EXECUTION)


TRIGGER_NODES: Tuple[NodeDefinition, ...] = (
    _trigger("MANUAL_TRIGGER", "Manual Trigger", "Manually start the workflow"),
    _trigger("GOOGLE_FORM_TRIGGER", "Google Form Trigger", "Triggered when a Google Form is submitted"),
    _trigger("GOOGLE_CALENDAR_TRIGGER", "Google Calendar Trigger",
             "Triggered by calendar events (created, updated, deleted)"),
    _trigger("GMAIL_TRIGGER", "Gmail Trigger", "Triggered when receiving emails matching criteria"),
    _trigger("TELEGRAM_TRIGGER", "Telegram Trigger", "Triggered by Telegram bot messages"),
    _trigger("STRIPE_TRIGGER", "Stripe Trigger", "Triggered by Stripe payment events"),
    _trigger("CONTACT_CREATED_TRIGGER", "Contact Created Trigger", "Triggered when a new contact is created"),
    _trigger("CONTACT_UPDATED_TRIGGER", "Contact Updated Trigger", "Triggered when a contact is updated"),
    _trigger("CONTACT_DELETED_TRIGGER", "Contact Deleted Trigger", "Triggered when a contact is deleted"),
    _trigger("CONTACT_FIELD_CHANGED_TRIGGER", "Contact Field Changed Trigger",
             "Triggered when a specific contact field changes"),
    _trigger("CONTACT_TYPE_CHANGED_TRIGGER", "Contact Type Changed Trigger",
             "Triggered when contact type changes (Lead, Customer, etc.)"),
    _trigger("CONTACT_LIFECYCLE_STAGE_CHANGED_TRIGGER", "Contact Lifecycle Stage Changed Trigger",
             "Triggered when contact lifecycle stage changes"),
)

EXECUTION_NODES: Tuple[NodeDefinition, ...] = (
    _execution("HTTP_REQUEST", "HTTP Request", "Make HTTP API calls to external services"),
    _execution("GEMINI", "Gemini AI", "Process data with Google Gemini AI"),
    _execution("GMAIL_EXECUTION", "Send Gmail", "Send emails via Gmail"),
    _execution("GOOGLE_CALENDAR_EXECUTION", "Google Calendar", "Create/update calendar events"),
    _execution("TELEGRAM_EXECUTION", "Send Telegram", "Send Telegram messages"),
    _execution("DISCORD", "Discord", "Send Discord messages/webhooks"),
    _execution("SLACK", "Slack", "Send Slack messages"),
    _execution("WAIT", "Wait/Delay", "Wait for a specified duration before continuing"),
    _execution("CREATE_CONTACT", "Create Contact", "Create a new contact in CRM"),
    _execution("UPDATE_CONTACT", "Update Contact", "Update an existing contact"),
    _execution("DELETE_CONTACT", "Delete Contact", "Delete a contact"),
    _execution("CREATE_DEAL", "Create Deal", "Create a new deal in pipeline"),
    _execution("UPDATE_DEAL", "Update Deal", "Update an existing deal"),
    _execution("DELETE_DEAL", "Delete Deal", "Delete a deal"),
    _execution("UPDATE_PIPELINE", "Update Pipeline", "Move deal to different pipeline stage"),
    _execution("IF_ELSE", "If/Else Condition", "Branch workflow based on conditions"),
    _execution("SWITCH", "Switch", "Multiple branch conditions"),
    _execution("LOOP", "Loop", "Iterate over a list of items"),
    _execution("SET_VARIABLE", "Set Variable", "Store data in workflow variables"),
    _execution("STOP_WORKFLOW", "Stop Workflow", "End workflow execution"),
    _execution("BUNDLE_WORKFLOW", "Run Bundle Workflow", "Execute another workflow as a sub-workflow"),
)

_BY_TYPE: Mapping[str, NodeDefinition] = MappingProxyType(
    {d.type: d for d in TRIGGER_NODES + EXECUTION_NODES}
)


def get_node_definition(node_type: str) -> Optional[NodeDefinition]:
    return _BY_TYPE.get(node_type)


def is_trigger(node_type: str) -> bool:
    definition = _BY_TYPE.get(node_type)
    return definition is not None and definition.kind is NodeKind.TRIGGER


def is_known_type(node_type: str) -> bool:
    return node_type in _BY_TYPE


def render_node_list(definitions: Tuple[NodeDefinition, ...]) -> str:
    """ "- TYPE: description" lines for prompts """
    return "\n".join(f"- {d.type}: {d.description}" for d in definitions)
