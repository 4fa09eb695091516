"""
Intent Catalog

The fixed set of user goals the assistant can act on. Built once at import
and never mutated; every lookup goes through the read-only name index.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class IntentKind(str, Enum):
    """Tag for every registered intent"""
    # CRM actions
    CREATE_CONTACT = "create-contact"
    CREATE_DEAL = "create-deal"
    CREATE_PIPELINE = "create-pipeline"
    CREATE_TASK = "create-task"
    LOG_NOTE = "log-note"
    SEND_EMAIL = "send-email"
    SCHEDULE_MEETING = "schedule-meeting"
    # Workflow actions
    RUN_WORKFLOW = "run-workflow"
    LIST_WORKFLOWS = "list-workflows"
    GENERATE_WORKFLOW = "generate-workflow"
    GENERATE_BUNDLE = "generate-bundle"
    # AI actions
    SUMMARISE = "summarise"
    EXPLAIN = "explain"
    DRAFT_EMAIL = "draft-email"
    ANALYZE = "analyze"
    RESEARCH = "research"
    # Query actions
    SHOW_CONTACTS = "show-contacts"
    SHOW_DEALS = "show-deals"
    SHOW_PIPELINES = "show-pipelines"
    SHOW_WORKFLOWS = "show-workflows"
    SEARCH = "search"
    QUERY_CONTACTS = "query-contacts"
    QUERY_DEALS = "query-deals"


@dataclass(frozen=True)
class IntentDefinition:
    """A catalog-registered user goal"""
    kind: IntentKind
    description: str
    examples: Tuple[str, ...]
    handler: str  # name of the dispatcher handler

    @property
    def name(self) -> str:
        return self.kind.value

    @property
    def command(self) -> str:
        return f"/{self.kind.value}"


def _intent(kind: IntentKind, description: str, examples, handler: str) -> IntentDefinition:
    return IntentDefinition(kind=kind, description=description, examples=tuple(examples), handler=handler)


INTENT_CATALOG: Tuple[IntentDefinition, ...] = (
    # CRM Actions
    _intent(
        IntentKind.CREATE_CONTACT, "Create a new contact in the CRM",
        ["create a contact", "add new contact", "new customer", "add person", "create lead"],
        "createContact",
    ),
    _intent(
        IntentKind.CREATE_DEAL, "Create a new deal or opportunity",
        ["create deal", "new deal", "add opportunity", "create sale", "new opportunity"],
        "createDeal",
    ),
    _intent(
        IntentKind.CREATE_PIPELINE, "Create a new sales pipeline",
        ["create pipeline", "new pipeline", "add sales pipeline", "create funnel"],
        "createPipeline",
    ),
    _intent(
        IntentKind.CREATE_TASK, "Create a new task or reminder",
        ["create task", "add task", "new reminder", "add todo", "schedule task"],
        "createTask",
    ),
    _intent(
        IntentKind.LOG_NOTE, "Log a note or comment",
        ["log note", "add note", "add comment", "write note", "record note"],
        "logNote",
    ),
    _intent(
        IntentKind.SEND_EMAIL, "Send an email to a contact",
        ["send email", "email contact", "send message", "compose email", "write email"],
        "sendEmail",
    ),
    _intent(
        IntentKind.SCHEDULE_MEETING, "Schedule a meeting or appointment",
        ["schedule meeting", "book meeting", "set up call", "arrange meeting", "calendar invite"],
        "scheduleMeeting",
    ),
    # Workflow Actions
    _intent(
        IntentKind.RUN_WORKFLOW, "Execute a workflow automation",
        ["run workflow", "execute workflow", "start automation", "trigger workflow"],
        "runWorkflow",
    ),
    _intent(
        IntentKind.LIST_WORKFLOWS, "List all available workflows",
        ["list workflows", "show workflows", "all automations", "my workflows"],
        "listWorkflows",
    ),
    _intent(
        IntentKind.GENERATE_WORKFLOW, "Generate a workflow using AI",
        ["generate workflow", "create automation", "build workflow", "ai workflow"],
        "generateWorkflow",
    ),
    _intent(
        IntentKind.GENERATE_BUNDLE, "Generate a reusable bundle workflow using AI",
        ["generate bundle", "create bundle", "build bundle", "ai bundle", "reusable workflow"],
        "generateBundle",
    ),
    # AI Actions
    _intent(
        IntentKind.SUMMARISE, "Summarise content or data",
        ["summarise", "summary", "tldr", "brief", "summarize"],
        "summarise",
    ),
    _intent(
        IntentKind.EXPLAIN, "Explain something in detail",
        ["explain", "what is", "describe", "tell me about", "clarify"],
        "explain",
    ),
    _intent(
        IntentKind.DRAFT_EMAIL, "Draft an email using AI",
        ["draft email", "write email for me", "compose message", "help write email"],
        "draftEmail",
    ),
    _intent(
        IntentKind.ANALYZE, "Analyze data or metrics",
        ["analyze", "analysis", "insights", "evaluate", "assess"],
        "analyze",
    ),
    _intent(
        IntentKind.RESEARCH, "Research a topic",
        ["research", "find information", "look up", "investigate"],
        "research",
    ),
    # Query Actions
    _intent(
        IntentKind.SHOW_CONTACTS, "Show all contacts",
        ["show contacts", "list contacts", "all contacts", "my contacts", "view contacts"],
        "showContacts",
    ),
    _intent(
        IntentKind.SHOW_DEALS, "Show all deals",
        ["show deals", "list deals", "all deals", "my deals", "view opportunities"],
        "showDeals",
    ),
    _intent(
        IntentKind.SHOW_PIPELINES, "Show all pipelines",
        ["show pipelines", "list pipelines", "all pipelines", "view funnels"],
        "showPipelines",
    ),
    _intent(
        IntentKind.SHOW_WORKFLOWS, "Show all workflows",
        ["show workflows", "list automations", "all workflows", "my automations"],
        "showWorkflows",
    ),
    _intent(
        IntentKind.SEARCH, "Search CRM data",
        ["search", "find", "look for", "search for", "locate"],
        "search",
    ),
    # Natural Language Query Actions
    _intent(
        IntentKind.QUERY_CONTACTS, "Query contacts with filters like date, company, or other criteria",
        [
            "show me contacts from", "find contacts created on", "contacts from company",
            "show all contacts from", "list contacts where", "contacts created this week",
            "contacts from last month",
        ],
        "queryContacts",
    ),
    _intent(
        IntentKind.QUERY_DEALS, "Query deals with filters like value, pipeline, stage, or date",
        [
            "show me deals above", "deals over", "deals from pipeline",
            "find deals worth more than", "deals in stage", "deals created this month",
            "show all deals below",
        ],
        "queryDeals",
    ),
)

_BY_NAME: Mapping[str, IntentDefinition] = MappingProxyType(
    {definition.name: definition for definition in INTENT_CATALOG}
)


def get_available_intents() -> Tuple[IntentDefinition, ...]:
    """All registered intents, in catalog order"""
    return INTENT_CATALOG


def get_intent_by_name(name: str) -> Optional[IntentDefinition]:
    """Exact (case-insensitive) lookup by intent name"""
    if not name:
        return None
    return _BY_NAME.get(name.strip().lower())


def match_command(token: str) -> Optional[IntentDefinition]:
    """Resolve a command token ("create-deal" or "/create-deal") to its intent"""
    if not token:
        return None
    token = token.strip().lower()
    for definition in INTENT_CATALOG:
        if token == definition.name or token == definition.command:
            return definition
    return None


def render_intent_list() -> str:
    """Compact "- name: description" enumeration for classifier prompts"""
    return "\n".join(f"- {d.name}: {d.description}" for d in INTENT_CATALOG)
