"""
Record Store

Interface to the CRM persistence layer, plus an in-memory implementation
used by the tests and for local runs.

Predicates are plain dicts keyed by record field name. A value is either
matched for equality or is an operator dict:

    {"organization_id": "org-1",
     "company_name": {"contains": "acme", "mode": "insensitive"},
     "created_at": {"gte": datetime(...), "lt": datetime(...)},
     "pipeline_stage_id": {"in": ["s1", "s2"]}}

Name lookups are case-insensitive partial matches scoped to one tenant
(organization + subaccount, where a missing subaccount only matches records
without one).
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, TypeVar

from ..common.schemas import (
    Contact,
    Deal,
    Pipeline,
    PipelineStage,
    TeamMember,
    Workflow,
    WorkflowConnection,
    new_id,
)

logger = logging.getLogger("assistant.actions.store")

Predicate = Mapping[str, Any]


class RecordStore(ABC):
    """Tenant-scoped CRUD and lookup for CRM records"""

    # ---- writes ----------------------------------------------------------

    @abstractmethod
    def create_contact(self, contact: Contact) -> Contact:
        pass

    @abstractmethod
    def create_deal(self, deal: Deal) -> Deal:
        pass

    @abstractmethod
    def create_pipeline(self, pipeline: Pipeline) -> Pipeline:
        """Persist a pipeline together with its stages"""
        pass

    @abstractmethod
    def create_workflow(self, workflow: Workflow) -> Workflow:
        """
        Persist a workflow and its nodes.

        Returns:
            The stored workflow; its nodes carry storage ids
        """
        pass

    @abstractmethod
    def create_connection(self, connection: WorkflowConnection) -> WorkflowConnection:
        pass

    # ---- lookups ---------------------------------------------------------

    @abstractmethod
    def find_contact_by_name(
        self, name: str, organization_id: str, subaccount_id: Optional[str] = None
    ) -> Optional[Contact]:
        pass

    @abstractmethod
    def find_pipeline_by_name(
        self, name: str, organization_id: str, subaccount_id: Optional[str] = None
    ) -> Optional[Pipeline]:
        pass

    @abstractmethod
    def find_default_pipeline(
        self, organization_id: str, subaccount_id: Optional[str] = None
    ) -> Optional[Pipeline]:
        pass

    @abstractmethod
    def find_team_member_by_name(self, name: str, subaccount_id: str) -> Optional[TeamMember]:
        pass

    @abstractmethod
    def find_stages_by_name(
        self, name: str, organization_id: str, subaccount_id: Optional[str] = None
    ) -> List[PipelineStage]:
        pass

    @abstractmethod
    def get_pipeline(self, pipeline_id: str) -> Optional[Pipeline]:
        pass

    @abstractmethod
    def get_workflow(self, workflow_id: str, user_id: str) -> Optional[Workflow]:
        """Workflow by id, only if owned by ``user_id``"""
        pass

    # ---- listings --------------------------------------------------------

    @abstractmethod
    def list_contacts(self, where: Predicate, limit: int) -> List[Contact]:
        """Contacts matching ``where``, newest first"""
        pass

    @abstractmethod
    def list_deals(self, where: Predicate, limit: int) -> List[Deal]:
        """Deals matching ``where``, newest first"""
        pass

    @abstractmethod
    def list_pipelines(self, where: Predicate, limit: int) -> List[Pipeline]:
        pass

    @abstractmethod
    def list_workflows(self, where: Predicate, limit: int) -> List[Workflow]:
        """Workflows matching ``where``, newest first"""
        pass


# ============================================================================
# Predicate evaluation
# ============================================================================

def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _comparable(a: Any, b: Any):
    if isinstance(a, datetime) and isinstance(b, datetime):
        return _as_utc(a), _as_utc(b)
    return a, b


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def _match_condition(actual: Any, condition: Any) -> bool:
    if not isinstance(condition, Mapping):
        return _enum_value(actual) == _enum_value(condition)

    insensitive = condition.get("mode") == "insensitive"
    for op, expected in condition.items():
        if op == "mode":
            continue
        if op == "in":
            if actual not in expected:
                return False
            continue
        if actual is None:
            return False
        if op == "equals":
            if _enum_value(actual) != _enum_value(expected):
                return False
        elif op == "contains":
            haystack, needle = str(actual), str(expected)
            if insensitive:
                haystack, needle = haystack.lower(), needle.lower()
            if needle not in haystack:
                return False
        else:
            left, right = _comparable(actual, expected)
            if op == "gte" and not left >= right:
                return False
            if op == "gt" and not left > right:
                return False
            if op == "lte" and not left <= right:
                return False
            if op == "lt" and not left < right:
                return False
    return True


def matches(record: Any, where: Predicate) -> bool:
    """True if ``record`` satisfies every condition in ``where``"""
    for key, condition in where.items():
        if not _match_condition(getattr(record, key, None), condition):
            return False
    return True


def _name_contains(value: Optional[str], needle: str) -> bool:
    return bool(value) and needle.lower() in value.lower()


T = TypeVar("T")


# ============================================================================
# In-memory implementation
# ============================================================================

class InMemoryRecordStore(RecordStore):
    """
    Dict-backed record store.

    Records are copied on the way in and on the way out, so callers never
    share mutable state with the store.
    """

    def __init__(self):
        self._contacts: List[Contact] = []
        self._deals: List[Deal] = []
        self._pipelines: List[Pipeline] = []
        self._workflows: List[Workflow] = []
        self._members: List[TeamMember] = []

    # ---- seeding ---------------------------------------------------------

    def add_team_member(self, member: TeamMember) -> TeamMember:
        self._members.append(member.model_copy(deep=True))
        return member

    # ---- writes ----------------------------------------------------------

    def create_contact(self, contact: Contact) -> Contact:
        self._contacts.append(contact.model_copy(deep=True))
        return contact.model_copy(deep=True)

    def create_deal(self, deal: Deal) -> Deal:
        self._deals.append(deal.model_copy(deep=True))
        return deal.model_copy(deep=True)

    def create_pipeline(self, pipeline: Pipeline) -> Pipeline:
        stored = pipeline.model_copy(deep=True)
        for stage in stored.stages:
            stage.pipeline_id = stored.id
        self._pipelines.append(stored)
        return stored.model_copy(deep=True)

    def create_workflow(self, workflow: Workflow) -> Workflow:
        stored = workflow.model_copy(deep=True)
        for node in stored.nodes:
            node.id = new_id()
            node.workflow_id = stored.id
        self._workflows.append(stored)
        logger.debug("Stored workflow %s with %d nodes", stored.id, len(stored.nodes))
        return stored.model_copy(deep=True)

    def create_connection(self, connection: WorkflowConnection) -> WorkflowConnection:
        for workflow in self._workflows:
            if workflow.id == connection.workflow_id:
                node_ids = {n.id for n in workflow.nodes}
                if connection.from_node_id not in node_ids or connection.to_node_id not in node_ids:
                    raise ValueError("Connection endpoints must belong to the workflow")
                workflow.connections.append(connection.model_copy(deep=True))
                return connection.model_copy(deep=True)
        raise KeyError(f"Workflow not found: {connection.workflow_id}")

    # ---- lookups ---------------------------------------------------------

    @staticmethod
    def _in_tenant(record: Any, organization_id: str, subaccount_id: Optional[str]) -> bool:
        return record.organization_id == organization_id and record.subaccount_id == subaccount_id

    def find_contact_by_name(self, name, organization_id, subaccount_id=None):
        for contact in self._contacts:
            if self._in_tenant(contact, organization_id, subaccount_id) and _name_contains(contact.name, name):
                return contact.model_copy(deep=True)
        return None

    def find_pipeline_by_name(self, name, organization_id, subaccount_id=None):
        for pipeline in self._pipelines:
            if self._in_tenant(pipeline, organization_id, subaccount_id) and _name_contains(pipeline.name, name):
                return pipeline.model_copy(deep=True)
        return None

    def find_default_pipeline(self, organization_id, subaccount_id=None):
        for pipeline in self._pipelines:
            if self._in_tenant(pipeline, organization_id, subaccount_id) and pipeline.is_default:
                return pipeline.model_copy(deep=True)
        return None

    def find_team_member_by_name(self, name, subaccount_id):
        for member in self._members:
            if member.subaccount_id == subaccount_id and _name_contains(member.name, name):
                return member.model_copy(deep=True)
        return None

    def find_stages_by_name(self, name, organization_id, subaccount_id=None):
        stages = []
        for pipeline in self._pipelines:
            if pipeline.organization_id != organization_id:
                continue
            if subaccount_id and pipeline.subaccount_id != subaccount_id:
                continue
            stages.extend(s.model_copy() for s in pipeline.stages if _name_contains(s.name, name))
        return stages

    def get_pipeline(self, pipeline_id):
        for pipeline in self._pipelines:
            if pipeline.id == pipeline_id:
                return pipeline.model_copy(deep=True)
        return None

    def get_workflow(self, workflow_id, user_id):
        for workflow in self._workflows:
            if workflow.id == workflow_id and workflow.user_id == user_id:
                return workflow.model_copy(deep=True)
        return None

    # ---- listings --------------------------------------------------------

    @staticmethod
    def _newest_first(records: Iterable[T], where: Predicate, limit: int) -> List[T]:
        hits = [(i, r) for i, r in enumerate(records) if matches(r, where)]
        # insertion order breaks created_at ties
        hits.sort(key=lambda pair: (_as_utc(pair[1].created_at), pair[0]), reverse=True)
        return [r.model_copy(deep=True) for _, r in hits[:limit]]

    def list_contacts(self, where, limit):
        return self._newest_first(self._contacts, where, limit)

    def list_deals(self, where, limit):
        return self._newest_first(self._deals, where, limit)

    def list_pipelines(self, where, limit):
        return [p.model_copy(deep=True) for p in self._pipelines if matches(p, where)][:limit]

    def list_workflows(self, where, limit):
        return self._newest_first(self._workflows, where, limit)
