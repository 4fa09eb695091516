"""Tests for predicate matching and the in-memory record store."""

from datetime import datetime, timedelta, timezone

import pytest

from assistant.actions.store import InMemoryRecordStore, matches
from assistant.common.schemas import (
    Contact,
    ContactType,
    Deal,
    Pipeline,
    PipelineStage,
    TeamMember,
    Workflow,
    WorkflowConnection,
    WorkflowNode,
)

T0 = datetime(2024, 11, 1, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return InMemoryRecordStore()


def contact(name, minutes=0, org="org-1", sub=None, **kw):
    return Contact(name=name, organization_id=org, subaccount_id=sub, created_at=T0 + timedelta(minutes=minutes), **kw)


class TestMatches:
    def test_equality_and_enum(self):
        c = contact("Jane", type=ContactType.CUSTOMER)
        assert matches(c, {"organization_id": "org-1", "type": "CUSTOMER"})
        assert not matches(c, {"type": "LEAD"})

    def test_contains_insensitive(self):
        c = contact("Jane", company_name="Acme Corp")
        assert matches(c, {"company_name": {"contains": "acme", "mode": "insensitive"}})
        assert not matches(c, {"company_name": {"contains": "acme"}})

    def test_range_operators(self):
        c = contact("Jane", minutes=30)
        assert matches(c, {"created_at": {"gte": T0, "lt": T0 + timedelta(hours=1)}})
        assert not matches(c, {"created_at": {"gt": T0 + timedelta(minutes=30)}})
        assert matches(c, {"created_at": {"lte": T0 + timedelta(minutes=30)}})

    def test_naive_datetime_is_utc(self):
        c = contact("Jane")
        assert matches(c, {"created_at": {"gte": datetime(2024, 11, 1)}})

    def test_in_operator(self):
        deal = Deal(name="D", organization_id="org-1", pipeline_stage_id="s2")
        assert matches(deal, {"pipeline_stage_id": {"in": ["s1", "s2"]}})
        assert not matches(deal, {"pipeline_stage_id": {"in": ["s1"]}})

    def test_missing_value_fails_comparisons(self):
        deal = Deal(name="D", organization_id="org-1")
        assert not matches(deal, {"value": {"gte": 0}})
        assert not matches(deal, {"deadline": {"lt": T0}})


class TestListings:
    def test_newest_first_with_limit(self, store):
        for i, name in enumerate(["old", "mid", "new"]):
            store.create_contact(contact(name, minutes=i))
        names = [c.name for c in store.list_contacts({"organization_id": "org-1"}, limit=2)]
        assert names == ["new", "mid"]

    def test_created_at_ties_keep_latest_insert_first(self, store):
        store.create_contact(contact("first"))
        store.create_contact(contact("second"))
        assert [c.name for c in store.list_contacts({}, 10)] == ["second", "first"]

    def test_tenant_predicate_isolates(self, store):
        store.create_contact(contact("ours"))
        store.create_contact(contact("theirs", org="org-2"))
        assert [c.name for c in store.list_contacts({"organization_id": "org-1"}, 10)] == ["ours"]

    def test_pipelines_keep_insertion_order(self, store):
        store.create_pipeline(Pipeline(name="B", organization_id="org-1", created_at=T0 + timedelta(days=1)))
        store.create_pipeline(Pipeline(name="A", organization_id="org-1", created_at=T0))
        assert [p.name for p in store.list_pipelines({"organization_id": "org-1"}, 10)] == ["B", "A"]


class TestLookups:
    def test_find_contact_scoped_to_subaccount(self, store):
        store.create_contact(contact("Jane Doe", sub="sub-1"))
        assert store.find_contact_by_name("jane", "org-1", "sub-1").name == "Jane Doe"
        assert store.find_contact_by_name("jane", "org-1") is None
        assert store.find_contact_by_name("jane", "org-2", "sub-1") is None

    def test_default_pipeline(self, store):
        store.create_pipeline(Pipeline(name="Other", organization_id="org-1"))
        store.create_pipeline(Pipeline(name="Main", organization_id="org-1", is_default=True))
        assert store.find_default_pipeline("org-1").name == "Main"
        assert store.find_default_pipeline("org-2") is None

    def test_find_stages_across_pipelines(self, store):
        for name in ("Sales", "Partners"):
            store.create_pipeline(Pipeline(
                name=name, organization_id="org-1",
                stages=[PipelineStage(name="Lead In", position=0), PipelineStage(name="Won", position=1)],
            ))
        stages = store.find_stages_by_name("won", "org-1")
        assert len(stages) == 2
        assert all(s.name == "Won" and s.pipeline_id for s in stages)

    def test_team_member_by_subaccount(self, store):
        store.add_team_member(TeamMember(subaccount_id="sub-1", name="Sam Lee"))
        assert store.find_team_member_by_name("sam", "sub-1").name == "Sam Lee"
        assert store.find_team_member_by_name("sam", "sub-2") is None

    def test_workflow_owned_by_user(self, store):
        created = store.create_workflow(Workflow(name="W", user_id="u1"))
        assert store.get_workflow(created.id, "u1").name == "W"
        assert store.get_workflow(created.id, "u2") is None


class TestWrites:
    def test_returned_records_are_copies(self, store):
        created = store.create_contact(contact("Jane"))
        created.name = "Mutated"
        assert store.list_contacts({}, 10)[0].name == "Jane"

    def test_workflow_nodes_get_storage_ids(self, store):
        node = WorkflowNode(id="temp", name="Start", type="MANUAL")
        created = store.create_workflow(Workflow(name="W", user_id="u1", nodes=[node]))
        assert created.nodes[0].id != "temp"
        assert created.nodes[0].workflow_id == created.id

    def test_connection_endpoints_validated(self, store):
        created = store.create_workflow(Workflow(
            name="W", user_id="u1",
            nodes=[WorkflowNode(name="A", type="MANUAL"), WorkflowNode(name="B", type="SEND_EMAIL")],
        ))
        a, b = created.nodes
        store.create_connection(WorkflowConnection(workflow_id=created.id, from_node_id=a.id, to_node_id=b.id))
        assert len(store.get_workflow(created.id, "u1").connections) == 1

        with pytest.raises(ValueError):
            store.create_connection(WorkflowConnection(workflow_id=created.id, from_node_id=a.id, to_node_id="x"))
        with pytest.raises(KeyError):
            store.create_connection(WorkflowConnection(workflow_id="nope", from_node_id=a.id, to_node_id=b.id))
