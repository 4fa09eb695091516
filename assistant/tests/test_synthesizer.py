"""Tests for workflow/bundle synthesis and connection remapping."""

import json
import logging

import pytest
from unittest.mock import Mock

from assistant.actions.context import ExecutionContext
from assistant.actions.store import InMemoryRecordStore
from assistant.builder.synthesizer import WorkflowSynthesizer, remap_connections
from assistant.common.config import BuilderConfig
from assistant.common.schemas import Pipeline, PipelineStage, WorkflowNode


def node(node_id, name, node_type, x=0):
    return {"id": node_id, "name": name, "type": node_type, "position": {"x": x, "y": 0}, "data": {}}


def answer(nodes, connections=None, name="Intake", description="Handles intake"):
    if connections is None:
        connections = [
            {"sourceId": a["id"], "targetId": b["id"]} for a, b in zip(nodes, nodes[1:])
        ]
    return json.dumps({"name": name, "description": description, "nodes": nodes, "connections": connections})


INTAKE = [
    node("node_1", "Form Submitted", "GOOGLE_FORM_TRIGGER"),
    node("node_2", "Create Contact", "CREATE_CONTACT", 150),
    node("node_3", "Welcome Email", "GMAIL_EXECUTION", 300),
]


@pytest.fixture
def llm():
    client = Mock()
    client.is_available = True
    return client


@pytest.fixture
def ctx():
    return ExecutionContext(user_id="u1", organization_id="org-1")


@pytest.fixture
def synth(llm):
    return WorkflowSynthesizer(llm=llm)


class TestWorkflow:
    def test_valid_workflow(self, synth, llm, ctx):
        llm.generate.return_value = answer(INTAKE)
        generated = synth.synthesize("intake workflow", ctx)
        assert generated.name == "Intake"
        assert [n.type for n in generated.nodes] == ["GOOGLE_FORM_TRIGGER", "CREATE_CONTACT", "GMAIL_EXECUTION"]
        assert [(c.source_id, c.target_id) for c in generated.connections] == [
            ("node_1", "node_2"), ("node_2", "node_3"),
        ]
        assert generated.is_bundle is False
        assert llm.generate.call_args[1]["max_tokens"] == 2048

    @pytest.mark.parametrize("nodes", [
        [node("node_1", "Email", "GMAIL_EXECUTION")],
        [node("node_1", "Form", "GOOGLE_FORM_TRIGGER"), node("node_2", "Manual", "MANUAL_TRIGGER")],
    ])
    def test_trigger_count_must_be_one(self, synth, llm, ctx, nodes):
        llm.generate.return_value = answer(nodes)
        assert synth.synthesize("workflow", ctx) is None

    def test_unknown_type_rejected(self, synth, llm, ctx, caplog):
        nodes = [node("node_1", "Form", "GOOGLE_FORM_TRIGGER"), node("node_2", "Fax", "SEND_FAX")]
        llm.generate.return_value = answer(nodes)
        with caplog.at_level(logging.WARNING, logger="assistant.builder.synthesizer"):
            assert synth.synthesize("workflow", ctx) is None
        assert "SEND_FAX" in caplog.text

    def test_duplicate_node_ids_rejected(self, synth, llm, ctx):
        nodes = [node("node_1", "Form", "GOOGLE_FORM_TRIGGER"), node("node_1", "Slack", "SLACK")]
        llm.generate.return_value = answer(nodes, connections=[])
        assert synth.synthesize("workflow", ctx) is None

    @pytest.mark.parametrize("raw", [
        "not json",
        json.dumps({"name": "X", "nodes": []}),
        json.dumps({"name": " ", "nodes": [], "connections": []}),
        json.dumps({"name": "X", "nodes": ["node_1"], "connections": []}),
    ])
    def test_malformed_answers(self, synth, llm, ctx, raw):
        llm.generate.return_value = raw
        assert synth.synthesize("workflow", ctx) is None

    def test_dangling_connections_dropped(self, synth, llm, ctx):
        connections = [
            {"sourceId": "node_1", "targetId": "node_2"},
            {"sourceId": "node_2", "targetId": "node_9"},
            {"from": "node_1"},
        ]
        llm.generate.return_value = answer(INTAKE, connections=connections)
        generated = synth.synthesize("workflow", ctx)
        assert [(c.source_id, c.target_id) for c in generated.connections] == [("node_1", "node_2")]

    def test_missing_position_and_null_data(self, synth, llm, ctx):
        raw = [
            {"id": "a", "name": "Form", "type": "GOOGLE_FORM_TRIGGER"},
            {"id": "b", "name": "Slack", "type": "SLACK", "data": None},
        ]
        llm.generate.return_value = answer(raw)
        generated = synth.synthesize("workflow", ctx)
        assert generated.nodes[1].position.x == 150
        assert generated.nodes[1].data == {}

    def test_duplicate_identities_renamed(self, synth, llm, ctx):
        nodes = [
            node("node_1", "Form", "GOOGLE_FORM_TRIGGER"),
            node("node_2", "Notify", "SLACK"),
            node("node_3", "Notify", "SLACK"),
        ]
        llm.generate.return_value = answer(nodes)
        generated = synth.synthesize("workflow", ctx)
        assert [n.name for n in generated.nodes] == ["Form", "Notify", "Notify (2)"]
        assert len({n.identity for n in generated.nodes}) == 3

    def test_generation_failure(self, synth, llm, ctx, caplog):
        llm.generate.side_effect = RuntimeError("503")
        with caplog.at_level(logging.WARNING, logger="assistant.builder.synthesizer"):
            assert synth.synthesize("workflow", ctx) is None
        assert "Failed to generate workflow" in caplog.text

    def test_unavailable_llm(self, ctx):
        assert WorkflowSynthesizer(llm=None).synthesize("workflow", ctx) is None

    def test_prompt_dict_uses_camel_case(self, synth, llm, ctx):
        llm.generate.return_value = answer(INTAKE)
        out = synth.synthesize("workflow", ctx).to_prompt_dict()
        assert out["connections"][0] == {"sourceId": "node_1", "targetId": "node_2"}
        assert "is_bundle" not in out

    def test_numeric_ids_are_coerced(self, synth, llm, ctx):
        nodes = [
            node(1, "Start", "MANUAL_TRIGGER"),
            node(2, "Notify", "SLACK", 150),
        ]
        llm.generate.return_value = answer(nodes, connections=[{"sourceId": 1, "targetId": 2}])
        generated = synth.synthesize("workflow", ctx)
        assert [n.id for n in generated.nodes] == ["1", "2"]
        assert [(c.source_id, c.target_id) for c in generated.connections] == [("1", "2")]

    def test_mixed_id_types_still_connect(self, synth, llm, ctx):
        nodes = [node("1", "Start", "MANUAL_TRIGGER"), node(2, "Notify", "SLACK", 150)]
        llm.generate.return_value = answer(nodes, connections=[{"sourceId": 1, "targetId": "2"}])
        assert len(synth.synthesize("workflow", ctx).connections) == 1

    def test_boolean_id_rejected(self, synth, llm, ctx):
        llm.generate.return_value = answer([node(True, "Start", "MANUAL_TRIGGER")], connections=[])
        assert synth.synthesize("workflow", ctx) is None

    def test_validated_graph_is_logged(self, synth, llm, ctx, caplog):
        llm.generate.return_value = answer(INTAKE)
        with caplog.at_level(logging.DEBUG, logger="assistant.builder.synthesizer"):
            synth.synthesize("workflow", ctx)
        assert "'sourceId': 'node_1'" in caplog.text


class TestBundle:
    def test_valid_bundle(self, synth, llm, ctx):
        nodes = [node("node_1", "Discord", "DISCORD"), node("node_2", "Slack", "SLACK", 150)]
        llm.generate.return_value = answer(nodes, name="Notify All")
        generated = synth.synthesize("notify discord and slack", ctx, is_bundle=True)
        assert generated.is_bundle is True
        prompt = llm.generate.call_args[0][0]
        assert "NO triggers" in prompt
        assert "GOOGLE_FORM_TRIGGER" not in prompt

    def test_bundle_with_trigger_rejected(self, synth, llm, ctx):
        llm.generate.return_value = answer(INTAKE)
        assert synth.synthesize("bundle", ctx, is_bundle=True) is None

    def test_empty_bundle_rejected(self, synth, llm, ctx):
        llm.generate.return_value = answer([])
        assert synth.synthesize("bundle", ctx, is_bundle=True) is None


class TestPipelineHints:
    def test_tenant_pipelines_in_prompt(self, llm, ctx):
        store = InMemoryRecordStore()
        store.create_pipeline(Pipeline(
            name="Sales", organization_id="org-1",
            stages=[PipelineStage(name="Won", position=1), PipelineStage(name="Lead In", position=0)],
        ))
        store.create_pipeline(Pipeline(name="Elsewhere", organization_id="org-2"))
        llm.generate.return_value = answer(INTAKE)

        WorkflowSynthesizer(llm=llm, store=store).synthesize("workflow", ctx)
        prompt = llm.generate.call_args[0][0]
        assert "Existing pipelines:\n- Sales (stages: Lead In → Won)" in prompt
        assert "Elsewhere" not in prompt

    def test_store_failure_drops_hints(self, llm, ctx):
        store = Mock()
        store.list_pipelines.side_effect = RuntimeError("db down")
        llm.generate.return_value = answer(INTAKE)
        assert WorkflowSynthesizer(llm=llm, store=store).synthesize("workflow", ctx) is not None
        assert "Existing pipelines" not in llm.generate.call_args[0][0]

    def test_from_config(self, llm):
        synth = WorkflowSynthesizer.from_config(llm, None, BuilderConfig(node_spacing_x=200, max_tokens=1000))
        prompt = synth.build_prompt("x", "", is_bundle=False)
        assert '"x": 200' in prompt


class TestRemap:
    def test_remap_by_name_and_type(self, synth, llm, ctx):
        llm.generate.return_value = answer(INTAKE)
        generated = synth.synthesize("workflow", ctx)
        created = [
            WorkflowNode(id="s3", name="Welcome Email", type="GMAIL_EXECUTION"),
            WorkflowNode(id="s1", name="Form Submitted", type="GOOGLE_FORM_TRIGGER"),
            WorkflowNode(id="s2", name="Create Contact", type="CREATE_CONTACT"),
        ]
        assert remap_connections(generated, created) == [("s1", "s2"), ("s2", "s3")]

    def test_unmappable_connection_skipped(self, synth, llm, ctx, caplog):
        llm.generate.return_value = answer(INTAKE)
        generated = synth.synthesize("workflow", ctx)
        created = [
            WorkflowNode(id="s1", name="Form Submitted", type="GOOGLE_FORM_TRIGGER"),
            WorkflowNode(id="s2", name="Create Contact", type="CREATE_CONTACT"),
        ]
        with caplog.at_level(logging.WARNING, logger="assistant.builder.synthesizer"):
            assert remap_connections(generated, created) == [("s1", "s2")]
        assert "Failed to map connection node_2 -> node_3" in caplog.text
