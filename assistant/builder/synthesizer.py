"""
Workflow Synthesizer

LLM-based generation of automation graphs from a free-text description.

The LLM is given the closed node catalog (triggers are left out for bundles)
and up to a handful of the tenant's pipelines as hints. Its answer is parsed
leniently and validated before anything is returned:

1. name, nodes and connections must all be present
2. every node type must come from the catalog
3. a workflow has exactly one trigger; a bundle has none and at least one node
4. connections whose endpoints are not node ids are dropped
5. duplicate (name, type) pairs are renamed so persisted nodes can be told apart

No cycle detection is done here. Graph shape beyond trigger cardinality is
the execution engine's concern.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from ..common.llm_utils import parse_llm_json
from ..common.schemas import GeneratedConnection, GeneratedNode, GeneratedWorkflow, WorkflowNode
from .nodes import EXECUTION_NODES, TRIGGER_NODES, is_known_type, is_trigger, render_node_list

logger = logging.getLogger("assistant.builder.synthesizer")


WORKFLOW_PROMPT = """Generate a workflow automation based on this description. Return ONLY valid JSON.

User request: "{description}"

Available TRIGGER nodes (workflows must start with exactly ONE trigger):
{trigger_list}

Available EXECUTION nodes:
{execution_list}
{pipeline_context}

Generate a workflow with:
1. A descriptive name
2. A brief description
3. Nodes array with unique IDs (use format: node_1, node_2, etc.)
4. Connections array linking nodes in order

Return JSON in this exact format:
{{
  "name": "Workflow Name",
  "description": "What this workflow does",
  "nodes": [
    {{
      "id": "node_1",
      "name": "Trigger Name",
      "type": "TRIGGER_TYPE",
      "position": {{ "x": 0, "y": 0 }},
      "data": {{}}
    }},
    {{
      "id": "node_2",
      "name": "Action Name",
      "type": "EXECUTION_TYPE",
      "position": {{ "x": {spacing}, "y": 0 }},
      "data": {{}}
    }}
  ],
  "connections": [
    {{ "sourceId": "node_1", "targetId": "node_2" }}
  ]
}}

Position nodes horizontally (increment x by {spacing} for each node, keep y at 0).
Only use node types from the lists above.
For application intake, consider using GOOGLE_FORM_TRIGGER or CONTACT_CREATED_TRIGGER.

JSON:"""


BUNDLE_PROMPT = """Generate a bundle workflow (reusable sub-workflow) based on this description. Return ONLY valid JSON.

A bundle workflow is a reusable set of actions that can be inserted into other workflows. It does NOT have a trigger - it starts with execution nodes only.

User request: "{description}"

Available EXECUTION nodes (bundles only use execution nodes, NO triggers):
{execution_list}
{pipeline_context}

Generate a bundle workflow with:
1. A descriptive name
2. A brief description of what this reusable bundle does
3. Nodes array with unique IDs (use format: node_1, node_2, etc.)
4. Connections array linking nodes in order

Return JSON in this exact format:
{{
  "name": "Bundle Name",
  "description": "What this reusable bundle does",
  "nodes": [
    {{
      "id": "node_1",
      "name": "First Action",
      "type": "EXECUTION_TYPE",
      "position": {{ "x": 0, "y": 0 }},
      "data": {{}}
    }},
    {{
      "id": "node_2",
      "name": "Second Action",
      "type": "EXECUTION_TYPE",
      "position": {{ "x": {spacing}, "y": 0 }},
      "data": {{}}
    }}
  ],
  "connections": [
    {{ "sourceId": "node_1", "targetId": "node_2" }}
  ]
}}

Position nodes horizontally (increment x by {spacing} for each node, keep y at 0).
Only use EXECUTION node types from the list above - NO triggers.
Common bundle patterns: data transformation, notification sequences, CRM updates.

JSON:"""


class WorkflowSynthesizer:
    """
    Generates validated workflow graphs.

    Without a usable LLM every call returns None.
    """

    def __init__(
        self,
        llm=None,
        store=None,
        pipeline_hint_limit: int = 5,
        node_spacing_x: int = 150,
        max_tokens: int = 2048,
    ):
        """
        Args:
            llm: Text generator exposing ``is_available`` and ``generate(prompt)``
            store: RecordStore used for pipeline hints (optional)
            pipeline_hint_limit: Max pipelines listed in the prompt
            node_spacing_x: Horizontal spacing asked for, and used for missing positions
            max_tokens: Generation budget for the graph
        """
        self._llm = llm
        self._store = store
        self._hint_limit = pipeline_hint_limit
        self._spacing = node_spacing_x
        self._max_tokens = max_tokens

    @classmethod
    def from_config(cls, llm, store, builder_config) -> "WorkflowSynthesizer":
        return cls(
            llm=llm,
            store=store,
            pipeline_hint_limit=builder_config.pipeline_hint_limit,
            node_spacing_x=builder_config.node_spacing_x,
            max_tokens=builder_config.max_tokens,
        )

    @property
    def is_available(self) -> bool:
        return self._llm is not None and bool(getattr(self._llm, "is_available", False))

    def synthesize(self, description: str, context, is_bundle: bool = False) -> Optional[GeneratedWorkflow]:
        """
        Generate a workflow (or bundle) for ``description``.

        Args:
            description: Free-text automation request
            context: ExecutionContext; its tenant scopes the pipeline hints
            is_bundle: Generate a trigger-less reusable bundle

        Returns:
            GeneratedWorkflow, or None when generation or validation fails
        """
        if not self.is_available:
            logger.info("LLM unavailable, cannot generate %s", "bundle" if is_bundle else "workflow")
            return None

        prompt = self.build_prompt(description, self._pipeline_context(context), is_bundle)
        try:
            raw = self._llm.generate(prompt, max_tokens=self._max_tokens)
        except Exception as e:
            logger.warning("Failed to generate %s: %s", "bundle workflow" if is_bundle else "workflow", e)
            return None

        generated = self.validate(parse_llm_json(raw), is_bundle)
        if generated is not None:
            logger.debug("Generated %s: %s", "bundle" if is_bundle else "workflow", generated.to_prompt_dict())
        return generated

    def build_prompt(self, description: str, pipeline_context: str, is_bundle: bool) -> str:
        if is_bundle:
            return BUNDLE_PROMPT.format(
                description=description,
                execution_list=render_node_list(EXECUTION_NODES),
                pipeline_context=pipeline_context,
                spacing=self._spacing,
            )
        return WORKFLOW_PROMPT.format(
            description=description,
            trigger_list=render_node_list(TRIGGER_NODES),
            execution_list=render_node_list(EXECUTION_NODES),
            pipeline_context=pipeline_context,
            spacing=self._spacing,
        )

    def _pipeline_context(self, context) -> str:
        """ "Existing pipelines:" block, or "" when there is nothing to show """
        if self._store is None or context is None or not getattr(context, "organization_id", None):
            return ""
        where = {
            "organization_id": context.organization_id,
            "subaccount_id": context.subaccount_id,
        }
        try:
            pipelines = self._store.list_pipelines(where, self._hint_limit)
        except Exception as e:
            logger.warning("Failed to load pipeline hints: %s", e)
            return ""
        if not pipelines:
            return ""
        lines = []
        for p in pipelines:
            stages = " → ".join(s.name for s in sorted(p.stages, key=lambda s: s.position))
            lines.append(f"- {p.name} (stages: {stages})")
        return "\nExisting pipelines:\n" + "\n".join(lines)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, data: Dict[str, Any], is_bundle: bool) -> Optional[GeneratedWorkflow]:
        """Check a parsed LLM answer and build the GeneratedWorkflow, or None"""
        kind = "bundle" if is_bundle else "workflow"

        name = data.get("name") if isinstance(data, dict) else None
        raw_nodes = data.get("nodes") if isinstance(data, dict) else None
        raw_connections = data.get("connections") if isinstance(data, dict) else None
        if not isinstance(name, str) or not name.strip():
            logger.warning("Generated %s has no name", kind)
            return None
        if not isinstance(raw_nodes, list) or not isinstance(raw_connections, list):
            logger.warning("Generated %s is missing nodes or connections", kind)
            return None

        nodes = self._parse_nodes(raw_nodes)
        if nodes is None:
            return None

        trigger_count = sum(1 for n in nodes if is_trigger(n.type))
        if is_bundle:
            if trigger_count:
                logger.warning("Bundle workflow should not contain triggers")
                return None
            if not nodes:
                logger.warning("Bundle workflow has no nodes")
                return None
        elif trigger_count != 1:
            logger.warning("Workflow must have exactly one trigger, got %d", trigger_count)
            return None

        description = data.get("description")
        return GeneratedWorkflow(
            name=name.strip(),
            description=description.strip() if isinstance(description, str) else "",
            nodes=_dedupe_identities(nodes),
            connections=_parse_connections(raw_connections, {n.id for n in nodes}),
            is_bundle=is_bundle,
        )

    def _parse_nodes(self, raw_nodes: List[Any]) -> Optional[List[GeneratedNode]]:
        nodes: List[GeneratedNode] = []
        seen_ids = set()
        for index, raw in enumerate(raw_nodes):
            if not isinstance(raw, dict):
                logger.warning("Generated node %d is not an object", index)
                return None
            if "position" not in raw:
                raw = {**raw, "position": {"x": index * self._spacing, "y": 0}}
            if raw.get("data") is None:
                raw = {**raw, "data": {}}
            try:
                node = GeneratedNode.model_validate(raw)
            except ValidationError as e:
                logger.warning("Invalid generated node %d: %s", index, e)
                return None
            if not is_known_type(node.type):
                logger.warning("Unknown node type %r", node.type)
                return None
            if node.id in seen_ids:
                logger.warning("Duplicate node id %r", node.id)
                return None
            seen_ids.add(node.id)
            nodes.append(node)
        return nodes


def _dedupe_identities(nodes: List[GeneratedNode]) -> List[GeneratedNode]:
    """Suffix repeated names so every (name, type) pair is unique"""
    taken = {n.identity for n in nodes}
    seen = set()
    out = []
    for node in nodes:
        if node.identity not in seen:
            seen.add(node.identity)
            out.append(node)
            continue
        suffix = 2
        while (f"{node.name} ({suffix})", node.type) in taken:
            suffix += 1
        renamed = node.model_copy(update={"name": f"{node.name} ({suffix})"})
        logger.warning("Renamed duplicate node %r to %r", node.name, renamed.name)
        taken.add(renamed.identity)
        seen.add(renamed.identity)
        out.append(renamed)
    return out


def _parse_connections(raw_connections: List[Any], node_ids) -> List[GeneratedConnection]:
    connections = []
    for raw in raw_connections:
        try:
            conn = GeneratedConnection.model_validate(raw)
        except ValidationError:
            logger.warning("Dropping malformed connection %r", raw)
            continue
        if conn.source_id not in node_ids or conn.target_id not in node_ids:
            logger.warning("Dropping connection %s -> %s: unknown node id", conn.source_id, conn.target_id)
            continue
        connections.append(conn)
    return connections


def remap_connections(
    generated: GeneratedWorkflow,
    created_nodes: Iterable[WorkflowNode],
) -> List[Tuple[str, str]]:
    """
    Translate caller-local connection endpoints to storage node ids.

    Persisted nodes are matched back to generated ones by (name, type).

    Returns:
        (from_node_id, to_node_id) pairs; connections that cannot be mapped
        are logged and skipped
    """
    by_identity = {}
    for node in created_nodes:
        by_identity.setdefault((node.name, node.type), node.id)

    id_map = {}
    for node in generated.nodes:
        storage_id = by_identity.get(node.identity)
        if storage_id:
            id_map[node.id] = storage_id

    pairs = []
    for conn in generated.connections:
        from_id = id_map.get(conn.source_id)
        to_id = id_map.get(conn.target_id)
        if from_id and to_id:
            pairs.append((from_id, to_id))
        else:
            logger.warning("Failed to map connection %s -> %s", conn.source_id, conn.target_id)
    return pairs
