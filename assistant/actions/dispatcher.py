"""
Action Dispatcher

Executes a routed intent against the record store and returns an
ActionResult. Handlers are looked up by the catalog's handler name.

Shared policy:
- Tenant-scoped handlers need an organization. Without one they ask the
  user to pick one and never touch the store.
- Automation handlers check the subscription first (fail-closed).
- Create handlers use the deterministic parser for "/" commands and NL
  extraction otherwise. A missing name is a question back to the user.
- Secondary lookups (assignee, contact, pipeline) that miss are skipped,
  never fatal.
- Store errors in create/generate handlers become a "Failed to ..." result;
  store errors in read handlers propagate.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..common.schemas import (
    DEFAULT_PIPELINE_STAGES,
    Contact,
    Deal,
    Pipeline,
    PipelineStage,
    Workflow,
    WorkflowConnection,
    WorkflowNode,
)
from ..common.schemas.records import utcnow
from ..router.argument_parser import (
    ParsedArguments,
    format_field_name,
    get_missing_fields,
    parse_contact_args,
    parse_deal_args,
    parse_pipeline_args,
)
from ..router.classifier import RouteResult
from ..router.intents import INTENT_CATALOG
from ..builder.synthesizer import remap_connections
from .context import ActionResult, ExecutionContext
from .entitlements import check_entitlement
from .extractors import NLExtractor, coerce_iso_date
from .filters import (
    build_contact_predicate,
    build_deal_predicate,
    contacts_url,
    deals_url,
    describe_contact_filters,
    describe_deal_filters,
    parse_day,
    plain_number,
    summarize,
    tenant_predicate,
)

logger = logging.getLogger("assistant.actions.dispatcher")

UPGRADE_MESSAGE = (
    "⚠️ Workflow features require an active subscription. "
    "Please upgrade your plan to access workflow automation."
)

Handler = Callable[[Dict[str, Any], ExecutionContext], ActionResult]


class ActionDispatcher:
    """
    Runs the handler named by a RouteResult's intent.

    Collaborators:
        store: RecordStore
        extractor: NLExtractor for natural-language create args, filters and search type
        entitlements: EntitlementChecker gating workflow features
        synthesizer: WorkflowSynthesizer for generate-workflow / generate-bundle
    """

    def __init__(
        self,
        store,
        extractor: Optional[NLExtractor] = None,
        entitlements=None,
        synthesizer=None,
        show_limit: int = 10,
        query_limit: int = 50,
        command_prefix: str = "/",
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._extractor = extractor or NLExtractor()
        self._entitlements = entitlements
        self._synthesizer = synthesizer
        self._show_limit = show_limit
        self._query_limit = query_limit
        self._prefix = command_prefix
        self._clock = clock

        self._handlers: Dict[str, Handler] = {
            # CRM actions
            "createContact": self.handle_create_contact,
            "createDeal": self.handle_create_deal,
            "createPipeline": self.handle_create_pipeline,
            "createTask": self.handle_create_task,
            "logNote": self.handle_log_note,
            "sendEmail": self.handle_send_email,
            "scheduleMeeting": self.handle_schedule_meeting,
            # Workflow actions
            "runWorkflow": self.handle_run_workflow,
            "listWorkflows": self.handle_list_workflows,
            "generateWorkflow": self.handle_generate_workflow,
            "generateBundle": self.handle_generate_bundle,
            # AI actions
            "summarise": self.handle_summarise,
            "explain": self.handle_explain,
            "draftEmail": self.handle_draft_email,
            "analyze": self.handle_analyze,
            "research": self.handle_research,
            # Query actions
            "showContacts": self.handle_show_contacts,
            "showDeals": self.handle_show_deals,
            "showPipelines": self.handle_show_pipelines,
            "showWorkflows": self.handle_show_workflows,
            "search": self.handle_search,
            "queryContacts": self.handle_query_contacts,
            "queryDeals": self.handle_query_deals,
        }

    def execute(self, route_result: RouteResult, context: ExecutionContext) -> ActionResult:
        """Run the handler for ``route_result.intent``"""
        handler_name = route_result.intent.handler
        handler = self._handlers.get(handler_name)
        if handler is None:
            logger.error("No handler registered for %s", handler_name)
            return ActionResult.fail(f"Unknown action: {handler_name}")
        return handler(dict(route_result.extracted_params), context)

    def unresolved_handlers(self) -> List[str]:
        """Catalog handler names with no registered handler (should be empty)"""
        return [d.handler for d in INTENT_CATALOG if d.handler not in self._handlers]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _raw(params: Dict[str, Any]) -> str:
        return params.get("rawMessage") or ""

    def _is_command(self, raw: str) -> bool:
        # same rule as IntentClassifier._match_command: leading whitespace is ignored
        return raw.lstrip().startswith(self._prefix)

    def _entitled(self, context: ExecutionContext) -> bool:
        return check_entitlement(self._entitlements, context.user_id)

    @staticmethod
    def _missing(parsed: ParsedArguments, required=("name",)) -> List[str]:
        return [format_field_name(f) for f in get_missing_fields(parsed, list(required))]

    def _resolve_member_id(self, name: Optional[str], context: ExecutionContext) -> Optional[str]:
        if not name or not context.subaccount_id:
            return None
        member = self._store.find_team_member_by_name(name, context.subaccount_id)
        if member is None:
            logger.debug("No team member matching %r", name)
            return None
        return member.id

    # ------------------------------------------------------------------
    # CRM actions
    # ------------------------------------------------------------------

    def handle_create_contact(self, params, context):
        if not context.has_tenant:
            return ActionResult.fail("Please select an organization to create a contact.", requires_more_info=True)

        raw = self._raw(params)
        if self._is_command(raw):
            parsed = parse_contact_args(raw)
        else:
            parsed = self._extractor.extract_contact_args(raw)

        if not parsed.name:
            return ActionResult.ask(
                "I can help you create a contact. Please provide at least the contact's name."
                "\n\nExample: `/create-contact John Doe, john@email.com, Acme Corp`",
                missing_fields=self._missing(parsed),
            )

        try:
            member_id = self._resolve_member_id(parsed.assignee_name, context)
            contact = self._store.create_contact(Contact(
                organization_id=context.organization_id,
                subaccount_id=context.subaccount_id,
                name=parsed.name,
                email=parsed.email,
                phone=parsed.phone,
                company_name=parsed.company_name,
                tags=list(parsed.tags),
                assignee_ids=[member_id] if member_id else [],
            ))
        except Exception as e:
            logger.error("Failed to create contact: %s", e)
            return ActionResult.fail("Failed to create contact. Please try again.")

        message = f"Created contact **{contact.name}**"
        if contact.email:
            message += f" ({contact.email})"
        if contact.company_name:
            message += f" at {contact.company_name}"
        if parsed.tags:
            message += f" with tags: {', '.join(parsed.tags)}"
        if member_id:
            message += " assigned to team member"

        return ActionResult.ok(message, {"contact": contact})

    def handle_create_deal(self, params, context):
        if not context.has_tenant:
            return ActionResult.fail("Please select an organization to create a deal.", requires_more_info=True)

        raw = self._raw(params)
        if self._is_command(raw):
            parsed = parse_deal_args(raw)
        else:
            parsed = self._extractor.extract_deal_args(raw)

        if not parsed.name:
            return ActionResult.ask(
                "I can help you create a deal. Please provide the deal name."
                "\n\nExample: `/create-deal Enterprise Deal, $50000`",
                missing_fields=self._missing(parsed),
            )

        org, sub = context.organization_id, context.subaccount_id
        try:
            pipeline = None
            if parsed.pipeline_name:
                pipeline = self._store.find_pipeline_by_name(parsed.pipeline_name, org, sub)
                if pipeline is None:
                    logger.debug("No pipeline matching %r, using default", parsed.pipeline_name)
            if pipeline is None:
                pipeline = self._store.find_default_pipeline(org, sub)

            contact_id = None
            if parsed.contact_name:
                contact = self._store.find_contact_by_name(parsed.contact_name, org, sub)
                if contact is None:
                    logger.debug("No contact matching %r", parsed.contact_name)
                else:
                    contact_id = contact.id

            member_id = self._resolve_member_id(parsed.assignee_name, context)

            deadline_day = coerce_iso_date(parsed.deadline)
            stage = pipeline.first_stage if pipeline else None
            deal = self._store.create_deal(Deal(
                organization_id=org,
                subaccount_id=sub,
                name=parsed.name,
                value=parsed.value,
                currency=parsed.currency or "USD",
                deadline=parse_day(deadline_day) if deadline_day else None,
                pipeline_id=pipeline.id if pipeline else None,
                pipeline_stage_id=stage.id if stage else None,
                contact_ids=[contact_id] if contact_id else [],
                member_ids=[member_id] if member_id else [],
            ))
        except Exception as e:
            logger.error("Failed to create deal: %s", e)
            return ActionResult.fail("Failed to create deal. Please try again.")

        message = f"Created deal **{deal.name}**"
        if deal.value:
            message += f" worth {deal.currency} {plain_number(deal.value)}"
        if pipeline:
            message += f" in {pipeline.name} pipeline"
        if deal.deadline:
            message += f" with deadline {deal.deadline.date().isoformat()}"
        if contact_id:
            message += " linked to contact"
        if member_id:
            message += " assigned to team member"

        return ActionResult.ok(message, {"deal": deal})

    def handle_create_pipeline(self, params, context):
        if not context.has_tenant:
            return ActionResult.fail("Please select an organization to create a pipeline.", requires_more_info=True)

        raw = self._raw(params)
        if self._is_command(raw):
            parsed = parse_pipeline_args(raw)
        else:
            parsed = self._extractor.extract_pipeline_args(raw)

        if not parsed.name:
            return ActionResult.ask(
                "I can help you create a pipeline. What would you like to name it?"
                "\n\nExample: `/create-pipeline Sales Pipeline`",
                missing_fields=self._missing(parsed),
            )

        try:
            pipeline = self._store.create_pipeline(Pipeline(
                organization_id=context.organization_id,
                subaccount_id=context.subaccount_id,
                name=parsed.name,
                description=parsed.description,
                stages=[PipelineStage(name=n, position=i) for i, n in enumerate(DEFAULT_PIPELINE_STAGES)],
            ))
        except Exception as e:
            logger.error("Failed to create pipeline: %s", e)
            return ActionResult.fail("Failed to create pipeline. Please try again.")

        return ActionResult.ok(
            f"Created pipeline **{pipeline.name}** with {len(pipeline.stages)} default stages.",
            {"pipeline": pipeline},
        )

    def handle_create_task(self, params, context):
        return ActionResult.ask(
            "I can help you create a task. What's the task title and due date?",
            missing_fields=["title", "dueDate"],
        )

    def handle_log_note(self, params, context):
        if params.get("contactIds") or params.get("dealIds"):
            return ActionResult.ask("What would you like to note about this record?", missing_fields=["note"])
        return ActionResult.ask("Please mention a contact or deal to add a note to using @.")

    def handle_send_email(self, params, context):
        if params.get("contactIds"):
            names = ", ".join(params.get("contactNames") or [])
            return ActionResult.ask(
                f"I'll help you send an email to {names}. What's the subject and message?",
                missing_fields=["subject", "body"],
            )
        return ActionResult.ask("Please mention a contact to email using @.")

    def handle_schedule_meeting(self, params, context):
        return ActionResult.ask(
            "I can help you schedule a meeting. What date and time works for you?",
            missing_fields=["date", "time", "attendees"],
        )

    # ------------------------------------------------------------------
    # Workflow actions
    # ------------------------------------------------------------------

    def handle_run_workflow(self, params, context):
        if not self._entitled(context):
            return ActionResult.fail(UPGRADE_MESSAGE)

        workflow_ids = params.get("workflowIds") or []
        if not workflow_ids:
            return ActionResult.ask("Please mention a workflow to run using @.")

        workflow = self._store.get_workflow(workflow_ids[0], context.user_id)
        if workflow is None:
            return ActionResult.fail("Workflow not found or you don't have access to it.")

        return ActionResult.ask(
            f'Ready to run workflow "{workflow.name}". Confirm to proceed.',
            missing_fields=["confirmation"],
            data={"workflowId": workflow.id, "workflowName": workflow.name},
        )

    def handle_list_workflows(self, params, context):
        if not self._entitled(context):
            return ActionResult.fail(UPGRADE_MESSAGE)

        workflows = self._store.list_workflows(
            {"user_id": context.user_id, "archived": False}, self._show_limit
        )
        if not workflows:
            return ActionResult.ok(
                "You don't have any workflows yet. Would you like to create one?",
                {"workflows": []},
            )
        return ActionResult.ok(
            "Here are your workflows:\n\n" + "\n".join(f"• {w.name}" for w in workflows),
            {"workflows": [_workflow_summary(w) for w in workflows]},
        )

    def handle_generate_workflow(self, params, context):
        return self._generate(params, context, is_bundle=False)

    def handle_generate_bundle(self, params, context):
        return self._generate(params, context, is_bundle=True)

    def _generate(self, params, context, is_bundle: bool) -> ActionResult:
        noun = "bundle" if is_bundle else "workflow"
        if not self._entitled(context):
            return ActionResult.fail(UPGRADE_MESSAGE)
        if not context.has_tenant:
            return ActionResult.fail(f"Please select an organization to generate a {noun}.", requires_more_info=True)

        raw = self._raw(params)
        if is_bundle and len(raw) < 15:
            return ActionResult.ask(
                "Describe the bundle workflow you want to create. What actions should it perform?"
                "\n\nExample: 'Generate a bundle that sends a notification via Discord and Slack'",
                missing_fields=["description"],
            )
        if not is_bundle and (len(raw) < 20 or "workflow" not in raw.lower()):
            return ActionResult.ask(
                "Describe the workflow you want to create. What should trigger it and what actions should it perform?"
                "\n\nExample: 'Generate a workflow for application intake that creates a contact when a "
                "Google Form is submitted, then sends a welcome email'",
                missing_fields=["description"],
            )

        try:
            generated = None
            if self._synthesizer is not None:
                generated = self._synthesizer.synthesize(raw, context, is_bundle=is_bundle)
            if generated is None:
                if is_bundle:
                    return ActionResult.fail(
                        "Failed to generate bundle. Please try again with more details about the actions."
                    )
                return ActionResult.fail(
                    "Failed to generate workflow. Please try again with more details about the trigger and actions."
                )

            created = self._store.create_workflow(Workflow(
                user_id=context.user_id,
                organization_id=context.organization_id,
                subaccount_id=context.subaccount_id,
                name=generated.name,
                description=generated.description,
                is_bundle=is_bundle,
                nodes=[
                    WorkflowNode(
                        name=n.name,
                        type=n.type,
                        position=n.position.model_dump(),
                        data=dict(n.data),
                    )
                    for n in generated.nodes
                ],
            ))

            connections = []
            for from_id, to_id in remap_connections(generated, created.nodes):
                connections.append(self._store.create_connection(WorkflowConnection(
                    workflow_id=created.id,
                    from_node_id=from_id,
                    to_node_id=to_id,
                )))
            logger.info(
                "Created %s %s with %d nodes and %d/%d connections",
                noun, created.id, len(created.nodes), len(connections), len(generated.connections),
            )
        except Exception as e:
            logger.error("Failed to create %s: %s", noun, e)
            return ActionResult.fail(f"Failed to create {noun}. Please try again.")

        created = created.model_copy(update={"connections": connections})
        node_list = "\n".join(f"• {n.name} ({n.type})" for n in generated.nodes)
        route = "bundles" if is_bundle else "workflows"
        message = (
            f"Created {noun} **{generated.name}**\n\n{generated.description}\n\n"
            f"**Nodes:**\n{node_list}\n\n[Open {noun} editor](/{route}/{created.id})"
        )
        return ActionResult.ok(message, {"workflow": created})

    # ------------------------------------------------------------------
    # AI actions
    # ------------------------------------------------------------------

    def handle_summarise(self, params, context):
        contact_ids = params.get("contactIds") or []
        deal_ids = params.get("dealIds") or []
        if contact_ids or deal_ids:
            return ActionResult.ok(
                "I'll summarise the mentioned records for you.",
                {"contactIds": contact_ids, "dealIds": deal_ids},
            )
        return ActionResult.ask("What would you like me to summarise? You can mention a contact or deal using @.")

    def handle_explain(self, params, context):
        return ActionResult.ask("What would you like me to explain?", missing_fields=["topic"])

    def handle_draft_email(self, params, context):
        if params.get("contactIds"):
            names = ", ".join(params.get("contactNames") or [])
            return ActionResult.ask(
                f"I'll draft an email for {names}. What's the purpose of this email?",
                missing_fields=["purpose"],
            )
        return ActionResult.ask("I can draft an email for you. Mention a contact using @ and tell me the purpose.")

    def handle_analyze(self, params, context):
        return ActionResult.ask(
            "What data would you like me to analyze? You can mention specific contacts, deals, or pipelines."
        )

    def handle_research(self, params, context):
        return ActionResult.ask("What topic would you like me to research?", missing_fields=["topic"])

    # ------------------------------------------------------------------
    # Query actions
    # ------------------------------------------------------------------

    def handle_show_contacts(self, params, context):
        if not context.has_tenant:
            return ActionResult.fail("Please select an organization to view contacts.", requires_more_info=True)

        contacts = self._store.list_contacts(tenant_predicate(context), self._show_limit)
        if not contacts:
            return ActionResult.ok("No contacts found. Would you like to create one?", {"contacts": []})

        lines = [f"• {c.name}" + (f" ({c.email})" if c.email else "") for c in contacts]
        return ActionResult.ok("Here are your recent contacts:\n\n" + "\n".join(lines), {"contacts": contacts})

    def handle_show_deals(self, params, context):
        if not context.has_tenant:
            return ActionResult.fail("Please select an organization to view deals.", requires_more_info=True)

        deals = self._store.list_deals(tenant_predicate(context), self._show_limit)
        if not deals:
            return ActionResult.ok("No deals found. Would you like to create one?", {"deals": []})

        stage_names = self._stage_names(deals)
        lines = []
        for d in deals:
            line = f"• {d.name}"
            if d.value:
                line += f" - ${plain_number(d.value)}"
            if d.pipeline_stage_id in stage_names:
                line += f" ({stage_names[d.pipeline_stage_id]})"
            lines.append(line)
        return ActionResult.ok("Here are your recent deals:\n\n" + "\n".join(lines), {"deals": deals})

    def _stage_names(self, deals: List[Deal]) -> Dict[str, str]:
        """stage id -> stage name for the pipelines the deals sit in"""
        names: Dict[str, str] = {}
        for pipeline_id in dict.fromkeys(d.pipeline_id for d in deals if d.pipeline_id):
            pipeline = self._store.get_pipeline(pipeline_id)
            if pipeline is not None:
                names.update({s.id: s.name for s in pipeline.stages})
        return names

    def handle_show_pipelines(self, params, context):
        if not context.has_tenant:
            return ActionResult.fail("Please select an organization to view pipelines.", requires_more_info=True)

        pipelines = self._store.list_pipelines(tenant_predicate(context), self._show_limit)
        if not pipelines:
            return ActionResult.ok("No pipelines found. Would you like to create one?", {"pipelines": []})

        lines = [f"• {p.name} ({len(p.stages)} stages)" for p in pipelines]
        return ActionResult.ok("Here are your pipelines:\n\n" + "\n".join(lines), {"pipelines": pipelines})

    def handle_show_workflows(self, params, context):
        workflows = self._store.list_workflows(
            {"user_id": context.user_id, "archived": False}, self._show_limit
        )
        if not workflows:
            return ActionResult.ok("No workflows found. Would you like to create one?", {"workflows": []})
        return ActionResult.ok(
            "Here are your workflows:\n\n" + "\n".join(f"• {w.name}" for w in workflows),
            {"workflows": [_workflow_summary(w) for w in workflows]},
        )

    def handle_search(self, params, context):
        raw = self._raw(params)
        if not raw:
            return ActionResult.ask("What would you like to search for?", missing_fields=["query"])

        search_type = self._extractor.classify_search_type(raw)
        if search_type == "contacts":
            return self.handle_query_contacts(params, context)
        if search_type == "pipelines":
            return self.handle_show_pipelines(params, context)
        if search_type == "workflows":
            return self._search_workflows(context)
        # deals, or undetermined
        return self.handle_query_deals(params, context)

    def _search_workflows(self, context):
        if not context.has_tenant:
            return ActionResult.fail("Please select an organization to search workflows.", requires_more_info=True)

        workflows = self._store.list_workflows(
            {"organization_id": context.organization_id, "subaccount_id": context.subaccount_id},
            self._show_limit,
        )
        plural = "" if len(workflows) == 1 else "s"
        return ActionResult.ok(
            f"Found {len(workflows)} workflow{plural}",
            {"workflows": [_workflow_summary(w) for w in workflows]},
        )

    def handle_query_contacts(self, params, context):
        if not context.has_tenant:
            return ActionResult.fail("Please select an organization to query contacts.", requires_more_info=True)

        filters = self._extractor.extract_contact_filters(self._raw(params))
        if filters.is_empty():
            logger.debug("No contact filters extracted, listing most recent")
        contacts = self._store.list_contacts(build_contact_predicate(filters, context), self._query_limit)
        message = summarize("contact", len(contacts), describe_contact_filters(filters))

        if not contacts:
            return ActionResult.ok(message, {"contacts": [], "filters": filters.as_dict()})
        return ActionResult.ok(
            message,
            {"contacts": contacts, "filters": filters.as_dict(), "url": contacts_url(filters)},
        )

    def handle_query_deals(self, params, context):
        if not context.has_tenant:
            return ActionResult.fail("Please select an organization to query deals.", requires_more_info=True)

        org, sub = context.organization_id, context.subaccount_id
        filters = self._extractor.extract_deal_filters(self._raw(params))
        if filters.is_empty():
            logger.debug("No deal filters extracted, listing most recent")

        pipeline_id = None
        if filters.pipeline_name:
            pipeline = self._store.find_pipeline_by_name(filters.pipeline_name, org, sub)
            if pipeline is None:
                logger.debug("No pipeline matching %r, dropping filter", filters.pipeline_name)
            else:
                pipeline_id = pipeline.id

        stage_ids: List[str] = []
        if filters.stage_name:
            stage_ids = [s.id for s in self._store.find_stages_by_name(filters.stage_name, org, sub)]
            if not stage_ids:
                logger.debug("No stage matching %r, dropping filter", filters.stage_name)

        now = self._clock()
        where = build_deal_predicate(filters, context, now, pipeline_id=pipeline_id, stage_ids=stage_ids)
        deals = self._store.list_deals(where, self._query_limit)
        message = summarize("deal", len(deals), describe_deal_filters(filters))

        if not deals:
            return ActionResult.ok(message, {"deals": [], "filters": filters.as_dict()})
        return ActionResult.ok(
            message,
            {"deals": deals, "filters": filters.as_dict(), "url": deals_url(filters, now, stage_ids)},
        )


def _workflow_summary(workflow: Workflow) -> Dict[str, Any]:
    return {
        "id": workflow.id,
        "name": workflow.name,
        "description": workflow.description,
        "archived": workflow.archived,
    }
