"""
Assistant Service

Caller-facing facade. Wires the classifier, dispatcher and synthesizer from
configuration and exposes the four entry points a chat endpoint needs:

    service = AssistantService.from_config(store, entitlements)
    route = service.route_intent("/create-deal Big Deal, $50000")
    if route is not None:
        result = service.execute_action(route, ExecutionContext(user_id="u1", organization_id="org-1"))
"""

import logging
from typing import Iterable, Optional

from .actions import ActionDispatcher, ActionResult, ExecutionContext, NLExtractor
from .builder import WorkflowSynthesizer
from .common.config import AssistantConfig, load_config
from .common.llm_client import LLMClient
from .common.schemas import GeneratedWorkflow
from .router import EntityReference, IntentClassifier, RouteResult

logger = logging.getLogger("assistant.service")


class AssistantService:
    """Route messages to intents, execute them, and generate workflows"""

    def __init__(
        self,
        classifier: IntentClassifier,
        dispatcher: ActionDispatcher,
        synthesizer: WorkflowSynthesizer,
    ):
        self.classifier = classifier
        self.dispatcher = dispatcher
        self.synthesizer = synthesizer

    @classmethod
    def from_config(
        cls,
        store,
        entitlements=None,
        config: Optional[AssistantConfig] = None,
        llm=None,
    ) -> "AssistantService":
        """
        Build a service from configuration.

        Args:
            store: RecordStore implementation
            entitlements: EntitlementChecker (None means nobody is entitled)
            config: Loaded configuration (defaults to ``load_config()``)
            llm: Pre-built text classifier; built from ``config.llm`` when omitted
        """
        config = config or load_config()
        if llm is None:
            llm = LLMClient.from_config(config.llm)
        if not getattr(llm, "is_available", False):
            logger.info("LLM unavailable; only explicit commands will be routed")

        classifier = IntentClassifier(
            llm=llm,
            confidence_threshold=config.router.confidence_threshold,
            default_confidence=config.router.default_confidence,
            command_prefix=config.router.command_prefix,
        )
        synthesizer = WorkflowSynthesizer.from_config(llm, store, config.builder)
        dispatcher = ActionDispatcher(
            store=store,
            extractor=NLExtractor(llm),
            entitlements=entitlements,
            synthesizer=synthesizer,
            show_limit=config.query.show_limit,
            query_limit=config.query.query_limit,
            command_prefix=config.router.command_prefix,
        )
        return cls(classifier, dispatcher, synthesizer)

    def route_intent(
        self,
        message: str,
        entities: Optional[Iterable[EntityReference]] = None,
    ) -> Optional[RouteResult]:
        """Resolve a message to an intent, or None when nothing fits"""
        return self.classifier.classify(message, entities)

    def execute_action(self, route_result: RouteResult, context: ExecutionContext) -> ActionResult:
        return self.dispatcher.execute(route_result, context)

    def generate_workflow(self, description: str, context: ExecutionContext) -> Optional[GeneratedWorkflow]:
        """Synthesize (without persisting) a triggered workflow"""
        return self.synthesizer.synthesize(description, context, is_bundle=False)

    def generate_bundle_workflow(self, description: str, context: ExecutionContext) -> Optional[GeneratedWorkflow]:
        """Synthesize (without persisting) a trigger-less bundle"""
        return self.synthesizer.synthesize(description, context, is_bundle=True)
