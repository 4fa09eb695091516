"""
Intent Classifier

Decides which catalog intent a message expresses.

Two paths:
1. Command path: a message starting with the command prefix ("/create-deal ...")
   is matched exactly against the catalog. A hit returns confidence 1.0 and the
   LLM is never called.
2. Classifier path: everything else is sent to the LLM together with the
   {name: description} enumeration. Answers at or below the confidence
   threshold, "none", unknown names and any transport/parse failure all mean
   "no match" (None).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from ..common.llm_utils import coerce_float, parse_llm_json
from .entities import EntityReference, extract_params
from .intents import IntentDefinition, get_intent_by_name, match_command, render_intent_list

logger = logging.getLogger("assistant.router.classifier")


CLASSIFY_PROMPT = """Classify the user's intent from this message. Choose the most appropriate intent from the list below, or respond with "none" if no intent matches.

Available intents:
{intent_list}

User message: "{message}"

Respond with ONLY a JSON object in this exact format:
{{"intent": "intent-name", "confidence": 0.9}}

The confidence should be between 0 and 1, where 1 means very confident.
If creating something (contact, deal, pipeline), the intent should be create-X.
If showing/listing something, the intent should be show-X.

JSON:"""


@dataclass(frozen=True)
class RouteResult:
    """A resolved intent plus the parameters its handler needs"""
    intent: IntentDefinition
    confidence: float
    extracted_params: Dict[str, Any] = field(default_factory=dict)

    @property
    def raw_message(self) -> str:
        return self.extracted_params.get("rawMessage", "") or ""


class IntentClassifier:
    """
    Routes a message to a catalog intent.

    The LLM client is optional: without one (or with one that is not
    configured) only explicit commands are routed.
    """

    def __init__(
        self,
        llm=None,
        confidence_threshold: float = 0.5,
        default_confidence: float = 0.8,
        command_prefix: str = "/",
    ):
        """
        Args:
            llm: Text classifier exposing ``is_available`` and ``generate(prompt)``
            confidence_threshold: Scores at or below this are rejected
            default_confidence: Score assumed when the classifier omits one
            command_prefix: Delimiter that marks an explicit command
        """
        self._llm = llm
        self._threshold = confidence_threshold
        self._default_confidence = default_confidence
        self._prefix = command_prefix

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def is_available(self) -> bool:
        return self._llm is not None and bool(getattr(self._llm, "is_available", False))

    def classify(
        self,
        message: str,
        entities: Optional[Iterable[EntityReference]] = None,
    ) -> Optional[RouteResult]:
        """
        Classify a message.

        Args:
            message: Raw user message
            entities: Pre-resolved mentions that accompany the message

        Returns:
            RouteResult, or None when nothing in the catalog fits
        """
        message = message or ""
        entities = list(entities or ())

        intent = self._match_command(message)
        if intent is not None:
            return RouteResult(
                intent=intent,
                confidence=1.0,
                extracted_params=extract_params(message, entities),
            )

        if not message.strip():
            return None

        if not self.is_available:
            logger.debug("Classifier unavailable, no command match for message")
            return None

        try:
            prompt = CLASSIFY_PROMPT.format(intent_list=render_intent_list(), message=message)
            raw = self._llm.generate(prompt, max_tokens=100)
        except Exception as e:
            logger.warning("Intent classification failed: %s", e)
            return None

        return self._interpret(raw, message, entities)

    def _match_command(self, message: str) -> Optional[IntentDefinition]:
        """Exact, case-insensitive match of the leading command token"""
        stripped = message.strip()
        if not stripped.startswith(self._prefix):
            return None
        token = stripped[len(self._prefix):].split(None, 1)
        if not token:
            return None
        return match_command(token[0])

    def _interpret(self, raw: str, message: str, entities) -> Optional[RouteResult]:
        """Turn the classifier's answer into a RouteResult, or None"""
        data = parse_llm_json(raw)
        if not data:
            logger.debug("No JSON object in classifier response")
            return None

        intent_name = data.get("intent")
        if not isinstance(intent_name, str) or not intent_name or intent_name.lower() == "none":
            return None

        intent = get_intent_by_name(intent_name)
        if intent is None:
            logger.debug("Classifier returned unknown intent %r", intent_name)
            return None

        confidence = coerce_float(data.get("confidence"))
        if confidence is None:
            confidence = self._default_confidence
        if not confidence > self._threshold:
            logger.debug("Rejected %s at confidence %.2f", intent.name, confidence)
            return None

        return RouteResult(
            intent=intent,
            confidence=confidence,
            extracted_params=extract_params(message, entities),
        )
