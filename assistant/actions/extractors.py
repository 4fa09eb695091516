"""
Natural Language Extractors

Turns free text into structured arguments with one LLM round trip per call:

- create arguments for contacts, deals and pipelines
- query filters for contacts and deals
- the record type a free-form search is about

Every call degrades to an empty result when the LLM is unavailable, fails,
or answers with something that is not a JSON object. Fields with the wrong
type are dropped one by one; the rest of the answer is kept.
"""

import logging
from dataclasses import dataclass, fields
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Optional

from ..common.llm_utils import coerce_float, coerce_str, parse_llm_json
from ..common.schemas import ContactType, LifecycleStage
from ..router.argument_parser import ParsedArguments, camel_case

logger = logging.getLogger("assistant.actions.extractors")

SEARCH_TYPES = ("contacts", "deals", "pipelines", "workflows")


# ============================================================================
# Prompts
# ============================================================================

CONTACT_ARGS_PROMPT = """Extract contact information from this message. Return ONLY valid JSON with these fields (omit fields if not mentioned):
- name: string (person's full name)
- email: string
- phone: string
- companyName: string (company/organization they work for)
- tags: string[] (array of tags/labels to categorize the contact, from phrases like "tag as", "label as", "tags:")
- assigneeName: string (name of team member to assign contact to, from phrases like "assign to", "owner", "assigned to")

Message: "{message}"

JSON:"""

DEAL_ARGS_PROMPT = """Extract deal information from this message. Return ONLY valid JSON with these fields (omit fields if not mentioned):
- name: string (deal name/title)
- value: number (deal value without currency symbol)
- currency: string (USD, GBP, EUR, etc. - default to USD)
- deadline: string (ISO date format YYYY-MM-DD, for phrases like "due by", "deadline on", "by date")
- contactName: string (name of contact to associate with deal, from phrases like "for contact", "assign to contact", "link to")
- assigneeName: string (name of team member to assign, from phrases like "assign to", "owner", "assign team member")
- pipelineName: string (name of pipeline to assign deal to, from phrases like "in pipeline", "to pipeline", "for pipeline")

Today's date is {today}. Parse relative dates like "next week", "in 2 days" accordingly.

Message: "{message}"

JSON:"""

PIPELINE_ARGS_PROMPT = """Extract pipeline information from this message. Return ONLY valid JSON with these fields (omit fields if not mentioned):
- name: string (pipeline name)
- description: string

Message: "{message}"

JSON:"""

CONTACT_FILTERS_PROMPT = """Extract contact filter criteria from this search query. Return ONLY valid JSON with these fields (omit fields if not mentioned):
- companyName: string (company/organization name to filter by)
- name: string (contact name to search for)
- email: string (email to search for)
- createdAfter: string (ISO date format YYYY-MM-DD, for "after", "since", "from" dates)
- createdBefore: string (ISO date format YYYY-MM-DD, for "before", "until" dates)
- createdOn: string (ISO date format YYYY-MM-DD, for specific date like "on November 25th")
- type: string (LEAD, CUSTOMER, PARTNER, VENDOR, OTHER)
- lifecycleStage: string (SUBSCRIBER, LEAD, MQL, SQL, OPPORTUNITY, CUSTOMER, EVANGELIST, OTHER)

Today's date is {today}. Parse relative dates like "this week", "last month", "yesterday" accordingly.

Message: "{message}"

JSON:"""

DEAL_FILTERS_PROMPT = """Extract deal filter criteria from this search query. Return ONLY valid JSON with these fields (omit fields if not mentioned):
- minValue: number (minimum deal value, for "above", "over", "more than", "at least")
- maxValue: number (maximum deal value, for "below", "under", "less than", "at most")
- currency: string (GBP, USD, EUR - infer from symbols like £, $, €)
- pipelineName: string (name of pipeline to filter by)
- stageName: string (name of pipeline stage to filter by)
- createdAfter: string (ISO date format YYYY-MM-DD)
- createdBefore: string (ISO date format YYYY-MM-DD)
- createdOn: string (ISO date format YYYY-MM-DD)
- name: string (deal name to search for)
- deadlineBefore: string (ISO date format YYYY-MM-DD, for deals with deadline before this date)
- deadlineAfter: string (ISO date format YYYY-MM-DD, for deals with deadline after this date)
- deadlineOn: string (ISO date format YYYY-MM-DD, for deals with deadline on specific date)
- hasPassedDeadline: boolean (true for "passed deadline", "overdue", "missed deadline")

Today's date is {today}. Parse relative dates accordingly.
For currency: £ = GBP, $ = USD, € = EUR
For "passed deadline" or "overdue", set hasPassedDeadline to true.

Message: "{message}"

JSON:"""

SEARCH_TYPE_PROMPT = """Analyze this search query and determine what the user is looking for. Return ONLY valid JSON with these fields:
- type: string ("contacts", "deals", "pipelines", or "workflows")

Query: "{message}"

JSON:"""


# ============================================================================
# Filter bags
# ============================================================================

def coerce_iso_date(value: Any) -> Optional[str]:
    """Normalize "2024-11-25" or "2024-11-25T10:00:00Z" to "2024-11-25"; else None"""
    text = coerce_str(value)
    if len(text) < 10:
        return None
    try:
        return date.fromisoformat(text[:10]).isoformat()
    except ValueError:
        return None


def _coerce_choice(value: Any, allowed) -> Optional[str]:
    text = coerce_str(value).upper()
    return text if text in allowed else None


def _coerce_currency(value: Any) -> Optional[str]:
    text = coerce_str(value).upper()
    return text if len(text) == 3 and text.isalpha() else None


class _FilterBag:
    """camelCase (de)serialization shared by the filter dataclasses"""

    def as_dict(self) -> Dict[str, Any]:
        out = {}
        for f in fields(self):
            val = getattr(self, f.name)
            if val is None or val == "" or val is False:
                continue
            out[camel_case(f.name)] = val
        return out

    def is_empty(self) -> bool:
        return not self.as_dict()


@dataclass
class ContactFilters(_FilterBag):
    company_name: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    created_after: Optional[str] = None
    created_before: Optional[str] = None
    created_on: Optional[str] = None
    type: Optional[str] = None
    lifecycle_stage: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Dict) -> "ContactFilters":
        if not isinstance(data, dict):
            return cls()
        return cls(
            company_name=coerce_str(data.get("companyName")) or None,
            name=coerce_str(data.get("name")) or None,
            email=coerce_str(data.get("email")) or None,
            created_after=coerce_iso_date(data.get("createdAfter")),
            created_before=coerce_iso_date(data.get("createdBefore")),
            created_on=coerce_iso_date(data.get("createdOn")),
            type=_coerce_choice(data.get("type"), {t.value for t in ContactType}),
            lifecycle_stage=_coerce_choice(data.get("lifecycleStage"), {s.value for s in LifecycleStage}),
        )


@dataclass
class DealFilters(_FilterBag):
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    currency: Optional[str] = None
    pipeline_name: Optional[str] = None
    stage_name: Optional[str] = None
    created_after: Optional[str] = None
    created_before: Optional[str] = None
    created_on: Optional[str] = None
    name: Optional[str] = None
    deadline_before: Optional[str] = None
    deadline_after: Optional[str] = None
    deadline_on: Optional[str] = None
    has_passed_deadline: bool = False

    @classmethod
    def from_mapping(cls, data: Dict) -> "DealFilters":
        if not isinstance(data, dict):
            return cls()
        return cls(
            min_value=coerce_float(data.get("minValue")),
            max_value=coerce_float(data.get("maxValue")),
            currency=_coerce_currency(data.get("currency")),
            pipeline_name=coerce_str(data.get("pipelineName")) or None,
            stage_name=coerce_str(data.get("stageName")) or None,
            created_after=coerce_iso_date(data.get("createdAfter")),
            created_before=coerce_iso_date(data.get("createdBefore")),
            created_on=coerce_iso_date(data.get("createdOn")),
            name=coerce_str(data.get("name")) or None,
            deadline_before=coerce_iso_date(data.get("deadlineBefore")),
            deadline_after=coerce_iso_date(data.get("deadlineAfter")),
            deadline_on=coerce_iso_date(data.get("deadlineOn")),
            has_passed_deadline=data.get("hasPassedDeadline") is True,
        )


# ============================================================================
# Extractor
# ============================================================================

def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class NLExtractor:
    """LLM-backed extraction of create arguments, query filters and search type"""

    def __init__(self, llm=None, today: Optional[Callable[[], date]] = None):
        """
        Args:
            llm: Text classifier exposing ``is_available`` and ``generate(prompt)``
            today: Clock used for relative-date prompts (defaults to UTC today)
        """
        self._llm = llm
        self._today = today or _utc_today

    @property
    def is_available(self) -> bool:
        return self._llm is not None and bool(getattr(self._llm, "is_available", False))

    def _ask(self, prompt: str, what: str) -> dict:
        """One LLM round trip; any failure yields {}"""
        if not self.is_available:
            return {}
        try:
            raw = self._llm.generate(prompt, max_tokens=512)
        except Exception as e:
            logger.warning("Failed to extract %s from NL: %s", what, e)
            return {}
        data = parse_llm_json(raw)
        if not data:
            logger.debug("No JSON object in %s extraction response", what)
        return data

    # ---- create arguments ------------------------------------------------

    def extract_contact_args(self, message: str) -> ParsedArguments:
        data = self._ask(CONTACT_ARGS_PROMPT.format(message=message), "contact")
        return ParsedArguments.from_mapping(data)

    def extract_deal_args(self, message: str) -> ParsedArguments:
        prompt = DEAL_ARGS_PROMPT.format(message=message, today=self._today().isoformat())
        parsed = ParsedArguments.from_mapping(self._ask(prompt, "deal"))
        if parsed.deadline:
            parsed.deadline = coerce_iso_date(parsed.deadline)
        return parsed

    def extract_pipeline_args(self, message: str) -> ParsedArguments:
        data = self._ask(PIPELINE_ARGS_PROMPT.format(message=message), "pipeline")
        return ParsedArguments.from_mapping(data)

    # ---- query filters ---------------------------------------------------

    def extract_contact_filters(self, message: str) -> ContactFilters:
        prompt = CONTACT_FILTERS_PROMPT.format(message=message, today=self._today().isoformat())
        return ContactFilters.from_mapping(self._ask(prompt, "contact filters"))

    def extract_deal_filters(self, message: str) -> DealFilters:
        prompt = DEAL_FILTERS_PROMPT.format(message=message, today=self._today().isoformat())
        return DealFilters.from_mapping(self._ask(prompt, "deal filters"))

    # ---- search routing --------------------------------------------------

    def classify_search_type(self, message: str) -> Optional[str]:
        """One of "contacts", "deals", "pipelines", "workflows", or None"""
        data = self._ask(SEARCH_TYPE_PROMPT.format(message=message), "search type")
        kind = coerce_str(data.get("type")).lower()
        return kind if kind in SEARCH_TYPES else None
