"""
Query Filters

Turns extracted ContactFilters / DealFilters into record-store predicates,
a human-readable description of what was applied, and a deep link into the
matching list page.

Date rules:
- ``createdOn`` / ``deadlineOn`` mean the half-open UTC day [day, day+1) and
  override the corresponding after/before bounds.
- ``hasPassedDeadline`` overrides every other deadline bound; the predicate
  is exactly ``deadline < now`` and the deep link ends at the start of the
  current UTC day.
- Descriptions and deep links follow the same precedence as the predicate.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlencode

from .context import ExecutionContext
from .extractors import ContactFilters, DealFilters

CURRENCY_SYMBOLS = {"GBP": "£", "EUR": "€"}
DEFAULT_SYMBOL = "$"


def parse_day(iso_date: str) -> datetime:
    """2024-11-25 -> midnight UTC of that day"""
    return datetime.fromisoformat(iso_date[:10]).replace(tzinfo=timezone.utc)


def start_of_day(value: datetime) -> datetime:
    return value.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


def day_range(iso_date: str):
    start = parse_day(iso_date)
    return start, start + timedelta(days=1)


def tenant_predicate(context: ExecutionContext) -> Dict[str, Any]:
    """Organization scope, narrowed to the subaccount when one is selected"""
    where: Dict[str, Any] = {"organization_id": context.organization_id}
    if context.subaccount_id:
        where["subaccount_id"] = context.subaccount_id
    return where


def _insensitive(text: str) -> Dict[str, str]:
    return {"contains": text, "mode": "insensitive"}


def _created_range(filters) -> Optional[Dict[str, datetime]]:
    if filters.created_on:
        start, end = day_range(filters.created_on)
        return {"gte": start, "lt": end}
    bounds: Dict[str, datetime] = {}
    if filters.created_after:
        bounds["gte"] = parse_day(filters.created_after)
    if filters.created_before:
        bounds["lte"] = parse_day(filters.created_before)
    return bounds or None


# ============================================================================
# Predicates
# ============================================================================

def build_contact_predicate(filters: ContactFilters, context: ExecutionContext) -> Dict[str, Any]:
    where = tenant_predicate(context)

    if filters.company_name:
        where["company_name"] = _insensitive(filters.company_name)
    if filters.name:
        where["name"] = _insensitive(filters.name)
    if filters.email:
        where["email"] = _insensitive(filters.email)
    if filters.type:
        where["type"] = filters.type
    if filters.lifecycle_stage:
        where["lifecycle_stage"] = filters.lifecycle_stage

    created = _created_range(filters)
    if created:
        where["created_at"] = created
    return where


def build_deal_predicate(
    filters: DealFilters,
    context: ExecutionContext,
    now: datetime,
    pipeline_id: Optional[str] = None,
    stage_ids: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    """
    Args:
        filters: Extracted deal filters
        context: Tenant scope
        now: Reference instant for ``hasPassedDeadline``
        pipeline_id: Resolved id for ``pipelineName``; None drops the condition
        stage_ids: Resolved ids for ``stageName``; empty drops the condition
    """
    where = tenant_predicate(context)

    value: Dict[str, float] = {}
    if filters.min_value is not None:
        value["gte"] = filters.min_value
    if filters.max_value is not None:
        value["lte"] = filters.max_value
    if value:
        where["value"] = value

    if filters.currency:
        where["currency"] = filters.currency
    if filters.name:
        where["name"] = _insensitive(filters.name)
    if pipeline_id:
        where["pipeline_id"] = pipeline_id
    if stage_ids:
        where["pipeline_stage_id"] = {"in": list(stage_ids)}

    created = _created_range(filters)
    if created:
        where["created_at"] = created

    if filters.has_passed_deadline:
        where["deadline"] = {"lt": now}
    elif filters.deadline_on:
        start, end = day_range(filters.deadline_on)
        where["deadline"] = {"gte": start, "lt": end}
    else:
        deadline: Dict[str, datetime] = {}
        if filters.deadline_before:
            deadline["lte"] = parse_day(filters.deadline_before)
        if filters.deadline_after:
            deadline["gte"] = parse_day(filters.deadline_after)
        if deadline:
            where["deadline"] = deadline

    return where


# ============================================================================
# Descriptions
# ============================================================================

def format_number(value: float) -> str:
    """50000.0 -> "50,000", 1234.5 -> "1,234.5" """
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,}"


def describe_contact_filters(filters: ContactFilters) -> List[str]:
    parts = []
    if filters.company_name:
        parts.append(f'from "{filters.company_name}"')
    if filters.name:
        parts.append(f'named "{filters.name}"')
    if filters.created_on:
        parts.append(f"created on {filters.created_on}")
    else:
        if filters.created_after:
            parts.append(f"created after {filters.created_after}")
        if filters.created_before:
            parts.append(f"created before {filters.created_before}")
    if filters.type:
        parts.append(f"of type {filters.type}")
    if filters.lifecycle_stage:
        parts.append(f"in lifecycle stage {filters.lifecycle_stage}")
    return parts


def describe_deal_filters(filters: DealFilters) -> List[str]:
    symbol = CURRENCY_SYMBOLS.get(filters.currency or "", DEFAULT_SYMBOL)
    parts = []
    if filters.min_value is not None:
        parts.append(f"above {symbol}{format_number(filters.min_value)}")
    if filters.max_value is not None:
        parts.append(f"below {symbol}{format_number(filters.max_value)}")
    if filters.pipeline_name:
        parts.append(f'from "{filters.pipeline_name}" pipeline')
    if filters.stage_name:
        parts.append(f'in "{filters.stage_name}" stage')
    # same precedence as build_deal_predicate
    if filters.has_passed_deadline:
        parts.append("with passed deadline")
    elif filters.deadline_on:
        parts.append(f"with deadline on {filters.deadline_on}")
    else:
        if filters.deadline_before:
            parts.append(f"with deadline before {filters.deadline_before}")
        if filters.deadline_after:
            parts.append(f"with deadline after {filters.deadline_after}")
    return parts


def summarize(noun: str, count: int, descriptions: List[str]) -> str:
    """Result headline, e.g. Found 3 deals above $1,000"""
    suffix = f" {', '.join(descriptions)}" if descriptions else ""
    if count == 0:
        return f"No {noun}s found{suffix}."
    plural = "" if count == 1 else "s"
    return f"Found {count} {noun}{plural}{suffix}"


# ============================================================================
# Deep links
# ============================================================================

def iso_timestamp(value: datetime) -> str:
    """UTC timestamp with millisecond precision, e.g. 2024-11-25T00:00:00.000Z"""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def plain_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _link(path: str, params: Dict[str, str]) -> str:
    return f"{path}?{urlencode(params)}" if params else path


def contacts_url(filters: ContactFilters) -> str:
    params: Dict[str, str] = {}
    if filters.company_name:
        params["search"] = filters.company_name
    if filters.name:
        params["search"] = filters.name
    if filters.type:
        params["types"] = filters.type
    if filters.created_on:
        start, end = day_range(filters.created_on)
        params["createdAtStart"] = iso_timestamp(start)
        params["createdAtEnd"] = iso_timestamp(end)
    else:
        if filters.created_after:
            params["createdAtStart"] = iso_timestamp(parse_day(filters.created_after))
        if filters.created_before:
            params["createdAtEnd"] = iso_timestamp(parse_day(filters.created_before))
    return _link("/contacts", params)


def deals_url(filters: DealFilters, now: datetime, stage_ids: Optional[Sequence[str]] = None) -> str:
    params: Dict[str, str] = {}
    if filters.min_value is not None:
        params["valueMin"] = plain_number(filters.min_value)
    if filters.max_value is not None:
        params["valueMax"] = plain_number(filters.max_value)
    if filters.currency:
        params["valueCurrency"] = filters.currency
    if filters.name:
        params["search"] = filters.name
    if filters.stage_name and stage_ids:
        params["stages"] = ",".join(stage_ids)
    if filters.has_passed_deadline:
        # UTC day start, not the exact instant
        params["deadlineEnd"] = iso_timestamp(start_of_day(now))
    elif filters.deadline_on:
        start, end = day_range(filters.deadline_on)
        params["deadlineStart"] = iso_timestamp(start)
        params["deadlineEnd"] = iso_timestamp(end)
    else:
        if filters.deadline_before:
            params["deadlineEnd"] = iso_timestamp(parse_day(filters.deadline_before))
        if filters.deadline_after:
            params["deadlineStart"] = iso_timestamp(parse_day(filters.deadline_after))
    return _link("/deals", params)
