"""
Argument Parser

Parses inline arguments from command messages. Supports formats like:

    /create-contact John Doe, john@email.com, Acme Corp
    /create-deal Enterprise Deal, $50000
    /create-pipeline Enterprise Sales, Inbound leads over 10k

Fragments are split on comma/semicolon and classified by precedence:
email -> phone -> monetary amount -> next free positional slot. Anything
left over is dropped; parsing never fails.
"""

import re
from dataclasses import dataclass, field, fields
from typing import Dict, List, Optional, Tuple

from ..common.llm_utils import coerce_float, coerce_str


EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_REGEX = re.compile(r"^[\d\s\-\+\(\)]{7,}$")
# Optional glyph, digits with thousands separators, optional cents, optional ISO code
AMOUNT_REGEX = re.compile(
    r"^(?P<glyph>[\$£€])?\s*(?P<number>\d[\d,]*(?:\.\d{1,2})?)\s*(?P<code>[A-Za-z]{3})?$"
)
COMMAND_REGEX = re.compile(r"^/\S+\s*")
SEPARATOR_REGEX = re.compile(r"[,;]\s*")

CURRENCY_GLYPHS = {"$": "USD", "£": "GBP", "€": "EUR"}
DEFAULT_CURRENCY = "USD"
KNOWN_CURRENCIES = {
    "USD", "GBP", "EUR", "CAD", "AUD", "JPY", "CHF", "CNY", "INR", "MXN",
    "BRL", "ZAR", "SGD", "HKD", "NZD", "SEK", "NOK", "DKK", "PLN", "TRY",
    "KRW", "THB", "MYR", "IDR", "PHP", "AED", "SAR", "EGP", "NGN", "KES",
}


@dataclass
class ParsedArguments:
    """Optional bag of fields pulled out of a message.

    Every field may be absent. Absence is bookkeeping for "missing fields",
    never an error.
    """
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company_name: Optional[str] = None
    value: Optional[float] = None
    currency: Optional[str] = None
    description: Optional[str] = None
    note: Optional[str] = None
    deadline: Optional[str] = None
    assignee_name: Optional[str] = None
    contact_name: Optional[str] = None
    pipeline_name: Optional[str] = None
    stage_name: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Dict) -> "ParsedArguments":
        """Build from a camelCase mapping (LLM output), dropping ill-typed values"""
        if not isinstance(data, dict):
            return cls()
        parsed = cls()
        for f in fields(cls):
            raw = data.get(camel_case(f.name))
            if f.name == "value":
                parsed.value = coerce_float(raw)
            elif f.name == "tags":
                if isinstance(raw, list):
                    parsed.tags = [t.strip() for t in raw if isinstance(t, str) and t.strip()]
                elif isinstance(raw, str) and raw.strip():
                    parsed.tags = [t.strip() for t in raw.split(",") if t.strip()]
            else:
                setattr(parsed, f.name, coerce_str(raw) or None)
        if parsed.currency:
            parsed.currency = parsed.currency.upper()
        return parsed

    def as_dict(self) -> Dict:
        """camelCase mapping of the fields that are present"""
        out = {}
        for f in fields(self):
            val = getattr(self, f.name)
            if val is None or val == [] or val == "":
                continue
            out[camel_case(f.name)] = val
        return out

    def has(self, field_name: str) -> bool:
        return bool(getattr(self, field_name, None))


def camel_case(snake: str) -> str:
    head, *rest = snake.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass(frozen=True)
class FieldLayout:
    """Which pattern fields apply to a command, and its positional slot order"""
    email: bool = False
    phone: bool = False
    amount: bool = False
    slots: Tuple[str, ...] = ("name",)


CONTACT_LAYOUT = FieldLayout(email=True, phone=True, slots=("name", "company_name"))
DEAL_LAYOUT = FieldLayout(amount=True, slots=("name",))
PIPELINE_LAYOUT = FieldLayout(slots=("name", "description"))
GENERIC_LAYOUT = FieldLayout(email=True, phone=True, amount=True, slots=("name", "description", "note"))

COMMAND_LAYOUTS = {
    "create-contact": CONTACT_LAYOUT,
    "create-deal": DEAL_LAYOUT,
    "create-pipeline": PIPELINE_LAYOUT,
}


def _split_fragments(message: str) -> List[str]:
    """Drop the leading command token and split the rest into fragments"""
    text = COMMAND_REGEX.sub("", (message or "").strip(), count=1).strip()
    if not text:
        return []
    return [p.strip() for p in SEPARATOR_REGEX.split(text) if p.strip()]


def parse_amount(fragment: str) -> Optional[Tuple[float, str]]:
    """Parse "$50,000", "50000", "1200.50 GBP" into (value, currency)"""
    match = AMOUNT_REGEX.match(fragment.strip())
    if not match:
        return None
    code = (match.group("code") or "").upper()
    if code and code not in KNOWN_CURRENCIES:
        return None
    try:
        value = float(match.group("number").replace(",", ""))
    except ValueError:
        return None
    currency = code or CURRENCY_GLYPHS.get(match.group("glyph") or "", DEFAULT_CURRENCY)
    return value, currency


def parse_with_layout(message: str, layout: FieldLayout) -> ParsedArguments:
    """Classify each fragment of ``message`` according to ``layout``"""
    result = ParsedArguments()
    free_slots = list(layout.slots)

    for part in _split_fragments(message):
        if layout.email and EMAIL_REGEX.match(part):
            result.email = part
            continue
        if layout.phone and PHONE_REGEX.match(part):
            result.phone = part
            continue
        if layout.amount:
            amount = parse_amount(part)
            if amount:
                result.value, result.currency = amount
                continue
        if free_slots:
            setattr(result, free_slots.pop(0), part)
        # extra fragments are discarded

    return result


def parse(command_text: str) -> ParsedArguments:
    """Parse a delimiter-prefixed command, picking the layout from its token"""
    token = (command_text or "").strip().split(" ", 1)[0].lstrip("/").lower()
    layout = COMMAND_LAYOUTS.get(token, GENERIC_LAYOUT)
    return parse_with_layout(command_text, layout)


def parse_contact_args(message: str) -> ParsedArguments:
    return parse_with_layout(message, CONTACT_LAYOUT)


def parse_deal_args(message: str) -> ParsedArguments:
    return parse_with_layout(message, DEAL_LAYOUT)


def parse_pipeline_args(message: str) -> ParsedArguments:
    return parse_with_layout(message, PIPELINE_LAYOUT)


def parse_inline_args(message: str) -> ParsedArguments:
    """Generic parser that returns all detected fields"""
    return parse_with_layout(message, GENERIC_LAYOUT)


def get_missing_fields(parsed: ParsedArguments, required: List[str]) -> List[str]:
    """Check which required fields are missing"""
    return [f for f in required if not parsed.has(f)]


def format_field_name(field_name: str) -> str:
    """Format a field name for display: "company_name"/"companyName" -> "Company Name" """
    spaced = re.sub(r"([A-Z])", r" \1", field_name.replace("_", " "))
    return " ".join(w[:1].upper() + w[1:] for w in spaced.split())
