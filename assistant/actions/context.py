"""
Action Context and Result

ExecutionContext scopes every handler to a tenant; ActionResult is the only
contract callers branch on.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from pydantic import BaseModel


@dataclass(frozen=True)
class ExecutionContext:
    """Who is asking, and in which tenant scope"""
    user_id: str
    organization_id: Optional[str] = None
    subaccount_id: Optional[str] = None

    @property
    def has_tenant(self) -> bool:
        return bool(self.organization_id)


def freeze(value: Any) -> Any:
    """Recursively convert a result payload into read-only, JSON-ready values.

    Models are dumped, dicts become mapping proxies, lists become tuples and
    datetimes become ISO strings.
    """
    if isinstance(value, BaseModel):
        return freeze(value.model_dump(mode="json"))
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def thaw(value: Any) -> Any:
    """Inverse of ``freeze`` for serialization: plain dicts and lists"""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class ActionResult:
    """Uniform outcome of every handler.

    ``success`` false with ``requires_more_info`` true means the caller should
    prompt the user (for example to pick an organization). ``success`` true with
    ``requires_more_info`` true is a conversational turn asking for input.
    """
    success: bool
    message: str
    data: Optional[Mapping[str, Any]] = None
    requires_more_info: bool = False
    missing_fields: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def ok(cls, message: str, data: Optional[Mapping[str, Any]] = None) -> "ActionResult":
        return cls(success=True, message=message, data=freeze(data) if data is not None else None)

    @classmethod
    def fail(cls, message: str, requires_more_info: bool = False) -> "ActionResult":
        return cls(success=False, message=message, requires_more_info=requires_more_info)

    @classmethod
    def ask(
        cls,
        message: str,
        missing_fields=(),
        data: Optional[Mapping[str, Any]] = None,
    ) -> "ActionResult":
        """Conversational turn: the action needs more input from the user"""
        return cls(
            success=True,
            message=message,
            data=freeze(data) if data is not None else None,
            requires_more_info=True,
            missing_fields=tuple(missing_fields),
        )

    def to_dict(self) -> dict:
        out = {"success": self.success, "message": self.message}
        if self.data is not None:
            out["data"] = thaw(self.data)
        if self.requires_more_info:
            out["requiresMoreInfo"] = True
        if self.missing_fields:
            out["missingFields"] = list(self.missing_fields)
        return out
