"""
Actions - Intent to Outcome

Executes routed intents against the CRM record store:
1. Guards: tenant scope, subscription
2. Argument sourcing: command parser or NL extraction
3. Record operations and query filters
4. Uniform ActionResult back to the caller
"""

from .context import ActionResult, ExecutionContext
from .dispatcher import ActionDispatcher, UPGRADE_MESSAGE
from .entitlements import EntitlementChecker, StaticEntitlements, check_entitlement
from .extractors import ContactFilters, DealFilters, NLExtractor
from .store import InMemoryRecordStore, RecordStore

__all__ = [
    "ActionResult",
    "ExecutionContext",
    "ActionDispatcher",
    "UPGRADE_MESSAGE",
    "EntitlementChecker",
    "StaticEntitlements",
    "check_entitlement",
    "ContactFilters",
    "DealFilters",
    "NLExtractor",
    "InMemoryRecordStore",
    "RecordStore",
]
