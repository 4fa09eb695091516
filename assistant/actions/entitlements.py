"""
Entitlement Check

Automation features (run, list, generate workflows and bundles) are gated on
an active subscription. The billing system itself lives elsewhere; the
assistant only asks a yes/no question and treats any failure as "no".
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

logger = logging.getLogger("assistant.actions.entitlements")


class EntitlementChecker(ABC):
    """Answers whether a user holds an active subscription"""

    @abstractmethod
    def has_active_subscription(self, user_id: str) -> bool:
        pass


class StaticEntitlements(EntitlementChecker):
    """Fixed set of entitled user ids"""

    def __init__(self, user_ids: Optional[Iterable[str]] = None, allow_all: bool = False):
        self._user_ids = set(user_ids or ())
        self._allow_all = allow_all

    def has_active_subscription(self, user_id: str) -> bool:
        return self._allow_all or user_id in self._user_ids


def check_entitlement(checker: Optional[EntitlementChecker], user_id: str) -> bool:
    """Fail-closed wrapper: no checker, an error or a non-True answer all mean False"""
    if checker is None:
        return False
    try:
        return checker.has_active_subscription(user_id) is True
    except Exception as e:
        logger.warning("Failed to check subscription: %s", e)
        return False
