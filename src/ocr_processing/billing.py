"""
Billing-Aware Routing
=====================

Decides which provider type serves an account, based on its subscription
and credit balance.

Routing Matrix:
    | Subscription | Credits | Provider   | Charged after success    |
    |--------------|---------|------------|--------------------------|
    | paid         | any     | cloud      | subscription usage       |
    | free         | >= 1    | cloud      | usage + 1 credit         |
    | free         | 0       | local      | usage only               |

Fallback after a technical failure does not re-run this policy.
"""

import logging
import threading
from abc import ABC, abstractmethod

from ocr_processing.exceptions import InsufficientCreditsError
from ocr_processing.models import ProviderType

logger = logging.getLogger(__name__)


class BillingService(ABC):
    """Account ledger collaborator. Implementations make each write atomic."""

    @abstractmethod
    def has_active_paid_subscription(self, account_id: str) -> bool: ...

    @abstractmethod
    def has_credits(self, account_id: str, amount: int) -> bool: ...

    @abstractmethod
    def consume_credits(self, account_id: str, amount: int) -> None: ...

    @abstractmethod
    def record_subscription_usage(self, account_id: str) -> None: ...


class InMemoryBillingService(BillingService):
    """Simple in-memory ledger for development and tests."""

    def __init__(
        self,
        paid_accounts: set[str] | None = None,
        credits: dict[str, int] | None = None,
    ) -> None:
        self.paid_accounts = set(paid_accounts or ())
        self.credits = dict(credits or {})
        self.usage: dict[str, int] = {}
        self._lock = threading.Lock()

    def has_active_paid_subscription(self, account_id: str) -> bool:
        return account_id in self.paid_accounts

    def has_credits(self, account_id: str, amount: int) -> bool:
        return self.credits.get(account_id, 0) >= amount

    def consume_credits(self, account_id: str, amount: int) -> None:
        with self._lock:
            balance = self.credits.get(account_id, 0)
            if balance < amount:
                raise InsufficientCreditsError(
                    f"Account {account_id} has {balance} credits, needs {amount}"
                )
            self.credits[account_id] = balance - amount

    def record_subscription_usage(self, account_id: str) -> None:
        with self._lock:
            self.usage[account_id] = self.usage.get(account_id, 0) + 1


class BillingAwareRouter:
    """Maps an account's billing state to a provider type."""

    def __init__(
        self,
        billing: BillingService,
        cloud_type: ProviderType = ProviderType.GEMINI,
        local_type: ProviderType = ProviderType.TESSERACT,
    ) -> None:
        self.billing = billing
        self.cloud_type = cloud_type
        self.local_type = local_type

    def resolve_provider_type(self, account_id: str) -> ProviderType:
        """
        Paid plan -> cloud; free plan with credits -> cloud; otherwise local.

        No usage is consumed here; credits are deducted only after a
        successful extraction.
        """
        if self.billing.has_active_paid_subscription(account_id):
            logger.debug("Account %s has paid subscription, using %s", account_id, self.cloud_type.value)
            return self.cloud_type

        if self.billing.has_credits(account_id, 1):
            logger.debug("Free account %s has credits, using %s", account_id, self.cloud_type.value)
            return self.cloud_type

        logger.debug("Free account %s has no credits, using %s", account_id, self.local_type.value)
        return self.local_type

    def should_deduct_credits(self, account_id: str, provider_type: ProviderType) -> bool:
        """Credits are charged only when the cloud provider served a free account."""
        if provider_type != self.cloud_type:
            return False
        return not self.billing.has_active_paid_subscription(account_id)
