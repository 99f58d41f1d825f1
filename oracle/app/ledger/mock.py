"""In-memory ledger state for local runs without a node."""

from typing import Dict, Optional

from oracle.app.exceptions import ExternalReadError
from oracle.app.ledger.models import SubscriptionSnapshot
from oracle.app.ledger.state import LedgerStateProvider


class MockLedgerStateProvider(LedgerStateProvider):
    """Ledger provider backed by dictionaries.

    Users without an entry have no subscription and a zero balance.
    Reads can be made to fail to exercise the degraded paths.
    """

    def __init__(
        self,
        subscriptions: Optional[Dict[str, SubscriptionSnapshot]] = None,
        balances: Optional[Dict[str, int]] = None,
    ):
        self._subscriptions = {k.lower(): v for k, v in (subscriptions or {}).items()}
        self._balances = {k.lower(): v for k, v in (balances or {}).items()}
        self.fail_subscription_reads = False
        self.fail_balance_reads = False
        self.read_count = 0

    def set_subscription(self, user: str, snapshot: Optional[SubscriptionSnapshot]) -> None:
        if snapshot is None:
            self._subscriptions.pop(user.lower(), None)
        else:
            self._subscriptions[user.lower()] = snapshot

    def set_balance(self, user: str, amount: int) -> None:
        self._balances[user.lower()] = amount

    async def read_subscription(self, user: str) -> Optional[SubscriptionSnapshot]:
        self.read_count += 1
        if self.fail_subscription_reads:
            raise ExternalReadError("subscription read failed")
        return self._subscriptions.get(user.lower())

    async def read_credit_balance(self, user: str) -> int:
        self.read_count += 1
        if self.fail_balance_reads:
            raise ExternalReadError("balance read failed")
        return self._balances.get(user.lower(), 0)
