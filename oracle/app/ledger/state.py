"""Ledger state providers.

A provider answers two read-only questions about a user: what does
their subscription look like, and how many prepaid credits do they
hold. Implementations raise ExternalReadError when the ledger cannot
answer; deciding what to do about that is up to the caller.
"""

from abc import ABC, abstractmethod
from typing import Optional

from oracle.app.core.logging import get_logger
from oracle.app.ledger import abi
from oracle.app.ledger.models import Plan, SubscriptionSnapshot
from oracle.app.ledger.rpc import JsonRpcClient

logger = get_logger(__name__)


class LedgerStateProvider(ABC):
    """Abstract source of subscription and credit state."""

    @abstractmethod
    async def read_subscription(self, user: str) -> Optional[SubscriptionSnapshot]:
        """Return the user's subscription, or None when there is no record.

        Raises:
            ExternalReadError: If the ledger cannot be read
        """

    @abstractmethod
    async def read_credit_balance(self, user: str) -> int:
        """Return the user's prepaid credit balance.

        Raises:
            ExternalReadError: If the ledger cannot be read
        """


class AccessContractStateProvider(LedgerStateProvider):
    """Reads state from the access contract with eth_call."""

    def __init__(self, rpc: JsonRpcClient, contract_address: str):
        self.rpc = rpc
        self.contract_address = abi.normalize_address(contract_address, "contract")

    async def _call(self, function: abi.ContractFunction, *args) -> tuple:
        raw = await self.rpc.eth_call(self.contract_address, function.encode_call(*args))
        return function.decode_result(raw)

    async def read_subscription(self, user: str) -> Optional[SubscriptionSnapshot]:
        plan_id, start_ts, used, renewed_at, monthly_cap, price_units = await self._call(
            abi.GET_USER_SUBSCRIPTION, user
        )

        # The subscription view leaves out the plan's active flag
        active = False
        if plan_id > 0:
            _, _, active = await self._call(abi.PLANS, plan_id)

        return SubscriptionSnapshot(
            plan_id=plan_id,
            start_timestamp=start_ts,
            used_this_window=used,
            last_renewed_at=renewed_at,
            plan=Plan(price_units=price_units, monthly_cap=monthly_cap, active=bool(active)),
        )

    async def read_credit_balance(self, user: str) -> int:
        (credits,) = await self._call(abi.GET_USER_CREDITS, user)
        return int(credits)
