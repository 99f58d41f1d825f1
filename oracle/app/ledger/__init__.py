"""Collaborators that talk to the access contract on the ledger."""

from oracle.app.ledger.models import Plan, SubscriptionSnapshot
from oracle.app.ledger.state import AccessContractStateProvider, LedgerStateProvider
from oracle.app.ledger.writes import PreparedCall, WritePreparer

__all__ = [
    "Plan",
    "SubscriptionSnapshot",
    "LedgerStateProvider",
    "AccessContractStateProvider",
    "PreparedCall",
    "WritePreparer",
]
