"""Read-only projections of access contract state."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class Plan:
    """Subscription tier as stored on the contract."""
    price_units: int = 0
    monthly_cap: int = 0
    active: bool = False


@dataclass(frozen=True)
class SubscriptionSnapshot:
    """A user's subscription at read time.

    A snapshot with plan_id == 0 means "no subscription" whatever the
    other fields say. Snapshots are fetched fresh for every decision.
    """
    plan_id: int = 0
    start_timestamp: int = 0
    used_this_window: int = 0
    last_renewed_at: int = 0
    plan: Plan = field(default_factory=Plan)

    @property
    def is_empty(self) -> bool:
        return self.plan_id == 0

    @property
    def is_active(self) -> bool:
        return self.plan_id > 0 and self.plan.active

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
