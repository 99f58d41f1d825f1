"""Shared fixtures for oracle tests."""

import pytest

from oracle.app.ledger.mock import MockLedgerStateProvider
from oracle.app.ledger.models import Plan, SubscriptionSnapshot
from oracle.app.ledger.writes import WritePreparer
from oracle.app.services.authorization import AuthorizationEngine, InitialGrantGuard
from oracle.app.services.rate_limiter import SlidingWindowRateLimiter

USER = "0x742d35cc6634c0532925a3b8d4c9db96c4b4d8b6"
OTHER_USER = "0x1111111111111111111111111111111111111111"
CONTRACT = "0x2222222222222222222222222222222222222222"


@pytest.fixture
def user() -> str:
    return USER


@pytest.fixture
def other_user() -> str:
    return OTHER_USER


@pytest.fixture
def contract() -> str:
    return CONTRACT


@pytest.fixture
def make_subscription():
    """Factory for subscription snapshots; active plan with id 1 by default."""

    def _make(
        used: int = 0,
        monthly_cap: int = 20,
        plan_id: int = 1,
        active: bool = True,
    ) -> SubscriptionSnapshot:
        return SubscriptionSnapshot(
            plan_id=plan_id,
            start_timestamp=1_700_000_000,
            used_this_window=used,
            last_renewed_at=1_700_000_000,
            plan=Plan(price_units=10, monthly_cap=monthly_cap, active=active),
        )

    return _make


@pytest.fixture
def ledger() -> MockLedgerStateProvider:
    return MockLedgerStateProvider()


@pytest.fixture
def limiter() -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(limit=30, window_seconds=60)


@pytest.fixture
def grant_guard() -> InitialGrantGuard:
    return InitialGrantGuard()


@pytest.fixture
def engine(ledger, limiter, grant_guard, contract) -> AuthorizationEngine:
    return AuthorizationEngine(
        ledger=ledger,
        rate_limiter=limiter,
        grant_guard=grant_guard,
        write_preparer=WritePreparer(contract),
        global_cap=3000,
        initial_grant_amount=50,
    )
