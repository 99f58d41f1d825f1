"""Lazily-built collaborators exposed as FastAPI dependencies.

Nothing touches the ledger configuration until a route needs it, so the
service starts (and answers /health) even when the contract address is
missing. Tests swap these out through app.dependency_overrides.
"""

from typing import Optional

from oracle.app.core.config import settings
from oracle.app.core.logging import get_logger
from oracle.app.exceptions import ConfigurationError
from oracle.app.ledger.mock import MockLedgerStateProvider
from oracle.app.ledger.rpc import JsonRpcClient
from oracle.app.ledger.state import AccessContractStateProvider, LedgerStateProvider
from oracle.app.ledger.writes import WritePreparer
from oracle.app.services.authorization import AuthorizationEngine, InitialGrantGuard
from oracle.app.services.rate_limiter import SlidingWindowRateLimiter

logger = get_logger(__name__)

_ledger: Optional[LedgerStateProvider] = None
_write_preparer: Optional[WritePreparer] = None
_rate_limiter: Optional[SlidingWindowRateLimiter] = None
_grant_guard: Optional[InitialGrantGuard] = None
_engine: Optional[AuthorizationEngine] = None


def _require_contract() -> str:
    if not settings.access_contract_configured:
        raise ConfigurationError("ACCESS_CONTRACT_ADDRESS missing or malformed")
    return settings.access_contract_address.strip()


def get_ledger_provider() -> LedgerStateProvider:
    global _ledger
    if _ledger is None:
        if settings.ledger_mock_mode:
            logger.warning("Ledger mock mode enabled: reads come from in-memory state")
            _ledger = MockLedgerStateProvider()
        else:
            _ledger = AccessContractStateProvider(
                JsonRpcClient(settings.rpc_url), _require_contract()
            )
    return _ledger


def get_write_preparer() -> WritePreparer:
    global _write_preparer
    if _write_preparer is None:
        _write_preparer = WritePreparer(
            _require_contract(), max_batch_size=settings.max_batch_size
        )
    return _write_preparer


def get_rate_limiter() -> SlidingWindowRateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = SlidingWindowRateLimiter(
            limit=settings.rate_limit_requests_per_minute,
            window_seconds=settings.rate_limit_window_seconds,
            max_users=settings.rate_limit_max_users,
        )
    return _rate_limiter


def get_grant_guard() -> InitialGrantGuard:
    global _grant_guard
    if _grant_guard is None:
        _grant_guard = InitialGrantGuard()
    return _grant_guard


def get_authorization_engine() -> AuthorizationEngine:
    global _engine
    if _engine is None:
        write_preparer = get_write_preparer() if settings.access_contract_configured else None
        _engine = AuthorizationEngine(
            ledger=get_ledger_provider(),
            rate_limiter=get_rate_limiter(),
            grant_guard=get_grant_guard(),
            write_preparer=write_preparer,
            global_cap=settings.global_price_accuracy_cap,
            initial_grant_amount=settings.initial_grant_amount,
        )
    return _engine


def reset_dependencies() -> None:
    """Forget every built collaborator (used by tests)."""
    global _ledger, _write_preparer, _rate_limiter, _grant_guard, _engine
    _ledger = _write_preparer = _rate_limiter = _grant_guard = _engine = None
