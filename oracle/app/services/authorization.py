"""Authorization engine.

Decides, for a user and a requested inference, whether the request may
proceed and which billing method covers it. The engine only reads
ledger state; writes are prepared for an external signer and never sent.

Decision order (first match wins):

1. rate limited                      -> deny, cost 0, no ledger reads
2. read subscription and balance concurrently
3. no credits, no subscription and
   no initial grant yet              -> initial_grant, cost 0
4. active subscription with room
   under the governing cap           -> subscription, cost 0
5. enough credits                    -> credits, cost charged
6. otherwise                         -> deny, cost reported
"""

import asyncio
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional, Set, Tuple

from oracle.app.core.logging import get_log_context, get_logger
from oracle.app.exceptions import ConfigurationError, ExternalReadError, NotEligibleError
from oracle.app.ledger.abi import normalize_address
from oracle.app.ledger.models import SubscriptionSnapshot
from oracle.app.ledger.state import LedgerStateProvider
from oracle.app.ledger.writes import PreparedCall, WritePreparer
from oracle.app.services.costs import (
    MODE_PROFILES,
    InferenceMode,
    get_inference_cost,
    parse_mode,
    validate_quantity,
)
from oracle.app.services.rate_limiter import SlidingWindowRateLimiter

logger = get_logger(__name__)


class PaymentMethod(str, Enum):
    SUBSCRIPTION = "subscription"
    CREDITS = "credits"
    INITIAL_GRANT = "initial_grant"
    DENY = "deny"


class DecisionReason:
    RATE_LIMITED = "rate_limited"
    INITIAL_GRANT = "initial_50_credits"
    WITHIN_SUBSCRIPTION_CAP = "within_subscription_cap"
    SUFFICIENT_CREDITS = "sufficient_credits"
    INSUFFICIENT_BALANCE_AND_CAP = "insufficient_balance_and_cap"


@dataclass(frozen=True)
class AuthorizationDecision:
    allowed: bool
    method: PaymentMethod
    reason: str
    cost: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["method"] = self.method.value
        return data


@dataclass(frozen=True)
class EligibilityReport:
    eligible: bool
    has_subscription: bool
    has_reached_cap: bool
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class InitialGrantGuard:
    """Users already judged to have received the one-time grant.

    Process-local: a restart or a second instance starts empty, so the
    ledger itself must remain the source of truth for exactly-once grants.
    """

    def __init__(self) -> None:
        self._granted: Set[str] = set()

    def __contains__(self, user: str) -> bool:
        return user.lower() in self._granted

    def __len__(self) -> int:
        return len(self._granted)

    def mark(self, user: str) -> None:
        self._granted.add(user.lower())


class AuthorizationEngine:
    """Combine rate limit, subscription, balance and grant state into one decision."""

    def __init__(
        self,
        ledger: LedgerStateProvider,
        rate_limiter: SlidingWindowRateLimiter,
        grant_guard: Optional[InitialGrantGuard] = None,
        write_preparer: Optional[WritePreparer] = None,
        global_cap: int = 3000,
        initial_grant_amount: int = 50,
    ):
        self.ledger = ledger
        self.rate_limiter = rate_limiter
        self.grant_guard = grant_guard if grant_guard is not None else InitialGrantGuard()
        self.write_preparer = write_preparer
        self.global_cap = global_cap
        self.initial_grant_amount = initial_grant_amount

    async def read_subscription(self, user: str) -> Optional[SubscriptionSnapshot]:
        try:
            return await self.ledger.read_subscription(user)
        except ExternalReadError as e:
            logger.warning(
                f"Subscription read failed, treating as no subscription: {e}",
                extra=get_log_context(user_address=user),
            )
        except Exception:
            logger.exception(
                "Unexpected subscription read failure, treating as no subscription",
                extra=get_log_context(user_address=user),
            )
        return None

    async def read_credit_balance(self, user: str) -> int:
        try:
            return await self.ledger.read_credit_balance(user)
        except ExternalReadError as e:
            logger.warning(
                f"Credit balance read failed, treating as zero: {e}",
                extra=get_log_context(user_address=user),
            )
        except Exception:
            logger.exception(
                "Unexpected credit balance read failure, treating as zero",
                extra=get_log_context(user_address=user),
            )
        return 0

    async def read_state(self, user: str) -> Tuple[Optional[SubscriptionSnapshot], int]:
        """Read subscription and balance concurrently, degrading failed reads.

        A failed subscription read counts as no subscription and a failed
        balance read as a zero balance.
        """
        user = normalize_address(user)
        subscription, credits = await asyncio.gather(
            self.read_subscription(user), self.read_credit_balance(user)
        )
        return subscription, credits

    def _effective_cap(self, subscription: SubscriptionSnapshot, mode: InferenceMode) -> int:
        if MODE_PROFILES[mode].uses_global_cap:
            return self.global_cap
        return subscription.plan.monthly_cap

    async def authorize(self, user: str, mode: Any, quantity: Any = 1) -> AuthorizationDecision:
        """Decide whether `user` may run `quantity` inferences in `mode`.

        Raises:
            ValidationError: For a malformed address, unknown mode or bad
                quantity; raised before any rate limit or ledger access
        """
        user = normalize_address(user)
        mode = parse_mode(mode)
        quantity = validate_quantity(quantity)
        cost = get_inference_cost(mode, quantity)

        decision = await self._decide(user, mode, quantity, cost)
        logger.info(
            "Authorization decided",
            extra=get_log_context(
                user_address=user,
                mode=mode.value,
                method=decision.method.value,
                reason=decision.reason,
                cost=decision.cost,
                allowed=decision.allowed,
            ),
        )
        return decision

    async def _decide(
        self, user: str, mode: InferenceMode, quantity: int, cost: int
    ) -> AuthorizationDecision:
        if await self.rate_limiter.check_and_record(user):
            return AuthorizationDecision(False, PaymentMethod.DENY, DecisionReason.RATE_LIMITED, 0)

        subscription, credits = await self.read_state(user)

        # The guard is only consulted here; the privileged grant marks it.
        if (
            user not in self.grant_guard
            and credits == 0
            and (subscription is None or subscription.is_empty)
        ):
            return AuthorizationDecision(
                True, PaymentMethod.INITIAL_GRANT, DecisionReason.INITIAL_GRANT, 0
            )

        if subscription is not None and subscription.is_active:
            cap = self._effective_cap(subscription, mode)
            if subscription.used_this_window + quantity <= cap:
                return AuthorizationDecision(
                    True, PaymentMethod.SUBSCRIPTION, DecisionReason.WITHIN_SUBSCRIPTION_CAP, 0
                )

        if credits >= cost:
            return AuthorizationDecision(
                True, PaymentMethod.CREDITS, DecisionReason.SUFFICIENT_CREDITS, cost
            )

        return AuthorizationDecision(
            False, PaymentMethod.DENY, DecisionReason.INSUFFICIENT_BALANCE_AND_CAP, cost
        )

    async def has_active_subscription(self, user: str) -> bool:
        subscription, _ = await self.read_state(user)
        return subscription is not None and subscription.is_active

    async def has_reached_monthly_cap(self, user: str) -> bool:
        """True when the plan's monthly cap is used up, or there is no subscription."""
        subscription, _ = await self.read_state(user)
        if subscription is None:
            return True
        return subscription.used_this_window >= subscription.plan.monthly_cap

    async def validate_user_eligibility(self, user: str) -> EligibilityReport:
        subscription, _ = await self.read_state(user)
        has_subscription = subscription is not None and subscription.is_active
        has_reached_cap = (
            subscription is None
            or subscription.used_this_window >= subscription.plan.monthly_cap
        )

        if not has_subscription:
            reason = "No active subscription"
        elif has_reached_cap:
            reason = "Monthly cap reached"
        else:
            reason = "Eligible"

        return EligibilityReport(
            eligible=has_subscription and not has_reached_cap,
            has_subscription=has_subscription,
            has_reached_cap=has_reached_cap,
            reason=reason,
        )

    async def prepare_initial_grant(self, user: str) -> PreparedCall:
        """Prepare the one-time initial credit grant for an eligible user.

        Preparing does not mark the grant guard: until the signer's
        transaction is confirmed, the user stays eligible and a repeated
        call returns the same payload. Unlike authorize(), ledger read
        failures are not degraded here, so a grant is never prepared on
        guessed state.

        Raises:
            NotEligibleError: If the grant was already confirmed in this
                process, or the user holds credits or an active subscription
            ExternalReadError: If ledger state cannot be read
            ConfigurationError: If no write preparer is configured
        """
        if self.write_preparer is None:
            raise ConfigurationError("access contract address not configured")

        user = normalize_address(user)
        if user in self.grant_guard:
            raise NotEligibleError("initial grant already issued")

        credits, subscription = await asyncio.gather(
            self.ledger.read_credit_balance(user),
            self.ledger.read_subscription(user),
        )
        if credits > 0 or (subscription is not None and subscription.is_active):
            raise NotEligibleError("not eligible (has credits or active subscription)")

        prepared = self.write_preparer.prepare_award_credits(
            user, self.initial_grant_amount, "initial_grant"
        )
        logger.info(
            "Initial grant prepared",
            extra=get_log_context(user_address=user, amount=self.initial_grant_amount),
        )
        return prepared

    async def confirm_initial_grant(self, user: str) -> None:
        """Record that the initial grant landed on the ledger.

        The guard is only marked once the ledger shows a non-zero balance,
        so a lost or never-submitted transaction leaves the user eligible.
        Confirming twice is harmless.

        Raises:
            NotEligibleError: If the ledger balance is still zero
            ExternalReadError: If the balance cannot be read
        """
        user = normalize_address(user)
        if user in self.grant_guard:
            return

        credits = await self.ledger.read_credit_balance(user)
        if credits == 0:
            raise NotEligibleError("initial grant not yet visible on the ledger")

        self.grant_guard.mark(user)
        logger.info(
            "Initial grant confirmed",
            extra=get_log_context(user_address=user, credits=credits),
        )
