"""Credit accrual calculator used for off-band crediting decisions."""

from dataclasses import dataclass
from typing import Optional

from oracle.app.core.config import settings
from oracle.app.core.logging import get_logger

logger = get_logger(__name__)


class CreditReason:
    PROMPT_STREAK = "prompt_streak"
    AI_INFERENCE = "ai_inference"
    REFERRAL = "referral"
    SOCIAL_QUEST = "social_quest"


@dataclass(frozen=True)
class CreditConstants:
    prompts_per_credit: int = 2
    referral_credit_amount: int = 6
    social_quest_credit_amount: int = 2
    max_social_quests_per_user: int = 5

    @classmethod
    def from_settings(cls) -> "CreditConstants":
        return cls(
            prompts_per_credit=settings.prompts_per_credit,
            referral_credit_amount=settings.referral_credit_amount,
            social_quest_credit_amount=settings.social_quest_credit_amount,
            max_social_quests_per_user=settings.max_social_quests_per_user,
        )


def calculate_credits(
    reason: str, parameter: int, constants: Optional[CreditConstants] = None
) -> int:
    """Credits earned for an accrual event.

    Prompt streaks and inference usage earn one credit per
    `prompts_per_credit` prompts, referrals a fixed amount each, and
    social quests a fixed amount for at most `max_social_quests_per_user`
    quests. Any other reason is a custom accrual and is credited as-is.
    """
    c = constants or CreditConstants.from_settings()

    if reason in (CreditReason.PROMPT_STREAK, CreditReason.AI_INFERENCE):
        return parameter // c.prompts_per_credit
    if reason == CreditReason.REFERRAL:
        return parameter * c.referral_credit_amount
    if reason == CreditReason.SOCIAL_QUEST:
        return min(parameter, c.max_social_quests_per_user) * c.social_quest_credit_amount

    logger.debug(f"Custom credit reason {reason!r}, crediting parameter unchanged")
    return parameter
