"""Read helpers for a single user's ledger state."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from oracle.app.api.deps import get_authorization_engine
from oracle.app.api.schemas import (
    ActiveSubscriptionResponse,
    CreditsResponse,
    EligibilityResponse,
)
from oracle.app.ledger.abi import normalize_address
from oracle.app.services.authorization import AuthorizationEngine

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{address}/credits", response_model=CreditsResponse)
async def get_credits(
    address: str,
    engine: AuthorizationEngine = Depends(get_authorization_engine),
) -> CreditsResponse:
    address = normalize_address(address)
    credits = await engine.read_credit_balance(address)
    return CreditsResponse(address=address, credits=credits)


@router.get("/{address}/subscription")
async def get_subscription(
    address: str,
    engine: AuthorizationEngine = Depends(get_authorization_engine),
) -> Dict[str, Any]:
    address = normalize_address(address)
    snapshot = await engine.read_subscription(address)
    return snapshot.to_dict() if snapshot is not None else {}


@router.get("/{address}/has-active-subscription", response_model=ActiveSubscriptionResponse)
async def has_active_subscription(
    address: str,
    engine: AuthorizationEngine = Depends(get_authorization_engine),
) -> ActiveSubscriptionResponse:
    address = normalize_address(address)
    active = await engine.has_active_subscription(address)
    return ActiveSubscriptionResponse(address=address, has_active_subscription=active)


@router.get("/{address}/eligibility", response_model=EligibilityResponse)
async def get_eligibility(
    address: str,
    engine: AuthorizationEngine = Depends(get_authorization_engine),
) -> EligibilityResponse:
    address = normalize_address(address)
    report = await engine.validate_user_eligibility(address)
    return EligibilityResponse(address=address, **report.to_dict())
