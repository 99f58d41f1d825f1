"""Credit calculation and initial grant preparation endpoints."""

from fastapi import APIRouter, Depends

from oracle.app.api.deps import get_authorization_engine
from oracle.app.api.schemas import (
    CalculateCreditsRequest,
    CalculateCreditsResponse,
    GrantConfirmationResponse,
    PreparedCallResponse,
    UserRequest,
)
from oracle.app.ledger.abi import normalize_address
from oracle.app.services.authorization import AuthorizationEngine
from oracle.app.services.credits import calculate_credits

router = APIRouter(prefix="/credits", tags=["credits"])


@router.post("/calculate", response_model=CalculateCreditsResponse)
async def calculate(body: CalculateCreditsRequest) -> CalculateCreditsResponse:
    credits = calculate_credits(body.reason, body.parameter)
    return CalculateCreditsResponse(
        reason=body.reason, parameter=body.parameter, credits=credits
    )


@router.post("/initial-grant", response_model=PreparedCallResponse)
async def initial_grant(
    body: UserRequest,
    engine: AuthorizationEngine = Depends(get_authorization_engine),
) -> PreparedCallResponse:
    """Prepare calldata for the one-time initial grant.

    The oracle does not sign; an oracle or owner wallet must send the
    returned {to, data} itself.
    """
    prepared = await engine.prepare_initial_grant(body.user)
    return PreparedCallResponse(
        to=prepared.to, data=prepared.data, amount=engine.initial_grant_amount
    )


@router.post("/initial-grant/confirm", response_model=GrantConfirmationResponse)
async def confirm_initial_grant(
    body: UserRequest,
    engine: AuthorizationEngine = Depends(get_authorization_engine),
) -> GrantConfirmationResponse:
    """Called by the signer once the grant transaction is mined."""
    await engine.confirm_initial_grant(body.user)
    return GrantConfirmationResponse(user=normalize_address(body.user), confirmed=True)
