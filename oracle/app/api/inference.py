"""Inference cost estimation and authorization endpoints."""

from fastapi import APIRouter, Depends

from oracle.app.api.deps import get_authorization_engine
from oracle.app.api.schemas import (
    AuthorizeRequest,
    AuthorizeResponse,
    EstimateRequest,
    EstimateResponse,
)
from oracle.app.services.authorization import AuthorizationEngine
from oracle.app.services.costs import get_inference_cost

router = APIRouter(prefix="/inference", tags=["inference"])


@router.post("/estimate", response_model=EstimateResponse)
async def estimate(body: EstimateRequest) -> EstimateResponse:
    cost = get_inference_cost(body.mode, body.quantity)
    return EstimateResponse(mode=body.mode, quantity=body.quantity, cost=cost)


@router.post("/authorize", response_model=AuthorizeResponse)
async def authorize(
    body: AuthorizeRequest,
    engine: AuthorizationEngine = Depends(get_authorization_engine),
) -> AuthorizeResponse:
    """Read-only decision: which billing method, if any, covers the request.

    Safe to retry. Nothing is charged or written by this endpoint.
    """
    decision = await engine.authorize(body.user, body.mode, body.quantity)
    return AuthorizeResponse(**decision.to_dict())
