"""Request and response models for the HTTP API."""

from typing import Optional

from pydantic import BaseModel, Field


class EstimateRequest(BaseModel):
    mode: str
    quantity: int = Field(default=1, description="Number of inferences")


class EstimateResponse(BaseModel):
    mode: str
    quantity: int
    cost: int


class AuthorizeRequest(BaseModel):
    user: str
    mode: str
    quantity: int = 1


class AuthorizeResponse(BaseModel):
    allowed: bool
    method: str
    reason: str
    cost: int


class CalculateCreditsRequest(BaseModel):
    reason: str = Field(min_length=1)
    parameter: int = Field(ge=0)


class CalculateCreditsResponse(BaseModel):
    reason: str
    parameter: int
    credits: int


class UserRequest(BaseModel):
    user: str


class MemoryUpdateRequest(BaseModel):
    user: str
    memory_hash: str = Field(min_length=1)


class PreparedCallResponse(BaseModel):
    to: str
    data: str
    amount: Optional[int] = None


class CreditsResponse(BaseModel):
    address: str
    credits: int


class ActiveSubscriptionResponse(BaseModel):
    address: str
    has_active_subscription: bool


class EligibilityResponse(BaseModel):
    address: str
    eligible: bool
    has_subscription: bool
    has_reached_cap: bool
    reason: str


class GrantConfirmationResponse(BaseModel):
    user: str
    confirmed: bool
