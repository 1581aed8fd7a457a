"""API request/response schemas for payout endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class PayoutCreateRequest(BaseModel):
    organizer_id: str = Field(min_length=1)
    amount: float = Field(gt=0)


class PayoutDecision(BaseModel):
    status: Literal["approved", "denied"]


class PayoutResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    organizer_id: str
    amount: float
    status: str
    requested_at: datetime | None = None
    processed_at: datetime | None = None
