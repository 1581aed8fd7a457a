"""Inbound provider callback payloads."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

SUCCESS_STATUSES = frozenset({"COMPLETED", "SUCCESSFUL"})


class DepositCallback(BaseModel):
    """Deposit callback body. Only `depositId` and `status` are required."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    deposit_id: str = Field(alias="depositId", min_length=1)
    status: str = Field(min_length=1)
    metadata: Any = None


class PayoutCallback(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    payout_id: str = Field(alias="payoutId", min_length=1)
    status: str = Field(min_length=1)


class RefundCallback(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    refund_id: str = Field(alias="refundId", min_length=1)
    status: str = Field(min_length=1)
