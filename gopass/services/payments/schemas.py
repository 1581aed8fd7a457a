"""Provider and API schemas for deposit initiation.

`DepositMetadata` is the tagged union carried in a deposit's `metadata` and
echoed back by the provider on callback; the reconciler validates callbacks
against the same union.
"""

import json
from decimal import Decimal
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from gopass.common.plans import PlanId


class CorrespondentConfig(BaseModel):
    """Deposit availability and limits for one mobile-money channel."""

    provider: str
    display_name: str | None = None
    logo: str | None = None
    status: str = "CLOSED"
    min_amount: Decimal = Decimal("0")
    max_amount: Decimal | None = None
    decimals_in_amount: int = 0

    def accepts(self, amount: Decimal) -> bool:
        if self.status != "OPERATIONAL":
            return False
        if amount < self.min_amount:
            return False
        return self.max_amount is None or amount <= self.max_amount


class CountryConfig(BaseModel):
    prefix: str
    flag: str | None = None
    currency: str
    providers: list[CorrespondentConfig]


class TicketPayload(BaseModel):
    """Ticket fields echoed in metadata so a callback can rebuild the ticket."""

    model_config = ConfigDict(populate_by_name=True)

    event_id: str = Field(alias="eventId", min_length=1)
    holder_name: str = Field(alias="holderName")
    holder_email: str = Field(alias="holderEmail")
    holder_phone: str | None = Field(default=None, alias="holderPhone")
    ticket_type: str = Field(alias="ticketType")
    pin: str | None = None
    benefits: list[dict[str, Any]] = Field(default_factory=list)
    total_paid: float | None = Field(default=None, alias="totalPaid")


class PlanUpgradeMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["plan_upgrade"]
    user_id: str = Field(alias="userId", min_length=1)
    plan_id: PlanId = Field(alias="planId")


class TicketPurchaseMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["ticket_purchase"]
    ticket_id: str = Field(alias="ticketId", min_length=1)
    ticket: TicketPayload | None = None

    @field_validator("ticket", mode="before")
    @classmethod
    def _decode_ticket(cls, value: Any) -> Any:
        # List-form metadata carries nested values as JSON strings.
        if isinstance(value, str):
            return json.loads(value)
        return value


DepositMetadata = Annotated[Union[PlanUpgradeMetadata, TicketPurchaseMetadata], Field(discriminator="type")]
deposit_metadata_adapter: TypeAdapter[DepositMetadata] = TypeAdapter(DepositMetadata)


def normalize_metadata(raw: Any) -> dict[str, Any]:
    """Flatten `[{"fieldName": k, "fieldValue": v}]` into `{k: v}`."""

    if isinstance(raw, dict):
        return raw
    if isinstance(raw, list):
        flattened: dict[str, Any] = {}
        for item in raw:
            if not isinstance(item, dict) or "fieldName" not in item:
                raise ValueError("metadata list items must carry fieldName/fieldValue")
            flattened[item["fieldName"]] = item.get("fieldValue")
        return flattened
    raise ValueError("metadata must be an object or a fieldName/fieldValue list")


def parse_deposit_metadata(raw: Any) -> PlanUpgradeMetadata | TicketPurchaseMetadata:
    """Validate raw callback metadata; raises `ValueError` on any mismatch."""

    return deposit_metadata_adapter.validate_python(normalize_metadata(raw))


class DepositRequest(BaseModel):
    """Everything needed to ask the provider for a deposit."""

    amount: Decimal = Field(gt=0)
    currency: str = Field(min_length=3, max_length=3)
    country: str = Field(min_length=3, max_length=3)
    correspondent: str = Field(min_length=1)
    customer_phone: str = Field(min_length=1)
    statement_description: str = Field(default="GoPass", max_length=22)
    metadata: DepositMetadata
    deposit_id: str | None = None


class DepositResult(BaseModel):
    """Provider-level outcome of a deposit initiation. Rejections are not errors."""

    success: bool
    message: str
    deposit_id: str | None = None


class DepositStatus(BaseModel):
    status: str
    deposit: dict[str, Any] | None = None


class PlanUpgradeCheckout(BaseModel):
    """Payload accepted by `POST /deposits/plan-upgrade`."""

    user_id: str = Field(min_length=1)
    plan_id: PlanId
    correspondent: str = Field(min_length=1)
    customer_phone: str = Field(min_length=1)
    currency: str = Field(default="MWK", min_length=3, max_length=3)


class TicketCheckout(BaseModel):
    """Payload accepted by `POST /deposits/ticket-purchase`."""

    event_id: str = Field(min_length=1)
    holder_name: str = Field(min_length=1)
    holder_email: str = Field(min_length=3)
    holder_phone: str | None = None
    ticket_type: str = Field(min_length=1)
    benefits: list[dict[str, Any]] = Field(default_factory=list)
    correspondent: str = Field(min_length=1)
    customer_phone: str = Field(min_length=1)
    currency: str = Field(default="MWK", min_length=3, max_length=3)


class TicketDepositResult(DepositResult):
    ticket_id: str
    pin: str


class DepositStatusResponse(BaseModel):
    deposit_id: str
    status: str
    outcome: str | None = None
