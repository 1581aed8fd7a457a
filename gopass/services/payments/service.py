"""Checkout flows for plan upgrades and ticket purchases."""

import re
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import select

from gopass.common.currency import convert_between, convert_currency
from gopass.common.errors import ConfigurationError, ProviderTransportError, RecordNotFoundError
from gopass.common.logging import logger
from gopass.common.metrics import deposits_initiated_total
from gopass.common.plans import get_plan
from gopass.common.records import Event, Ticket, UserProfile, generate_pin
from gopass.common.state_machine import TICKET_PAYMENT_TRANSITIONS, validate_transition
from gopass.services.accounts.service import ensure_ticket_capacity
from gopass.services.callbacks.schemas import SUCCESS_STATUSES, DepositCallback
from gopass.services.callbacks.service import CallbackReconciler
from gopass.services.payments.client import PawaPayClient
from gopass.services.payments.schemas import (
    CountryConfig,
    DepositRequest,
    DepositResult,
    DepositStatusResponse,
    PlanUpgradeCheckout,
    PlanUpgradeMetadata,
    TicketCheckout,
    TicketDepositResult,
    TicketPayload,
    TicketPurchaseMetadata,
)

STATEMENT_MAX_LENGTH = 22
FAILURE_STATUSES = frozenset({"FAILED", "REJECTED"})


def normalize_msisdn(phone: str, prefix: str) -> str:
    """Digits-only MSISDN with the country prefix, local leading zeros dropped."""

    digits = re.sub(r"\D", "", phone)
    if prefix and digits.startswith(prefix) and len(digits) > len(prefix) + 7:
        return digits
    return f"{prefix}{digits.lstrip('0')}"


def new_deposit_id() -> str:
    return str(uuid4()).upper()


def _amount(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


class PaymentService:
    """Builds provider deposits for checkouts and polls them to completion."""

    def __init__(
        self,
        session_factory,
        client: PawaPayClient,
        reconciler: CallbackReconciler,
        country: str = "MWI",
        default_prefix: str = "265",
        service_name: str = "payments",
    ) -> None:
        self.session_factory = session_factory
        self.client = client
        self.reconciler = reconciler
        self.country = country
        self.default_prefix = default_prefix
        self.service_name = service_name

    async def country_config(self, country_code: str | None = None) -> CountryConfig | None:
        return await self.client.get_country_config(country_code or self.country)

    async def _payer(self, phone: str) -> str:
        config = await self.client.get_country_config(self.country)
        prefix = config.prefix if config is not None and config.prefix else self.default_prefix
        return normalize_msisdn(phone, prefix)

    def _record_result(self, purpose: str, result: DepositResult) -> None:
        deposits_initiated_total.labels(
            service=self.service_name,
            purpose=purpose,
            result="accepted" if result.success else "rejected",
        ).inc()

    async def initiate_plan_upgrade(self, checkout: PlanUpgradeCheckout) -> DepositResult:
        """Charge the plan price, converted with the user's own rates when set."""

        plan = get_plan(checkout.plan_id)
        with self.session_factory() as db:
            profile = db.get(UserProfile, checkout.user_id)
            user_rates = (profile.exchange_rates if profile is not None else None) or {}
        amount = convert_currency(float(plan.price), checkout.currency, user_rates)

        request = DepositRequest(
            amount=_amount(amount),
            currency=checkout.currency,
            country=self.country,
            correspondent=checkout.correspondent,
            customer_phone=await self._payer(checkout.customer_phone),
            statement_description=f"GoPass {plan.name}"[:STATEMENT_MAX_LENGTH],
            metadata=PlanUpgradeMetadata(type="plan_upgrade", user_id=checkout.user_id, plan_id=checkout.plan_id),
            deposit_id=new_deposit_id(),
        )
        result = await self.client.initiate_deposit(request)
        self._record_result("plan_upgrade", result)
        return result

    async def initiate_ticket_purchase(self, checkout: TicketCheckout) -> TicketDepositResult:
        """Store a draft ticket, then ask the provider for the ticket price.

        The draft carries its deposit id from the start. It is marked `failed`
        when the provider refuses the deposit or the request could not be
        built. A transport failure while sending the deposit leaves it
        `pending`, because the provider may still have accepted it; the
        callback or a status poll of `deposit_id` finalizes it later.
        """

        deposit_id = new_deposit_id()
        with self.session_factory() as db:
            event = db.get(Event, checkout.event_id)
            if event is None:
                raise RecordNotFoundError(f"event {checkout.event_id} not found")
            ensure_ticket_capacity(db, event)
            price = convert_between(event.price, event.currency, checkout.currency)
            ticket = Ticket(
                event_id=event.id,
                holder_name=checkout.holder_name,
                holder_email=checkout.holder_email,
                holder_phone=checkout.holder_phone,
                ticket_type=checkout.ticket_type,
                pin=generate_pin(),
                benefits=checkout.benefits,
                status="draft",
                payment_status="pending",
                total_paid=float(price),
                deposit_id=deposit_id,
            )
            db.add(ticket)
            db.commit()
            event_name = event.name

        payload = TicketPayload(
            event_id=ticket.event_id,
            holder_name=ticket.holder_name,
            holder_email=ticket.holder_email,
            holder_phone=ticket.holder_phone,
            ticket_type=ticket.ticket_type,
            pin=ticket.pin,
            benefits=ticket.benefits,
            total_paid=ticket.total_paid,
        )
        try:
            request = DepositRequest(
                amount=_amount(price),
                currency=checkout.currency,
                country=self.country,
                correspondent=checkout.correspondent,
                customer_phone=await self._payer(checkout.customer_phone),
                statement_description=f"Ticket {event_name}"[:STATEMENT_MAX_LENGTH],
                metadata=TicketPurchaseMetadata(type="ticket_purchase", ticket_id=ticket.id, ticket=payload),
                deposit_id=deposit_id,
            )
            result = await self.client.initiate_deposit(request)
        except (ConfigurationError, ValueError):
            self._fail_draft(ticket.id)
            raise
        except ProviderTransportError:
            logger.warning(
                "deposit outcome unknown, draft left pending ticket_id=%s deposit_id=%s",
                ticket.id,
                deposit_id,
            )
            raise
        self._record_result("ticket_purchase", result)
        if not result.success:
            self._fail_draft(ticket.id)
        return TicketDepositResult(**result.model_dump(), ticket_id=ticket.id, pin=ticket.pin)

    def _fail_draft(self, ticket_id: str) -> None:
        with self.session_factory() as db:
            ticket = db.get(Ticket, ticket_id)
            if ticket is None:
                return
            validate_transition(ticket.payment_status, "failed", TICKET_PAYMENT_TRANSITIONS)
            ticket.payment_status = "failed"
            db.commit()
            logger.info("draft ticket marked failed ticket_id=%s", ticket_id)

    def _fail_drafts_for(self, deposit_id: str) -> None:
        with self.session_factory() as db:
            tickets = db.execute(
                select(Ticket).where(Ticket.deposit_id == deposit_id, Ticket.payment_status == "pending")
            ).scalars().all()
            for ticket in tickets:
                ticket.payment_status = "failed"
                logger.info("draft ticket marked failed ticket_id=%s deposit_id=%s", ticket.id, deposit_id)
            db.commit()

    async def refresh_deposit(self, deposit_id: str) -> DepositStatusResponse:
        """Poll the provider and reconcile a successful deposit immediately.

        Safe to call alongside the provider callback: whichever arrives second
        is skipped as a duplicate.
        """

        status = await self.client.check_deposit_status(deposit_id)
        outcome = None
        if status.status in SUCCESS_STATUSES and status.deposit is not None:
            callback = DepositCallback(
                deposit_id=deposit_id,
                status=status.status,
                metadata=status.deposit.get("metadata"),
            )
            outcome = self.reconciler.handle_deposit_callback(callback)
        elif status.status in FAILURE_STATUSES:
            self._fail_drafts_for(deposit_id)
        return DepositStatusResponse(deposit_id=deposit_id, status=status.status, outcome=outcome)
