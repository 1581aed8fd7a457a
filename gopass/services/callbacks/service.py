"""Deposit callback reconciliation.

A provider callback is the only signal that a deposit succeeded. On success
the embedded metadata decides which business object to finalize: a plan
upgrade on the user's profile, or a draft ticket plus its event's issued
counter. Each deposit id is finalized at most once; the marker row is written
in the same transaction as the business update. A rejected deposit stays
retryable: a later callback or status poll re-runs it once the missing
records exist.
"""

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from gopass.common.logging import deposit_context, logger
from gopass.common.metrics import callback_outcomes_total, duplicate_callbacks_skipped_total
from gopass.common.records import Event, Ticket, generate_pin
from gopass.common.state_machine import TICKET_PAYMENT_TRANSITIONS, validate_transition
from gopass.services.accounts.service import apply_plan_change
from gopass.services.callbacks.models import ProcessedCallback
from gopass.services.callbacks.schemas import SUCCESS_STATUSES, DepositCallback
from gopass.services.payments.schemas import (
    PlanUpgradeMetadata,
    TicketPurchaseMetadata,
    parse_deposit_metadata,
)

FINALIZED = "finalized"
REJECTED = "rejected"
IGNORED = "ignored"
DUPLICATE = "duplicate"


class CallbackReconciler:
    """Applies successful deposit callbacks to plans and tickets exactly once."""

    def __init__(self, session_factory, service_name: str = "callbacks") -> None:
        self.session_factory = session_factory
        self.service_name = service_name

    def _outcome(self, outcome: str) -> str:
        callback_outcomes_total.labels(service=self.service_name, outcome=outcome).inc()
        return outcome

    def handle_deposit_callback(self, callback: DepositCallback) -> str:
        """Reconcile one structurally valid callback and return its outcome.

        Non-success statuses and rejected metadata are acknowledged without
        raising; unexpected errors propagate with the transaction rolled back.
        """

        with deposit_context(callback.deposit_id):
            return self._reconcile(callback)

    def _reconcile(self, callback: DepositCallback) -> str:
        if callback.status not in SUCCESS_STATUSES:
            logger.info(
                "deposit not successful deposit_id=%s status=%s",
                callback.deposit_id,
                callback.status,
            )
            return self._outcome(IGNORED)

        metadata = None
        reason = None
        try:
            metadata = parse_deposit_metadata(callback.metadata)
        except ValueError as exc:
            reason = f"invalid metadata: {exc}"

        with self.session_factory() as db:
            marker = db.get(ProcessedCallback, callback.deposit_id)
            if marker is not None and marker.outcome != REJECTED:
                return self._skip_duplicate(callback.deposit_id)

            if isinstance(metadata, PlanUpgradeMetadata):
                apply_plan_change(db, metadata.user_id, metadata.plan_id)
                logger.info(
                    "plan upgrade finalized deposit_id=%s user_id=%s plan_id=%s",
                    callback.deposit_id,
                    metadata.user_id,
                    metadata.plan_id,
                )
            elif isinstance(metadata, TicketPurchaseMetadata):
                reason = self._finalize_ticket(db, metadata)

            outcome = REJECTED if reason else FINALIZED
            if reason:
                logger.warning(
                    "deposit callback rejected deposit_id=%s reason=%s",
                    callback.deposit_id,
                    reason,
                )
            values = dict(
                kind=metadata.type if metadata is not None else "unknown",
                status=callback.status,
                outcome=outcome,
                reason=reason,
            )
            if marker is None:
                db.add(ProcessedCallback(deposit_id=callback.deposit_id, **values))
            else:
                # Retry of a rejected deposit; only one retry may claim it.
                claimed = db.execute(
                    update(ProcessedCallback)
                    .where(ProcessedCallback.deposit_id == callback.deposit_id, ProcessedCallback.outcome == REJECTED)
                    .values(processed_at=func.now(), **values)
                    .execution_options(synchronize_session=False)
                )
                if claimed.rowcount != 1:
                    db.rollback()
                    return self._skip_duplicate(callback.deposit_id)
                logger.info("rejected deposit retried deposit_id=%s outcome=%s", callback.deposit_id, outcome)
            try:
                db.commit()
            except IntegrityError:
                # A concurrent delivery of the same deposit committed first.
                db.rollback()
                return self._skip_duplicate(callback.deposit_id)
            return self._outcome(outcome)

    def _skip_duplicate(self, deposit_id: str) -> str:
        logger.info("duplicate deposit callback skipped deposit_id=%s", deposit_id)
        duplicate_callbacks_skipped_total.labels(service=self.service_name).inc()
        return self._outcome(DUPLICATE)

    def _finalize_ticket(self, db, metadata: TicketPurchaseMetadata) -> str | None:
        """Commit the draft ticket and bump its event counter.

        Returns a rejection reason, or `None` when the ticket was finalized.
        Nothing is written to the session before every check has passed.
        """

        ticket = db.get(Ticket, metadata.ticket_id)
        payload = metadata.ticket
        if ticket is None and payload is None:
            return f"ticket {metadata.ticket_id} not found and no ticket payload echoed"

        event_id = ticket.event_id if ticket is not None else payload.event_id
        if db.get(Event, event_id) is None:
            return f"event {event_id} not found"

        current = ticket.payment_status if ticket is not None else "pending"
        try:
            validate_transition(current, "completed", TICKET_PAYMENT_TRANSITIONS)
        except ValueError as exc:
            return str(exc)

        if ticket is None:
            ticket = Ticket(
                id=metadata.ticket_id,
                event_id=payload.event_id,
                holder_name=payload.holder_name,
                holder_email=payload.holder_email,
                holder_phone=payload.holder_phone,
                ticket_type=payload.ticket_type,
                pin=payload.pin or generate_pin(),
                benefits=payload.benefits,
                total_paid=payload.total_paid,
            )
            db.add(ticket)
        ticket.payment_status = "completed"
        ticket.status = "active"
        db.execute(
            update(Event)
            .where(Event.id == event_id)
            .values(tickets_issued=Event.tickets_issued + 1)
            .execution_options(synchronize_session=False)
        )
        logger.info("ticket finalized ticket_id=%s event_id=%s", ticket.id, event_id)
        return None
