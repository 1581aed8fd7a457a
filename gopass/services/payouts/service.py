"""Organizer payout requests and the admin approve/deny decision."""

from datetime import datetime, timezone

from sqlalchemy import select, update

from gopass.common.errors import PayoutConflictError, RecordNotFoundError
from gopass.common.logging import logger
from gopass.common.metrics import payout_decisions_total
from gopass.common.state_machine import PAYOUT_TRANSITIONS, is_terminal, validate_transition
from gopass.services.payouts.models import PayoutRequest

DECISIONS = frozenset({"approved", "denied"})


class PayoutService:
    """Records admin decisions; no funds are moved here."""

    def __init__(self, session_factory, service_name: str = "payouts") -> None:
        self.session_factory = session_factory
        self.service_name = service_name

    def create_request(self, organizer_id: str, amount: float) -> PayoutRequest:
        if amount <= 0:
            raise ValueError("payout amount must be positive")
        with self.session_factory() as db:
            request = PayoutRequest(organizer_id=organizer_id, amount=amount, status="pending")
            db.add(request)
            db.commit()
            db.refresh(request)
            logger.info("payout requested request_id=%s organizer_id=%s amount=%s", request.id, organizer_id, amount)
            return request

    def list_requests(self, status: str | None = None) -> list[PayoutRequest]:
        with self.session_factory() as db:
            query = select(PayoutRequest).order_by(PayoutRequest.requested_at.desc())
            if status is not None:
                query = query.where(PayoutRequest.status == status)
            return list(db.execute(query).scalars().all())

    def process_request(self, request_id: str, new_status: str) -> PayoutRequest:
        """Move a pending request to `approved` or `denied`.

        Already decided requests raise `PayoutConflictError`. The write is
        guarded by `status = 'pending'` so two concurrent admins cannot both
        decide the same request.
        """

        if new_status not in DECISIONS:
            raise ValueError(f"invalid payout decision: {new_status}")

        with self.session_factory() as db:
            request = db.get(PayoutRequest, request_id)
            if request is None:
                raise RecordNotFoundError(f"payout request {request_id} not found")
            if is_terminal(request.status, PAYOUT_TRANSITIONS):
                raise PayoutConflictError(request_id, request.status)
            validate_transition(request.status, new_status, PAYOUT_TRANSITIONS)

            processed_at = datetime.now(timezone.utc)
            result = db.execute(
                update(PayoutRequest)
                .where(PayoutRequest.id == request_id, PayoutRequest.status == "pending")
                .values(status=new_status, processed_at=processed_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                db.rollback()
                current = db.get(PayoutRequest, request_id, populate_existing=True)
                raise PayoutConflictError(request_id, current.status if current else "missing")
            db.commit()
            request.status = new_status
            request.processed_at = processed_at

        payout_decisions_total.labels(service=self.service_name, decision=new_status).inc()
        logger.info("payout request processed request_id=%s status=%s", request_id, new_status)
        return request
