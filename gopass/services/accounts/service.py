"""User plan changes and plan-limit checks."""

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from gopass.common.errors import RecordNotFoundError, TicketLimitReachedError
from gopass.common.logging import logger
from gopass.common.plans import DEFAULT_PLAN_ID, get_plan, is_within_limit
from gopass.common.records import Event, Organizer, UserProfile


def apply_plan_change(db: Session, uid: str, plan_id: str) -> UserProfile:
    """Set `plan_id` on the profile inside the caller's transaction.

    A missing profile is created so that a paid upgrade is never lost. The
    upgrade history list is replaced, not mutated, so the JSON column is
    flagged dirty.
    """

    get_plan(plan_id)
    record = {"planId": plan_id, "date": datetime.now(timezone.utc).isoformat()}
    profile = db.get(UserProfile, uid)
    if profile is None:
        profile = UserProfile(uid=uid, plan_id=plan_id, upgrade_history=[record])
        db.add(profile)
        logger.info("user profile created during plan change uid=%s plan=%s", uid, plan_id)
        return profile
    profile.plan_id = plan_id
    profile.upgrade_history = [*(profile.upgrade_history or []), record]
    return profile


def plan_for(db: Session, uid: str) -> str:
    profile = db.get(UserProfile, uid)
    return profile.plan_id if profile is not None else DEFAULT_PLAN_ID


def ensure_ticket_capacity(db: Session, event: Event) -> None:
    """Raise `TicketLimitReachedError` when the owner's plan allows no more tickets."""

    plan_id = plan_for(db, event.user_id)
    if not is_within_limit(plan_id, "maxTicketsPerEvent", event.tickets_issued or 0):
        raise TicketLimitReachedError(event.id, get_plan(plan_id).limits.maxTicketsPerEvent)


class AccountService:
    """Plan upgrades/downgrades and quota gating for creation actions."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def upgrade_user_plan(self, uid: str, plan_id: str) -> UserProfile:
        with self.session_factory() as db:
            profile = apply_plan_change(db, uid, plan_id)
            db.commit()
            logger.info("user plan changed uid=%s plan=%s", uid, plan_id)
            return profile

    def downgrade(self, uid: str) -> UserProfile:
        return self.upgrade_user_plan(uid, DEFAULT_PLAN_ID)

    def get_profile(self, uid: str) -> UserProfile | None:
        with self.session_factory() as db:
            return db.get(UserProfile, uid)

    def can_create_event(self, uid: str) -> bool:
        with self.session_factory() as db:
            count = db.execute(select(func.count()).select_from(Event).where(Event.user_id == uid)).scalar_one()
            return is_within_limit(plan_for(db, uid), "maxEvents", count)

    def can_create_organization(self, uid: str) -> bool:
        with self.session_factory() as db:
            count = db.execute(
                select(func.count()).select_from(Organizer).where(Organizer.user_id == uid)
            ).scalar_one()
            return is_within_limit(plan_for(db, uid), "maxOrganizations", count)

    def can_issue_ticket(self, event_id: str) -> bool:
        with self.session_factory() as db:
            event = db.get(Event, event_id)
            if event is None:
                raise RecordNotFoundError(f"event {event_id} not found")
            try:
                ensure_ticket_capacity(db, event)
            except TicketLimitReachedError:
                return False
            return True
