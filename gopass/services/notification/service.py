"""Per-user notifications and the admin broadcast."""

import asyncio

from pydantic import BaseModel
from sqlalchemy import select, update

from gopass.common.logging import logger
from gopass.common.metrics import notifications_written_total
from gopass.common.records import UserProfile
from gopass.services.notification.models import Notification


class BroadcastResult(BaseModel):
    """Aggregate outcome of one broadcast; `count` is the number attempted."""

    count: int
    delivered: int
    failed: list[str]


class NotificationService:
    """Writes notification rows, one transaction per user."""

    def __init__(self, session_factory, service_name: str = "notification") -> None:
        self.session_factory = session_factory
        self.service_name = service_name

    def _write(self, user_id: str, message: str, type_: str, link: str | None) -> str:
        with self.session_factory() as db:
            notification = Notification(
                user_id=user_id,
                message=message,
                type=type_,
                link=link or "#",
                is_read=False,
            )
            db.add(notification)
            db.commit()
            return notification.id

    async def add_notification(self, user_id: str, message: str, type_: str, link: str | None = None) -> str:
        try:
            notification_id = await asyncio.to_thread(self._write, user_id, message, type_, link)
        except Exception:
            notifications_written_total.labels(service=self.service_name, result="failed").inc()
            raise
        notifications_written_total.labels(service=self.service_name, result="written").inc()
        return notification_id

    async def send_to_all(
        self,
        title: str,
        message: str,
        link: str | None = None,
        *,
        fail_fast: bool = False,
    ) -> BroadcastResult:
        """Notify every user concurrently.

        By default each write's outcome is collected and failed user ids are
        reported. With `fail_fast=True` the first failed write fails the whole
        call and nothing about the other writes is reported.
        """

        with self.session_factory() as db:
            user_ids = list(db.execute(select(UserProfile.uid)).scalars().all())

        full_message = f"{title}: {message}"
        writes = [self.add_notification(uid, full_message, "event", link) for uid in user_ids]
        if fail_fast:
            await asyncio.gather(*writes)
            return BroadcastResult(count=len(user_ids), delivered=len(user_ids), failed=[])

        results = await asyncio.gather(*writes, return_exceptions=True)
        failed = []
        for uid, result in zip(user_ids, results):
            if isinstance(result, Exception):
                logger.error("notification write failed user_id=%s error=%s", uid, result)
                failed.append(uid)
        logger.info("broadcast finished attempted=%s failed=%s", len(user_ids), len(failed))
        return BroadcastResult(count=len(user_ids), delivered=len(user_ids) - len(failed), failed=failed)

    def list_notifications(self, user_id: str, limit: int = 50) -> list[Notification]:
        with self.session_factory() as db:
            query = (
                select(Notification)
                .where(Notification.user_id == user_id)
                .order_by(Notification.created_at.desc())
                .limit(limit)
            )
            return list(db.execute(query).scalars().all())

    def mark_as_read(self, user_id: str, notification_ids: list[str]) -> int:
        if not notification_ids:
            return 0
        with self.session_factory() as db:
            result = db.execute(
                update(Notification)
                .where(Notification.user_id == user_id, Notification.id.in_(notification_ids))
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            )
            db.commit()
            return result.rowcount
