from __future__ import annotations
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from .. import models
from ..errors import Forbidden, NotFound
from ..schemas import NotificationFeedOut, NotificationOut

logger = logging.getLogger(__name__)


class NotificationEmitter:
    """Writes and reads a user's notifications.

    ``emit`` only adds to the session; the manager that triggered it owns the
    commit, so a notification is stored together with the state change it
    describes (or not at all).
    """

    def __init__(self, db: Session):
        self.db = db

    def emit(
        self,
        user_id: str,
        type: str,
        message: str,
        job_id: str | None = None,
        offer_id: str | None = None,
    ) -> models.Notification:
        notification = models.Notification(
            user_id=user_id,
            type=type,
            job_id=job_id,
            offer_id=offer_id,
            message=message,
            read=False,
        )
        self.db.add(notification)
        self.db.flush()
        logger.info("Notification queued | type=%s | user=%s | job=%s", type, user_id, job_id)
        return notification

    def list_for_user(self, user_id: str) -> NotificationFeedOut:
        """All notifications for the user, newest first, with the unread badge count."""
        rows = (
            self.db.execute(
                select(models.Notification)
                .where(models.Notification.user_id == user_id)
                .order_by(models.Notification.created_at.desc())
            )
            .scalars()
            .all()
        )
        job_ids = {n.job_id for n in rows if n.job_id}
        titles: dict[str, str] = {}
        if job_ids:
            titles = dict(
                self.db.execute(
                    select(models.Job.id, models.Job.title).where(models.Job.id.in_(job_ids))
                ).all()
            )

        items = [
            NotificationOut.model_validate(n).model_copy(update={"job_title": titles.get(n.job_id)})
            for n in rows
        ]
        return NotificationFeedOut(
            unread_count=sum(1 for n in rows if not n.read),
            notifications=items,
        )

    def mark_read(self, notification_id: str, caller_id: str) -> models.Notification:
        notification = self.db.get(models.Notification, notification_id)
        if notification is None:
            raise NotFound("Notification not found")
        if notification.user_id != caller_id:
            raise Forbidden("You can only mark your own notifications as read")
        # once read, stays read
        notification.read = True
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def mark_all_read(self, user_id: str) -> NotificationFeedOut:
        self.db.execute(
            update(models.Notification)
            .where(models.Notification.user_id == user_id, models.Notification.read.is_(False))
            .values(read=True)
        )
        self.db.commit()
        return self.list_for_user(user_id)
