from __future__ import annotations
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from .. import models
from ..errors import BadRequest, BadState, Conflict, Forbidden, NotFound
from .notifications import NotificationEmitter

logger = logging.getLogger(__name__)


class OfferManager:
    """Offer lifecycle: pending -> accepted | rejected. Both outcomes are final."""

    def __init__(self, db: Session, notifier: NotificationEmitter | None = None):
        self.db = db
        self.notifier = notifier or NotificationEmitter(db)

    def _load(self, offer_id: str) -> models.Offer:
        offer = self.db.execute(
            select(models.Offer)
            .options(joinedload(models.Offer.job), joinedload(models.Offer.user))
            .where(models.Offer.id == offer_id)
        ).scalar_one_or_none()
        if offer is None:
            raise NotFound("Offer not found")
        return offer

    def _decidable(self, offer_id: str, caller_id: str, action: str) -> models.Offer:
        offer = self._load(offer_id)
        if offer.job.created_by != caller_id:
            raise Forbidden(f"Only the job creator can {action} offers")
        if offer.status != models.OFFER_PENDING:
            raise BadState("Offer is not pending")
        return offer

    def create(self, job_id: str, user_id: str, proposed_price: str, message: str) -> models.Offer:
        job = self.db.get(models.Job, job_id)
        if job is None:
            raise NotFound("Job not found")
        if job.status != models.JOB_OPEN:
            raise BadState("Job is not open for offers")
        user = self.db.get(models.User, user_id)
        if user is None:
            raise NotFound("User not found")
        if user.role != models.ROLE_LABOUR:
            raise BadRequest("Only labour users can create offers")
        if job.created_by == user_id:
            raise BadRequest("Job creator cannot offer on their own job")

        pending = self.db.execute(
            select(models.Offer.id).where(
                models.Offer.job_id == job_id,
                models.Offer.user_id == user_id,
                models.Offer.status == models.OFFER_PENDING,
            )
        ).first()
        if pending is not None:
            raise Conflict("You already have a pending offer for this job")

        offer = models.Offer(
            job_id=job_id,
            user_id=user_id,
            proposed_price=proposed_price,
            message=message,
            status=models.OFFER_PENDING,
        )
        try:
            self.db.add(offer)
            self.db.flush()
            self.notifier.emit(
                job.created_by,
                models.NOTIFY_NEW_OFFER,
                f"New offer received for your job: {job.title}",
                job_id=job.id,
                offer_id=offer.id,
            )
            self.db.commit()
        except IntegrityError:
            # partial unique index caught a concurrent duplicate
            self.db.rollback()
            raise Conflict("You already have a pending offer for this job")
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(offer)
        logger.info("Offer created | job=%s | offer=%s | bidder=%s", job_id, offer.id, user_id)
        return offer

    def list_by_job(self, job_id: str) -> list[models.Offer]:
        if self.db.get(models.Job, job_id) is None:
            raise NotFound("Job not found")
        rows = self.db.execute(
            select(models.Offer)
            .options(joinedload(models.Offer.user))
            .where(models.Offer.job_id == job_id)
            .order_by(models.Offer.created_at.desc())
        ).scalars().all()
        return list(rows)

    def accept(self, offer_id: str, caller_id: str) -> models.Offer:
        """Accept one offer, reject its siblings and reserve the job, all or nothing.

        Job and offer are moved with conditional UPDATEs (expected status in the
        WHERE clause), so a concurrent accept on the same job finds the job no
        longer open and fails with BadState instead of double-booking it.

        Neither the accepted bidder nor the rejected siblings are notified here;
        only ``reject`` notifies.
        """
        offer = self._decidable(offer_id, caller_id, "accept")
        job_id = offer.job_id

        try:
            reserved = self.db.execute(
                update(models.Job)
                .where(models.Job.id == job_id, models.Job.status == models.JOB_OPEN)
                .values(status=models.JOB_RESERVED)
            )
            if reserved.rowcount != 1:
                logger.warning("Accept lost a race on job %s: job is no longer open", job_id)
                raise BadState("Job is not open for offers")

            accepted = self.db.execute(
                update(models.Offer)
                .where(models.Offer.id == offer_id, models.Offer.status == models.OFFER_PENDING)
                .values(status=models.OFFER_ACCEPTED)
            )
            if accepted.rowcount != 1:
                logger.warning("Accept lost a race on offer %s: no longer pending", offer_id)
                raise BadState("Offer is not pending")

            self.db.execute(
                update(models.Offer)
                .where(models.Offer.job_id == job_id, models.Offer.id != offer_id)
                .values(status=models.OFFER_REJECTED)
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Offer accepted | job=%s | offer=%s | worker=%s", job_id, offer_id, offer.user_id)
        return self._load(offer_id)

    def reject(self, offer_id: str, caller_id: str) -> models.Offer:
        offer = self._decidable(offer_id, caller_id, "reject")

        try:
            result = self.db.execute(
                update(models.Offer)
                .where(models.Offer.id == offer_id, models.Offer.status == models.OFFER_PENDING)
                .values(status=models.OFFER_REJECTED)
            )
            if result.rowcount != 1:
                raise BadState("Offer is not pending")
            self.notifier.emit(
                offer.user_id,
                models.NOTIFY_OFFER_REJECTED,
                f"Your offer was rejected for job: {offer.job.title}",
                job_id=offer.job_id,
                offer_id=offer.id,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Offer rejected | job=%s | offer=%s", offer.job_id, offer_id)
        return self._load(offer_id)
