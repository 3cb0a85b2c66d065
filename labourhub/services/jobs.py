from __future__ import annotations
import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from .. import models
from ..errors import BadState, Forbidden, NotFound, ValidationError
from ..filters import job_matches_filters
from ..schemas import JobCreate, JobFilters, JobUpdate

logger = logging.getLogger(__name__)

# Columns that cannot be cleared with an explicit null in an update.
REQUIRED_JOB_FIELDS = ("title", "description", "location", "budget", "images")


def validate_coordinates(latitude: float | None, longitude: float | None) -> None:
    """Each coordinate is checked on its own; ``None`` means "not supplied"."""
    if latitude is not None and not -90 <= latitude <= 90:
        raise ValidationError("latitude must be between -90 and 90")
    if longitude is not None and not -180 <= longitude <= 180:
        raise ValidationError("longitude must be between -180 and 180")


class JobManager:
    """Owns the job lifecycle: open -> reserved -> closed, plus the labour
    close-request flag that only means something while reserved.

    Reserving happens through ``OfferManager.accept``; everything else lives here.
    """

    def __init__(self, db: Session):
        self.db = db

    # ---------- reads ----------

    def get(self, job_id: str) -> models.Job:
        job = self.db.get(models.Job, job_id)
        if job is None:
            raise NotFound("Job not found")
        return job

    def _query(self, filters: JobFilters):
        # offers are loaded in one batch for offer_count
        stmt = select(models.Job).options(selectinload(models.Job.offers)).order_by(models.Job.created_at.desc())
        if filters.status != "all":
            stmt = stmt.where(models.Job.status == filters.status)
        return stmt

    def _apply_filters(self, jobs: list[models.Job], filters: JobFilters) -> list[models.Job]:
        # the predicate is a no-op for empty filters; skip the loop
        if not filters.has_predicates():
            return jobs
        return [j for j in jobs if job_matches_filters(j, filters)]

    def list_jobs(self, filters: JobFilters) -> list[models.Job]:
        jobs = self.db.execute(self._query(filters)).scalars().all()
        return self._apply_filters(list(jobs), filters)

    def list_for_map(self, filters: JobFilters) -> list[models.Job]:
        stmt = self._query(filters).where(
            models.Job.latitude.is_not(None),
            models.Job.longitude.is_not(None),
        )
        jobs = self.db.execute(stmt).scalars().all()
        return self._apply_filters(list(jobs), filters)

    def jobs_for_user(self, user_id: str) -> dict[str, list[models.Job]]:
        """Jobs the user created, and jobs they hold the accepted offer on."""
        created = (
            self.db.execute(
                select(models.Job)
                .options(selectinload(models.Job.offers))
                .where(models.Job.created_by == user_id)
                .order_by(models.Job.created_at.desc())
            )
            .scalars()
            .all()
        )
        accepted = (
            self.db.execute(
                select(models.Job)
                .options(selectinload(models.Job.offers))
                .join(models.Offer, models.Offer.job_id == models.Job.id)
                .where(
                    models.Offer.user_id == user_id,
                    models.Offer.status == models.OFFER_ACCEPTED,
                )
                .order_by(models.Job.created_at.desc())
            )
            .scalars()
            .unique()
            .all()
        )
        created_ids = {j.id for j in created}
        return {
            "created": list(created),
            "working_on": [j for j in accepted if j.id not in created_ids],
        }

    # ---------- writes ----------

    def create(self, owner_id: str, data: JobCreate) -> models.Job:
        validate_coordinates(data.latitude, data.longitude)
        if self.db.get(models.User, owner_id) is None:
            raise NotFound("User not found")

        job = models.Job(
            title=data.title,
            description=data.description,
            location=data.location,
            budget=data.budget,
            images=list(data.images),
            video=data.video,
            created_by=owner_id,
            latitude=data.latitude,
            longitude=data.longitude,
            skills=list(data.skills) if data.skills is not None else None,
            status=models.JOB_OPEN,
            close_requested_by=None,
            closed_at=None,
        )
        self.db.add(job)
        self.db.commit()
        self.db.refresh(job)
        logger.info("Job created | job=%s | owner=%s", job.id, owner_id)
        return job

    def _owned(self, job_id: str, caller_id: str, action: str) -> models.Job:
        job = self.get(job_id)
        if job.created_by != caller_id:
            raise Forbidden(f"Only the job creator can {action} this job")
        return job

    def update(self, job_id: str, caller_id: str, changes: JobUpdate) -> models.Job:
        job = self._owned(job_id, caller_id, "update")

        # present-but-null clears; absent keys never reach here
        fields = changes.model_dump(exclude_unset=True)
        for name in REQUIRED_JOB_FIELDS:
            if name in fields and fields[name] is None:
                raise ValidationError(f"{name} cannot be null")
        validate_coordinates(fields.get("latitude"), fields.get("longitude"))

        for name, value in fields.items():
            setattr(job, name, value)
        self.db.commit()
        self.db.refresh(job)
        return job

    def delete(self, job_id: str, caller_id: str) -> None:
        job = self._owned(job_id, caller_id, "delete")
        # offers go with it (relationship cascade); notifications keep the stale job id
        self.db.delete(job)
        self.db.commit()
        logger.info("Job deleted | job=%s", job_id)

    def request_close(self, job_id: str, labour_id: str) -> models.Job:
        """The accepted labour asks the creator to close the job."""
        job = self.get(job_id)
        if job.status != models.JOB_RESERVED:
            raise BadState("Job can only be closed when it is reserved")
        holder = self.db.execute(
            select(models.Offer.id).where(
                models.Offer.job_id == job_id,
                models.Offer.user_id == labour_id,
                models.Offer.status == models.OFFER_ACCEPTED,
            )
        ).first()
        if holder is None:
            raise Forbidden("Only the accepted labour for this job can request to close it")

        job.close_requested_by = models.CLOSE_REQUESTED_BY_LABOUR
        self.db.commit()
        self.db.refresh(job)
        return job

    def close(self, job_id: str, client_id: str) -> models.Job:
        job = self.get(job_id)
        if job.status != models.JOB_RESERVED:
            raise BadState("Job can only be closed when it is reserved")
        if job.created_by != client_id:
            raise Forbidden("Only the job creator can close this job")

        result = self.db.execute(
            update(models.Job)
            .where(models.Job.id == job_id, models.Job.status == models.JOB_RESERVED)
            .values(
                status=models.JOB_CLOSED,
                closed_at=datetime.now(timezone.utc),
                close_requested_by=None,
            )
        )
        if result.rowcount != 1:
            self.db.rollback()
            logger.warning("Close lost a race | job=%s", job_id)
            raise BadState("Job can only be closed when it is reserved")
        self.db.commit()
        self.db.refresh(job)
        logger.info("Job closed | job=%s", job_id)
        return job

    def reject_close_request(self, job_id: str, client_id: str) -> models.Job:
        job = self.get(job_id)
        if job.created_by != client_id:
            raise Forbidden("Only the job creator can reject a close request")
        job.close_requested_by = None
        self.db.commit()
        self.db.refresh(job)
        return job
