# labourhub/models.py
from __future__ import annotations
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime, Float, Integer, ForeignKey, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base

ROLE_CLIENT = "client"
ROLE_LABOUR = "labour"

JOB_OPEN = "open"
JOB_RESERVED = "reserved"
JOB_CLOSED = "closed"

OFFER_PENDING = "pending"
OFFER_ACCEPTED = "accepted"
OFFER_REJECTED = "rejected"

CLOSE_REQUESTED_BY_LABOUR = "labour"

NOTIFY_NEW_OFFER = "NEW_OFFER"
NOTIFY_OFFER_ACCEPTED = "OFFER_ACCEPTED"
NOTIFY_OFFER_REJECTED = "OFFER_REJECTED"


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # RFC 5321 cap is 320 chars; unique + indexed for sign-in lookups
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)

    avatar_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    location: Mapped[str | None] = mapped_column(String(512), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    skills: Mapped[list | None] = mapped_column(JSON, nullable=True)
    years_of_experience: Mapped[int | None] = mapped_column(Integer, nullable=True)
    company_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    profile_completed: Mapped[bool] = mapped_column(default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    jobs: Mapped[list["Job"]] = relationship(back_populates="creator", cascade="all, delete-orphan")
    offers: Mapped[list["Offer"]] = relationship(back_populates="user", cascade="all, delete-orphan")
    notifications: Mapped[list["Notification"]] = relationship(back_populates="user", cascade="all, delete-orphan")


class Job(Base):
    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str] = mapped_column(String(512), nullable=False)
    budget: Mapped[str] = mapped_column(String(64), nullable=False)  # kept as typed by the client
    images: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    video: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    status: Mapped[str] = mapped_column(String(16), index=True, nullable=False, default=JOB_OPEN)
    close_requested_by: Mapped[str | None] = mapped_column(String(16), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    skills: Mapped[list | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    creator: Mapped[User] = relationship(back_populates="jobs")
    offers: Mapped[list["Offer"]] = relationship(back_populates="job", cascade="all, delete-orphan")

    @property
    def offer_count(self) -> int:
        return len(self.offers)


class Offer(Base):
    __tablename__ = "offers"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    job_id: Mapped[str] = mapped_column(ForeignKey("jobs.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    proposed_price: Mapped[str] = mapped_column(String(64), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=OFFER_PENDING)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    job: Mapped[Job] = relationship(back_populates="offers")
    user: Mapped[User] = relationship(back_populates="offers")

# one pending offer per bidder per job
Index(
    "uq_offers_pending_bidder",
    Offer.job_id,
    Offer.user_id,
    unique=True,
    sqlite_where=Offer.status == OFFER_PENDING,
    postgresql_where=Offer.status == OFFER_PENDING,
)


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    # No FK: a deleted job leaves the reference behind.
    job_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    offer_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user: Mapped[User] = relationship(back_populates="notifications")
