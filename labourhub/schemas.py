from __future__ import annotations
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

Role = Literal["client", "labour"]
JobStatus = Literal["open", "reserved", "closed"]
JobStatusFilter = Literal["open", "reserved", "closed", "all"]
OfferStatus = Literal["pending", "accepted", "rejected"]
NotificationType = Literal["NEW_OFFER", "OFFER_ACCEPTED", "OFFER_REJECTED"]

# JSON on the wire is camelCase; python side stays snake_case.
API_CONFIG = {"alias_generator": to_camel, "populate_by_name": True, "from_attributes": True}


def _stringify_amount(v):
    # budgets and prices arrive as "100" or 100; both are stored as text
    if isinstance(v, bool):
        raise ValueError("must be a string or number")
    if isinstance(v, (int, float)):
        return str(v)
    if isinstance(v, str) and not v.strip():
        raise ValueError("must not be empty")
    return v


def _none_to_empty(v):
    return [] if v is None else v


# Users
class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    role: Role

    model_config = API_CONFIG


class UserUpdate(BaseModel):
    name: str | None = Field(None, min_length=1)
    email: EmailStr | None = None
    role: Role | None = None
    avatar_url: str | None = None
    location: str | None = None
    bio: str | None = None
    skills: list[str] | None = None
    years_of_experience: int | None = Field(None, ge=0)
    company_name: str | None = None

    model_config = API_CONFIG


class SignIn(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=1)


class UserBrief(BaseModel):
    id: str
    name: str
    email: str
    role: Role

    model_config = API_CONFIG


class UserOut(UserBrief):
    avatar_url: str | None = None
    location: str | None = None
    bio: str | None = None
    skills: list[str] = Field(default_factory=list)
    years_of_experience: int | None = None
    company_name: str | None = None
    profile_completed: bool
    created_at: datetime
    updated_at: datetime

    skills_default = field_validator("skills", mode="before")(_none_to_empty)


# Jobs
class JobCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    location: str = Field(min_length=1)
    budget: str
    images: list[str] = Field(default_factory=list)
    video: str | None = None
    created_by: str = Field(min_length=1)
    latitude: float | None = None
    longitude: float | None = None
    skills: list[str] | None = None

    model_config = API_CONFIG

    budget_as_text = field_validator("budget", mode="before")(_stringify_amount)


class JobUpdate(BaseModel):
    """Partial job update; only keys present in the request body are applied."""
    title: str | None = Field(None, min_length=1)
    description: str | None = Field(None, min_length=1)
    location: str | None = Field(None, min_length=1)
    budget: str | None = None
    images: list[str] | None = None
    video: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    skills: list[str] | None = None

    model_config = API_CONFIG

    @field_validator("budget", mode="before")
    @classmethod
    def budget_as_text(cls, v):
        return None if v is None else _stringify_amount(v)


class JobFilters(BaseModel):
    """Normalized job-listing filters. ``None`` means "not filtered on"."""
    status: JobStatusFilter = "all"
    min_budget: float | None = None
    max_budget: float | None = None
    q: str | None = None
    location: str | None = None
    skills: list[str] | None = None

    def has_predicates(self) -> bool:
        return (
            self.min_budget is not None
            or self.max_budget is not None
            or bool(self.q)
            or bool(self.location)
            or bool(self.skills)
        )


class JobOut(BaseModel):
    id: str
    title: str
    description: str
    location: str
    budget: str
    images: list[str] = Field(default_factory=list)
    video: str | None = None
    status: JobStatus
    close_requested_by: str | None = None
    closed_at: datetime | None = None
    created_by: str
    latitude: float | None = None
    longitude: float | None = None
    skills: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    offer_count: int = 0

    model_config = API_CONFIG

    lists_default = field_validator("images", "skills", mode="before")(_none_to_empty)


class JobMapOut(BaseModel):
    id: str
    title: str
    budget: str
    latitude: float
    longitude: float
    images: list[str] = Field(default_factory=list)

    model_config = API_CONFIG

    images_default = field_validator("images", mode="before")(_none_to_empty)


class UserJobsOut(BaseModel):
    created: list[JobOut]
    working_on: list[JobOut]

    model_config = API_CONFIG


# Offers
class OfferCreate(BaseModel):
    user_id: str = Field(min_length=1)
    proposed_price: str
    message: str = Field(min_length=1)

    model_config = API_CONFIG

    price_as_text = field_validator("proposed_price", mode="before")(_stringify_amount)


class OfferOut(BaseModel):
    id: str
    job_id: str
    user_id: str
    proposed_price: str
    message: str
    status: OfferStatus
    created_at: datetime

    model_config = API_CONFIG


class OfferWithBidder(OfferOut):
    user: UserBrief


class OfferDetail(OfferOut):
    job: JobOut
    user: UserBrief


# Notifications
class NotificationOut(BaseModel):
    id: str
    user_id: str
    type: NotificationType
    job_id: str | None = None
    offer_id: str | None = None
    message: str
    read: bool
    created_at: datetime
    job_title: str | None = None

    model_config = API_CONFIG


class NotificationFeedOut(BaseModel):
    unread_count: int
    notifications: list[NotificationOut]

    model_config = API_CONFIG


# Uploads
class UploadOut(BaseModel):
    images: list[str] = Field(default_factory=list)
    video: str | None = None
