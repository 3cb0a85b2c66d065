from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from .. import models
from ..errors import Conflict, NotFound, Unauthorized, ValidationError
from ..schemas import UserCreate, UserUpdate

REQUIRED_USER_FIELDS = ("name", "email", "role")


def compute_profile_completed(user: models.User) -> bool:
    """Location and bio filled in; labour users also need skills and experience."""
    if not (user.location or "").strip() or not (user.bio or "").strip():
        return False
    if user.role == models.ROLE_LABOUR:
        return bool(user.skills) and user.years_of_experience is not None and user.years_of_experience >= 0
    return True


class UserDirectory:
    def __init__(self, db: Session):
        self.db = db

    def get_by_email(self, email: str) -> models.User | None:
        return self.db.execute(select(models.User).where(models.User.email == email)).scalar_one_or_none()

    def get(self, user_id: str) -> models.User:
        user = self.db.get(models.User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def list_users(self) -> list[models.User]:
        rows = self.db.execute(select(models.User).order_by(models.User.created_at.desc())).scalars().all()
        return list(rows)

    def create(self, data: UserCreate) -> models.User:
        if self.get_by_email(data.email):
            raise Conflict("User with this email already exists")
        user = models.User(name=data.name, email=data.email, role=data.role, profile_completed=False)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def sign_in(self, name: str, email: str) -> models.User:
        """Name + email, no password. Name is compared case-insensitively."""
        email = email.strip()
        user = self.get_by_email(email) if email else None
        if user is None or user.name.strip().lower() != name.strip().lower():
            raise Unauthorized("Invalid name or email")
        return user

    def update(self, user_id: str, changes: UserUpdate) -> models.User:
        user = self.get(user_id)
        fields = changes.model_dump(exclude_unset=True)
        for name in REQUIRED_USER_FIELDS:
            if name in fields and fields[name] is None:
                raise ValidationError(f"{name} cannot be null")

        if fields.get("email"):
            other = self.db.execute(
                select(models.User.id).where(models.User.email == fields["email"], models.User.id != user_id)
            ).first()
            if other is not None:
                raise Conflict("User with this email already exists")

        for name, value in fields.items():
            setattr(user, name, value)
        user.profile_completed = compute_profile_completed(user)
        self.db.commit()
        self.db.refresh(user)
        return user
