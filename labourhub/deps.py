# labourhub/deps.py
from fastapi import Depends
from sqlalchemy.orm import Session

from .database import get_db
from .services.jobs import JobManager
from .services.notifications import NotificationEmitter
from .services.offers import OfferManager
from .services.uploads import MediaUploader
from .services.users import UserDirectory


def get_job_manager(db: Session = Depends(get_db)) -> JobManager:
    return JobManager(db)


def get_notification_emitter(db: Session = Depends(get_db)) -> NotificationEmitter:
    return NotificationEmitter(db)


def get_offer_manager(
    db: Session = Depends(get_db),
    notifier: NotificationEmitter = Depends(get_notification_emitter),
) -> OfferManager:
    return OfferManager(db, notifier)


def get_user_directory(db: Session = Depends(get_db)) -> UserDirectory:
    return UserDirectory(db)


def get_media_uploader() -> MediaUploader:
    return MediaUploader()
