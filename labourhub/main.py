# labourhub/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy import text
from sqlalchemy.orm import Session

from .auth import get_caller_id
from .config import settings
from .database import get_db
from .deps import (
    get_job_manager,
    get_media_uploader,
    get_notification_emitter,
    get_offer_manager,
    get_user_directory,
)
from .errors import AppError, Forbidden
from .filters import parse_job_filters
from .schemas import (
    JobCreate,
    JobFilters,
    JobMapOut,
    JobOut,
    JobUpdate,
    NotificationFeedOut,
    NotificationOut,
    OfferCreate,
    OfferDetail,
    OfferOut,
    OfferWithBidder,
    SignIn,
    UploadOut,
    UserCreate,
    UserJobsOut,
    UserOut,
    UserUpdate,
)
from .services.jobs import JobManager
from .services.notifications import NotificationEmitter
from .services.offers import OfferManager
from .services.uploads import MediaFile, MediaUploader
from .services.users import UserDirectory

logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    from .database import engine, Base
    # Create tables if they don't exist
    Base.metadata.create_all(bind=engine)
    logger.info("Starting labourhub API (debug=%s)", settings.DEBUG)
    yield


app = FastAPI(title="labourhub API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", settings.USER_ID_HEADER],
    max_age=86400,
)


# ---------- error mapping ----------

def _error(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, "code": code})


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return _error(exc.status_code, exc.message, exc.code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return _error(status.HTTP_400_BAD_REQUEST, "; ".join(parts) or "Invalid request", "VALIDATION_ERROR")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "INTERNAL_ERROR")


def job_filters(
    status_: str | None = Query(None, alias="status", description="open|reserved|closed|all; default all"),
    min_budget: str | None = Query(None, alias="minBudget"),
    max_budget: str | None = Query(None, alias="maxBudget"),
    q: str | None = Query(None, description="Substring of title or description"),
    location: str | None = Query(None),
    skills: str | None = Query(None, description="Comma-separated; matches any"),
) -> JobFilters:
    # raw strings on purpose: bad values are ignored, not rejected
    return parse_job_filters(status_, min_budget, max_budget, q, location, skills)


@app.get("/health", tags=["monitoring"])
def health_check(db: Session = Depends(get_db)):
    """
    Checks if the application is healthy, including the database connection.
    """
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ok", "database": "ok"}
    except Exception:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database connection error"
        )


# Jobs endpoints
@app.get("/api/jobs", response_model=list[JobOut], tags=["jobs"])
def list_jobs(filters: JobFilters = Depends(job_filters), jobs: JobManager = Depends(get_job_manager)):
    return jobs.list_jobs(filters)


@app.get("/api/jobs/map", response_model=list[JobMapOut], tags=["jobs"])
def list_jobs_for_map(filters: JobFilters = Depends(job_filters), jobs: JobManager = Depends(get_job_manager)):
    """Jobs with both coordinates set; minimal payload for map pins."""
    return jobs.list_for_map(filters)


@app.post("/api/jobs", response_model=JobOut, status_code=status.HTTP_201_CREATED, tags=["jobs"])
def create_job(payload: JobCreate, jobs: JobManager = Depends(get_job_manager)):
    return jobs.create(payload.created_by, payload)


@app.get("/api/jobs/{job_id}", response_model=JobOut, tags=["jobs"])
def get_job(job_id: str, jobs: JobManager = Depends(get_job_manager)):
    return jobs.get(job_id)


@app.put("/api/jobs/{job_id}", response_model=JobOut, tags=["jobs"])
def update_job(
    job_id: str,
    payload: JobUpdate,
    caller_id: str = Depends(get_caller_id),
    jobs: JobManager = Depends(get_job_manager),
):
    return jobs.update(job_id, caller_id, payload)


@app.delete("/api/jobs/{job_id}", status_code=204, tags=["jobs"])
def delete_job(job_id: str, caller_id: str = Depends(get_caller_id), jobs: JobManager = Depends(get_job_manager)):
    jobs.delete(job_id, caller_id)
    return Response(status_code=204)


@app.post("/api/jobs/{job_id}/request-close", response_model=JobOut, tags=["jobs"])
def request_close(job_id: str, caller_id: str = Depends(get_caller_id), jobs: JobManager = Depends(get_job_manager)):
    """Accepted labour asks the client to close; the client approves via /close."""
    return jobs.request_close(job_id, caller_id)


@app.post("/api/jobs/{job_id}/close", response_model=JobOut, tags=["jobs"])
def close_job(job_id: str, caller_id: str = Depends(get_caller_id), jobs: JobManager = Depends(get_job_manager)):
    return jobs.close(job_id, caller_id)


@app.post("/api/jobs/{job_id}/reject-close", response_model=JobOut, tags=["jobs"])
def reject_close(job_id: str, caller_id: str = Depends(get_caller_id), jobs: JobManager = Depends(get_job_manager)):
    return jobs.reject_close_request(job_id, caller_id)


# Offers endpoints
@app.post("/api/jobs/{job_id}/offers", response_model=OfferOut, status_code=status.HTTP_201_CREATED, tags=["offers"])
def create_offer(job_id: str, payload: OfferCreate, offers: OfferManager = Depends(get_offer_manager)):
    return offers.create(job_id, payload.user_id, payload.proposed_price, payload.message)


@app.get("/api/jobs/{job_id}/offers", response_model=list[OfferWithBidder], tags=["offers"])
def list_offers(job_id: str, offers: OfferManager = Depends(get_offer_manager)):
    return offers.list_by_job(job_id)


@app.post("/api/offers/{offer_id}/accept", response_model=OfferDetail, tags=["offers"])
def accept_offer(offer_id: str, caller_id: str = Depends(get_caller_id), offers: OfferManager = Depends(get_offer_manager)):
    """Accept an offer: job becomes reserved and every other offer on it is rejected."""
    return offers.accept(offer_id, caller_id)


@app.post("/api/offers/{offer_id}/reject", response_model=OfferDetail, tags=["offers"])
def reject_offer(offer_id: str, caller_id: str = Depends(get_caller_id), offers: OfferManager = Depends(get_offer_manager)):
    return offers.reject(offer_id, caller_id)


# Users endpoints
@app.get("/api/users", response_model=list[UserOut], tags=["users"])
def list_users(users: UserDirectory = Depends(get_user_directory)):
    return users.list_users()


@app.post("/api/users", response_model=UserOut, status_code=status.HTTP_201_CREATED, tags=["users"])
def create_user(payload: UserCreate, users: UserDirectory = Depends(get_user_directory)):
    return users.create(payload)


@app.post("/api/users/sign-in", response_model=UserOut, tags=["users"])
def sign_in(payload: SignIn, users: UserDirectory = Depends(get_user_directory)):
    """Sign in with name and email only; 401 if they don't match."""
    return users.sign_in(payload.name, payload.email)


@app.get("/api/users/{user_id}", response_model=UserOut, tags=["users"])
def get_user(user_id: str, users: UserDirectory = Depends(get_user_directory)):
    return users.get(user_id)


@app.put("/api/users/{user_id}", response_model=UserOut, tags=["users"])
def update_user(user_id: str, payload: UserUpdate, users: UserDirectory = Depends(get_user_directory)):
    return users.update(user_id, payload)


@app.get("/api/users/{user_id}/jobs", response_model=UserJobsOut, tags=["users"])
def user_jobs(
    user_id: str,
    users: UserDirectory = Depends(get_user_directory),
    jobs: JobManager = Depends(get_job_manager),
):
    """Jobs the user created and jobs they are working on (accepted offer)."""
    users.get(user_id)
    return jobs.jobs_for_user(user_id)


# Notifications endpoints
@app.get("/api/users/{user_id}/notifications", response_model=NotificationFeedOut, tags=["notifications"])
def list_notifications(
    user_id: str,
    users: UserDirectory = Depends(get_user_directory),
    notifier: NotificationEmitter = Depends(get_notification_emitter),
):
    users.get(user_id)
    return notifier.list_for_user(user_id)


@app.post("/api/users/{user_id}/notifications/read-all", response_model=NotificationFeedOut, tags=["notifications"])
def read_all_notifications(
    user_id: str,
    caller_id: str = Depends(get_caller_id),
    users: UserDirectory = Depends(get_user_directory),
    notifier: NotificationEmitter = Depends(get_notification_emitter),
):
    if caller_id != user_id:
        raise Forbidden("You can only mark your own notifications as read")
    users.get(user_id)
    return notifier.mark_all_read(user_id)


@app.post("/api/notifications/{notification_id}/read", response_model=NotificationOut, tags=["notifications"])
def read_notification(
    notification_id: str,
    caller_id: str = Depends(get_caller_id),
    notifier: NotificationEmitter = Depends(get_notification_emitter),
):
    return notifier.mark_read(notification_id, caller_id)


# Media upload
def _media_file(f: UploadFile) -> MediaFile:
    return MediaFile(filename=f.filename or "", content_type=f.content_type or "", content=f.file.read())


@app.post("/api/upload", response_model=UploadOut, response_model_exclude_none=True, tags=["upload"])
def upload_media(
    images: list[UploadFile] | None = File(None),
    video: UploadFile | None = File(None),
    uploader: MediaUploader = Depends(get_media_uploader),
):
    """Multipart upload: ``images`` (repeatable) and an optional ``video``; returns public URLs."""
    image_files = [_media_file(f) for f in images or []]
    video_file = _media_file(video) if video is not None else None
    if video_file is not None and video_file.size == 0:
        video_file = None
    return uploader.upload(image_files, video_file)
