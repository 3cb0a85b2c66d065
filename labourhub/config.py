# labourhub/config.py

from __future__ import annotations
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    # --- Core ---
    DEBUG: bool = True  # set False in prod
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    DATABASE_URL: str = Field("sqlite:///./labourhub.db")
    # Alembic reads DATABASE_URL from env too.

    # --- Caller identity ---
    # Opaque user id sent by the frontend; not verified.
    USER_ID_HEADER: str = "X-User-Id"

    # --- CORS ---
    CORS_ALLOW_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    # --- Cloudinary / media upload ---
    CLOUDINARY_CLOUD_NAME: Optional[str] = None
    CLOUDINARY_API_KEY: Optional[str] = None
    CLOUDINARY_API_SECRET: Optional[str] = None
    CLOUDINARY_BASE: str = "https://api.cloudinary.com/v1_1"
    UPLOAD_FOLDER: str = "job-media"
    UPLOAD_TIMEOUT_SECONDS: int = Field(60, ge=1)

    UPLOAD_MAX_IMAGES: int = 10
    UPLOAD_MAX_IMAGE_BYTES: int = 4 * 1024 * 1024
    UPLOAD_MAX_VIDEO_BYTES: int = 20 * 1024 * 1024

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
