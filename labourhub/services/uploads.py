"""
Media upload for job images and videos.

Files are validated locally and then pushed to Cloudinary through its SDK;
only the resulting public URLs are stored on jobs.
"""
from __future__ import annotations
import io
import logging
import re
from dataclasses import dataclass

import cloudinary
import cloudinary.uploader

from ..config import Settings, settings as default_settings
from ..errors import BadRequest, ServiceUnavailable

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_MIMES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
ALLOWED_VIDEO_MIMES = {"video/mp4", "video/webm"}
ALLOWED_IMAGE_EXT = re.compile(r"\.(jpe?g|png|webp)$", re.IGNORECASE)
ALLOWED_VIDEO_EXT = re.compile(r"\.(mp4|webm)$", re.IGNORECASE)


@dataclass
class MediaFile:
    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


def _mb(n: int) -> str:
    return f"{n / 1024 / 1024:.2f}"


def _check_file(f: MediaFile, kind: str, mimes: set[str], ext: re.Pattern, max_bytes: int, allowed: str) -> None:
    # either a known mime type or a known extension is enough
    if f.content_type not in mimes and not ext.search(f.filename or ""):
        raise BadRequest(f"Invalid {kind} type. Allowed: {allowed}. Got: {f.filename or f.content_type or 'unknown'}")
    if f.size > max_bytes:
        raise BadRequest(f"{kind.capitalize()} too large. Max size: {max_bytes / 1024 / 1024:g} MB. Got: {_mb(f.size)} MB")


class MediaUploader:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or default_settings

    def _credentials(self) -> tuple[str, str, str]:
        s = self.settings
        if not (s.CLOUDINARY_CLOUD_NAME and s.CLOUDINARY_API_KEY and s.CLOUDINARY_API_SECRET):
            raise ServiceUnavailable(
                "Upload not configured. Set CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET."
            )
        return s.CLOUDINARY_CLOUD_NAME, s.CLOUDINARY_API_KEY, s.CLOUDINARY_API_SECRET

    def validate_image(self, f: MediaFile) -> None:
        _check_file(f, "image", ALLOWED_IMAGE_MIMES, ALLOWED_IMAGE_EXT, self.settings.UPLOAD_MAX_IMAGE_BYTES, "jpg, png, webp")

    def validate_video(self, f: MediaFile) -> None:
        _check_file(f, "video", ALLOWED_VIDEO_MIMES, ALLOWED_VIDEO_EXT, self.settings.UPLOAD_MAX_VIDEO_BYTES, "mp4, webm")

    def _configure(self) -> None:
        cloud_name, api_key, api_secret = self._credentials()
        cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)

    def _push(self, f: MediaFile, resource_type: str, folder: str) -> str:
        stream = io.BytesIO(f.content)
        stream.name = f.filename or "upload"
        result = cloudinary.uploader.upload(
            stream,
            resource_type=resource_type,
            folder=folder,
            timeout=self.settings.UPLOAD_TIMEOUT_SECONDS,
        )
        secure_url = result.get("secure_url")
        if not secure_url:
            raise RuntimeError("Cloudinary returned no URL")
        return secure_url

    def upload(self, images: list[MediaFile], video: MediaFile | None = None) -> dict:
        if not images and video is None:
            raise BadRequest("No files to upload. Send 'images' (multiple) and/or 'video' (single).")
        self._credentials()
        if len(images) > self.settings.UPLOAD_MAX_IMAGES:
            raise BadRequest(f"Too many images. Max: {self.settings.UPLOAD_MAX_IMAGES}.")

        # validate everything before sending anything
        for f in images:
            self.validate_image(f)
        if video is not None:
            self.validate_video(video)

        self._configure()
        folder = self.settings.UPLOAD_FOLDER
        result: dict = {"images": []}
        for f in images:
            result["images"].append(self._push(f, "image", f"{folder}/images"))
        if video is not None:
            result["video"] = self._push(video, "video", f"{folder}/videos")
        logger.info("Uploaded %d image(s)%s", len(result["images"]), " and a video" if video else "")
        return result
