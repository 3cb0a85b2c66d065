from __future__ import annotations

from fastapi import Request

from .config import settings
from .errors import BadRequest


def get_caller_id_from_header(request: Request) -> str | None:
    """Extract the caller's user id from the identity header (X-User-Id by default)"""
    value = request.headers.get(settings.USER_ID_HEADER)
    if value and value.strip():
        return value.strip()
    return None


def get_caller_id(request: Request) -> str:
    """
    Identity of the caller for ownership checks.

    The id is taken at face value: the frontend sends the signed-in user's id
    and nothing here verifies it. Routes that act on behalf of a user depend
    on this; a missing header is a 400.
    """
    caller_id = get_caller_id_from_header(request)
    if caller_id is None:
        raise BadRequest(f"{settings.USER_ID_HEADER} header required")
    return caller_id
