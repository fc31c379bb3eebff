"""
Translation of identity errors into HTTP responses.
"""

from typing import Dict

from fastapi import HTTPException

from ..services import IdentityError, TooManyAttemptsError, UnauthorizedError


def to_http_exception(error: IdentityError) -> HTTPException:
    """Map an identity error onto an HTTPException with a structured detail."""
    headers: Dict[str, str] = {}

    if isinstance(error, TooManyAttemptsError) and error.remaining_seconds:
        headers["Retry-After"] = str(error.remaining_seconds)
    elif isinstance(error, UnauthorizedError):
        headers["WWW-Authenticate"] = "Bearer"

    return HTTPException(
        status_code=error.status_code,
        detail=error.to_dict(),
        headers=headers or None,
    )
