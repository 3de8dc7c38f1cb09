from __future__ import annotations

from fastapi import HTTPException, status

from app.core.errors import AttemptError

_STATUS_BY_KIND = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "invalid_state": status.HTTP_409_CONFLICT,
    "conflict": status.HTTP_409_CONFLICT,
    "validation_error": status.HTTP_422_UNPROCESSABLE_CONTENT,
    "unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def to_http_exception(exc: AttemptError) -> HTTPException:
    """Map a domain error to its HTTP status with a ``{kind, message}`` body."""
    return HTTPException(
        status_code=_STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail={"kind": exc.kind, "message": exc.message},
    )
