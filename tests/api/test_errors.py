from __future__ import annotations

import pytest

from app.api.errors import to_http_exception
from app.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    UnavailableError,
    ValidationError,
)


@pytest.mark.parametrize(
    ("exc", "status_code"),
    [
        (NotFoundError("gone"), 404),
        (ForbiddenError("not yours"), 403),
        (InvalidStateError("finalized"), 409),
        (ConflictError("live attempt exists"), 409),
        (ValidationError("bad index"), 422),
        (UnavailableError("store down"), 503),
    ],
)
def test_error_kinds_map_to_status(exc, status_code: int) -> None:
    http_exc = to_http_exception(exc)
    assert http_exc.status_code == status_code
    assert http_exc.detail == {"kind": exc.kind, "message": exc.message}
