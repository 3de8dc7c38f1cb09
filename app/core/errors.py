"""Domain error taxonomy for attempt operations.

Each error carries a stable machine-readable ``kind``; the HTTP layer maps
kinds to status codes.  Authentication failures never reach this module:
``require_user`` rejects them with a 401 before a service is called.
"""

from __future__ import annotations


class AttemptError(Exception):
    kind = "attempt_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(AttemptError):
    kind = "not_found"


class ForbiddenError(AttemptError):
    kind = "forbidden"


class InvalidStateError(AttemptError):
    kind = "invalid_state"


class ValidationError(AttemptError):
    kind = "validation_error"


class UnavailableError(AttemptError):
    """A collaborator (store, cache) failed; the original error is chained."""

    kind = "unavailable"


class ConflictError(AttemptError):
    """A write lost a race against a concurrent one (e.g. a second live attempt)."""

    kind = "conflict"
