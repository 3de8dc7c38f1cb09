"""Request context middleware: a request ID on every log line and response.

Autosave traffic is bursty and concurrent, so log lines for different
attempts interleave.  Each request gets an ID (the caller's X-Request-ID
or a fresh UUID) held in a ContextVar; a log record factory copies it
onto every LogRecord created while the request is in flight, whichever
module logs.  A ContextVar rather than a thread-local because many
requests share the event loop thread.

On completion one summary line is logged with method, path, status and
duration, and the ID is echoed back in the X-Request-ID response header.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


_base_factory = logging.getLogRecordFactory()


def _record_factory(*args, **kwargs) -> logging.LogRecord:
    record = _base_factory(*args, **kwargs)
    record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
    return record


# A record factory rather than a root-logger filter: logger filters do not
# run for records propagated from child loggers.  Guarded against reloads.
if not getattr(_base_factory, "_stamps_request_id", False):
    _record_factory._stamps_request_id = True  # type: ignore[attr-defined]
    logging.setLogRecordFactory(_record_factory)


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        token = request_id_var.set(req_id)

        try:
            return await self._handle(request, call_next, req_id)
        finally:
            request_id_var.reset(token)

    async def _handle(
        self, request: Request, call_next: RequestResponseEndpoint, req_id: str
    ) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        extra: dict[str, object] = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        }
        attempt_id = request.path_params.get("attempt_id")
        if attempt_id is not None:
            extra["attempt_id"] = str(attempt_id)
        quiz_id = request.path_params.get("quiz_id")
        if quiz_id is not None:
            extra["quiz_id"] = quiz_id

        logger.info(
            "%s %s → %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra=extra,
        )

        response.headers["X-Request-ID"] = req_id
        return response
