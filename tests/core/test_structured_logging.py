"""JSON log output.

LOG_JSON=true output is parsed by the log pipeline, which filters attempt
incidents by attempt_id and request_id.  A formatter regression that drops
those keys or emits plain text would go unnoticed until someone searched.
"""

from __future__ import annotations

import json
import logging

from app.core.logging import _ContainerFormatter, _JsonFormatter


def test_json_formatter_produces_valid_json() -> None:
    """_JsonFormatter output must be parseable as JSON."""
    formatter = _JsonFormatter()
    record = logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname="test.py",
        lineno=42,
        msg="Hello %s",
        args=("world",),
        exc_info=None,
    )
    output = formatter.format(record)
    parsed = json.loads(output)
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "test.logger"
    assert parsed["message"] == "Hello world"
    assert "timestamp" in parsed


def test_json_formatter_includes_extra_fields() -> None:
    """Context fields injected by middleware appear in JSON output."""
    formatter = _JsonFormatter()
    record = logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg="test message",
        args=(),
        exc_info=None,
    )
    # Simulate what the RequestContextMiddleware does
    record.request_id = "abc-123"  # type: ignore[attr-defined]
    record.method = "GET"  # type: ignore[attr-defined]
    record.path = "/health"  # type: ignore[attr-defined]
    record.duration_ms = 12.5  # type: ignore[attr-defined]

    output = formatter.format(record)
    parsed = json.loads(output)
    assert parsed["request_id"] == "abc-123"
    assert parsed["method"] == "GET"
    assert parsed["path"] == "/health"
    assert parsed["duration_ms"] == 12.5


def test_json_formatter_includes_exception_info() -> None:
    """Exception info appears as an 'exception' key in JSON output."""
    import sys

    formatter = _JsonFormatter()
    try:
        raise ValueError("test error")
    except ValueError:
        exc_info = sys.exc_info()
        record = logging.LogRecord(
            name="test",
            level=logging.ERROR,
            pathname="test.py",
            lineno=1,
            msg="Something failed",
            args=(),
            exc_info=exc_info,
        )
        output = formatter.format(record)

    parsed = json.loads(output)
    assert "exception" in parsed
    assert "ValueError: test error" in parsed["exception"]


def test_container_formatter_still_works() -> None:
    """Regression: existing human-readable format is unchanged."""
    formatter = _ContainerFormatter()
    record = logging.LogRecord(
        name="app.main",
        level=logging.INFO,
        pathname="main.py",
        lineno=10,
        msg="server started",
        args=(),
        exc_info=None,
    )
    output = formatter.format(record)
    # Should contain level, logger name, and message as plain text
    assert "INFO" in output
    assert "app.main" in output
    assert "server started" in output
    # Should NOT be JSON
    try:
        json.loads(output)
        raise AssertionError("Container format should not be valid JSON")
    except json.JSONDecodeError:
        pass  # expected


def test_json_formatter_lifts_attempt_context() -> None:
    """attempt_id/quiz_id passed via extra= become top-level keys."""
    logger = logging.getLogger("test.attempts")
    record = logger.makeRecord(
        "test.attempts",
        logging.WARNING,
        "svc.py",
        7,
        "Rejected progress",
        (),
        None,
        extra={"attempt_id": "a-1", "quiz_id": "sample-quiz", "user_id": "alice"},
    )
    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["attempt_id"] == "a-1"
    assert parsed["quiz_id"] == "sample-quiz"
    assert parsed["user_id"] == "alice"


def test_json_formatter_omits_placeholder_request_id() -> None:
    """Outside a request the request_id placeholder is not emitted."""
    record = logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg="startup",
        args=(),
        exc_info=None,
    )
    record.request_id = "-"  # type: ignore[attr-defined]
    record.attempt_id = None  # type: ignore[attr-defined]
    parsed = json.loads(_JsonFormatter().format(record))
    assert "request_id" not in parsed
    assert "attempt_id" not in parsed
