"""Tests for the request context middleware.

Verifies that every response gets:
- An X-Request-ID header (generated or echoed from the request)
- Request timing logged
"""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from tests.conftest import auth


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    """When no X-Request-ID header is sent, one is generated."""
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    # Should be a valid UUID
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    """When the client sends X-Request-ID, the same value is echoed back."""
    custom_id = "my-custom-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    """Even error responses (401, 404) get an X-Request-ID header."""
    resp = client.get("/quizzes/sample-quiz")  # No auth token → 401
    assert resp.headers.get("x-request-id") is not None


def test_summary_line_carries_attempt_id(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    """The per-request summary names the attempt the request touched."""
    attempt = client.post(
        "/quizzes/sample-quiz/attempts", headers=auth()
    ).json()["attempt"]

    with caplog.at_level(logging.INFO, logger="app.middleware.request_context"):
        client.get(
            f"/attempts/{attempt['id']}",
            headers={**auth(), "X-Request-ID": "req-attempt-1"},
        )

    summary = [r for r in caplog.records if r.name == "app.middleware.request_context"]
    assert summary
    assert summary[-1].attempt_id == attempt["id"]  # type: ignore[attr-defined]
    assert summary[-1].request_id == "req-attempt-1"  # type: ignore[attr-defined]
    assert summary[-1].status_code == 200  # type: ignore[attr-defined]
