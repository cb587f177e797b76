from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from lms_progress.api.dependencies import SAMPLE_COURSE_ID


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    uuid.UUID(req_id)


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    custom_id = "my-custom-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    resp = client.get(f"/v1/courses/{SAMPLE_COURSE_ID}")  # no token -> 401
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_summary_line_logged_with_context(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="lms_progress.middleware"):
        client.get("/health", headers={"X-Request-ID": "req-42"})

    records = [r for r in caplog.records if getattr(r, "path", None) == "/health"]
    assert records
    assert records[-1].request_id == "req-42"  # type: ignore[attr-defined]
    assert records[-1].status_code == 200  # type: ignore[attr-defined]
