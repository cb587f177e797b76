"""ProgressBackend over the REST API, for course views running out of process."""

from __future__ import annotations

import logging
from uuid import UUID

import httpx

from lms_progress.models.progress import ProgressResult
from lms_progress.services.errors import (
    AuthenticationFailure,
    ConflictError,
    NotFoundError,
    PartialProgressError,
    PersistenceFailure,
    ProgressError,
    ValidationFailure,
)

logger = logging.getLogger(__name__)


class HttpProgressBackend:
    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._headers = {"Authorization": f"Bearer {token}"}

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_completed_lessons(self, course_id: UUID) -> frozenset[UUID]:
        resp = await self._send(
            "GET", f"/v1/courses/{course_id}/completed-lessons", step="ledger"
        )
        _raise_for_status(resp, step="ledger")
        return frozenset(UUID(v) for v in resp.json())

    async def mark_lesson_complete(
        self, course_id: UUID, lesson_id: UUID
    ) -> ProgressResult:
        resp = await self._send(
            "POST",
            f"/v1/lessons/{lesson_id}/complete",
            step="ledger",
            json={"course_id": str(course_id)},
        )
        if resp.status_code == httpx.codes.ACCEPTED:
            body = resp.json()
            raise PartialProgressError(
                body.get("message", "progress percentage may be stale"),
                completed_lesson_ids=frozenset(
                    UUID(v) for v in body.get("completed_lesson_ids", [])
                ),
                cause=PersistenceFailure("recompute failed", step="recompute"),
            )
        _raise_for_status(resp, step="ledger")
        body = resp.json()
        return ProgressResult(
            new_percent=body["new_percent"],
            course_completed=body["course_completed"],
            completed_lesson_ids=frozenset(
                UUID(v) for v in body["completed_lesson_ids"]
            ),
            enrollment_id=_optional_uuid(body.get("enrollment_id")),
        )

    async def _send(
        self, method: str, url: str, *, step: str, **kwargs
    ) -> httpx.Response:
        try:
            return await self._client.request(
                method, url, headers=self._headers, **kwargs
            )
        except httpx.HTTPError as e:
            logger.warning("Progress request failed %s %s: %s", method, url, e)
            raise PersistenceFailure(
                "progress not saved, please retry", step=step
            ) from e


def _raise_for_status(resp: httpx.Response, *, step: str) -> None:
    if resp.is_success:
        return
    message = _detail_message(resp)
    error_cls: type[ProgressError]
    if resp.status_code == httpx.codes.CONFLICT:
        error_cls = ConflictError
    elif resp.status_code == httpx.codes.NOT_FOUND:
        error_cls = NotFoundError
    elif resp.status_code in (httpx.codes.BAD_REQUEST, 422):
        error_cls = ValidationFailure
    elif resp.status_code in (httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN):
        error_cls = AuthenticationFailure
    else:
        error_cls = PersistenceFailure
    raise error_cls(message, step=step)


def _detail_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    detail = body.get("detail", body) if isinstance(body, dict) else body
    if isinstance(detail, dict):
        return str(detail.get("message", detail))
    return str(detail)


def _optional_uuid(value: str | None) -> UUID | None:
    return UUID(value) if value else None
