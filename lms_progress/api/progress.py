"""Lesson completion and course progress endpoints.

Mark-complete sequence:
  Client -> POST /v1/lessons/{lesson_id}/complete
  -> append lesson_completion (409 if already there)
  -> recompute enrollment progress (202 if this step fails)
  -> commit, then invalidate the completed-lessons cache
  -> 201 Created

GET /v1/courses/{course_id}/completed-lessons is read-through cached.
"""

from __future__ import annotations

import json
import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from lms_progress.api.dependencies import (
    ProgressRepos,
    get_progress_controller,
    get_repos,
    require_learner,
)
from lms_progress.api.errors import raise_http_error
from lms_progress.core.config import SETTINGS
from lms_progress.core.metrics import CACHE_OPERATIONS
from lms_progress.models.principal import Principal
from lms_progress.models.progress import ProgressResult
from lms_progress.services.cache import cache_service, completed_lessons_key
from lms_progress.services.errors import (
    PartialProgressError,
    ProgressError,
    persistence_guard,
)
from lms_progress.services.progress_controller import CourseProgressController

logger = logging.getLogger(__name__)

router = APIRouter(tags=["progress"])


class CompleteLessonIn(BaseModel):
    course_id: UUID


class ProgressOut(BaseModel):
    new_percent: int
    course_completed: bool
    completed_lesson_ids: list[str]
    enrollment_id: str | None = None


def _progress_out(result: ProgressResult) -> ProgressOut:
    return ProgressOut(
        new_percent=result.new_percent,
        course_completed=result.course_completed,
        completed_lesson_ids=sorted(str(i) for i in result.completed_lesson_ids),
        enrollment_id=str(result.enrollment_id) if result.enrollment_id else None,
    )


# ---------------------------------------------------------------------------
# GET /v1/courses/{course_id}/completed-lessons  (read-through cached)
# ---------------------------------------------------------------------------


@router.get("/v1/courses/{course_id}/completed-lessons", response_model=list[str])
async def get_completed_lessons(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_learner)],
    controller: Annotated[CourseProgressController, Depends(get_progress_controller)],
) -> list[str]:
    """Lesson ids the caller has completed in this course.

    Unknown courses and courses without completions both yield [].
    """
    cache_key = completed_lessons_key(principal.learner_id, course_id)

    cached = await cache_service.get(cache_key)
    if cached is not None:
        CACHE_OPERATIONS.labels(operation="hit").inc()
        return json.loads(cached)
    CACHE_OPERATIONS.labels(operation="miss").inc()

    try:
        completed = await controller.get_completed_lessons(
            principal.learner_id, course_id
        )
    except ProgressError as e:
        raise_http_error(e)

    lesson_ids = sorted(str(i) for i in completed)
    await cache_service.set(
        cache_key, json.dumps(lesson_ids), SETTINGS.completed_lessons_cache_ttl
    )
    return lesson_ids


# ---------------------------------------------------------------------------
# POST /v1/lessons/{lesson_id}/complete
# ---------------------------------------------------------------------------


@router.post(
    "/v1/lessons/{lesson_id}/complete",
    response_model=ProgressOut,
    status_code=status.HTTP_201_CREATED,
)
async def complete_lesson(
    lesson_id: UUID,
    body: CompleteLessonIn,
    principal: Annotated[Principal, Depends(require_learner)],
    repos: Annotated[ProgressRepos, Depends(get_repos)],
    controller: Annotated[CourseProgressController, Depends(get_progress_controller)],
) -> ProgressOut | JSONResponse:
    learner_id = principal.learner_id
    cache_key = completed_lessons_key(learner_id, body.course_id)
    try:
        result = await controller.mark_lesson_complete(
            learner_id, body.course_id, lesson_id
        )
    except PartialProgressError as e:
        # The completion itself is stored; report it as accepted so the
        # client can retry the refresh.
        await _commit_then_invalidate(repos, cache_key)
        logger.warning(
            "Partial completion learner=%d lesson=%s: %s",
            learner_id,
            lesson_id,
            e.message,
        )
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content={
                "status": e.code,
                "message": e.message,
                "completed_lesson_ids": sorted(
                    str(i) for i in e.completed_lesson_ids
                ),
            },
        )
    except ProgressError as e:
        raise_http_error(e)

    await _commit_then_invalidate(repos, cache_key)
    return _progress_out(result)


async def _commit_then_invalidate(repos: ProgressRepos, cache_key: str) -> None:
    """Commit before deleting the cache entry.

    Deleting first would let a concurrent read re-cache the pre-commit
    list for a full TTL.
    """
    try:
        with persistence_guard("ledger"):
            await repos.commit()
    except ProgressError as e:
        raise_http_error(e)
    await cache_service.delete(cache_key)


# ---------------------------------------------------------------------------
# POST /v1/courses/{course_id}/progress/refresh
# ---------------------------------------------------------------------------


@router.post("/v1/courses/{course_id}/progress/refresh", response_model=ProgressOut)
async def refresh_progress(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_learner)],
    controller: Annotated[CourseProgressController, Depends(get_progress_controller)],
) -> ProgressOut:
    """Recompute the stored percentage from the ledger."""
    try:
        result = await controller.refresh_progress(principal.learner_id, course_id)
    except ProgressError as e:
        raise_http_error(e)
    return _progress_out(result)
