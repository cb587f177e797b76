from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from lms_progress.api.dependencies import get_enrollment_service, require_learner
from lms_progress.api.errors import raise_http_error
from lms_progress.models.principal import Principal
from lms_progress.models.progress import Enrollment
from lms_progress.services.enrollment_service import EnrollmentService
from lms_progress.services.errors import ProgressError

router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


class EnrollmentOut(BaseModel):
    id: str
    learner_id: int
    course_id: str
    enrolled_at: int
    completed_at: int | None
    progress_percent: int


def enrollment_out(enrollment: Enrollment) -> EnrollmentOut:
    return EnrollmentOut(
        id=str(enrollment.id),
        learner_id=enrollment.learner_id,
        course_id=str(enrollment.course_id),
        enrolled_at=enrollment.enrolled_at,
        completed_at=enrollment.completed_at,
        progress_percent=enrollment.progress_percent,
    )


@router.get("", response_model=list[EnrollmentOut])
async def list_enrollments(
    principal: Annotated[Principal, Depends(require_learner)],
    svc: Annotated[EnrollmentService, Depends(get_enrollment_service)],
) -> list[EnrollmentOut]:
    """The caller's enrollments, most recent first."""
    try:
        enrollments = await svc.list_for_learner(principal.learner_id)
    except ProgressError as e:
        raise_http_error(e)
    return [enrollment_out(e) for e in enrollments]
