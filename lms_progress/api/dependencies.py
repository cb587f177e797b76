from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from lms_progress.db.engine import get_optional_session
from lms_progress.models.course import Course, Lesson, LessonContentType
from lms_progress.models.learner import Learner
from lms_progress.models.principal import Principal
from lms_progress.repos.completion_repo import CompletionRepo, InMemoryCompletionRepo
from lms_progress.repos.course_repo import CourseRepo, InMemoryCourseRepo
from lms_progress.repos.enrollment_repo import EnrollmentRepo, InMemoryEnrollmentRepo
from lms_progress.repos.learner_repo import InMemoryLearnerRepo, LearnerRepo
from lms_progress.repos.pg_completion_repo import PgCompletionRepo
from lms_progress.repos.pg_course_repo import PgCourseRepo
from lms_progress.repos.pg_enrollment_repo import PgEnrollmentRepo
from lms_progress.repos.pg_learner_repo import PgLearnerRepo
from lms_progress.services import token_service
from lms_progress.services.completion_ledger import CompletionLedger
from lms_progress.services.enrollment_service import EnrollmentService
from lms_progress.services.progress_aggregator import ProgressAggregator
from lms_progress.services.progress_controller import CourseProgressController

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")


def require_learner(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal.

    The learner id is the token subject; it must be a positive integer.
    """
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    try:
        learner_id = int(claims["sub"])
    except ValueError:
        logger.warning("Token subject is not a learner id: %r", claims["sub"])
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    if learner_id <= 0:
        logger.warning("Rejected non-positive learner id=%d", learner_id)
        raise HTTPException(status_code=422, detail="learner id must be positive")

    principal = Principal(
        learner_id=learner_id,
        roles=frozenset(claims.get("roles", [])),
    )
    logger.debug("Token validated for learner=%d", principal.learner_id)
    return principal


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------
# Module-level in-memory singletons, used when DATABASE_URL is not set.

learner_repo = InMemoryLearnerRepo()
course_repo = InMemoryCourseRepo()
enrollment_repo = InMemoryEnrollmentRepo()
completion_repo = InMemoryCompletionRepo()

SAMPLE_COURSE_ID = UUID("00000000-0000-0000-0000-000000000001")
EMPTY_COURSE_ID = UUID("00000000-0000-0000-0000-000000000002")
PENDING_COURSE_ID = UUID("00000000-0000-0000-0000-000000000003")
SAMPLE_LESSON_IDS = (
    UUID("00000000-0000-0000-0000-000000000101"),  # quiz
    UUID("00000000-0000-0000-0000-000000000102"),  # text
    UUID("00000000-0000-0000-0000-000000000103"),  # video
)


def seed_sample_data() -> None:
    """Seed learners and courses for development/testing."""
    if learner_repo._by_id:
        return

    learner_repo.add(Learner(id=1, email="tee@example.com", name="Tee"))
    learner_repo.add(Learner(id=2, email="d-man@example.com", name="D-Man"))

    quiz_id, text_id, video_id = SAMPLE_LESSON_IDS
    course_repo.add(
        Course(id=SAMPLE_COURSE_ID, title="UX Design Fundamentals", status="approved"),
        [
            Lesson(
                id=quiz_id,
                course_id=SAMPLE_COURSE_ID,
                title="What is UX?",
                position=0,
                content_type=LessonContentType.QUIZ,
                quiz_question="Which activity comes first in a UX process?",
                quiz_options=("Visual polish", "User research", "Deployment"),
                correct_option_index=1,
            ),
            Lesson(
                id=text_id,
                course_id=SAMPLE_COURSE_ID,
                title="User Research",
                position=1,
                content="Interviews, surveys and field studies.",
            ),
            Lesson(
                id=video_id,
                course_id=SAMPLE_COURSE_ID,
                title="Wireframing and Prototyping",
                position=2,
                content_type=LessonContentType.VIDEO,
                video_url="https://example.com/videos/wireframing.mp4",
            ),
        ],
    )
    course_repo.add(Course(id=EMPTY_COURSE_ID, title="Coming Soon", status="approved"))
    course_repo.add(
        Course(id=PENDING_COURSE_ID, title="Usability Testing", status="pending")
    )


def reset_sample_data() -> None:
    learner_repo._by_id.clear()
    course_repo._by_id.clear()
    enrollment_repo._by_id.clear()
    enrollment_repo._by_key.clear()
    completion_repo._store.clear()
    seed_sample_data()


seed_sample_data()


@dataclass(frozen=True, slots=True)
class ProgressRepos:
    learners: LearnerRepo
    courses: CourseRepo
    enrollments: EnrollmentRepo
    completions: CompletionRepo
    session: AsyncSession | None = None

    async def commit(self) -> None:
        """Commit the request transaction now rather than at teardown.

        No-op for the in-memory repos.
        """
        if self.session is not None:
            await self.session.commit()


def get_repos(
    session: Annotated[AsyncSession | None, Depends(get_optional_session)],
) -> ProgressRepos:
    if session is None:
        return ProgressRepos(
            learners=learner_repo,
            courses=course_repo,
            enrollments=enrollment_repo,
            completions=completion_repo,
        )
    return ProgressRepos(
        learners=PgLearnerRepo(session),
        courses=PgCourseRepo(session),
        enrollments=PgEnrollmentRepo(session),
        completions=PgCompletionRepo(session),
        session=session,
    )


def build_controller(repos: ProgressRepos) -> CourseProgressController:
    ledger = CompletionLedger(repos.completions, repos.courses, repos.learners)
    aggregator = ProgressAggregator(repos.enrollments, repos.completions)
    return CourseProgressController(ledger, aggregator, repos.courses)


def get_progress_controller(
    repos: Annotated[ProgressRepos, Depends(get_repos)],
) -> CourseProgressController:
    return build_controller(repos)


def get_enrollment_service(
    repos: Annotated[ProgressRepos, Depends(get_repos)],
) -> EnrollmentService:
    return EnrollmentService(repos.enrollments, repos.courses, repos.learners)
