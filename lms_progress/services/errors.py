"""Progress error taxonomy.

Every failure a progress operation can report is a ProgressError.  The
`step` attribute says which stage raised it ("ledger", "recompute",
"enroll", "gate", "quiz") so callers can tell "lesson already done"
apart from "could not save progress".
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError


class ProgressError(Exception):
    """Base progress error."""

    code = "progress_error"

    def __init__(self, message: str, *, step: str | None = None) -> None:
        self.message = message
        self.step = step
        super().__init__(message)


class ConflictError(ProgressError):
    """Already done.  Informational, never an alarm."""

    code = "already_completed"


class NotFoundError(ProgressError):
    """A learner, course, lesson or enrollment reference does not exist."""

    code = "not_found"


class ValidationFailure(ProgressError):
    """Malformed input, rejected before any write."""

    code = "validation_failed"


class LessonNotReadyError(ValidationFailure):
    """The engagement gate has not been satisfied for this lesson yet."""

    code = "lesson_not_ready"


class CompletionInFlightError(ValidationFailure):
    """A mark-complete request is already running for this session."""

    code = "completion_in_flight"


class PersistenceFailure(ProgressError):
    """Underlying storage unavailable."""

    code = "persistence_failure"


class AuthenticationFailure(ProgressError):
    """The bearer token was rejected.  Retrying with the same token will not help."""

    code = "unauthorized"


class PartialProgressError(ProgressError):
    """The ledger write succeeded but the enrollment recompute did not.

    The learner's lesson is recorded; the cached percentage is stale
    until the recompute is retried.
    """

    code = "progress_stale"

    def __init__(
        self,
        message: str,
        *,
        completed_lesson_ids: frozenset[UUID],
        cause: ProgressError,
    ) -> None:
        super().__init__(message, step="recompute")
        self.completed_lesson_ids = completed_lesson_ids
        self.cause = cause


def validate_learner_id(learner_id: int) -> None:
    if isinstance(learner_id, bool) or not isinstance(learner_id, int):
        raise ValidationFailure("learner id must be an integer")
    if learner_id <= 0:
        raise ValidationFailure(f"learner id must be positive (got {learner_id})")


@contextmanager
def persistence_guard(step: str) -> Iterator[None]:
    """Translate storage errors raised inside the block to PersistenceFailure."""
    try:
        yield
    except SQLAlchemyError as e:
        raise PersistenceFailure(
            "progress not saved, please retry", step=step
        ) from e
