"""Map ProgressError subclasses onto HTTP responses.

Conflict is informational ("already completed"), so its body carries a
status the client can show as a notice rather than an error banner.
"""

from __future__ import annotations

import logging
from typing import NoReturn

from fastapi import HTTPException, status

from lms_progress.services.errors import (
    ConflictError,
    NotFoundError,
    PersistenceFailure,
    ProgressError,
    ValidationFailure,
)

logger = logging.getLogger(__name__)


def raise_http_error(e: ProgressError) -> NoReturn:
    if isinstance(e, ConflictError):
        logger.info("Conflict (%s): %s", e.code, e.message)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"status": e.code, "message": e.message},
        ) from None
    if isinstance(e, NotFoundError):
        logger.warning("Not found at step=%s: %s", e.step, e.message)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=e.message
        ) from None
    if isinstance(e, ValidationFailure):
        logger.warning("Validation failed at step=%s: %s", e.step, e.message)
        raise HTTPException(status_code=422, detail=e.message) from None
    if isinstance(e, PersistenceFailure):
        logger.error("Storage failure at step=%s", e.step, exc_info=e.__cause__)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="progress not saved, please retry",
        ) from None
    raise e
