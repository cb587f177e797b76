"""PostgreSQL implementation of LearnerRepo."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms_progress.db.tables import LearnerRow
from lms_progress.models.learner import Learner


class PgLearnerRepo:
    """Satisfies the LearnerRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, learner_id: int) -> Learner | None:
        stmt = select(LearnerRow).where(LearnerRow.id == learner_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return Learner(id=row.id, email=row.email, name=row.name or "")
