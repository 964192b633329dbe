"""
Quizroom - Course Quiz Submission Service
Submission persistence
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.models import Question, Quiz, Submission, submission_answers
from .catalog import IdLike, as_uuid

logger = logging.getLogger(__name__)


class SubmissionStore:
    """Lookup and persistence of submission records"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _query(self):
        return select(Submission).options(
            selectinload(Submission.student),
            selectinload(Submission.answers),
            selectinload(Submission.quiz)
            .selectinload(Quiz.questions)
            .selectinload(Question.answers),
        ).execution_options(populate_existing=True)

    async def save(self, submission: Submission) -> Submission:
        self.db.add(submission)
        await self.db.flush()
        return submission

    async def find_by_id(self, submission_id: IdLike) -> Optional[Submission]:
        result = await self.db.execute(
            self._query().where(Submission.id == as_uuid(submission_id))
        )
        return result.scalar_one_or_none()

    async def find_open_by_student_and_quiz(
        self,
        student_id: IdLike,
        quiz_id: IdLike
    ) -> Optional[Submission]:
        result = await self.db.execute(
            self._query().where(
                Submission.student_id == as_uuid(student_id),
                Submission.quiz_id == as_uuid(quiz_id),
                Submission.submitted == False  # noqa: E712
            )
        )
        return result.scalar_one_or_none()

    async def find_latest_by_student_and_quiz(
        self,
        student_id: IdLike,
        quiz_id: IdLike
    ) -> Optional[Submission]:
        result = await self.db.execute(
            self._query()
            .where(
                Submission.student_id == as_uuid(student_id),
                Submission.quiz_id == as_uuid(quiz_id)
            )
            .order_by(desc(Submission.start_time))
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_by_quiz(self, quiz_id: IdLike) -> List[Submission]:
        result = await self.db.execute(
            self._query()
            .where(Submission.quiz_id == as_uuid(quiz_id))
            .order_by(Submission.start_time)
        )
        return list(result.scalars().all())

    async def find_by_student(self, student_id: IdLike) -> List[Submission]:
        result = await self.db.execute(
            self._query()
            .where(Submission.student_id == as_uuid(student_id))
            .order_by(desc(Submission.start_time))
        )
        return list(result.scalars().all())

    async def find_all(self) -> List[Submission]:
        result = await self.db.execute(
            self._query().order_by(desc(Submission.start_time))
        )
        return list(result.scalars().all())

    async def has_open_attempt(self, student_id: IdLike, quiz_id: IdLike) -> bool:
        result = await self.db.execute(
            select(Submission.id).where(
                Submission.student_id == as_uuid(student_id),
                Submission.quiz_id == as_uuid(quiz_id),
                Submission.submitted == False  # noqa: E712
            )
        )
        return result.first() is not None

    async def submitted_state(self, submission_id: IdLike) -> Optional[bool]:
        """Submitted flag read straight from the database; None if the row is gone."""
        result = await self.db.execute(
            select(Submission.submitted).where(Submission.id == as_uuid(submission_id))
        )
        return result.scalar_one_or_none()

    async def close_if_open(
        self,
        submission_id: IdLike,
        now: datetime,
        score: float
    ) -> bool:
        """Close the submission only if it is still open and within its window.

        Returns False when another writer closed it first or the deadline
        passed; nothing is changed in that case.
        """
        result = await self.db.execute(
            update(Submission)
            .where(
                Submission.id == as_uuid(submission_id),
                Submission.submitted == False,  # noqa: E712
                Submission.end_time >= now
            )
            .values(submitted=True, score=score, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def delete_by_id(self, submission_id: IdLike) -> bool:
        """Remove selections first, then the submission itself."""
        submission_uuid = as_uuid(submission_id)

        await self.db.execute(
            delete(submission_answers).where(
                submission_answers.c.submission_id == submission_uuid
            )
        )
        result = await self.db.execute(
            delete(Submission)
            .where(Submission.id == submission_uuid)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


__all__ = ["SubmissionStore"]
