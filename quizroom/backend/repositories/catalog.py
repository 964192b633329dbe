"""
Quizroom - Course Quiz Submission Service
Read-only accessors for students, quizzes, answers and enrollments
"""

import uuid
from typing import Iterable, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.models import (
    User, UserRole, UserStatus, Quiz, Question, Answer,
    Enrollment, EnrollmentStatus
)
from ..exceptions import StudentNotFoundException, QuizNotFoundException

IdLike = Union[uuid.UUID, str]


def as_uuid(value: IdLike) -> Optional[uuid.UUID]:
    """UUID for ``value``, or None when it is not a well-formed id.

    A None id matches no row, so malformed ids resolve as not found.
    """
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class StudentDirectory:
    """Resolves student identities"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve_student(self, student_id: IdLike) -> User:
        result = await self.db.execute(
            select(User).where(
                User.id == as_uuid(student_id),
                User.role == UserRole.STUDENT,
                User.status == UserStatus.ACTIVE,
                User.is_deleted == False  # noqa: E712
            )
        )
        student = result.scalar_one_or_none()
        if not student:
            raise StudentNotFoundException(str(student_id))
        return student


class QuizCatalog:
    """Quiz definitions with their questions and candidate answers"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve_quiz(self, quiz_id: IdLike) -> Quiz:
        result = await self.db.execute(
            select(Quiz)
            .options(selectinload(Quiz.questions).selectinload(Question.answers))
            .where(Quiz.id == as_uuid(quiz_id))
        )
        quiz = result.scalar_one_or_none()
        if not quiz:
            raise QuizNotFoundException(str(quiz_id))
        return quiz

    async def resolve_answers_by_ids(self, answer_ids: Iterable[IdLike]) -> List[Answer]:
        """Distinct answers for the given ids; a short result means some ids were unknown."""
        ids = {as_uuid(answer_id) for answer_id in answer_ids} - {None}
        if not ids:
            return []

        result = await self.db.execute(
            select(Answer)
            .options(selectinload(Answer.question).selectinload(Question.answers))
            .where(Answer.id.in_(ids))
        )
        return list(result.scalars().all())


class EnrollmentChecker:
    """Answers whether a student is actively enrolled in a course"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_actively_enrolled(self, student_id: IdLike, course_id: IdLike) -> bool:
        result = await self.db.execute(
            select(Enrollment.id).where(
                Enrollment.student_id == as_uuid(student_id),
                Enrollment.course_id == as_uuid(course_id),
                Enrollment.status == EnrollmentStatus.ACTIVE,
                Enrollment.completion_date.is_(None)
            )
        )
        return result.scalar_one_or_none() is not None


__all__ = ["StudentDirectory", "QuizCatalog", "EnrollmentChecker", "as_uuid"]
