"""
Quizroom - Course Quiz Submission Service
Submission lifecycle: starting attempts, submitting answers, scoring
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.models import Submission
from ..exceptions import (
    AppException,
    AnswersNotFoundException,
    AttemptAlreadyOpenException,
    DeadlineExceededException,
    EmptySubmissionException,
    EnrollmentRequiredException,
    ForeignAnswerException,
    ResourceOwnershipException,
    SubmissionClosedException,
    SubmissionNotFoundException,
)
from ..repositories.catalog import (
    EnrollmentChecker, IdLike, QuizCatalog, StudentDirectory, as_uuid
)
from ..repositories.submissions import SubmissionStore
from .scoring import calculate_score

# Configure logging
logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class SubmissionEngine:
    """Opens quiz attempts, validates and scores submitted answers.

    Every operation runs inside the caller's session and commits on success;
    on any failure the session is rolled back so nothing partial is stored.
    The acting student is always passed in explicitly.
    """

    def __init__(self, db: AsyncSession, clock: Clock = datetime.utcnow):
        self.db = db
        self.clock = clock
        self.students = StudentDirectory(db)
        self.catalog = QuizCatalog(db)
        self.enrollments = EnrollmentChecker(db)
        self.store = SubmissionStore(db)

    async def start_attempt(self, student_id: IdLike, quiz_id: IdLike) -> Submission:
        try:
            student = await self.students.resolve_student(student_id)
            quiz = await self.catalog.resolve_quiz(quiz_id)

            student_uuid, quiz_uuid = student.id, quiz.id

            if not await self.enrollments.is_actively_enrolled(student_uuid, quiz.course_id):
                raise EnrollmentRequiredException(str(quiz.course_id))

            if await self.store.find_open_by_student_and_quiz(student_uuid, quiz_uuid):
                raise AttemptAlreadyOpenException(str(quiz_uuid))

            now = self.clock()
            submission = Submission(
                student_id=student_uuid,
                quiz_id=quiz_uuid,
                start_time=now,
                end_time=now + timedelta(minutes=quiz.duration_in_minutes),
                submitted=False,
                score=0.0,
            )
            try:
                await self.store.save(submission)
            except IntegrityError:
                # A failed flush leaves the session unusable until rolled back
                await self.db.rollback()
                if await self.store.has_open_attempt(student_uuid, quiz_uuid):
                    raise AttemptAlreadyOpenException(str(quiz_uuid))
                raise

            submission_uuid = submission.id
            await self.db.commit()

        except AppException as e:
            await self.db.rollback()
            logger.warning(
                f"Start rejected for student {student_id} on quiz {quiz_id}: {e.error_code} {e.message}"
            )
            raise

        logger.info(f"Quiz attempt started: quiz {quiz_uuid} by student {student_uuid}")
        return await self._reload(submission_uuid)

    async def submit_answers(
        self,
        submission_id: IdLike,
        student_id: IdLike,
        answer_ids: Sequence[IdLike]
    ) -> Submission:
        try:
            submission = await self.store.find_by_id(submission_id)
            if not submission:
                raise SubmissionNotFoundException(str(submission_id))

            if submission.student_id != as_uuid(student_id):
                raise ResourceOwnershipException("submission", str(submission_id))

            if submission.submitted:
                raise SubmissionClosedException(str(submission.id))

            now = self.clock()
            if now > submission.end_time:
                raise DeadlineExceededException(str(submission.id), submission.end_time)

            if not answer_ids:
                raise EmptySubmissionException()

            answers = await self.catalog.resolve_answers_by_ids(answer_ids)
            if len(answers) != len(answer_ids):
                raise AnswersNotFoundException(len(answer_ids), len(answers))

            foreign = [
                str(answer.id) for answer in answers
                if answer.question.quiz_id != submission.quiz_id
            ]
            if foreign:
                raise ForeignAnswerException(str(submission.quiz_id), foreign)

            score = calculate_score(submission.quiz.questions, answers)

            if not await self.store.close_if_open(submission.id, now, score):
                raise await self._diagnose_lost_close(submission.id, submission.end_time)

            submission.submitted = True
            submission.score = score
            submission.answers = list(answers)
            await self.db.commit()

        except AppException as e:
            await self.db.rollback()
            logger.warning(
                f"Submit rejected for submission {submission_id} by student {student_id}: "
                f"{e.error_code} {e.message}"
            )
            raise

        logger.info(
            f"Quiz submitted: submission {submission.id} by student {student_id}, score {score:.2f}"
        )
        return await self._reload(submission.id)

    async def get_by_id(self, submission_id: IdLike) -> Optional[Submission]:
        return await self.store.find_by_id(submission_id)

    async def get_by_quiz_and_student(
        self,
        quiz_id: IdLike,
        student_id: IdLike
    ) -> Optional[Submission]:
        """Most recent attempt of the student at the quiz, if any."""
        return await self.store.find_latest_by_student_and_quiz(student_id, quiz_id)

    async def list_by_quiz(self, quiz_id: IdLike) -> List[Submission]:
        return await self.store.find_by_quiz(quiz_id)

    async def list_by_student(self, student_id: IdLike) -> List[Submission]:
        return await self.store.find_by_student(student_id)

    async def list_all(self) -> List[Submission]:
        return await self.store.find_all()

    async def delete(self, submission_id: IdLike) -> None:
        deleted = await self.store.delete_by_id(submission_id)
        if not deleted:
            await self.db.rollback()
            raise SubmissionNotFoundException(str(submission_id))

        await self.db.commit()
        logger.info(f"Submission deleted: {submission_id}")

    async def _diagnose_lost_close(self, submission_id, end_time: datetime) -> AppException:
        """Work out why the conditional close matched no row."""
        submitted = await self.store.submitted_state(submission_id)
        if submitted is None:
            return SubmissionNotFoundException(str(submission_id))
        if submitted:
            return SubmissionClosedException(str(submission_id))
        return DeadlineExceededException(str(submission_id), end_time)

    async def _reload(self, submission_id) -> Submission:
        return await self.store.find_by_id(submission_id)


__all__ = ["SubmissionEngine", "Clock"]
