import unittest
import uuid
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from quizroom.backend.database.connection import (
    create_async_engine_instance,
    create_session_factory,
    create_tables,
)
from quizroom.backend.database.models import (
    Answer, Course, Enrollment, EnrollmentStatus, Question, QuestionType,
    Quiz, User, UserRole, UserStatus
)

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FrozenClock:
    """Clock whose current time the test moves by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    """Fresh in-memory database per test with a session at ``self.db``."""

    async def asyncSetUp(self):
        self.engine = create_async_engine_instance(TEST_DATABASE_URL)
        await create_tables(self.engine)
        self.session_factory = create_session_factory(self.engine)
        self.db = self.session_factory()

    async def asyncTearDown(self):
        await self.db.close()
        await self.engine.dispose()

    async def make_user(self, username: str, role: UserRole = UserRole.STUDENT, **kwargs) -> User:
        kwargs.setdefault("status", UserStatus.ACTIVE)
        user = User(
            username=username,
            email=f"{username}@example.com",
            first_name=username.title(),
            last_name="Tester",
            role=role,
            **kwargs
        )
        self.db.add(user)
        await self.db.commit()
        return user

    async def make_course(self, teacher: User, title: str = "Algebra") -> Course:
        course = Course(
            title=title,
            join_code=uuid.uuid4().hex[:8],
            teacher_id=teacher.id
        )
        self.db.add(course)
        await self.db.commit()
        return course

    async def enroll(
        self,
        student: User,
        course: Course,
        status: EnrollmentStatus = EnrollmentStatus.ACTIVE,
        completion_date: Optional[date] = None
    ) -> Enrollment:
        enrollment = Enrollment(
            student_id=student.id,
            course_id=course.id,
            status=status,
            completion_date=completion_date
        )
        self.db.add(enrollment)
        await self.db.commit()
        return enrollment

    async def make_quiz(
        self,
        course: Course,
        questions: List[Tuple[str, int, QuestionType, List[Tuple[str, bool]]]],
        duration: int = 30,
        show_correct_answers: bool = False,
        title: str = "Weekly quiz"
    ) -> Tuple[Quiz, Dict[str, uuid.UUID]]:
        """Create a quiz from ``(text, points, type, [(answer_text, is_correct)])``.

        Returns the quiz and a mapping of answer text to answer id.
        """
        quiz = Quiz(
            title=title,
            duration_in_minutes=duration,
            show_correct_answers=show_correct_answers,
            course_id=course.id
        )
        answer_ids = {}
        for text, points, question_type, choices in questions:
            question = Question(question_text=text, points=points, question_type=question_type)
            for answer_text, is_correct in choices:
                answer = Answer(id=uuid.uuid4(), answer_text=answer_text, is_correct=is_correct)
                answer_ids[answer_text] = answer.id
                question.answers.append(answer)
            quiz.questions.append(question)

        self.db.add(quiz)
        await self.db.commit()
        return quiz, answer_ids

    async def make_standard_quiz(self, course: Course, **kwargs) -> Tuple[Quiz, Dict[str, uuid.UUID]]:
        """One single-select and one multi-select question, 10 points each."""
        return await self.make_quiz(
            course,
            [
                ("Capital of France?", 10, QuestionType.SINGLE_SELECT, [
                    ("Paris", True),
                    ("London", False),
                ]),
                ("Prime numbers?", 10, QuestionType.MULTI_SELECT, [
                    ("Two", True),
                    ("Three", True),
                    ("Four", False),
                ]),
            ],
            **kwargs
        )
