"""
Quizroom - Course Quiz Submission Service
SQLAlchemy Database Models
"""

import enum
import uuid
from datetime import datetime, date

from sqlalchemy import (
    Boolean, Column, DateTime, Date, Integer, String, Text, Float,
    ForeignKey, Enum, Table, UniqueConstraint, Index, CheckConstraint,
    event, false, func, inspect, select
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship, validates
from sqlalchemy.types import TypeDecorator, CHAR

from ..exceptions import QuizLockedException

# Base class for all models
Base = declarative_base()


class GUID(TypeDecorator):
    """Platform-independent GUID type"""
    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(UUID())
        else:
            return dialect.type_descriptor(CHAR(32))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        elif dialect.name == 'postgresql':
            return str(value)
        else:
            if not isinstance(value, uuid.UUID):
                return "%.32x" % uuid.UUID(str(value)).int
            else:
                return "%.32x" % value.int

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        else:
            if not isinstance(value, uuid.UUID):
                return uuid.UUID(str(value))
            return value


# Enums
class UserRole(enum.Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class UserStatus(enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class EnrollmentStatus(enum.Enum):
    ACTIVE = "active"
    DROPPED = "dropped"
    COMPLETED = "completed"


class QuestionType(enum.Enum):
    SINGLE_SELECT = "single_select"
    MULTI_SELECT = "multi_select"


# Base model with common fields
class BaseModel(Base):
    __abstract__ = True

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


# User Management Models
class User(BaseModel):
    """Students, teachers and admins share one table; ``role`` tells them apart."""
    __tablename__ = "users"

    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(Enum(UserRole), nullable=False, index=True)
    status = Column(Enum(UserStatus), default=UserStatus.ACTIVE, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)

    # Relationships
    enrollments = relationship("Enrollment", back_populates="student")
    submissions = relationship("Submission", back_populates="student")
    courses_taught = relationship("Course", back_populates="teacher")

    @validates('email')
    def validate_email(self, key, email):
        assert '@' in email, "Invalid email format"
        return email.lower()


# Academic Models
class Course(BaseModel):
    __tablename__ = "courses"

    title = Column(String(255), nullable=False)
    description = Column(Text)
    join_code = Column(String(20), unique=True, nullable=False)

    # Foreign Keys
    teacher_id = Column(GUID(), ForeignKey('users.id'), nullable=False)

    # Relationships
    teacher = relationship("User", back_populates="courses_taught")
    enrollments = relationship("Enrollment", back_populates="course")
    quizzes = relationship("Quiz", back_populates="course")


class Enrollment(BaseModel):
    __tablename__ = "enrollments"

    student_id = Column(GUID(), ForeignKey('users.id'), nullable=False)
    course_id = Column(GUID(), ForeignKey('courses.id'), nullable=False)
    enrollment_date = Column(Date, default=date.today)
    completion_date = Column(Date)
    status = Column(Enum(EnrollmentStatus), default=EnrollmentStatus.ACTIVE, nullable=False)

    # Relationships
    student = relationship("User", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")

    # Constraints
    __table_args__ = (
        UniqueConstraint('student_id', 'course_id', name='_student_course_uc'),
        Index('idx_enrollment_status', 'status', 'enrollment_date'),
    )


# Quiz and Assessment Models
class Quiz(BaseModel):
    __tablename__ = "quizzes"

    title = Column(String(255), nullable=False)
    duration_in_minutes = Column(Integer, nullable=False)
    show_correct_answers = Column(Boolean, default=False, nullable=False)

    # Foreign Keys
    course_id = Column(GUID(), ForeignKey('courses.id'), nullable=False)

    # Relationships
    course = relationship("Course", back_populates="quizzes")
    questions = relationship("Question", back_populates="quiz", cascade="all, delete-orphan")
    submissions = relationship("Submission", back_populates="quiz")

    # Constraints
    __table_args__ = (
        CheckConstraint('duration_in_minutes > 0', name='positive_duration'),
    )


class Question(BaseModel):
    __tablename__ = "questions"

    quiz_id = Column(GUID(), ForeignKey('quizzes.id'), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    points = Column(Integer, default=1, nullable=False)
    question_type = Column(Enum(QuestionType), default=QuestionType.SINGLE_SELECT, nullable=False)
    explanation = Column(Text)

    # Relationships
    quiz = relationship("Quiz", back_populates="questions")
    answers = relationship("Answer", back_populates="question", cascade="all, delete-orphan")

    # Constraints
    __table_args__ = (
        CheckConstraint('points >= 0', name='non_negative_points'),
    )

    @property
    def correct_answer_count(self) -> int:
        return sum(1 for answer in self.answers if answer.is_correct)


class Answer(BaseModel):
    """A candidate choice of a question."""
    __tablename__ = "answers"

    question_id = Column(GUID(), ForeignKey('questions.id'), nullable=False, index=True)
    answer_text = Column(Text, nullable=False)
    is_correct = Column(Boolean, default=False, nullable=False)

    # Relationships
    question = relationship("Question", back_populates="answers")


submission_answers = Table(
    "submission_answers",
    Base.metadata,
    Column("submission_id", GUID(), ForeignKey("submissions.id"), primary_key=True),
    Column("answer_id", GUID(), ForeignKey("answers.id"), primary_key=True),
)


class Submission(BaseModel):
    __tablename__ = "submissions"

    student_id = Column(GUID(), ForeignKey('users.id'), nullable=False)
    quiz_id = Column(GUID(), ForeignKey('quizzes.id'), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    submitted = Column(Boolean, default=False, nullable=False)
    score = Column(Float, default=0.0, nullable=False)

    # Relationships
    student = relationship("User", back_populates="submissions")
    quiz = relationship("Quiz", back_populates="submissions")
    answers = relationship("Answer", secondary=submission_answers)

    # Constraints
    __table_args__ = (
        Index('idx_submission_quiz', 'quiz_id'),
        Index('idx_submission_student', 'student_id'),
        CheckConstraint('score >= 0 AND score <= 100', name='valid_score'),
        CheckConstraint('end_time >= start_time', name='valid_time_window'),
    )


# At most one open attempt per (student, quiz)
Index(
    'uq_open_submission_per_student_quiz',
    Submission.student_id,
    Submission.quiz_id,
    unique=True,
    sqlite_where=Submission.submitted == false(),
    postgresql_where=Submission.submitted == false(),
)


# Event listeners
@event.listens_for(Quiz, 'before_update')
def guard_quiz_duration(mapper, connection, target):
    """Reject duration changes once an attempt exists; end times are already fixed."""
    if not inspect(target).attrs.duration_in_minutes.history.has_changes():
        return

    started = connection.execute(
        select(func.count(Submission.id)).where(Submission.quiz_id == target.id)
    ).scalar()
    if started:
        raise QuizLockedException(str(target.id))


__all__ = [
    'Base', 'BaseModel', 'GUID',
    'User', 'Course', 'Enrollment',
    'Quiz', 'Question', 'Answer', 'Submission', 'submission_answers',
    # Enums
    'UserRole', 'UserStatus', 'EnrollmentStatus', 'QuestionType',
]
