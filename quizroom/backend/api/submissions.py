"""
Quizroom - Course Quiz Submission Service
Submission API routes
"""

import logging
import uuid
from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends, Query, Path, Body, Response, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.connection import get_db
from ..database.models import User, UserRole, Submission
from ..dependencies import (
    require_authentication,
    require_student,
    require_admin,
    require_teacher_or_admin,
    get_submission_engine,
    submission_rate_limit,
    PermissionChecker
)
from ..exceptions import (
    AuthorizationException,
    ResourceOwnershipException,
    SubmissionNotFoundException
)
from ..services.submission_engine import SubmissionEngine
from ..utils.helpers import seconds_remaining

# Configure logging
logger = logging.getLogger(__name__)

# Router instance
router = APIRouter()


# Pydantic models
class SelectedAnswerResponse(BaseModel):
    id: str
    question_id: str
    answer_text: str
    is_correct: Optional[bool] = None


class SubmissionResponse(BaseModel):
    id: str
    quiz_id: str
    quiz_title: str
    student_id: str
    student_username: str
    start_time: datetime
    end_time: datetime
    submitted: bool
    score: float
    time_remaining_seconds: Optional[int] = None
    answers: List[SelectedAnswerResponse] = []

    model_config = ConfigDict(from_attributes=True)


def build_submission_response(submission: Submission, viewer: User, now: datetime) -> SubmissionResponse:
    """Render a submission for a viewer at ``now``; correctness only when the quiz allows it"""

    reveal = (
        submission.quiz.show_correct_answers
        or viewer.role in (UserRole.TEACHER, UserRole.ADMIN)
    )

    answers = [
        SelectedAnswerResponse(
            id=str(answer.id),
            question_id=str(answer.question_id),
            answer_text=answer.answer_text,
            is_correct=answer.is_correct if reveal else None
        )
        for answer in submission.answers
    ]

    return SubmissionResponse(
        id=str(submission.id),
        quiz_id=str(submission.quiz_id),
        quiz_title=submission.quiz.title,
        student_id=str(submission.student_id),
        student_username=submission.student.username,
        start_time=submission.start_time,
        end_time=submission.end_time,
        submitted=submission.submitted,
        score=submission.score,
        time_remaining_seconds=(
            None if submission.submitted else seconds_remaining(submission.end_time, now)
        ),
        answers=answers
    )


# API Routes
@router.get("/all", response_model=List[SubmissionResponse])
async def list_all_submissions(
    current_user: User = Depends(require_admin),
    engine: SubmissionEngine = Depends(get_submission_engine)
):
    """Get every submission (admin only)"""

    submissions = await engine.list_all()
    now = engine.clock()
    return [build_submission_response(s, current_user, now) for s in submissions]


@router.get("", response_model=List[SubmissionResponse])
async def list_my_submissions(
    current_user: User = Depends(require_student),
    engine: SubmissionEngine = Depends(get_submission_engine)
):
    """Get the current student's submissions, newest first"""

    submissions = await engine.list_by_student(current_user.id)
    now = engine.clock()
    return [build_submission_response(s, current_user, now) for s in submissions]


@router.get(
    "/quiz/{quiz_id}",
    response_model=SubmissionResponse,
    responses={204: {"description": "No attempt at this quiz yet"}}
)
async def get_my_submission_for_quiz(
    quiz_id: uuid.UUID = Path(..., description="Quiz ID"),
    current_user: User = Depends(require_student),
    engine: SubmissionEngine = Depends(get_submission_engine)
):
    """Get the current student's latest attempt at a quiz"""

    submission = await engine.get_by_quiz_and_student(quiz_id, current_user.id)
    if not submission:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return build_submission_response(submission, current_user, engine.clock())


@router.get("/quiz/{quiz_id}/all", response_model=List[SubmissionResponse])
async def list_quiz_submissions(
    quiz_id: uuid.UUID = Path(..., description="Quiz ID"),
    current_user: User = Depends(require_teacher_or_admin),
    engine: SubmissionEngine = Depends(get_submission_engine),
    db: AsyncSession = Depends(get_db)
):
    """Get all submissions for a quiz (course teacher or admin)"""

    if not await PermissionChecker.teaches_quiz(current_user, quiz_id, db):
        raise AuthorizationException("Only the course teacher can review these submissions")

    submissions = await engine.list_by_quiz(quiz_id)
    now = engine.clock()
    return [build_submission_response(s, current_user, now) for s in submissions]


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    submission_id: uuid.UUID = Path(..., description="Submission ID"),
    current_user: User = Depends(require_authentication),
    engine: SubmissionEngine = Depends(get_submission_engine),
    db: AsyncSession = Depends(get_db)
):
    """Get a single submission"""

    submission = await engine.get_by_id(submission_id)
    if not submission:
        raise SubmissionNotFoundException(str(submission_id))

    if not await PermissionChecker.can_view_submission(current_user, submission, db):
        raise ResourceOwnershipException("submission", str(submission_id))

    return build_submission_response(submission, current_user, engine.clock())


@router.post("/start", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def start_submission(
    quiz_id: uuid.UUID = Query(..., description="Quiz ID"),
    current_user: User = Depends(require_student),
    _: bool = Depends(submission_rate_limit),
    engine: SubmissionEngine = Depends(get_submission_engine)
):
    """Start a timed attempt at a quiz"""

    submission = await engine.start_attempt(current_user.id, quiz_id)
    return build_submission_response(submission, current_user, engine.clock())


@router.put("/{submission_id}", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def submit_submission(
    submission_id: uuid.UUID = Path(..., description="Submission ID"),
    answer_ids: List[uuid.UUID] = Body(..., description="Selected answer IDs"),
    current_user: User = Depends(require_student),
    _: bool = Depends(submission_rate_limit),
    engine: SubmissionEngine = Depends(get_submission_engine)
):
    """Submit the selected answers and close the attempt"""

    submission = await engine.submit_answers(submission_id, current_user.id, answer_ids)
    return build_submission_response(submission, current_user, engine.clock())


@router.delete("/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_submission(
    submission_id: uuid.UUID = Path(..., description="Submission ID"),
    current_user: User = Depends(require_authentication),
    engine: SubmissionEngine = Depends(get_submission_engine)
):
    """Delete a submission (owning student or admin)"""

    submission = await engine.get_by_id(submission_id)
    if not submission:
        raise SubmissionNotFoundException(str(submission_id))

    if current_user.role != UserRole.ADMIN and submission.student_id != current_user.id:
        raise ResourceOwnershipException("submission", str(submission_id))

    await engine.delete(submission_id)
    logger.info(f"Submission {submission_id} deleted by {current_user.username}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router", "SubmissionResponse", "build_submission_response"]
