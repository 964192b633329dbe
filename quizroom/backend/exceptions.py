"""
Quizroom - Course Quiz Submission Service
Custom exception classes for structured error handling
"""

from datetime import datetime
from typing import Optional, Dict, Any, List
from fastapi import status


class AppException(Exception):
    """Base application exception with structured error information"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


# Authentication Exceptions
class AuthenticationException(AppException):
    """Raised when authentication fails"""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTHENTICATION_FAILED",
            details=details
        )


class TokenExpiredException(AuthenticationException):
    """Raised when JWT token has expired"""

    def __init__(self, message: str = "Access token has expired"):
        super().__init__(
            message=message,
            details={"action": "refresh_token"}
        )


class TokenInvalidException(AuthenticationException):
    """Raised when JWT token is invalid"""

    def __init__(self, message: str = "Invalid access token"):
        super().__init__(
            message=message,
            details={"action": "login_required"}
        )


# Authorization Exceptions
class AuthorizationException(AppException):
    """Raised when user lacks permission for an action"""

    def __init__(
        self,
        message: str = "Access denied",
        required_role: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if details is None:
            details = {}

        if required_role:
            details["required_role"] = required_role

        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="ACCESS_DENIED",
            details=details
        )


class ResourceOwnershipException(AuthorizationException):
    """Raised when user doesn't own the requested resource"""

    def __init__(self, resource_type: str, resource_id: str):
        message = f"You don't have access to this {resource_type}"
        super().__init__(
            message=message,
            details={
                "resource_type": resource_type,
                "resource_id": resource_id
            }
        )


# Resource Exceptions
class NotFoundException(AppException):
    """Raised when requested resource is not found"""

    def __init__(
        self,
        message: str = "Resource not found",
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None
    ):
        details = {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id

        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND",
            details=details
        )


class StudentNotFoundException(NotFoundException):
    """Raised when student is not found"""

    def __init__(self, student_id: str):
        super().__init__(
            message="Student not found",
            resource_type="student",
            resource_id=student_id
        )


class QuizNotFoundException(NotFoundException):
    """Raised when quiz is not found"""

    def __init__(self, quiz_id: str):
        super().__init__(
            message="Quiz not found",
            resource_type="quiz",
            resource_id=quiz_id
        )


class SubmissionNotFoundException(NotFoundException):
    """Raised when submission is not found"""

    def __init__(self, submission_id: str):
        super().__init__(
            message="Submission not found",
            resource_type="submission",
            resource_id=submission_id
        )


class AnswersNotFoundException(NotFoundException):
    """Raised when some of the selected answers cannot be resolved"""

    def __init__(self, requested: int, resolved: int):
        super().__init__(
            message="One or more answers not found",
            resource_type="answer"
        )
        self.details["requested_count"] = requested
        self.details["resolved_count"] = resolved


# Rate Limiting Exceptions
class RateLimitException(AppException):
    """Raised when rate limit is exceeded"""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None
    ):
        details = {}
        if retry_after:
            details["retry_after_seconds"] = retry_after

        super().__init__(
            message=message,
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            error_code="RATE_LIMIT_EXCEEDED",
            details=details
        )


# Business Logic Exceptions
class InvalidOperationException(AppException):
    """Raised when a submission business rule is violated"""

    def __init__(
        self,
        message: str,
        rule_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if details is None:
            details = {}

        if rule_name:
            details["violated_rule"] = rule_name

        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="INVALID_OPERATION",
            details=details
        )


class EnrollmentRequiredException(InvalidOperationException):
    """Raised when the student is not actively enrolled in the quiz's course"""

    def __init__(self, course_id: str):
        super().__init__(
            message="Student is not enrolled in the course",
            rule_name="not_enrolled",
            details={"course_id": course_id}
        )


class AttemptAlreadyOpenException(InvalidOperationException):
    """Raised when the student already has an open attempt for the quiz"""

    def __init__(self, quiz_id: str):
        super().__init__(
            message="Student has already started the quiz",
            rule_name="attempt_already_open",
            details={"quiz_id": quiz_id}
        )


class SubmissionClosedException(InvalidOperationException):
    """Raised when answers are sent to a submission that is already closed"""

    def __init__(self, submission_id: str):
        super().__init__(
            message="Submission has already been submitted",
            rule_name="already_submitted",
            details={"submission_id": submission_id}
        )


class EmptySubmissionException(InvalidOperationException):
    """Raised when no answers are provided"""

    def __init__(self):
        super().__init__(
            message="No answers provided",
            rule_name="no_answers"
        )


class ForeignAnswerException(InvalidOperationException):
    """Raised when answers do not belong to the submission's quiz"""

    def __init__(self, quiz_id: str, answer_ids: List[str]):
        super().__init__(
            message="All answers must belong to the same quiz",
            rule_name="answers_from_other_quiz",
            details={"quiz_id": quiz_id, "answer_ids": answer_ids}
        )


class QuizLockedException(InvalidOperationException):
    """Raised when a quiz duration is changed after attempts were started"""

    def __init__(self, quiz_id: str):
        super().__init__(
            message="Quiz duration cannot change once a submission has started",
            rule_name="quiz_duration_locked",
            details={"quiz_id": quiz_id}
        )


class DeadlineExceededException(AppException):
    """Raised when answers arrive after the attempt's end time"""

    def __init__(self, submission_id: str, end_time: datetime):
        super().__init__(
            message="Quiz time has expired",
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="QUIZ_TIME_EXCEEDED",
            details={
                "submission_id": submission_id,
                "end_time": end_time.isoformat()
            }
        )


__all__ = [
    # Base
    "AppException",

    # Authentication
    "AuthenticationException",
    "TokenExpiredException",
    "TokenInvalidException",

    # Authorization
    "AuthorizationException",
    "ResourceOwnershipException",

    # Resources
    "NotFoundException",
    "StudentNotFoundException",
    "QuizNotFoundException",
    "SubmissionNotFoundException",
    "AnswersNotFoundException",

    # Rate Limiting
    "RateLimitException",

    # Business Logic
    "InvalidOperationException",
    "EnrollmentRequiredException",
    "AttemptAlreadyOpenException",
    "SubmissionClosedException",
    "EmptySubmissionException",
    "ForeignAnswerException",
    "QuizLockedException",
    "DeadlineExceededException",
]
