"""
Quizroom - Course Quiz Submission Service
Dependency injection: authentication, permissions, rate limiting
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, List

import jwt
import redis.asyncio as redis
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from .database.connection import get_db
from .database.models import User, UserRole, UserStatus, Course, Quiz, Submission
from .exceptions import (
    AuthenticationException,
    AuthorizationException,
    RateLimitException,
    TokenExpiredException,
    TokenInvalidException,
)
from .services.submission_engine import SubmissionEngine
from ..config import get_settings, get_redis_url

# Configure logging
logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)

# Redis connection
_redis_client: Optional[redis.Redis] = None


async def get_redis_client() -> Optional[redis.Redis]:
    """Get Redis client instance, or None when Redis is disabled or unreachable"""
    global _redis_client

    settings = get_settings()
    if not settings.ENABLE_RATE_LIMITING:
        return None

    if _redis_client is None:
        client = redis.from_url(
            get_redis_url(),
            encoding="utf-8",
            decode_responses=True,
            socket_keepalive=True,
            health_check_interval=30
        )
        try:
            await client.ping()
        except redis.RedisError as e:
            logger.warning(f"⚠️ Redis connection failed: {e}")
            await client.aclose()
            return None
        _redis_client = client
        logger.info("✅ Redis connection established")

    return _redis_client


def create_access_token(user_id: str, role: UserRole, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a bearer token for a user"""
    settings = get_settings()
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload = {"sub": str(user_id), "role": role.value, "exp": expire}
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_jwt_token(token: str) -> Dict[str, Any]:
    """Verify and decode JWT token"""
    settings = get_settings()

    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredException()
    except jwt.InvalidTokenError:
        raise TokenInvalidException()


async def get_current_user_from_token(token: str, db: AsyncSession) -> User:
    """Get current user from JWT token"""

    payload = verify_jwt_token(token)
    subject = payload.get("sub")

    try:
        user_id = uuid.UUID(str(subject))
    except ValueError:
        raise TokenInvalidException("Invalid token payload")

    # Check token blacklist (if Redis is available)
    redis_client = await get_redis_client()
    if redis_client:
        if await redis_client.get(f"blacklist:{token}"):
            raise AuthenticationException("Token has been revoked")

    result = await db.execute(
        select(User).where(
            User.id == user_id,
            User.is_deleted == False  # noqa: E712
        )
    )
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationException("User not found")

    if user.status != UserStatus.ACTIVE:
        raise AuthorizationException("User account is not active")

    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Get current authenticated user (optional)"""

    if not credentials:
        return None

    return await get_current_user_from_token(credentials.credentials, db)


async def require_authentication(
    current_user: Optional[User] = Depends(get_current_user)
) -> User:
    """Require user authentication"""

    if not current_user:
        raise AuthenticationException("Authentication required")

    return current_user


def require_role(allowed_roles: List[UserRole]):
    """Factory function to create role-based dependencies"""

    async def check_role(current_user: User = Depends(require_authentication)) -> User:
        if current_user.role not in allowed_roles:
            raise AuthorizationException(
                f"Access denied. Required roles: {[role.value for role in allowed_roles]}",
                required_role=allowed_roles[0].value
            )
        return current_user

    return check_role


# Pre-built role dependencies
require_student = require_role([UserRole.STUDENT])
require_admin = require_role([UserRole.ADMIN])
require_teacher_or_admin = require_role([UserRole.TEACHER, UserRole.ADMIN])


async def get_submission_engine(db: AsyncSession = Depends(get_db)) -> SubmissionEngine:
    """Submission engine bound to the request's session"""
    return SubmissionEngine(db)


class RateLimiter:
    """Rate limiting dependency"""

    def __init__(self, requests: int, window: int, scope: str = "user"):
        self.requests = requests
        self.window = window
        self.scope = scope

    async def __call__(self, current_user: User = Depends(require_authentication)) -> bool:
        redis_client = await get_redis_client()

        if not redis_client:
            return True

        key = f"rate_limit:{self.scope}:{current_user.id}"

        current_requests = await redis_client.get(key)

        if current_requests is None:
            # First request in window
            await redis_client.setex(key, self.window, 1)
            return True
        elif int(current_requests) < self.requests:
            await redis_client.incr(key)
            return True
        else:
            logger.warning(f"Rate limit exceeded for {key}")
            raise RateLimitException(retry_after=self.window)


submission_rate_limit = RateLimiter(
    requests=get_settings().SUBMISSION_RATE_LIMIT_PER_MINUTE,
    window=60,
    scope="submissions"
)


class PermissionChecker:
    """Read access to submissions beyond the owning student"""

    @staticmethod
    async def teaches_quiz(current_user: User, quiz_id: uuid.UUID, db: AsyncSession) -> bool:
        """Check if user teaches the course a quiz belongs to"""
        if current_user.role == UserRole.ADMIN:
            return True

        if current_user.role != UserRole.TEACHER:
            return False

        result = await db.execute(
            select(Quiz.id).join(Course, Quiz.course_id == Course.id).where(
                Quiz.id == quiz_id,
                Course.teacher_id == current_user.id
            )
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def can_view_submission(
        current_user: User,
        submission: Submission,
        db: AsyncSession
    ) -> bool:
        """Owners, course teachers and admins may read a submission"""
        if submission.student_id == current_user.id:
            return True

        return await PermissionChecker.teaches_quiz(current_user, submission.quiz_id, db)


async def cleanup_dependencies():
    """Cleanup dependency resources"""
    global _redis_client

    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("✅ Redis connection closed")


__all__ = [
    # Authentication
    "create_access_token",
    "verify_jwt_token",
    "get_current_user",
    "require_authentication",
    "require_role",
    "require_student",
    "require_admin",
    "require_teacher_or_admin",

    # Authorization
    "PermissionChecker",

    # Engine
    "get_submission_engine",

    # Rate limiting
    "RateLimiter",
    "submission_rate_limit",

    # Utilities
    "get_redis_client",
    "cleanup_dependencies"
]
