import unittest
import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import jwt

from quizroom.backend.database.models import UserRole, UserStatus
from quizroom.backend.dependencies import (
    RateLimiter,
    create_access_token,
    get_current_user_from_token,
    verify_jwt_token,
)
from quizroom.backend.exceptions import (
    AuthenticationException,
    AuthorizationException,
    RateLimitException,
    TokenExpiredException,
    TokenInvalidException,
)
from quizroom.config import get_settings

from .base import DatabaseTestCase


class JwtTests(unittest.TestCase):
    def test_token_round_trip_carries_subject_and_role(self):
        user_id = uuid.uuid4()
        payload = verify_jwt_token(create_access_token(user_id, UserRole.STUDENT))

        self.assertEqual(payload["sub"], str(user_id))
        self.assertEqual(payload["role"], "student")

    def test_expired_token(self):
        token = create_access_token(uuid.uuid4(), UserRole.STUDENT, expires_delta=timedelta(seconds=-5))

        with self.assertRaises(TokenExpiredException):
            verify_jwt_token(token)

    def test_token_signed_with_other_key(self):
        settings = get_settings()
        token = jwt.encode({"sub": str(uuid.uuid4())}, "a-completely-different-signing-secret", algorithm=settings.JWT_ALGORITHM)

        with self.assertRaises(TokenInvalidException):
            verify_jwt_token(token)


class CurrentUserTests(DatabaseTestCase):
    async def test_resolves_active_user(self):
        student = await self.make_user("ada")
        token = create_access_token(student.id, student.role)

        user = await get_current_user_from_token(token, self.db)

        self.assertEqual(user.id, student.id)

    async def test_unknown_user_rejected(self):
        token = create_access_token(uuid.uuid4(), UserRole.STUDENT)

        with self.assertRaises(AuthenticationException):
            await get_current_user_from_token(token, self.db)

    async def test_suspended_user_rejected(self):
        student = await self.make_user("ada", status=UserStatus.SUSPENDED)
        token = create_access_token(student.id, student.role)

        with self.assertRaises(AuthorizationException):
            await get_current_user_from_token(token, self.db)

    async def test_revoked_token_rejected(self):
        student = await self.make_user("ada")
        token = create_access_token(student.id, student.role)
        fake_redis = AsyncMock()
        fake_redis.get.return_value = "1"

        with patch("quizroom.backend.dependencies.get_redis_client", AsyncMock(return_value=fake_redis)):
            with self.assertRaises(AuthenticationException):
                await get_current_user_from_token(token, self.db)

        fake_redis.get.assert_awaited_once_with(f"blacklist:{token}")


class RateLimiterTests(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.user = await self.make_user("ada")
        self.limiter = RateLimiter(requests=2, window=60, scope="submissions")
        self.key = f"rate_limit:submissions:{self.user.id}"

    async def test_allows_everything_without_redis(self):
        with patch("quizroom.backend.dependencies.get_redis_client", AsyncMock(return_value=None)):
            for _ in range(5):
                self.assertTrue(await self.limiter(current_user=self.user))

    async def test_first_request_opens_window(self):
        fake_redis = AsyncMock()
        fake_redis.get.return_value = None

        with patch("quizroom.backend.dependencies.get_redis_client", AsyncMock(return_value=fake_redis)):
            self.assertTrue(await self.limiter(current_user=self.user))

        fake_redis.setex.assert_awaited_once_with(self.key, 60, 1)

    async def test_counts_requests_within_window(self):
        fake_redis = AsyncMock()
        fake_redis.get.return_value = "1"

        with patch("quizroom.backend.dependencies.get_redis_client", AsyncMock(return_value=fake_redis)):
            self.assertTrue(await self.limiter(current_user=self.user))

        fake_redis.incr.assert_awaited_once_with(self.key)

    async def test_rejects_once_limit_reached(self):
        fake_redis = AsyncMock()
        fake_redis.get.return_value = "2"

        with patch("quizroom.backend.dependencies.get_redis_client", AsyncMock(return_value=fake_redis)):
            with self.assertRaises(RateLimitException) as ctx:
                await self.limiter(current_user=self.user)

        self.assertEqual(ctx.exception.status_code, 429)
        self.assertEqual(ctx.exception.details["retry_after_seconds"], 60)


if __name__ == "__main__":
    unittest.main()
