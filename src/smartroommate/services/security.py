from datetime import timedelta
import asyncio
import hashlib
import logging
import secrets

import bcrypt
import redis


class PasswordHasher:
    """bcrypt hashing, run in the default executor so the event loop is not blocked"""

    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def _hash(self, password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(self.rounds)).decode("utf-8")

    def _verify(self, password: str, hashed_password: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
        except ValueError:
            return False

    async def hash(self, password: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._hash, password)

    async def verify(self, password: str, hashed_password: str) -> bool:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._verify, password, hashed_password)


class ResetTokenStore:
    """
    One-time password reset tokens kept in Redis.

    Only the SHA-256 hash of a token is stored, under reset:<hash>,
    with the user id as value and a one hour expiry.
    """

    KEY_PREFIX = "reset:"

    def __init__(
            self,
            redis: redis.Redis,
            logger: logging.Logger | None = None,
            expire_minutes: int = 60
    ):
        self.redis = redis
        self.logger = logger or logging.getLogger(__name__)
        self.expire_minutes = expire_minutes

    @staticmethod
    def _hash(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    def issue(self, user_id: int) -> str:
        token = secrets.token_hex(32)
        self.redis.setex(
            f"{self.KEY_PREFIX}{self._hash(token)}",
            timedelta(minutes=self.expire_minutes),
            str(user_id)
        )
        return token

    def consume(self, token: str) -> int | None:
        """Returns the user id the token was issued for and invalidates it"""
        key = f"{self.KEY_PREFIX}{self._hash(token)}"
        value = self.redis.get(key)
        if value is None:
            return None
        self.redis.delete(key)
        try:
            return int(value)
        except ValueError:
            self.logger.warning("Malformed reset token entry %s", key)
            return None
