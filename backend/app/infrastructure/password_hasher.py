"""Password Hasher — bcrypt hashing with per-hash salt, off the event loop.

Invariants:
    - Every hash gets a fresh salt (bcrypt.gensalt)
    - Verification uses bcrypt.checkpw (constant-time compare), never string equality
    - A malformed stored hash or over-long candidate verifies as False, never raises

Design Decisions:
    - bcrypt used directly: passlib's CryptContext breaks against bcrypt >= 4.1
    - asyncio.to_thread: bcrypt is CPU-bound (~50-100ms at cost 10), must not block the loop
"""

import asyncio
import logging

import bcrypt

logger = logging.getLogger(__name__)


class PasswordHasher:
    """Slow salted one-way hashing for user passwords."""

    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def hash_sync(self, password: str) -> str:
        return bcrypt.hashpw(
            password.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds),
        ).decode("utf-8")

    def verify_sync(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(
                password.encode("utf-8"), password_hash.encode("utf-8"),
            )
        except ValueError as e:
            logger.warning(f"Password verification rejected input: {e}")
            return False

    async def hash(self, password: str) -> str:
        return await asyncio.to_thread(self.hash_sync, password)

    async def verify(self, password: str, password_hash: str) -> bool:
        return await asyncio.to_thread(self.verify_sync, password, password_hash)
