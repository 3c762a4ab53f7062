"""Account Service — register, login and change-password.

Invariants:
    - Register: unique username enforced by the DB constraint -> DuplicateUsernameError;
      success immediately issues a session (registration implies login)
    - Register is all-or-nothing: no committed user without a bound session, and
      no bound session for an uncommitted user
    - Login: unknown username and wrong password are indistinguishable (InvalidCredentialsError)
    - Change-password: old password must verify; body username must match the principal;
      the active session token is left untouched
    - Passwords never logged

Design Decisions:
    - Rely on the unique index, not a pre-SELECT: no check-then-insert race
    - change_password keeps the current session: credential change does not rotate tokens
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.domain_types import Principal
from app.core.errors import (
    DuplicateUsernameError,
    ErrorContext,
    InvalidCredentialsError,
)
from app.infrastructure.password_hasher import PasswordHasher
from app.models.user import User
from app.services.session_manager import SessionManager

logger = logging.getLogger(__name__)


class AccountService:
    """User account operations backed by the credential store."""

    def __init__(
        self, db: AsyncSession, sessions: SessionManager, hasher: PasswordHasher,
    ):
        self.db = db
        self.sessions = sessions
        self.hasher = hasher

    async def register(self, username: str, password: str) -> str:
        """Create the user and return a fresh session token.

        The row is flushed, the session bound, then the row committed: a store
        failure leaves no account behind, and a failed commit unbinds the session.
        """
        password_hash = await self.hasher.hash(password)
        self.db.add(User(username=username, password_hash=password_hash))
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            logger.info("Registration rejected: duplicate username")
            raise DuplicateUsernameError(username)

        try:
            token = await self.sessions.issue(username)
        except Exception:
            await self.db.rollback()
            raise

        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            await self.sessions.invalidate(username)
            raise
        logger.info("User registered", extra={"username": username})
        return token

    async def login(self, username: str, password: str) -> str:
        """Verify credentials and return a fresh session token."""
        user = await self._find(username)
        if user is None or not await self.hasher.verify(password, user.password_hash):
            raise InvalidCredentialsError(ErrorContext(username=username))
        return await self.sessions.issue(username)

    async def change_password(
        self,
        principal: Principal,
        username: str,
        old_password: str,
        new_password: str,
    ) -> None:
        """Replace the password hash after verifying the old password."""
        context = ErrorContext(username=username)
        if username != principal.username:
            logger.warning(
                "Password change for another user rejected",
                extra={"username": principal.username},
            )
            raise InvalidCredentialsError(context)
        user = await self._find(username)
        if user is None or not await self.hasher.verify(
            old_password, user.password_hash,
        ):
            raise InvalidCredentialsError(context)
        user.password_hash = await self.hasher.hash(new_password)
        await self.db.commit()
        logger.info("Password updated", extra={"username": username})

    async def _find(self, username: str) -> User | None:
        result = await self.db.execute(
            select(User).where(User.username == username),
        )
        return result.scalar_one_or_none()
