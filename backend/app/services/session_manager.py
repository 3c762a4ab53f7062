"""Session Manager — issues, resolves and invalidates bearer tokens.

Invariants:
    - Tokens carry 256 bits from the OS CSPRNG (secrets.token_hex(32))
    - At most one live token per username: issue() replaces the previous token
      in ONE atomic directory operation (bind), never two independent writes
    - Forward and reverse mappings share the same TTL
    - resolve() never raises for unknown/expired tokens (returns None);
      store failures propagate as StoreUnavailableError (fail closed)

Design Decisions:
    - Directory injected (SessionDirectory protocol): Redis in production,
      InMemoryKeyValueStore in tests/dev
    - resolve() does not refresh TTL: sessions are fixed 30-minute windows
    - No logout-by-token: only implicit invalidation on re-login
"""

import logging
import secrets
from typing import Callable

from app.core.repository_protocols import SessionDirectory

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def generate_token() -> str:
    """Unguessable opaque token (64 hex chars)."""
    return secrets.token_hex(TOKEN_BYTES)


class SessionManager:
    """Single-active-session token lifecycle on top of a SessionDirectory."""

    def __init__(
        self,
        directory: SessionDirectory,
        ttl_seconds: int = 30 * 60,
        token_factory: Callable[[], str] = generate_token,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.directory = directory
        self.ttl_seconds = ttl_seconds
        self._token_factory = token_factory

    async def issue(self, username: str) -> str:
        """Create a new token for username, invalidating any previous one."""
        token = self._token_factory()
        previous = await self.directory.bind(username, token, self.ttl_seconds)
        if previous:
            logger.info(
                "Session rotated, previous token invalidated",
                extra={"username": username},
            )
        else:
            logger.info("Session issued", extra={"username": username})
        return token

    async def resolve(self, token: str) -> str | None:
        """Username owning token, or None if unknown or expired."""
        if not token:
            return None
        return await self.directory.lookup(token)

    async def invalidate(self, username: str) -> None:
        """Remove both mappings for username (no-op if none)."""
        removed = await self.directory.unbind(username)
        if removed:
            logger.info("Session invalidated", extra={"username": username})
