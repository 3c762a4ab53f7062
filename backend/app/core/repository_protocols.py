"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection
    - Every implementation raises StoreUnavailableError on unreachable/timeout,
      never returns None for a failed read

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - KeyValueStore and SessionDirectory split: the price cache only needs TTL get/set,
      the session manager needs the coupled two-key bind/unbind
"""

from typing import Protocol


class KeyValueStore(Protocol):
    """Generic TTL key/value contract, reused by the price cache."""
    async def get(self, key: str) -> str | None: ...
    async def set(
        self, key: str, value: str, ttl_seconds: int | None = None,
    ) -> None: ...
    async def delete(self, *keys: str) -> int: ...
    async def ping(self) -> bool: ...


class SessionDirectory(Protocol):
    """Contract for token <-> username mappings, implemented by shell.

    bind() atomically drops the username's previous token (if any), then writes
    token -> username and username -> token with the same TTL. Returns the
    replaced token. unbind() atomically removes both mappings.
    """
    async def lookup(self, token: str) -> str | None: ...
    async def bind(
        self, username: str, token: str, ttl_seconds: int,
    ) -> str | None: ...
    async def unbind(self, username: str) -> str | None: ...
