"""Resilient Pricing Feed Client — wraps httpx.AsyncClient with retry, backoff, and error mapping.

Invariants:
    - Rate limits (429): backoff honoring Retry-After header
    - Transient errors (5xx, connection, timeout): max N retries with exponential backoff
    - Client errors (4xx except 429): immediate failure, no retry
    - All failures mapped to PricingFeedError (core/errors.py)
    - Non-list JSON payload treated as an empty listing

Design Decisions:
    - Wrapper over raw client: isolates retry logic from the price catalog (ADR: single responsibility)
    - ±25% jitter on backoff: prevents thundering herd when the cache expires on many workers
    - Accept-Encoding: br; the feed requires brotli; decoding provided by httpx[brotli]
"""

import asyncio
import logging
import random
from typing import Any

import httpx

from app.core.errors import PricingFeedError

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = frozenset({500, 502, 503, 504})


class PricingFeedClient:
    """Fetches item listings from the Skinport items endpoint."""

    def __init__(
        self,
        url: str = "https://api.skinport.com/v1/items",
        *,
        app_id: int = 730,
        currency: str = "EUR",
        timeout_seconds: float = 30.0,
        max_retries: int = 2,
        base_delay_ms: int = 500,
        max_delay_ms: int = 10_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.app_id = app_id
        self.currency = currency
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self.client = httpx.AsyncClient(
            timeout=timeout_seconds,
            headers={"Accept-Encoding": "br"},
            transport=transport,
        )

    async def close(self) -> None:
        await self.client.aclose()

    async def fetch_items(self, tradable: bool = True) -> list[dict[str, Any]]:
        """Fetch one listing (tradable or non-tradable) with automatic retry."""
        params = {
            "app_id": self.app_id,
            "currency": self.currency,
            "tradable": int(tradable),
        }
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.get(self.url, params=params)
            except httpx.TimeoutException as e:
                await self._handle_transient_error(e, attempt, "timeout")
                continue
            except httpx.TransportError as e:
                await self._handle_transient_error(e, attempt, "connection_error")
                continue

            if response.status_code == 429:
                await self._handle_rate_limit(response, attempt)
                continue
            if response.status_code in _RETRYABLE_STATUS:
                await self._handle_transient_error(
                    f"HTTP {response.status_code}", attempt, "server_error",
                )
                continue
            if response.is_error:
                raise PricingFeedError(
                    f"HTTP {response.status_code}", "client_error",
                )
            return self._parse(response, tradable, attempt)

        raise PricingFeedError("Retries exhausted", "unknown")

    def _parse(
        self, response: httpx.Response, tradable: bool, attempt: int,
    ) -> list[dict[str, Any]]:
        try:
            payload = response.json()
        except ValueError as e:
            raise PricingFeedError(f"Invalid JSON: {e}", "bad_payload")
        if not isinstance(payload, list):
            logger.warning(
                "Pricing feed returned a non-list payload, treating as empty",
            )
            return []
        logger.info(
            f"Pricing feed fetched {len(payload)} items (tradable={tradable})",
            extra={"attempt": attempt + 1},
        )
        return payload

    async def _handle_rate_limit(
        self, response: httpx.Response, attempt: int,
    ) -> None:
        """Handle 429 with retry or raise."""
        retry_after_ms = self._extract_retry_after(response)
        if attempt >= self.max_retries:
            raise PricingFeedError(
                "Rate limit exceeded after retries",
                "rate_limit",
                retry_after_ms=retry_after_ms,
            )
        delay = min(retry_after_ms or self._backoff(attempt), self.max_delay_ms)
        logger.warning(
            f"Pricing feed rate limit hit, retry after {delay}ms (attempt {attempt + 1})",
        )
        await asyncio.sleep(delay / 1000)

    async def _handle_transient_error(
        self, e: object, attempt: int, error_type: str,
    ) -> None:
        """Handle transient errors with retry or raise."""
        if attempt >= self.max_retries:
            raise PricingFeedError(
                f"Transient failure after {self.max_retries} retries: {e}",
                error_type,
            )
        delay = self._backoff(attempt)
        logger.warning(f"Pricing feed transient error, retry after {delay}ms: {e}")
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _extract_retry_after(self, response: httpx.Response) -> int | None:
        """Extract Retry-After header (returns milliseconds)."""
        val = response.headers.get("retry-after")
        if val and val.isdigit():
            return int(val) * 1000
        return None


# Singleton (initialized on startup)
pricing_feed: PricingFeedClient | None = None


def init_pricing_feed(url: str, **kwargs) -> None:
    global pricing_feed
    pricing_feed = PricingFeedClient(url, **kwargs)


async def close_pricing_feed() -> None:
    global pricing_feed
    if pricing_feed:
        await pricing_feed.close()
        pricing_feed = None


def get_pricing_feed() -> PricingFeedClient:
    """FastAPI dependency for the pricing feed client."""
    if not pricing_feed:
        raise RuntimeError("Pricing feed client not initialized")
    return pricing_feed
