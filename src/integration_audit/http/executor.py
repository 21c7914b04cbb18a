"""Resilient request execution with retry and token refresh.

The executor drives a zero-argument request factory. The factory performs
exactly one attempt and is invoked again for every retry, so each attempt
rebuilds its auth headers from the current token.

Retry policy:

- 429: wait for ``Retry-After`` (seconds or HTTP-date), falling back to
  exponential backoff, then retry.
- 5xx: exponential backoff, then retry.
- 401: refresh the token once and retry outside the retry budget.
- Any other non-2xx status is terminal.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field

from integration_audit.utils.config import HttpConfig
from integration_audit.utils.errors import (
    AuthenticationError,
    HttpStatusError,
    NetworkError,
    RateLimitError,
    TransientError,
)
from integration_audit.utils.logging import get_logger

logger = get_logger("http.executor")

MAX_RETRIES = 3

RequestFactory = Callable[[], Awaitable[httpx.Response]]
TokenRefresh = Callable[[], Awaitable[Optional[str]]]
Sleep = Callable[[float], Awaitable[Any]]


class RetryPolicy(BaseModel):
    """Retry limits for rate limiting and server errors."""

    model_config = {"frozen": True}

    max_retries: int = Field(default=MAX_RETRIES, ge=0, description="Retries after the first attempt")
    backoff_base: float = Field(default=1.0, ge=0, description="Delay in seconds before the first retry")

    def backoff(self, attempt: int) -> float:
        """Delay before retry ``attempt + 1`` (attempt counts from 0)."""
        return self.backoff_base * (2**attempt)

    @classmethod
    def from_config(cls, config: HttpConfig) -> "RetryPolicy":
        return cls(max_retries=config.max_retries, backoff_base=config.backoff_base)


def parse_retry_after(value: str | None, now: datetime | None = None) -> float | None:
    """Parse a ``Retry-After`` header into a delay in seconds.

    Args:
        value: Header value, either delta-seconds or an HTTP-date
        now: Reference time for HTTP-dates (defaults to the current UTC time)

    Returns:
        Non-negative delay in seconds, or None if the header is absent or unparsable
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None

    if value.isdecimal():
        return float(int(value))

    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    return max(0.0, (retry_at - now).total_seconds())


class TokenSlot:
    """The mutable access token owned by one check context.

    Refreshes are serialised so that requests failing with 401 at the same
    time trigger a single ``on_refresh`` call.
    """

    def __init__(self, token: str | None = None, on_refresh: TokenRefresh | None = None) -> None:
        self._value = token
        self._on_refresh = on_refresh
        self._lock = asyncio.Lock()

    @property
    def value(self) -> str | None:
        return self._value

    @property
    def can_refresh(self) -> bool:
        return self._on_refresh is not None

    async def refresh(self, stale: str | None) -> str | None:
        """Replace ``stale`` with a fresh token.

        Returns the new token, or None if no refresh is possible.
        """
        async with self._lock:
            if self._value and self._value != stale:
                # Refreshed by another request while this one waited.
                return self._value
            if self._on_refresh is None:
                return None
            new_token = await self._on_refresh()
            if not new_token:
                return None
            self._value = new_token
            return new_token


def _response_url(response: httpx.Response) -> str | None:
    try:
        return str(response.request.url)
    except RuntimeError:
        return None


def parse_body(response: httpx.Response) -> Any:
    """Decode a response body as JSON, falling back to text."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class RequestExecutor:
    """Issues requests with automatic retry and a single token refresh.

    Example:
        executor = RequestExecutor(TokenSlot(token, on_refresh=refresh))
        data = await executor.execute(lambda: client.get(url, headers=...))
    """

    def __init__(
        self,
        token: TokenSlot | None = None,
        policy: RetryPolicy | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self._token = token or TokenSlot()
        self._policy = policy or RetryPolicy()
        self._sleep = sleep or asyncio.sleep

    @property
    def token(self) -> TokenSlot:
        return self._token

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def send(self, request_factory: RequestFactory) -> httpx.Response:
        """Run the request until it succeeds or fails terminally.

        Args:
            request_factory: Zero-argument coroutine function performing one attempt

        Returns:
            The successful (2xx) response

        Raises:
            RateLimitError: 429 persisted past the retry limit
            TransientError: 5xx persisted past the retry limit
            AuthenticationError: 401 that a token refresh could not fix
            HttpStatusError: Any other non-2xx status
            NetworkError: The request could not be sent
        """
        attempt = 0
        refreshed = False

        while True:
            token_used = self._token.value
            try:
                response = await request_factory()
            except httpx.TransportError as exc:
                raise NetworkError(f"Request failed: {exc}") from exc

            status = response.status_code
            url = _response_url(response)

            if status == 429 or status >= 500:
                if attempt >= self._policy.max_retries:
                    logger.warning("Giving up on %s after %d retries (HTTP %d)", url, attempt, status)
                    if status == 429:
                        raise RateLimitError(url)
                    raise TransientError(status, url)

                delay = None
                if status == 429:
                    delay = parse_retry_after(response.headers.get("Retry-After"))
                if delay is None:
                    delay = self._policy.backoff(attempt)

                attempt += 1
                logger.info(
                    "HTTP %d from %s, retry %d/%d in %.1fs",
                    status,
                    url,
                    attempt,
                    self._policy.max_retries,
                    delay,
                )
                await self._sleep(delay)
                continue

            if status == 401:
                if refreshed or not self._token.can_refresh:
                    raise AuthenticationError(url)
                logger.info("HTTP 401 from %s, refreshing access token", url)
                new_token = await self._token.refresh(token_used)
                if not new_token:
                    raise AuthenticationError(url, "HTTP 401: token refresh returned no token")
                refreshed = True
                continue

            if not response.is_success:
                raise HttpStatusError(status, url, f"HTTP {status}: {response.reason_phrase}")

            return response

    async def execute(self, request_factory: RequestFactory) -> Any:
        """Run the request and return its parsed body."""
        response = await self.send(request_factory)
        return parse_body(response)
