"""Unit tests for the retrying request executor."""

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from integration_audit.http.executor import (
    MAX_RETRIES,
    RequestExecutor,
    RetryPolicy,
    TokenSlot,
    parse_body,
    parse_retry_after,
)
from integration_audit.utils.config import HttpConfig
from integration_audit.utils.errors import (
    AuthenticationError,
    HttpStatusError,
    NetworkError,
    RateLimitError,
    TransientError,
)


def scripted(*responses):
    """Request factory replaying responses in order, recording each attempt."""
    calls = []

    async def factory():
        response = responses[len(calls)]
        calls.append(response)
        return response

    factory.calls = calls
    return factory


class TestParseRetryAfter:
    """Tests for Retry-After parsing."""

    def test_seconds(self):
        """Test integer seconds."""
        assert parse_retry_after("2") == 2.0
        assert parse_retry_after(" 10 ") == 10.0

    def test_http_date(self):
        """Test an HTTP-date is converted to a delay from now."""
        now = datetime(2015, 10, 21, 7, 27, 55, tzinfo=timezone.utc)
        assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT", now=now) == 5.0

    def test_past_date_is_zero(self):
        """Test a date in the past gives no delay."""
        now = datetime(2016, 1, 1, tzinfo=timezone.utc)
        assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT", now=now) == 0.0

    def test_absent_or_invalid(self):
        """Test missing or unparsable values."""
        assert parse_retry_after(None) is None
        assert parse_retry_after("") is None
        assert parse_retry_after("soon") is None

    def test_non_integer_seconds_rejected(self):
        """Test only whole delta-seconds are accepted as a delay."""
        for value in ["inf", "nan", "1e9", "-5", "1.5"]:
            assert parse_retry_after(value) is None


class TestRetryPolicy:
    """Tests for RetryPolicy."""

    def test_defaults(self):
        """Test three retries with a one second base."""
        policy = RetryPolicy()
        assert policy.max_retries == MAX_RETRIES == 3
        assert [policy.backoff(n) for n in range(3)] == [1.0, 2.0, 4.0]

    def test_from_config(self):
        """Test the policy follows http configuration."""
        policy = RetryPolicy.from_config(HttpConfig(max_retries=5, backoff_base=0.5))
        assert policy.max_retries == 5
        assert policy.backoff(2) == 2.0


class TestParseBody:
    """Tests for response body decoding."""

    def test_json(self):
        assert parse_body(httpx.Response(200, json={"a": 1})) == {"a": 1}

    def test_empty_body(self):
        """Test 204 responses decode to None."""
        assert parse_body(httpx.Response(204)) is None

    def test_text_fallback(self):
        """Test non-JSON bodies decode to text."""
        assert parse_body(httpx.Response(200, text="plain")) == "plain"


class TestRequestExecutor:
    """Tests for RequestExecutor retry behavior."""

    @pytest.fixture
    def executor(self, record_sleep):
        """Executor with recorded sleeps."""
        return RequestExecutor(sleep=record_sleep)

    async def test_success(self, executor):
        """Test a 2xx response is parsed and returned."""
        factory = scripted(httpx.Response(200, json=[1, 2]))
        assert await executor.execute(factory) == [1, 2]
        assert len(factory.calls) == 1

    async def test_429_honours_retry_after(self, executor, sleeps):
        """Test the Retry-After delay is used before retrying."""
        factory = scripted(
            httpx.Response(429, headers={"Retry-After": "2"}),
            httpx.Response(200, json={"ok": True}),
        )
        assert await executor.execute(factory) == {"ok": True}
        assert sleeps == [2.0]
        assert len(factory.calls) == 2

    async def test_429_without_retry_after_backs_off(self, executor, sleeps):
        """Test exponential backoff when Retry-After is absent."""
        factory = scripted(
            httpx.Response(429),
            httpx.Response(429),
            httpx.Response(200, json={}),
        )
        await executor.execute(factory)
        assert sleeps == [1.0, 2.0]

    async def test_infinite_retry_after_falls_back_to_backoff(self, executor, sleeps):
        """Test a non-numeric delay like "inf" uses backoff instead of sleeping forever."""
        factory = scripted(
            httpx.Response(429, headers={"Retry-After": "inf"}),
            httpx.Response(200, json={}),
        )
        await executor.execute(factory)
        assert sleeps == [1.0]

    async def test_429_three_times_then_success(self, executor, sleeps):
        """Test three rate limited attempts are retried, four requests in total."""
        factory = scripted(
            httpx.Response(429),
            httpx.Response(429),
            httpx.Response(429),
            httpx.Response(200, json={"ok": True}),
        )
        assert await executor.execute(factory) == {"ok": True}
        assert len(factory.calls) == 4
        assert sleeps == [1.0, 2.0, 4.0]

    async def test_429_exhausted(self, executor, sleeps):
        """Test RateLimitError after the retry limit."""
        factory = scripted(*[httpx.Response(429, headers={"Retry-After": "3"}) for _ in range(4)])
        with pytest.raises(RateLimitError) as exc_info:
            await executor.execute(factory)
        assert isinstance(exc_info.value, TransientError)
        assert exc_info.value.code == "RATE_LIMITED"
        assert len(factory.calls) == 4
        assert sleeps == [3.0, 3.0, 3.0]

    async def test_5xx_retried_with_backoff(self, executor, sleeps):
        """Test server errors are retried with exponential backoff."""
        factory = scripted(
            httpx.Response(502),
            httpx.Response(503),
            httpx.Response(200, json="done"),
        )
        assert await executor.execute(factory) == "done"
        assert sleeps == [1.0, 2.0]

    async def test_5xx_exhausted(self, executor, sleeps):
        """Test TransientError carries the last status."""
        factory = scripted(*[httpx.Response(500) for _ in range(4)])
        with pytest.raises(TransientError) as exc_info:
            await executor.execute(factory)
        assert exc_info.value.status == 500
        assert not isinstance(exc_info.value, RateLimitError)
        assert len(factory.calls) == 4

    async def test_other_status_is_terminal(self, executor, sleeps):
        """Test 4xx other than 401/429 fail without retry."""
        factory = scripted(httpx.Response(404))
        with pytest.raises(HttpStatusError) as exc_info:
            await executor.execute(factory)
        assert exc_info.value.status == 404
        assert str(exc_info.value) == "HTTP 404: Not Found"
        assert sleeps == []

    async def test_transport_error(self, executor):
        """Test connection failures raise NetworkError."""

        async def factory():
            raise httpx.ConnectError("connection refused")

        with pytest.raises(NetworkError, match="connection refused"):
            await executor.execute(factory)

    async def test_custom_policy(self, record_sleep, sleeps):
        """Test a policy with no retries fails on the first 503."""
        executor = RequestExecutor(policy=RetryPolicy(max_retries=0), sleep=record_sleep)
        factory = scripted(httpx.Response(503))
        with pytest.raises(TransientError):
            await executor.execute(factory)
        assert sleeps == []


class TestTokenRefresh:
    """Tests for 401 handling."""

    def token_factory(self, slot, valid_token):
        """Factory answering 401 unless the slot holds the valid token."""
        seen = []

        async def factory():
            seen.append(slot.value)
            if slot.value == valid_token:
                return httpx.Response(200, json={"token": slot.value})
            return httpx.Response(401)

        factory.seen = seen
        return factory

    async def test_refresh_then_retry(self, record_sleep):
        """Test one refresh and a retry with the new token."""
        refreshes = []

        async def on_refresh():
            refreshes.append(1)
            return "fresh"

        slot = TokenSlot("stale", on_refresh)
        factory = self.token_factory(slot, "fresh")
        body = await RequestExecutor(slot, sleep=record_sleep).execute(factory)

        assert body == {"token": "fresh"}
        assert factory.seen == ["stale", "fresh"]
        assert len(refreshes) == 1
        assert slot.value == "fresh"

    async def test_second_401_fails(self, record_sleep):
        """Test a 401 after a refresh raises AuthenticationError."""
        refreshes = []

        async def on_refresh():
            refreshes.append(1)
            return f"token-{len(refreshes)}"

        slot = TokenSlot("stale", on_refresh)
        factory = self.token_factory(slot, "never")
        with pytest.raises(AuthenticationError) as exc_info:
            await RequestExecutor(slot, sleep=record_sleep).execute(factory)

        assert exc_info.value.status == 401
        assert len(refreshes) == 1
        assert len(factory.seen) == 2

    async def test_no_callback(self, record_sleep):
        """Test 401 without a refresh callback fails immediately."""
        slot = TokenSlot("stale")
        factory = self.token_factory(slot, "fresh")
        with pytest.raises(AuthenticationError):
            await RequestExecutor(slot, sleep=record_sleep).execute(factory)
        assert len(factory.seen) == 1

    async def test_empty_refresh(self, record_sleep):
        """Test a refresh returning nothing fails."""

        async def on_refresh():
            return None

        slot = TokenSlot("stale", on_refresh)
        factory = self.token_factory(slot, "fresh")
        with pytest.raises(AuthenticationError, match="no token"):
            await RequestExecutor(slot, sleep=record_sleep).execute(factory)
        assert slot.value == "stale"

    async def test_refresh_does_not_use_retry_budget(self, record_sleep, sleeps):
        """Test 401 refresh works after all 5xx retries were used."""

        async def on_refresh():
            return "fresh"

        slot = TokenSlot("stale", on_refresh)
        responses = [httpx.Response(500)] * 3 + [httpx.Response(401), httpx.Response(200, json=1)]
        factory = scripted(*responses)
        assert await RequestExecutor(slot, sleep=record_sleep).execute(factory) == 1
        assert len(factory.calls) == 5
        assert sleeps == [1.0, 2.0, 4.0]

    async def test_concurrent_401s_refresh_once(self, record_sleep):
        """Test two requests failing together trigger a single refresh."""
        refreshes = []

        async def on_refresh():
            refreshes.append(1)
            await asyncio.sleep(0)
            return "fresh"

        slot = TokenSlot("stale", on_refresh)
        executor = RequestExecutor(slot, sleep=record_sleep)
        first = self.token_factory(slot, "fresh")
        second = self.token_factory(slot, "fresh")

        results = await asyncio.gather(executor.execute(first), executor.execute(second))

        assert results == [{"token": "fresh"}, {"token": "fresh"}]
        assert len(refreshes) == 1
