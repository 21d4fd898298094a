"""Tests for the resilient request client."""

import asyncio

import httpx
import pytest

from anisync.ingestion.registry import RetryConfig
from anisync.ingestion.request import (
    MAX_JITTER,
    ResilientClient,
    is_retryable_status,
    parse_rate_limit_delay,
)


class Recorder:
    """Collects sleep calls instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_client(handler, max_retries: int = 3, base_delay: float = 1.0, max_delay: float = 10.0, **kwargs):
    sleep = Recorder()
    client = ResilientClient(
        RetryConfig(max_retries=max_retries, base_delay=base_delay, max_delay=max_delay),
        transport=httpx.MockTransport(handler),
        sleep=sleep,
        **kwargs,
    )
    return client, sleep


class TestRetryableStatus:
    """Tests for status classification."""

    def test_rate_limit_and_server_errors(self) -> None:
        """429 and every 5xx are retried."""
        assert is_retryable_status(429)
        assert is_retryable_status(500)
        assert is_retryable_status(503)

    def test_client_errors(self) -> None:
        """Other 4xx and success codes are not retried."""
        assert not is_retryable_status(400)
        assert not is_retryable_status(404)
        assert not is_retryable_status(200)


class TestParseRateLimitDelay:
    """Tests for rate-limit header parsing."""

    def test_no_header(self) -> None:
        """Missing headers give no delay."""
        assert parse_rate_limit_delay(httpx.Headers({})) is None

    def test_seconds(self) -> None:
        """Short values are a number of seconds."""
        assert parse_rate_limit_delay(httpx.Headers({"Retry-After": "3"})) == 3.0

    def test_unix_timestamp(self) -> None:
        """Long values are a unix timestamp."""
        headers = httpx.Headers({"X-RateLimit-Reset": "1700000012"})
        assert parse_rate_limit_delay(headers, now=1700000000.0) == 12.0

    def test_timestamp_in_the_past(self) -> None:
        """A reset time already passed gives zero delay."""
        headers = httpx.Headers({"X-RateLimit-Reset": "1700000000"})
        assert parse_rate_limit_delay(headers, now=1700000500.0) == 0.0

    def test_header_priority(self) -> None:
        """x-ratelimit-reset wins over retry-after."""
        headers = httpx.Headers({"Retry-After": "7", "X-RateLimit-Reset": "2"})
        assert parse_rate_limit_delay(headers) == 2.0

    def test_x_retry_after(self) -> None:
        """x-retry-after is honoured when it is the only header."""
        assert parse_rate_limit_delay(httpx.Headers({"X-Retry-After": "4"})) == 4.0

    def test_non_numeric(self) -> None:
        """HTTP-date values are ignored."""
        headers = httpx.Headers({"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"})
        assert parse_rate_limit_delay(headers) is None


class TestBackoff:
    """Tests for exponential backoff."""

    def test_grows_exponentially(self) -> None:
        """Delays double per attempt, plus at most 100ms jitter."""
        client, _ = make_client(lambda request: httpx.Response(200), base_delay=1.0, max_delay=100.0)
        for attempt, expected in [(0, 1.0), (1, 2.0), (2, 4.0), (3, 8.0)]:
            delay = client.backoff_delay(attempt)
            assert expected <= delay <= expected + MAX_JITTER

    def test_never_exceeds_max_delay(self) -> None:
        """No attempt count pushes the delay past max_delay."""
        client, _ = make_client(lambda request: httpx.Response(200), base_delay=0.5, max_delay=10.0)
        for attempt in [0, 3, 4, 5, 10, 50, 1000]:
            assert client.backoff_delay(attempt) <= 10.0

    def test_header_takes_precedence(self) -> None:
        """A rate-limit header replaces the backoff delay."""
        client, _ = make_client(lambda request: httpx.Response(200), clock=lambda: 1000.0)
        response = httpx.Response(429, headers={"Retry-After": "2"})
        assert client.compute_delay(response, attempt=4) == 2.0


class TestRequest:
    """Tests for the retry loop."""

    @pytest.mark.asyncio
    async def test_success_without_retry(self) -> None:
        """A successful response is returned directly."""
        client, sleep = make_client(lambda request: httpx.Response(200, json={"ok": True}))
        async with client:
            response = await client.get("https://example.com/a")
        assert response.json() == {"ok": True}
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_retry_bound(self) -> None:
        """A server that always answers 429 is called max_retries + 1 times."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(429)

        client, sleep = make_client(handler, max_retries=4)
        async with client:
            with pytest.raises(httpx.HTTPStatusError) as exc_info:
                await client.get("https://example.com/a")
        assert len(calls) == 5
        assert len(sleep.delays) == 4
        assert exc_info.value.response.status_code == 429

    @pytest.mark.asyncio
    async def test_zero_retries(self) -> None:
        """With max_retries=0 the failure propagates after one call."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503)

        client, _ = make_client(handler, max_retries=0)
        async with client:
            with pytest.raises(httpx.HTTPStatusError):
                await client.get("https://example.com/a")
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failures(self) -> None:
        """Retries stop as soon as the server answers."""
        statuses = iter([500, 502, 200])

        client, sleep = make_client(lambda request: httpx.Response(next(statuses)))
        async with client:
            response = await client.get("https://example.com/a")
        assert response.status_code == 200
        assert len(sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_non_retryable_status_propagates_immediately(self) -> None:
        """A 404 is raised without any retry."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404)

        client, sleep = make_client(handler)
        async with client:
            with pytest.raises(httpx.HTTPStatusError) as exc_info:
                await client.get("https://example.com/missing")
        assert len(calls) == 1
        assert sleep.delays == []
        assert exc_info.value.response.status_code == 404

    @pytest.mark.asyncio
    async def test_uses_retry_after_header(self) -> None:
        """The advertised delay is what the client sleeps."""
        statuses = iter([httpx.Response(429, headers={"Retry-After": "3"}), httpx.Response(200)])

        client, sleep = make_client(lambda request: next(statuses))
        async with client:
            await client.get("https://example.com/a")
        assert sleep.delays == [3.0]

    @pytest.mark.asyncio
    async def test_same_body_on_every_attempt(self) -> None:
        """POST bodies are resent unchanged."""
        bodies = []
        statuses = iter([500, 200])

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(request.content)
            return httpx.Response(next(statuses))

        client, _ = make_client(handler)
        async with client:
            await client.post("https://example.com/graphql", json={"query": "q"})
        assert len(bodies) == 2
        assert bodies[0] == bodies[1]

    @pytest.mark.asyncio
    async def test_concurrent_requests_count_independently(self) -> None:
        """Each logical request has its own attempt counter."""
        counts: dict[str, int] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path
            counts[path] = counts.get(path, 0) + 1
            if path == "/flaky" and counts[path] <= 2:
                return httpx.Response(503)
            if path == "/down":
                return httpx.Response(503)
            return httpx.Response(200)

        client, _ = make_client(handler, max_retries=2)
        async with client:
            results = await asyncio.gather(
                client.get("https://example.com/flaky"),
                client.get("https://example.com/down"),
                return_exceptions=True,
            )
        assert results[0].status_code == 200
        assert isinstance(results[1], httpx.HTTPStatusError)
        assert counts == {"/flaky": 3, "/down": 3}

    @pytest.mark.asyncio
    async def test_logs_each_retry(self, caplog: pytest.LogCaptureFixture) -> None:
        """One log line per retry attempt."""
        statuses = iter([429, 429, 200])

        client, _ = make_client(lambda request: httpx.Response(next(statuses)))
        with caplog.at_level("INFO", logger="anisync.ingestion.request"):
            async with client:
                await client.get("https://example.com/a")
        retries = [r for r in caplog.records if r.getMessage().startswith("Retrying")]
        assert len(retries) == 2
