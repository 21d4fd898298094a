"""
Resilient Request Module
========================

Provides an async HTTP client that retries rate-limited (429) and
server-error (5xx) responses, honouring rate-limit headers when the
server sends them and falling back to capped exponential backoff.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

import httpx

from anisync.ingestion.registry import DEFAULT_USER_AGENT, RetryConfig

if TYPE_CHECKING:
    from anisync.ingestion.registry import GlobalConfig


# Checked in this order; the first one present wins
RATE_LIMIT_HEADERS = ("x-ratelimit-reset", "retry-after", "x-retry-after")

# Header values longer than this are unix timestamps, shorter ones are seconds
TIMESTAMP_THRESHOLD = 5

# Upper bound of the random jitter added to backoff delays (seconds)
MAX_JITTER = 0.1


def is_retryable_status(status_code: int) -> bool:
    """Check whether a response status should be retried."""
    return status_code == 429 or status_code >= 500


def parse_rate_limit_delay(
    headers: Mapping[str, str],
    now: float | None = None,
) -> float | None:
    """
    Read a retry delay (seconds) from rate-limit headers.

    A value longer than five characters is taken as a unix timestamp and
    the delay is the time left until it (never negative); a shorter value
    is a plain number of seconds.

    Args:
        headers: Response headers (case-insensitive mapping)
        now: Current unix time, defaults to time.time()

    Returns:
        Delay in seconds, or None when no usable header is present
    """
    for name in RATE_LIMIT_HEADERS:
        raw = headers.get(name)
        if raw:
            break
    else:
        return None

    raw = raw.strip()
    try:
        value = float(raw)
    except ValueError:
        # HTTP-date values and other non-numeric forms fall back to backoff
        return None

    if len(raw) > TIMESTAMP_THRESHOLD:
        current = time.time() if now is None else now
        return max(0.0, value - current)
    return max(0.0, value)


class ResilientClient:
    """
    HTTP client with rate-limit aware retries.

    Features:
    - Retries 429 and 5xx responses up to `max_retries` times per request
    - Honours x-ratelimit-reset / retry-after / x-retry-after headers
    - Capped exponential backoff with jitter otherwise
    - Same `request()` signature for every verb

    Each call to `request()` keeps its own attempt counter, so concurrent
    requests retry independently.
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or RetryConfig()
        self.logger = logger or logging.getLogger(__name__)
        self._sleep = sleep or asyncio.sleep
        self._clock = clock

        base_headers = {"User-Agent": user_agent, "Content-Type": "application/json"}
        if headers:
            base_headers.update(headers)
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=10.0),
            headers=base_headers,
            transport=transport,
            follow_redirects=True,
        )

    @classmethod
    def from_config(cls, global_config: GlobalConfig, **kwargs: Any) -> ResilientClient:
        """Create a client from the registry's global configuration."""
        return cls(
            global_config.retry,
            timeout=global_config.request_timeout,
            user_agent=global_config.user_agent,
            **kwargs,
        )

    def backoff_delay(self, attempt: int) -> float:
        """
        Exponential backoff delay (seconds) for a zero-based attempt.

        base_delay * 2**attempt plus up to 100ms of jitter, never more
        than max_delay.
        """
        exponential = self.config.base_delay * 2 ** min(attempt, 64)
        jitter = random.uniform(0, MAX_JITTER)
        return min(self.config.max_delay, exponential + jitter)

    def compute_delay(self, response: httpx.Response, attempt: int) -> float:
        """Delay before retrying `response`: rate-limit headers first, then backoff."""
        delay = parse_rate_limit_delay(response.headers, now=self._clock())
        if delay is not None:
            return delay
        return self.backoff_delay(attempt)

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any | None = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Send a request, retrying transient failures.

        Args:
            method: HTTP verb
            url: Absolute URL
            json: Optional JSON body
            params: Optional query parameters
            headers: Optional extra headers

        Returns:
            The successful response

        Raises:
            httpx.HTTPStatusError: non-retryable status, or retries exhausted
            httpx.TransportError: connection level failure (not retried)
        """
        attempt = 0
        while True:
            response = await self._client.request(
                method, url, json=json, params=params, headers=headers
            )

            if is_retryable_status(response.status_code) and attempt < self.config.max_retries:
                delay = self.compute_delay(response, attempt)
                self.logger.info(
                    "Retrying %s %s after %.0fms (attempt %d/%d, status %d)",
                    method,
                    url,
                    delay * 1000,
                    attempt + 1,
                    self.config.max_retries,
                    response.status_code,
                )
                await self._sleep(delay)
                attempt += 1
                continue

            response.raise_for_status()
            return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, json: Any | None = None, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, json=json, **kwargs)

    async def put(self, url: str, json: Any | None = None, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, json=json, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()
