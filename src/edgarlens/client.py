"""Rate-limited HTTP access to SEC EDGAR.

SEC's fair-access policy asks for at most 10 requests per second and a
descriptive User-Agent with contact details. Every request made by the
pipelines goes through a single :class:`EdgarClient`, which spaces requests
by ``min_request_interval`` and translates HTTP failures into the
:mod:`edgarlens.errors` taxonomy.
"""

from __future__ import annotations

import json
import time
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from edgarlens.errors import (
    Forbidden,
    HttpStatusError,
    NotFound,
    ParseFailure,
    RateLimited,
    RequestTimeout,
)

if TYPE_CHECKING:
    from edgarlens.config import Settings

logger = structlog.get_logger(__name__)


class _RateLimiter:
    """Minimum-interval limiter shared by every call site of one client."""

    def __init__(self, min_interval: float) -> None:
        self._min_interval = min_interval
        self._last_request_time: float = 0.0

    def wait(self) -> None:
        """Block until the next request is allowed."""
        now = time.monotonic()
        elapsed = now - self._last_request_time
        if elapsed < self._min_interval:
            time.sleep(self._min_interval - elapsed)
        self._last_request_time = time.monotonic()


def _build_client(
    settings: Settings,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Build an httpx client with SEC-required User-Agent header."""
    return httpx.Client(
        headers={
            "User-Agent": settings.sec_user_agent,
            "Accept-Encoding": "gzip, deflate",
        },
        follow_redirects=True,
        max_redirects=settings.max_redirects,
        timeout=settings.request_timeout,
        transport=transport,
    )


class EdgarClient:
    """Sequential EDGAR client with retry-on-429 and fatal 403 handling."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._http = _build_client(settings, transport)
        self._limiter = _RateLimiter(settings.min_request_interval)

    def __enter__(self) -> EdgarClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def fetch(self, url: str, *, accept: str = "application/json", params: dict | None = None) -> str:
        """Issue one GET and return the body text.

        Redirects are followed up to ``max_redirects`` hops; a longer chain
        is reported as :class:`HttpStatusError`.
        """
        self._limiter.wait()
        try:
            resp = self._http.get(url, params=params, headers={"Accept": accept})
        except httpx.TimeoutException as e:
            raise RequestTimeout(url) from e
        except httpx.TooManyRedirects as e:
            raise HttpStatusError(f"Too many redirects: {url}", url=url) from e
        except httpx.TransportError as e:
            raise HttpStatusError(f"Transport error: {e!s}", url=url) from e

        final_url = str(resp.url)
        status = resp.status_code
        if status == 429:
            raise RateLimited(final_url)
        if status == 403:
            raise Forbidden(final_url)
        if status == 404:
            raise NotFound(final_url)
        if status != 200:
            raise HttpStatusError(f"HTTP {status}: {final_url}", url=final_url, status_code=status)
        return resp.text

    def fetch_with_retry(self, url: str, **kwargs: Any) -> str:
        """Fetch with a bounded retry on rate limiting and timeouts.

        Waits ``retry_backoff`` seconds between attempts. When every attempt
        fails the last :class:`RateLimited` or :class:`RequestTimeout` is
        re-raised. Any other error propagates immediately.
        """
        attempts = self._settings.max_retries
        for attempt in range(1, attempts + 1):
            try:
                return self.fetch(url, **kwargs)
            except (RateLimited, RequestTimeout) as e:
                if attempt >= attempts:
                    raise
                logger.info(
                    "edgar_retry_backoff",
                    url=url,
                    error=e.code,
                    attempt=attempt,
                    max_attempts=attempts,
                    backoff=self._settings.retry_backoff,
                )
                time.sleep(self._settings.retry_backoff)
        msg = f"max_retries must be >= 1, got {attempts}"
        raise ValueError(msg)

    def fetch_json(self, url: str, *, params: dict | None = None) -> Any:
        """Fetch with retry and decode a JSON body."""
        body = self.fetch_with_retry(url, accept="application/json", params=params)
        try:
            return json.loads(body)
        except ValueError as e:
            raise ParseFailure(f"Invalid JSON from {url}: {e!s}", url=url) from e

    def fetch_text(self, url: str) -> str:
        """Fetch with retry, asking for XML/text."""
        return self.fetch_with_retry(url, accept="text/xml")
