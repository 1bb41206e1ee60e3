"""Error taxonomy for EDGAR access and filing extraction."""

from __future__ import annotations


class EdgarError(RuntimeError):
    """Base exception for anything that goes wrong talking to EDGAR."""

    def __init__(self, message: str, *, url: str | None = None, code: str = "EDGAR_ERROR") -> None:
        super().__init__(message)
        self.url = url
        self.code = code


class RateLimited(EdgarError):
    """HTTP 429. Retryable with a fixed backoff."""

    def __init__(self, url: str) -> None:
        super().__init__(f"HTTP 429 Too Many Requests: {url}", url=url, code="RATE_LIMITED")


class Forbidden(EdgarError):
    """HTTP 403. The caller's User-Agent has most likely been blocked."""

    def __init__(self, url: str) -> None:
        super().__init__(f"HTTP 403 Forbidden: {url}", url=url, code="FORBIDDEN")


class NotFound(EdgarError):
    """HTTP 404."""

    def __init__(self, url: str) -> None:
        super().__init__(f"HTTP 404 Not Found: {url}", url=url, code="NOT_FOUND")


class HttpStatusError(EdgarError):
    """Any other non-success response, including redirect loops."""

    def __init__(self, message: str, *, url: str, status_code: int | None = None) -> None:
        super().__init__(message, url=url, code="HTTP_ERROR")
        self.status_code = status_code


class RequestTimeout(EdgarError):
    """A single request exceeded the configured timeout."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Request timed out: {url}", url=url, code="TIMEOUT")


class ParseFailure(EdgarError):
    """A fetched document could not be parsed."""

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message, url=url, code="PARSE_FAILURE")
