"""Tests for the rate-limited EDGAR HTTP client.

HTTP is served by httpx.MockTransport; no network access.
"""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest

from edgarlens.client import EdgarClient, _RateLimiter
from edgarlens.errors import (
    Forbidden,
    HttpStatusError,
    NotFound,
    ParseFailure,
    RateLimited,
    RequestTimeout,
)

URL = "https://efts.sec.gov/LATEST/search-index"


def _client(settings, responses):
    """Client whose transport replays *responses* in order and records requests."""
    seen: list[httpx.Request] = []
    queue = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        status, body = item
        return httpx.Response(status, text=body)

    return EdgarClient(settings, transport=httpx.MockTransport(handler)), seen


# ---------------------------------------------------------------------------
# fetch
# ---------------------------------------------------------------------------


class TestFetch:
    """Tests for single-request status mapping."""

    def test_returns_body_and_sends_user_agent(self, settings):
        client, seen = _client(settings, [(200, '{"ok": true}')])
        with client:
            assert client.fetch(URL) == '{"ok": true}'
        assert seen[0].headers["User-Agent"] == settings.sec_user_agent
        assert seen[0].headers["Accept"] == "application/json"

    def test_passes_query_params(self, settings):
        client, seen = _client(settings, [(200, "{}")])
        with client:
            client.fetch(URL, params={"q": '"Brex"', "forms": "D"})
        assert seen[0].url.params["q"] == '"Brex"'
        assert seen[0].url.params["forms"] == "D"

    def test_403_is_forbidden(self, settings):
        client, _ = _client(settings, [(403, "")])
        with client, pytest.raises(Forbidden) as exc_info:
            client.fetch(URL)
        assert exc_info.value.code == "FORBIDDEN"

    def test_404_is_not_found(self, settings):
        client, _ = _client(settings, [(404, "")])
        with client, pytest.raises(NotFound):
            client.fetch(URL)

    def test_other_status_is_http_error(self, settings):
        client, _ = _client(settings, [(500, "")])
        with client, pytest.raises(HttpStatusError) as exc_info:
            client.fetch(URL)
        assert exc_info.value.status_code == 500

    def test_follows_redirects(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "https://www.sec.gov/new"})
            return httpx.Response(200, text="moved")

        with EdgarClient(settings, transport=httpx.MockTransport(handler)) as client:
            assert client.fetch("https://www.sec.gov/old") == "moved"

    def test_redirect_loop_is_http_error(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(302, headers={"Location": "https://www.sec.gov/loop"})

        with EdgarClient(settings, transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(HttpStatusError):
                client.fetch("https://www.sec.gov/loop")


# ---------------------------------------------------------------------------
# fetch_with_retry
# ---------------------------------------------------------------------------


class TestFetchWithRetry:
    """Tests for bounded retry on 429 and timeouts."""

    @patch("edgarlens.client.time.sleep")
    def test_429_then_200_waits_backoff_then_returns(self, mock_sleep, settings):
        client, seen = _client(settings, [(429, ""), (200, "second")])
        with client:
            assert client.fetch_with_retry(URL) == "second"
        assert len(seen) == 2
        mock_sleep.assert_called_once_with(settings.retry_backoff)

    @patch("edgarlens.client.time.sleep")
    def test_repeated_429_raises_rate_limited(self, mock_sleep, settings):
        client, seen = _client(settings, [(429, "")])
        with client, pytest.raises(RateLimited):
            client.fetch_with_retry(URL)
        assert len(seen) == settings.max_retries
        assert mock_sleep.call_count == settings.max_retries - 1

    @patch("edgarlens.client.time.sleep")
    def test_timeouts_are_retried_then_surface(self, mock_sleep, settings):
        client, seen = _client(settings, [httpx.ReadTimeout("slow")])
        with client, pytest.raises(RequestTimeout):
            client.fetch_with_retry(URL)
        assert len(seen) == settings.max_retries

    @patch("edgarlens.client.time.sleep")
    def test_forbidden_is_not_retried(self, mock_sleep, settings):
        client, seen = _client(settings, [(403, "")])
        with client, pytest.raises(Forbidden):
            client.fetch_with_retry(URL)
        assert len(seen) == 1
        mock_sleep.assert_not_called()

    def test_zero_retries_is_rejected(self, settings):
        settings.max_retries = 0
        client, seen = _client(settings, [(200, "")])
        with client, pytest.raises(ValueError):
            client.fetch_with_retry(URL)
        assert seen == []


class TestFetchJson:
    def test_decodes_body(self, settings):
        client, _ = _client(settings, [(200, '{"hits": {"hits": []}}')])
        with client:
            assert client.fetch_json(URL) == {"hits": {"hits": []}}

    def test_invalid_json_is_parse_failure(self, settings):
        client, _ = _client(settings, [(200, "<html>maintenance</html>")])
        with client, pytest.raises(ParseFailure) as exc_info:
            client.fetch_json(URL)
        assert exc_info.value.url == URL

    def test_fetch_text_asks_for_xml(self, settings):
        client, seen = _client(settings, [(200, "<edgarSubmission/>")])
        with client:
            client.fetch_text("https://www.sec.gov/Archives/x.xml")
        assert seen[0].headers["Accept"] == "text/xml"


# ---------------------------------------------------------------------------
# _RateLimiter
# ---------------------------------------------------------------------------


class TestRateLimiter:
    @patch("edgarlens.client.time.sleep")
    @patch("edgarlens.client.time.monotonic")
    def test_spaces_consecutive_requests(self, mock_monotonic, mock_sleep):
        mock_monotonic.side_effect = [10.0, 10.0, 10.2, 11.0]
        limiter = _RateLimiter(1.0)
        limiter.wait()
        limiter.wait()
        mock_sleep.assert_called_once()
        assert mock_sleep.call_args[0][0] == pytest.approx(0.8)

    @patch("edgarlens.client.time.sleep")
    def test_zero_interval_never_sleeps(self, mock_sleep):
        limiter = _RateLimiter(0.0)
        limiter.wait()
        limiter.wait()
        mock_sleep.assert_not_called()
