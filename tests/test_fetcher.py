"""Test the async page fetcher with a mock transport."""

import httpx
import pytest

from vrstore.adapters.fetcher import PageFetcher
from vrstore.errors import FetchFailure

URL = "https://sidequestvr.com/app/1"


def sequence_transport(responses, calls):
    """Replay ``responses`` (status, text) in order; an Exception item is raised instead."""
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        item = responses[min(len(calls), len(responses)) - 1]
        if isinstance(item, Exception):
            raise item
        status, text = item
        return httpx.Response(status, text=text)
    return httpx.MockTransport(handler)


class TestFetchSuccess:
    """Test successful fetches."""

    async def test_returns_html(self):
        calls = []
        fetcher = PageFetcher(transport=sequence_transport([(200, "<h1>ok</h1>")], calls))
        assert await fetcher.fetch(URL) == "<h1>ok</h1>"
        assert len(calls) == 1

    async def test_sends_browser_headers(self):
        calls = []
        fetcher = PageFetcher(transport=sequence_transport([(200, "")], calls))
        await fetcher.fetch(URL)
        assert "Mozilla" in calls[0].headers["User-Agent"]


class TestFetchFailures:
    """Test that every failure mode becomes a FetchFailure."""

    async def test_not_found_is_not_retried(self):
        calls = []
        fetcher = PageFetcher(
            max_retries=2,
            backoff_base=0,
            transport=sequence_transport([(404, "")], calls),
        )
        with pytest.raises(FetchFailure) as exc_info:
            await fetcher.fetch(URL)

        assert exc_info.value.status_code == 404
        assert exc_info.value.url == URL
        assert len(calls) == 1

    async def test_service_unavailable_retried_then_succeeds(self):
        calls = []
        fetcher = PageFetcher(
            max_retries=2,
            backoff_base=0,
            transport=sequence_transport(
                [(503, ""), (200, "<p>back</p>")], calls
            ),
        )
        assert await fetcher.fetch(URL) == "<p>back</p>"
        assert len(calls) == 2

    async def test_retry_budget_exhausted(self):
        calls = []
        fetcher = PageFetcher(
            max_retries=2,
            backoff_base=0,
            transport=sequence_transport([(429, "")], calls),
        )
        with pytest.raises(FetchFailure) as exc_info:
            await fetcher.fetch(URL)
        assert exc_info.value.status_code == 429
        assert len(calls) == 3

    async def test_timeout(self):
        calls = []
        fetcher = PageFetcher(
            max_retries=1,
            backoff_base=0,
            transport=sequence_transport([httpx.ReadTimeout("slow")], calls),
        )
        with pytest.raises(FetchFailure) as exc_info:
            await fetcher.fetch(URL)
        assert "timed out" in str(exc_info.value)
        assert exc_info.value.status_code is None
        assert len(calls) == 2

    async def test_connection_error(self):
        calls = []
        fetcher = PageFetcher(
            max_retries=0,
            transport=sequence_transport([httpx.ConnectError("dns failure")], calls),
        )
        with pytest.raises(FetchFailure) as exc_info:
            await fetcher.fetch(URL)
        assert "dns failure" in str(exc_info.value)
