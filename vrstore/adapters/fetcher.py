"""
Page fetcher for storefront scraping.
Fetches raw HTML with a bounded timeout and a small retry budget; every
failure mode comes out as a single FetchFailure.
"""
import asyncio
import random
from typing import Optional

import httpx

from vrstore.config import config
from vrstore.errors import FetchFailure
from vrstore.utils.logger import LayerLogger


class PageFetcher:
    """
    Async HTML fetcher.

    Retries only on throttling/gateway statuses and connection errors, with
    exponential backoff. Timeouts are bounded per attempt so a slow
    storefront can never block a batch indefinitely.
    """

    RETRY_STATUS_CODES = (429, 502, 503, 504)

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_base: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout if timeout is not None else config.REQUEST_TIMEOUT
        self.max_retries = max(0, max_retries if max_retries is not None else config.FETCH_MAX_RETRIES)
        self.backoff_base = backoff_base
        self.transport = transport
        self.logger = LayerLogger("page_fetcher")

    async def fetch(self, url: str) -> str:
        """
        Fetch a page and return its HTML.

        Raises:
            FetchFailure: on timeout, connection error or non-2xx status
        """
        self.logger.log_action("fetch_html", "started", url=url)
        attempts = self.max_retries + 1
        failure: Optional[FetchFailure] = None

        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self.transport,
        ) as client:
            for attempt in range(1, attempts + 1):
                try:
                    response = await client.get(url, headers=self._get_headers())
                except httpx.TimeoutException:
                    failure = FetchFailure(url, f"timed out after {self.timeout}s")
                    self.logger.log_fetch(url, None, "timeout", attempt=attempt)
                except httpx.InvalidURL as e:
                    self.logger.log_fetch(url, None, "invalid_url", attempt=attempt)
                    raise FetchFailure(url, f"invalid URL: {e}") from e
                except httpx.HTTPError as e:
                    failure = FetchFailure(url, str(e) or type(e).__name__)
                    self.logger.log_fetch(url, None, "network_error", attempt=attempt, error=str(e))
                else:
                    if response.is_success:
                        self.logger.log_fetch(
                            url,
                            response.status_code,
                            "ok",
                            attempt=attempt,
                            content_length=len(response.text),
                        )
                        return response.text

                    failure = FetchFailure(url, response.reason_phrase or "error", response.status_code)
                    self.logger.log_fetch(url, response.status_code, "http_error", attempt=attempt)
                    if response.status_code not in self.RETRY_STATUS_CODES:
                        break

                if attempt < attempts:
                    delay = self.backoff_base * (2 ** (attempt - 1)) * (1 + random.random() * 0.25)
                    self.logger.log_decision(
                        decision="retry_fetch",
                        reason=str(failure),
                        url=url,
                        attempt=attempt,
                        delay=round(delay, 2),
                    )
                    await asyncio.sleep(delay)

        self.logger.log_error(str(failure), error_type="fetch_failure", url=url)
        raise failure

    def _get_headers(self) -> dict:
        """Get request headers mimicking a browser."""
        return {
            "User-Agent": config.USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        }
