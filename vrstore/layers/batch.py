"""
Batch Orchestrator for storefront scraping.
Scrapes a list of URLs with per-URL failure isolation.
"""
import asyncio
from typing import Any, Iterable, List, Optional

from vrstore.config import config
from vrstore.layers.scraping import ScrapingLayer
from vrstore.models.app_record import BatchResult, ScrapeErrorType, ScrapeOutcome
from vrstore.utils.logger import LayerLogger


class BatchOrchestrator:
    """
    Drives the scraping layer over many URLs.

    - Results are returned in input order, one per input URL
    - A failing URL becomes a failed outcome; the batch always continues
    - At most ``concurrency`` fetches run at once, each slot pausing
      ``request_delay`` seconds after its fetch to stay polite to storefronts
    - Setting ``cancel_event`` stops new URLs from starting; those URLs are
      reported as cancelled
    """

    def __init__(
        self,
        scraping_layer: Optional[ScrapingLayer] = None,
        concurrency: Optional[int] = None,
        request_delay: Optional[float] = None,
    ):
        self.scraping_layer = scraping_layer or ScrapingLayer()
        self.concurrency = max(1, concurrency if concurrency is not None else config.BATCH_CONCURRENCY)
        self.request_delay = max(
            0.0, request_delay if request_delay is not None else config.BATCH_REQUEST_DELAY
        )
        self.logger = LayerLogger("batch_orchestrator")

    async def run(
        self,
        urls: Iterable[Any],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> BatchResult:
        """
        Scrape every URL and tally the outcomes.

        Args:
            urls: Store page URLs, in the order results should come back
            cancel_event: Optional event; once set, remaining URLs are skipped

        Returns:
            BatchResult with len(results) == len(urls)
        """
        url_list = list(urls or [])
        self.logger.log_action(
            "batch_scrape",
            "started",
            url_count=len(url_list),
            concurrency=self.concurrency,
        )

        semaphore = asyncio.Semaphore(self.concurrency)

        async def process(index: int, url: Any) -> ScrapeOutcome:
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    return ScrapeOutcome.failed(
                        url if isinstance(url, str) else None,
                        "Batch cancelled before this URL was processed",
                        ScrapeErrorType.CANCELLED,
                    )

                try:
                    outcome = await self.scraping_layer.scrape(url)
                except Exception as e:
                    self.logger.log_error(str(e), error_type="unexpected", url=url, index=index)
                    outcome = ScrapeOutcome.failed(
                        url if isinstance(url, str) else None,
                        f"Failed to scrape URL: {e}",
                        ScrapeErrorType.EXTRACTION_ERROR,
                    )

                if not outcome.success:
                    self.logger.log_decision(
                        decision="continue_batch",
                        reason=outcome.error or "scrape failed",
                        url=outcome.url,
                        index=index,
                    )

                if self.request_delay and outcome.error_type not in (
                    ScrapeErrorType.INVALID_URL,
                    ScrapeErrorType.UNSUPPORTED_URL,
                ):
                    await asyncio.sleep(self.request_delay)
                return outcome

        outcomes: List[ScrapeOutcome] = list(
            await asyncio.gather(*(process(i, url) for i, url in enumerate(url_list)))
        )
        result = BatchResult.from_outcomes(outcomes)

        self.logger.log_action(
            "batch_scrape",
            "completed",
            success_count=result.success_count,
            error_count=result.error_count,
        )
        return result
