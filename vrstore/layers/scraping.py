"""
Scraping Layer for the VR app store backend.
Route -> fetch -> extract -> classify for a single storefront URL.
"""
from typing import Any, Optional

from vrstore.adapters.fetcher import PageFetcher
from vrstore.errors import FetchFailure, UnsupportedUrl
from vrstore.layers.confidence import ConfidenceClassifier
from vrstore.layers.merge import MergeEngine
from vrstore.layers.routing import RouteMatch, UrlRouter
from vrstore.models.app_record import MergeStrategy, ScrapeErrorType, ScrapeOutcome
from vrstore.utils.logger import LayerLogger


class ScrapingLayer:
    """
    Scraping Layer - one URL in, one ScrapeOutcome out.

    This layer:
    - Never raises for a bad URL, a failed fetch or odd markup
    - Attaches confidence tiers and default merge recommendations
    - Does not touch the catalog; merging is a separate caller step
    """

    def __init__(
        self,
        fetcher: Optional[PageFetcher] = None,
        router: Optional[UrlRouter] = None,
        classifier: Optional[ConfidenceClassifier] = None,
        merge_engine: Optional[MergeEngine] = None,
    ):
        self.fetcher = fetcher or PageFetcher()
        self.router = router or UrlRouter()
        self.classifier = classifier or ConfidenceClassifier()
        self.merge_engine = merge_engine or MergeEngine()
        self.logger = LayerLogger("scraping_layer")

    async def scrape(self, url: Any) -> ScrapeOutcome:
        """
        Scrape a single storefront URL.

        Args:
            url: Store page URL; a missing scheme is read as https

        Returns:
            ScrapeOutcome, successful or carrying a structured error
        """
        if not isinstance(url, str) or not url.strip():
            return ScrapeOutcome.failed(
                url if isinstance(url, str) else None,
                "Invalid URL provided",
                ScrapeErrorType.INVALID_URL,
            )

        self.logger.log_action("scrape", "started", url=url)

        try:
            route = self.router.route(url)
        except UnsupportedUrl as e:
            return ScrapeOutcome.failed(
                e.url,
                str(e),
                ScrapeErrorType.UNSUPPORTED_URL,
                supported_stores=e.supported_stores,
            )

        try:
            html = await self.fetcher.fetch(route.url)
        except FetchFailure as e:
            return ScrapeOutcome.failed(route.url, str(e), ScrapeErrorType.FETCH_FAILURE)
        except Exception as e:
            self.logger.log_error(str(e), error_type="fetch_failure", url=route.url)
            return ScrapeOutcome.failed(
                route.url,
                f"Failed to fetch {route.url}: {e}",
                ScrapeErrorType.FETCH_FAILURE,
            )

        return self.scrape_html(route, html)

    def scrape_html(self, route: RouteMatch, html: str) -> ScrapeOutcome:
        """Extract and classify already-fetched HTML."""
        try:
            record = route.extractor.extract(html, route.url)
            confidence = self.classifier.classify(record)
            strategy = MergeStrategy(
                recommendations=self.merge_engine.recommend(confidence),
                confidence=confidence,
            )
        except Exception as e:
            self.logger.log_error(
                f"Extraction failed: {e}",
                error_type="extraction_error",
                url=route.url,
                store=route.extractor.store_id,
            )
            return ScrapeOutcome.failed(
                route.url,
                f"Failed to scrape URL: {e}",
                ScrapeErrorType.EXTRACTION_ERROR,
            )

        self.logger.log_action(
            "scrape",
            "completed",
            url=route.url,
            store=record.source_store,
            fields=len(confidence),
        )
        return ScrapeOutcome.succeeded(route.url, record, strategy)
