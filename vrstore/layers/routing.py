"""
URL Router for storefront scraping.
Picks the one extractor whose URL patterns match an input URL.
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from vrstore.adapters import EXTRACTORS
from vrstore.adapters.store_extractor import StoreExtractor
from vrstore.errors import UnsupportedUrl
from vrstore.utils.logger import LayerLogger

SCHEME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


@dataclass
class RouteMatch:
    """Normalized URL plus the extractor selected for it."""
    url: str
    extractor: StoreExtractor


class UrlRouter:
    """
    Routes URLs to storefront extractors.

    Extractors are tried in registration order and the first match wins.
    Patterns are expected to be disjoint; an overlap is logged so it can be
    fixed, but does not change the first-match result.
    """

    def __init__(self, extractors: Optional[List[StoreExtractor]] = None):
        self.extractors = extractors if extractors is not None else [cls() for cls in EXTRACTORS]
        self.logger = LayerLogger("url_router")

    @staticmethod
    def normalize(url: str) -> str:
        """Trim and add https:// when no scheme is present; otherwise verbatim."""
        url = (url or "").strip()
        if url and not SCHEME_PATTERN.match(url):
            url = "https://" + url
        return url

    def route(self, url: str) -> RouteMatch:
        """
        Select the extractor for a URL.

        Raises:
            UnsupportedUrl: if no extractor pattern matches
        """
        normalized = self.normalize(url)
        matches = [extractor for extractor in self.extractors if extractor.matches(normalized)]

        if not matches:
            self.logger.log_decision(
                decision="unsupported_url",
                reason="no extractor pattern matched",
                url=normalized,
            )
            raise UnsupportedUrl(normalized, self.supported_store_descriptions())

        if len(matches) > 1:
            self.logger.logger.warning(
                "overlapping_url_patterns",
                layer=self.logger.layer_name,
                url=normalized,
                extractors=[extractor.store_id for extractor in matches],
                selected=matches[0].store_id,
            )

        selected = matches[0]
        self.logger.log_decision(
            decision=f"use_{selected.store_id}_extractor",
            reason="url pattern matched",
            url=normalized,
        )
        return RouteMatch(url=normalized, extractor=selected)

    def supported_store_descriptions(self) -> List[str]:
        """One line per storefront with a pattern hint and an example URL."""
        return [extractor.describe() for extractor in self.extractors]

    def supported_stores(self) -> List[Dict[str, Any]]:
        """Structured storefront list for API clients."""
        return [
            {
                "id": extractor.store_id,
                "name": extractor.store_name,
                "patterns": list(extractor.pattern_hints),
                "example": extractor.example_url,
            }
            for extractor in self.extractors
        ]
