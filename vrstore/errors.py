"""
Exception types for the VR app store backend.

Scraping errors are per-URL and recoverable; they are turned into failed
ScrapeOutcome entries before they reach a caller. Persistence errors come
from the catalog store and are reported separately from scraping.
"""
from typing import List, Optional


class VRStoreError(Exception):
    """Base class for all application errors."""


class UnsupportedUrl(VRStoreError):
    """No storefront extractor recognizes the URL."""

    def __init__(self, url: str, supported_stores: List[str]):
        self.url = url
        self.supported_stores = supported_stores
        super().__init__(
            "Unsupported URL format. Please use Meta Quest Store, SideQuest, or Steam VR URLs."
        )


class FetchFailure(VRStoreError):
    """The storefront page could not be fetched (network error, timeout, non-2xx)."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        message = f"Failed to fetch {url}: {reason}"
        if status_code is not None:
            message = f"Failed to fetch {url}: HTTP {status_code} ({reason})"
        super().__init__(message)


class PersistenceFailure(VRStoreError):
    """The catalog store could not complete a read or write."""


class AppNotFound(VRStoreError):
    """No catalog entry exists for the given id."""

    def __init__(self, app_id: int):
        self.app_id = app_id
        super().__init__(f"App {app_id} not found")
