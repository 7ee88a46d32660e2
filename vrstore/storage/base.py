"""
Catalog store interface.

Every backend (memory, sqlite, json) implements CatalogStore so the HTTP
layer and the merge flow never depend on where records live.
"""
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, TypeVar

from vrstore.errors import PersistenceFailure
from vrstore.models.app_record import CatalogAppRecord
from vrstore.utils.logger import LayerLogger

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
DEFAULT_FEATURED_LIMIT = 10

# Seed categories, in display order
DEFAULT_CATEGORIES = [
    {"name": "Games", "description": "VR Games and Entertainment"},
    {"name": "Education", "description": "Learning and Training Applications"},
    {"name": "Productivity", "description": "Work and Utility Applications"},
    {"name": "Social", "description": "Communication and Social VR"},
    {"name": "Health & Fitness", "description": "Exercise and Wellness Apps"},
    {"name": "Entertainment", "description": "Media and Video Applications"},
    {"name": "Tools", "description": "System Utilities and Tools"},
]


@dataclass
class RetryPolicy:
    """How often and how patiently to retry opening a store."""
    attempts: int = 3
    delay: float = 0.5
    backoff: float = 2.0

    def run(self, operation: Callable[[], T], description: str, logger: LayerLogger) -> T:
        """
        Run ``operation``, retrying on any exception.

        Raises:
            PersistenceFailure: when every attempt failed
        """
        attempts = max(1, self.attempts)
        wait = self.delay
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                return operation()
            except Exception as e:
                last_error = e
                logger.log_error(
                    str(e),
                    error_type="store_open_failed",
                    operation=description,
                    attempt=attempt,
                )
                if attempt < attempts and wait > 0:
                    time.sleep(wait)
                    wait *= self.backoff

        raise PersistenceFailure(f"{description} failed after {attempts} attempts: {last_error}")


def normalize_paging(page: Any, page_size: Any) -> tuple:
    """Clamp page numbers to >= 1 and page sizes to 1..MAX_PAGE_SIZE."""
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    try:
        page_size = int(page_size)
    except (TypeError, ValueError):
        page_size = DEFAULT_PAGE_SIZE
    return max(1, page), min(max(1, page_size), MAX_PAGE_SIZE)


def matches_filter(
    record: CatalogAppRecord,
    category: Optional[str] = None,
    search_text: Optional[str] = None,
) -> bool:
    """
    Listing filter shared by the document backends.

    Category matches case-insensitively and "all" disables it; search text
    is a case-insensitive substring of title, description, developer or a tag.
    """
    if not record.active:
        return False

    if category and category.strip().lower() != "all":
        if (record.category or "").lower() != category.strip().lower():
            return False

    if search_text and search_text.strip():
        needle = search_text.strip().lower()
        haystack = [record.title, record.description, record.developer] + list(record.tags)
        if not any(needle in (value or "").lower() for value in haystack):
            return False

    return True


def newest_first(records: List[CatalogAppRecord]) -> List[CatalogAppRecord]:
    """Sort featured apps first, then by creation time, newest first."""
    return sorted(
        records,
        key=lambda r: (r.featured, r.created_at.timestamp() if r.created_at else 0.0, r.id or 0),
        reverse=True,
    )


class CatalogStore(ABC):
    """Persistence interface for catalog app records."""

    backend: str = "abstract"

    @abstractmethod
    def list_apps(
        self,
        category: Optional[str] = None,
        search_text: Optional[str] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Dict[str, Any]:
        """Return ``{"items": [CatalogAppRecord], "total": int}`` for one page."""

    @abstractmethod
    def get_app(self, app_id: int) -> CatalogAppRecord:
        """Return one record; raises AppNotFound."""

    @abstractmethod
    def create_app(self, record: CatalogAppRecord) -> int:
        """Insert a record and return its new id."""

    @abstractmethod
    def update_app(self, app_id: int, record: CatalogAppRecord) -> None:
        """Replace a record; raises AppNotFound."""

    @abstractmethod
    def delete_app(self, app_id: int) -> None:
        """Remove a record; raises AppNotFound."""

    @abstractmethod
    def record_download_event(self, app_id: int, client_info: Optional[Dict[str, Any]] = None) -> None:
        """Count a download; raises AppNotFound."""

    @abstractmethod
    def list_categories(self) -> List[Dict[str, Any]]:
        """Return categories with the number of active apps in each."""

    @abstractmethod
    def stats(self) -> Dict[str, int]:
        """
        Catalog totals over active apps.

        Keys: total_apps, total_downloads (sum of download counters),
        total_categories (distinct categories, case-insensitive) and
        total_size_bytes.
        """

    def list_featured(self, limit: int = DEFAULT_FEATURED_LIMIT) -> List[CatalogAppRecord]:
        """Up to ``limit`` featured active apps; listings put featured apps first."""
        _, limit = normalize_paging(1, limit)
        return [r for r in self.list_apps(page=1, page_size=limit)["items"] if r.featured]

    def close(self) -> None:
        """Release any held resources."""
