"""
In-process catalog store.

Used when no database is configured; starts from the sample catalog so a
fresh server has something to show.
"""
import copy
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from vrstore.errors import AppNotFound
from vrstore.models.app_record import CatalogAppRecord, utc_now
from vrstore.storage.base import (
    DEFAULT_CATEGORIES,
    DEFAULT_PAGE_SIZE,
    CatalogStore,
    matches_filter,
    newest_first,
    normalize_paging,
)
from vrstore.utils.logger import LayerLogger

SAMPLE_APPS: List[Dict[str, Any]] = [
    {
        "package_name": "com.ubisim.player",
        "title": "UbiSim",
        "description": (
            "UbiSim is a VR nursing simulation platform that provides immersive clinical "
            "training experiences. Practice essential nursing skills in a safe, virtual "
            "environment with realistic patient scenarios, medical equipment, and clinical "
            "procedures."
        ),
        "short_description": "Immersive VR nursing simulation platform for clinical training and skill development",
        "version": "1.18.0.157",
        "version_code": 118000157,
        "category": "Education",
        "developer": "UbiSim",
        "rating": 4.8,
        "download_count": 1250,
        "file_size": 157286400,
        "download_url": "https://ubisimstreamingprod.blob.core.windows.net/builds/UbiSimPlayer-1.18.0.157.apk",
        "featured": True,
        "tags": "nursing,medical,training,simulation,healthcare,education",
    },
    {
        "package_name": "com.ycccrlab.demo",
        "title": "YCCC VR Demo",
        "description": (
            "A demonstration VR application showcasing the capabilities of the app store "
            "system. Features immersive environments and interactive elements designed for "
            "educational purposes."
        ),
        "short_description": "Educational VR demonstration app for YCCC VR Lab",
        "version": "1.0.0",
        "version_code": 10000,
        "category": "Education",
        "developer": "YCCC VR Lab",
        "rating": 4.8,
        "download_count": 120,
        "file_size": 75497472,
        "download_url": "/apps/ycccdemo.apk",
        "featured": True,
        "tags": "demo,yccc,vr lab,education,showcase",
    },
    {
        "package_name": "com.example.vrgame",
        "title": "Sample VR Game",
        "description": (
            "An exciting virtual reality adventure game that takes you through immersive "
            "worlds and challenging puzzles."
        ),
        "short_description": "An exciting VR adventure game",
        "version": "2.1.0",
        "version_code": 21000,
        "category": "Games",
        "developer": "VR Studios",
        "rating": 4.5,
        "download_count": 2500,
        "file_size": 250000000,
        "download_url": "/apps/vrgame.apk",
        "featured": False,
        "tags": "game,adventure,vr,entertainment",
    },
]


class MemoryCatalogStore(CatalogStore):
    """
    Catalog store holding records in a dict keyed by id.

    Records are copied on the way in and out, so callers can never mutate
    stored state.
    """

    backend = "memory"

    def __init__(self, seed: bool = True):
        self._lock = threading.RLock()
        self._apps: Dict[int, CatalogAppRecord] = {}
        self._downloads: List[Dict[str, Any]] = []
        self._categories: List[Dict[str, Any]] = [dict(c) for c in DEFAULT_CATEGORIES]
        self._next_id = 1
        self.logger = LayerLogger(f"{self.backend}_store")
        if seed:
            self._seed()

    def _seed(self):
        for sample in SAMPLE_APPS:
            self.create_app(CatalogAppRecord.model_validate(sample))

    def _require(self, app_id: int) -> CatalogAppRecord:
        record = self._apps.get(app_id)
        if record is None:
            raise AppNotFound(app_id)
        return record

    def _changed(self):
        """Hook for subclasses that persist after each write."""

    @contextmanager
    def _write(self):
        """Apply a change under the lock; roll it back if persisting it fails."""
        with self._lock:
            apps = dict(self._apps)
            downloads = list(self._downloads)
            next_id = self._next_id
            try:
                yield
                self._changed()
            except Exception:
                self._apps = apps
                self._downloads = downloads
                self._next_id = next_id
                raise

    def list_apps(
        self,
        category: Optional[str] = None,
        search_text: Optional[str] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Dict[str, Any]:
        page, page_size = normalize_paging(page, page_size)
        with self._lock:
            matched = [r for r in self._apps.values() if matches_filter(r, category, search_text)]
        matched = newest_first(matched)
        start = (page - 1) * page_size
        items = [r.model_copy(deep=True) for r in matched[start:start + page_size]]
        return {"items": items, "total": len(matched)}

    def get_app(self, app_id: int) -> CatalogAppRecord:
        with self._lock:
            return self._require(app_id).model_copy(deep=True)

    def create_app(self, record: CatalogAppRecord) -> int:
        with self._write():
            app_id = self._next_id
            self._next_id += 1
            now = utc_now()
            self._apps[app_id] = record.model_copy(
                update={"id": app_id, "created_at": record.created_at or now, "updated_at": now},
                deep=True,
            )
        self.logger.log_action("create_app", "completed", app_id=app_id, title=record.title)
        return app_id

    def update_app(self, app_id: int, record: CatalogAppRecord) -> None:
        with self._write():
            existing = self._require(app_id)
            self._apps[app_id] = record.model_copy(
                update={
                    "id": app_id,
                    "created_at": existing.created_at,
                    "updated_at": utc_now(),
                },
                deep=True,
            )
        self.logger.log_action("update_app", "completed", app_id=app_id)

    def delete_app(self, app_id: int) -> None:
        with self._write():
            self._require(app_id)
            del self._apps[app_id]
        self.logger.log_action("delete_app", "completed", app_id=app_id)

    def record_download_event(self, app_id: int, client_info: Optional[Dict[str, Any]] = None) -> None:
        with self._write():
            existing = self._require(app_id)
            self._apps[app_id] = existing.model_copy(
                update={"download_count": existing.download_count + 1}
            )
            self._downloads.append({
                "app_id": app_id,
                "client_info": copy.deepcopy(client_info or {}),
                "downloaded_at": utc_now().isoformat(),
            })

    def list_categories(self) -> List[Dict[str, Any]]:
        with self._lock:
            counts: Dict[str, int] = {}
            for record in self._apps.values():
                if record.active and record.category:
                    key = record.category.lower()
                    counts[key] = counts.get(key, 0) + 1
            return [
                {**category, "app_count": counts.get(category["name"].lower(), 0)}
                for category in self._categories
            ]

    def stats(self) -> Dict[str, int]:
        with self._lock:
            active = [r for r in self._apps.values() if r.active]
        return {
            "total_apps": len(active),
            "total_downloads": sum(r.download_count or 0 for r in active),
            "total_categories": len({r.category.lower() for r in active if r.category}),
            "total_size_bytes": sum(r.file_size or 0 for r in active),
        }
