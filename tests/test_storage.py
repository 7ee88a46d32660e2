"""Test the catalog store backends."""

import json

import pytest

from vrstore.config import Config
from vrstore.errors import AppNotFound, PersistenceFailure
from vrstore.models.app_record import CatalogAppRecord, Screenshot
from vrstore.storage import (
    JsonFileCatalogStore,
    MemoryCatalogStore,
    RetryPolicy,
    SqliteCatalogStore,
    create_catalog_store,
)
from vrstore.storage.memory import SAMPLE_APPS


def make_record(title, category="Games", **extra):
    return CatalogAppRecord(
        title=title,
        package_name=f"com.test.{title.lower().replace(' ', '')}",
        category=category,
        description=f"{title} description",
        developer="Test Dev",
        **extra,
    )


@pytest.fixture(params=["memory", "sqlite", "json"])
def store(request, tmp_path):
    """An empty store of each backend."""
    if request.param == "memory":
        store = MemoryCatalogStore(seed=False)
    elif request.param == "sqlite":
        store = SqliteCatalogStore(str(tmp_path / "catalog.db"))
    else:
        store = JsonFileCatalogStore(str(tmp_path / "apps.json"), seed=False)
    yield store
    store.close()


class TestCatalogStoreContract:
    """Test behavior every backend must share."""

    def test_create_and_get(self, store):
        record = make_record(
            "Moon Rider",
            tags=["music", "rhythm"],
            screenshots=[Screenshot(url="https://cdn.example.com/1.jpg", caption="One")],
            file_size=157286400,
        )
        app_id = store.create_app(record)
        loaded = store.get_app(app_id)

        assert loaded.id == app_id
        assert loaded.title == "Moon Rider"
        assert loaded.tags == ["music", "rhythm"]
        assert loaded.screenshots == record.screenshots
        assert loaded.file_size_display == "150 MB"
        assert loaded.created_at is not None

    def test_get_unknown_raises(self, store):
        with pytest.raises(AppNotFound):
            store.get_app(9999)

    def test_update(self, store):
        app_id = store.create_app(make_record("Old"))
        updated = store.get_app(app_id).model_copy(update={"title": "New", "rating": 4.5})
        store.update_app(app_id, updated)

        loaded = store.get_app(app_id)
        assert loaded.title == "New"
        assert loaded.rating == 4.5

    def test_update_unknown_raises(self, store):
        with pytest.raises(AppNotFound):
            store.update_app(9999, make_record("Ghost"))

    def test_delete(self, store):
        app_id = store.create_app(make_record("Doomed"))
        store.delete_app(app_id)
        with pytest.raises(AppNotFound):
            store.get_app(app_id)
        with pytest.raises(AppNotFound):
            store.delete_app(app_id)

    def test_download_event_increments_counter(self, store):
        app_id = store.create_app(make_record("Popular"))
        store.record_download_event(app_id, {"ip_address": "127.0.0.1", "user_agent": "test"})
        store.record_download_event(app_id)
        assert store.get_app(app_id).download_count == 2

    def test_download_event_unknown_raises(self, store):
        with pytest.raises(AppNotFound):
            store.record_download_event(9999)

    def test_list_filters_and_pages(self, store):
        for i in range(5):
            store.create_app(make_record(f"Game {i}"))
        store.create_app(make_record("Nurse Trainer", category="Education", tags=["medical"]))
        store.create_app(make_record("Hidden", active=False))

        everything = store.list_apps()
        assert everything["total"] == 6

        education = store.list_apps(category="education")
        assert [r.title for r in education["items"]] == ["Nurse Trainer"]

        assert store.list_apps(category="all")["total"] == 6
        assert store.list_apps(search_text="MEDICAL")["total"] == 1
        assert store.list_apps(search_text="nurse")["total"] == 1

        page = store.list_apps(category="Games", page=2, page_size=2)
        assert page["total"] == 5
        assert len(page["items"]) == 2

    def test_list_newest_first(self, store):
        first = store.create_app(make_record("First"))
        second = store.create_app(make_record("Second"))
        ids = [r.id for r in store.list_apps()["items"]]
        assert ids.index(second) < ids.index(first)

    def test_categories_with_counts(self, store):
        store.create_app(make_record("A", category="Education"))
        store.create_app(make_record("B", category="education"))
        categories = {c["name"]: c["app_count"] for c in store.list_categories()}
        assert categories["Education"] == 2
        assert categories["Games"] == 0

    def test_returned_records_are_copies(self, store):
        app_id = store.create_app(make_record("Safe", tags=["a"]))
        loaded = store.get_app(app_id)
        loaded.tags.append("mutated")
        assert store.get_app(app_id).tags == ["a"]

    def test_stats_cover_active_apps(self, store):
        store.create_app(make_record("A", category="Education", file_size=1024, download_count=5))
        store.create_app(make_record("B", category="education", file_size=2048, download_count=1))
        store.create_app(make_record("C", category=None))
        store.create_app(make_record("Hidden", active=False, file_size=4096, download_count=9))

        assert store.stats() == {
            "total_apps": 3,
            "total_downloads": 6,
            "total_categories": 1,
            "total_size_bytes": 3072,
        }

    def test_stats_empty_catalog(self, store):
        assert store.stats() == {
            "total_apps": 0,
            "total_downloads": 0,
            "total_categories": 0,
            "total_size_bytes": 0,
        }

    def test_list_featured(self, store):
        store.create_app(make_record("Plain"))
        first = store.create_app(make_record("Star One", featured=True))
        second = store.create_app(make_record("Star Two", featured=True))
        store.create_app(make_record("Hidden Star", featured=True, active=False))

        assert [r.id for r in store.list_featured()] == [second, first]
        assert [r.id for r in store.list_featured(limit=1)] == [second]


class TestMemoryStore:
    """Test the seeded in-memory store."""

    def test_seeded_with_sample_catalog(self):
        store = MemoryCatalogStore()
        titles = {r.title for r in store.list_apps(page_size=50)["items"]}
        assert titles == {app["title"] for app in SAMPLE_APPS}


class TestJsonStore:
    """Test the JSON file store."""

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "data" / "apps.json"
        store = JsonFileCatalogStore(str(path), seed=False)
        app_id = store.create_app(make_record("Persistent"))

        reopened = JsonFileCatalogStore(str(path))
        assert reopened.get_app(app_id).title == "Persistent"
        assert reopened.list_apps()["total"] == 1

        document = json.loads(path.read_text())
        assert document["apps"][0]["title"] == "Persistent"
        assert "file_size_display" not in document["apps"][0]

    def test_no_temp_files_left(self, tmp_path):
        store = JsonFileCatalogStore(str(tmp_path / "apps.json"))
        store.create_app(make_record("Tidy"))
        assert [p.name for p in tmp_path.iterdir()] == ["apps.json"]

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "apps.json"
        path.write_text("{not json")
        with pytest.raises(PersistenceFailure):
            JsonFileCatalogStore(str(path))

    def test_failed_write_leaves_store_unchanged(self, tmp_path):
        path = tmp_path / "apps.json"
        store = JsonFileCatalogStore(str(path), seed=False)
        kept = store.create_app(make_record("Kept"))
        blocker = tmp_path / "file"
        blocker.write_text("")
        store.path = blocker / "apps.json"

        with pytest.raises(PersistenceFailure):
            store.create_app(make_record("Ghost"))
        with pytest.raises(PersistenceFailure):
            store.update_app(kept, make_record("Renamed"))
        with pytest.raises(PersistenceFailure):
            store.record_download_event(kept)
        with pytest.raises(PersistenceFailure):
            store.delete_app(kept)

        assert store.list_apps()["total"] == 1
        assert store.get_app(kept).title == "Kept"
        assert store.get_app(kept).download_count == 0
        assert store._downloads == []

        store.path = path
        assert store.create_app(make_record("Next")) == kept + 1


class TestSqliteStore:
    """Test the relational store."""

    def test_download_rows_recorded(self, tmp_path):
        store = SqliteCatalogStore(str(tmp_path / "catalog.db"))
        app_id = store.create_app(make_record("Tracked"))
        store.record_download_event(app_id, {"ip_address": "10.0.0.1", "user_agent": "Quest"})

        row = store.conn.execute("SELECT ip_address, user_agent FROM downloads WHERE app_id = ?", (app_id,)).fetchone()
        assert tuple(row) == ("10.0.0.1", "Quest")
        store.close()

    def test_duplicate_package_name_is_persistence_failure(self, tmp_path):
        store = SqliteCatalogStore(str(tmp_path / "catalog.db"))
        store.create_app(make_record("Twin"))
        with pytest.raises(PersistenceFailure):
            store.create_app(make_record("Twin"))
        store.close()


class TestCreateCatalogStore:
    """Test the store factory."""

    def test_memory_backend(self):
        cfg = Config()
        cfg.CATALOG_BACKEND = "memory"
        assert isinstance(create_catalog_store(cfg), MemoryCatalogStore)

    def test_sqlite_backend(self, tmp_path):
        cfg = Config()
        cfg.CATALOG_BACKEND = "sqlite"
        cfg.DATABASE_PATH = str(tmp_path / "x.db")
        store = create_catalog_store(cfg)
        assert isinstance(store, SqliteCatalogStore)
        store.close()

    def test_json_backend(self, tmp_path):
        cfg = Config()
        cfg.CATALOG_BACKEND = "json"
        cfg.JSON_STORE_PATH = str(tmp_path / "apps.json")
        assert isinstance(create_catalog_store(cfg), JsonFileCatalogStore)

    def test_unknown_backend(self):
        cfg = Config()
        cfg.CATALOG_BACKEND = "github"
        with pytest.raises(PersistenceFailure):
            create_catalog_store(cfg)

    def test_open_failure_retried_then_raised(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        cfg = Config()
        cfg.CATALOG_BACKEND = "sqlite"
        cfg.DATABASE_PATH = str(blocker / "nested" / "x.db")

        with pytest.raises(PersistenceFailure) as exc_info:
            create_catalog_store(cfg, retry=RetryPolicy(attempts=2, delay=0))
        assert "2 attempts" in str(exc_info.value)
