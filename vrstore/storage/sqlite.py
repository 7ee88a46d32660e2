"""SQLite catalog store (apps, screenshots, downloads, categories)."""
import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from vrstore.errors import AppNotFound, PersistenceFailure
from vrstore.models.app_record import CatalogAppRecord, Screenshot, utc_now
from vrstore.storage.base import (
    DEFAULT_CATEGORIES,
    DEFAULT_PAGE_SIZE,
    CatalogStore,
    normalize_paging,
)
from vrstore.utils.logger import LayerLogger

SCHEMA = """
CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT UNIQUE NOT NULL,
    description TEXT,
    icon_url TEXT,
    display_order INTEGER DEFAULT 0,
    active BOOLEAN DEFAULT 1
);

CREATE TABLE IF NOT EXISTS apps (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    package_name TEXT UNIQUE,
    title TEXT,
    description TEXT,
    short_description TEXT,
    version TEXT,
    version_code INTEGER,
    category TEXT,
    developer TEXT,
    rating REAL,
    download_count INTEGER DEFAULT 0,
    file_size INTEGER,
    download_url TEXT,
    icon_url TEXT,
    featured BOOLEAN DEFAULT 0,
    active BOOLEAN DEFAULT 1,
    tags TEXT,
    created_at TEXT,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS screenshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    app_id INTEGER NOT NULL REFERENCES apps(id) ON DELETE CASCADE,
    image_url TEXT NOT NULL,
    caption TEXT,
    display_order INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS downloads (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    app_id INTEGER NOT NULL REFERENCES apps(id) ON DELETE CASCADE,
    ip_address TEXT,
    user_agent TEXT,
    downloaded_at TEXT
);
"""

APP_COLUMNS = [
    "package_name",
    "title",
    "description",
    "short_description",
    "version",
    "version_code",
    "category",
    "developer",
    "rating",
    "download_count",
    "file_size",
    "download_url",
    "icon_url",
    "featured",
    "active",
    "tags",
    "created_at",
    "updated_at",
]


def get_connection(db_path: str) -> sqlite3.Connection:
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def _to_row(record: CatalogAppRecord) -> Dict[str, Any]:
    row = {column: getattr(record, column) for column in APP_COLUMNS}
    row["tags"] = ",".join(record.tags) if record.tags else None
    row["featured"] = int(record.featured)
    row["active"] = int(record.active)
    for column in ("created_at", "updated_at"):
        if row[column] is not None:
            row[column] = row[column].isoformat()
    return row


class SqliteCatalogStore(CatalogStore):
    """
    Relational catalog store.

    One connection per store handle, guarded by a lock so FastAPI's worker
    threads can share it. Every sqlite error surfaces as PersistenceFailure.
    """

    backend = "sqlite"

    def __init__(self, db_path: str, seed_categories: bool = True):
        self.db_path = db_path
        self.logger = LayerLogger("sqlite_store")
        self._lock = threading.RLock()
        self.conn = get_connection(db_path)
        self.conn.executescript(SCHEMA)
        if seed_categories:
            self.conn.executemany(
                "INSERT OR IGNORE INTO categories (name, description, display_order) VALUES (?, ?, ?)",
                [(c["name"], c["description"], i) for i, c in enumerate(DEFAULT_CATEGORIES)],
            )
        self.conn.commit()
        self.logger.log_action("open_store", "completed", path=db_path)

    def _execute(self, operation: str, func):
        with self._lock:
            try:
                result = func(self.conn)
                self.conn.commit()
                return result
            except sqlite3.Error as e:
                self.conn.rollback()
                self.logger.log_error(str(e), error_type="persistence_failure", operation=operation)
                raise PersistenceFailure(f"{operation} failed: {e}") from e

    def _load_screenshots(self, conn: sqlite3.Connection, app_id: int) -> List[Screenshot]:
        rows = conn.execute(
            "SELECT image_url, caption FROM screenshots WHERE app_id = ? ORDER BY display_order, id",
            (app_id,),
        ).fetchall()
        return [Screenshot(url=row["image_url"], caption=row["caption"]) for row in rows]

    def _save_screenshots(self, conn: sqlite3.Connection, app_id: int, screenshots: List[Screenshot]):
        conn.execute("DELETE FROM screenshots WHERE app_id = ?", (app_id,))
        conn.executemany(
            "INSERT INTO screenshots (app_id, image_url, caption, display_order) VALUES (?, ?, ?, ?)",
            [(app_id, s.url, s.caption, i) for i, s in enumerate(screenshots)],
        )

    def _from_row(self, conn: sqlite3.Connection, row: sqlite3.Row) -> CatalogAppRecord:
        data = dict(row)
        data["featured"] = bool(data.get("featured"))
        data["active"] = bool(data.get("active"))
        data["screenshots"] = self._load_screenshots(conn, data["id"])
        return CatalogAppRecord.model_validate(data)

    def list_apps(
        self,
        category: Optional[str] = None,
        search_text: Optional[str] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Dict[str, Any]:
        page, page_size = normalize_paging(page, page_size)
        where = ["active = 1"]
        params: List[Any] = []

        if category and category.strip().lower() != "all":
            where.append("LOWER(category) = LOWER(?)")
            params.append(category.strip())

        if search_text and search_text.strip():
            like = f"%{search_text.strip()}%"
            where.append("(title LIKE ? OR description LIKE ? OR developer LIKE ? OR tags LIKE ?)")
            params.extend([like, like, like, like])

        clause = " AND ".join(where)

        def run(conn: sqlite3.Connection) -> Dict[str, Any]:
            total = conn.execute(f"SELECT COUNT(*) FROM apps WHERE {clause}", params).fetchone()[0]
            rows = conn.execute(
                f"SELECT * FROM apps WHERE {clause} "
                "ORDER BY featured DESC, created_at DESC, id DESC LIMIT ? OFFSET ?",
                params + [page_size, (page - 1) * page_size],
            ).fetchall()
            return {"items": [self._from_row(conn, row) for row in rows], "total": total}

        return self._execute("list_apps", run)

    def get_app(self, app_id: int) -> CatalogAppRecord:
        def run(conn: sqlite3.Connection) -> Optional[CatalogAppRecord]:
            row = conn.execute("SELECT * FROM apps WHERE id = ?", (app_id,)).fetchone()
            return self._from_row(conn, row) if row else None

        record = self._execute("get_app", run)
        if record is None:
            raise AppNotFound(app_id)
        return record

    def create_app(self, record: CatalogAppRecord) -> int:
        now = utc_now()
        row = _to_row(record.model_copy(update={
            "created_at": record.created_at or now,
            "updated_at": now,
        }))
        columns = ", ".join(APP_COLUMNS)
        placeholders = ", ".join("?" for _ in APP_COLUMNS)

        def run(conn: sqlite3.Connection) -> int:
            cursor = conn.execute(
                f"INSERT INTO apps ({columns}) VALUES ({placeholders})",
                [row[column] for column in APP_COLUMNS],
            )
            app_id = cursor.lastrowid
            self._save_screenshots(conn, app_id, record.screenshots)
            return app_id

        app_id = self._execute("create_app", run)
        self.logger.log_action("create_app", "completed", app_id=app_id, title=record.title)
        return app_id

    def update_app(self, app_id: int, record: CatalogAppRecord) -> None:
        row = _to_row(record.model_copy(update={"updated_at": utc_now()}))
        columns = [c for c in APP_COLUMNS if c != "created_at"]
        assignments = ", ".join(f"{column} = ?" for column in columns)

        def run(conn: sqlite3.Connection) -> int:
            cursor = conn.execute(
                f"UPDATE apps SET {assignments} WHERE id = ?",
                [row[column] for column in columns] + [app_id],
            )
            if cursor.rowcount:
                self._save_screenshots(conn, app_id, record.screenshots)
            return cursor.rowcount

        if not self._execute("update_app", run):
            raise AppNotFound(app_id)
        self.logger.log_action("update_app", "completed", app_id=app_id)

    def delete_app(self, app_id: int) -> None:
        def run(conn: sqlite3.Connection) -> int:
            return conn.execute("DELETE FROM apps WHERE id = ?", (app_id,)).rowcount

        if not self._execute("delete_app", run):
            raise AppNotFound(app_id)
        self.logger.log_action("delete_app", "completed", app_id=app_id)

    def record_download_event(self, app_id: int, client_info: Optional[Dict[str, Any]] = None) -> None:
        client_info = client_info or {}

        def run(conn: sqlite3.Connection) -> int:
            updated = conn.execute(
                "UPDATE apps SET download_count = download_count + 1 WHERE id = ?",
                (app_id,),
            ).rowcount
            if updated:
                conn.execute(
                    "INSERT INTO downloads (app_id, ip_address, user_agent, downloaded_at) "
                    "VALUES (?, ?, ?, ?)",
                    (
                        app_id,
                        client_info.get("ip_address"),
                        client_info.get("user_agent"),
                        utc_now().isoformat(),
                    ),
                )
            return updated

        if not self._execute("record_download_event", run):
            raise AppNotFound(app_id)

    def list_categories(self) -> List[Dict[str, Any]]:
        def run(conn: sqlite3.Connection) -> List[Dict[str, Any]]:
            rows = conn.execute(
                """
                SELECT c.name, c.description,
                       (SELECT COUNT(*) FROM apps a
                        WHERE LOWER(a.category) = LOWER(c.name) AND a.active = 1) AS app_count
                FROM categories c
                WHERE c.active = 1
                ORDER BY c.display_order, c.name
                """
            ).fetchall()
            return [dict(row) for row in rows]

        return self._execute("list_categories", run)

    def stats(self) -> Dict[str, int]:
        def run(conn: sqlite3.Connection) -> Dict[str, int]:
            row = conn.execute(
                """
                SELECT COUNT(*) AS total_apps,
                       COALESCE(SUM(download_count), 0) AS total_downloads,
                       COUNT(DISTINCT NULLIF(LOWER(category), '')) AS total_categories,
                       COALESCE(SUM(file_size), 0) AS total_size_bytes
                FROM apps
                WHERE active = 1
                """
            ).fetchone()
            return {key: int(row[key]) for key in row.keys()}

        return self._execute("stats", run)

    def close(self) -> None:
        with self._lock:
            self.conn.close()
