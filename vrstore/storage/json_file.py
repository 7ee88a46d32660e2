"""
Single-file JSON catalog store.

The whole catalog is one document, rewritten atomically after each change
(temp file + rename) so a crash never leaves a half-written file.
"""
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

from vrstore.errors import PersistenceFailure
from vrstore.models.app_record import CatalogAppRecord
from vrstore.storage.memory import MemoryCatalogStore


class JsonFileCatalogStore(MemoryCatalogStore):
    """Memory store backed by a JSON document on disk."""

    backend = "json"

    def __init__(self, path: str, seed: bool = True):
        self.path = Path(path)
        self._loading = True
        super().__init__(seed=False)
        if self.path.exists():
            self._load()
        elif seed:
            self._seed()
        self._loading = False
        self._changed()

    def _load(self):
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceFailure(f"Could not read catalog file {self.path}: {e}") from e

        apps = document.get("apps", []) if isinstance(document, dict) else document
        for item in apps:
            record = CatalogAppRecord.model_validate(item)
            if record.id is None:
                continue
            self._apps[record.id] = record
        self._downloads = list(document.get("downloads", [])) if isinstance(document, dict) else []
        self._next_id = max(self._apps, default=0) + 1
        self.logger.log_action("load_catalog", "completed", path=str(self.path), apps=len(self._apps))

    def _document(self) -> Dict[str, Any]:
        return {
            "apps": [
                record.model_dump(mode="json", exclude={"file_size_display"})
                for record in sorted(self._apps.values(), key=lambda r: r.id or 0)
            ],
            "downloads": self._downloads,
        }

    def _changed(self):
        if self._loading:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(self._document(), f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            self.logger.log_error(str(e), error_type="persistence_failure", path=str(self.path))
            raise PersistenceFailure(f"Could not write catalog file {self.path}: {e}") from e
