"""
Catalog storage package.

``create_catalog_store`` is the only way to obtain a store; the caller owns
the returned handle (the FastAPI app keeps it on ``app.state.store``).
"""
from typing import Optional

from vrstore.config import Config, config
from vrstore.errors import PersistenceFailure
from vrstore.storage.base import CatalogStore, RetryPolicy
from vrstore.storage.json_file import JsonFileCatalogStore
from vrstore.storage.memory import MemoryCatalogStore
from vrstore.storage.sqlite import SqliteCatalogStore
from vrstore.utils.logger import LayerLogger

BACKENDS = ("memory", "sqlite", "json")


def create_catalog_store(cfg: Config = config, retry: Optional[RetryPolicy] = None) -> CatalogStore:
    """
    Open the catalog store selected by ``cfg.CATALOG_BACKEND``.

    Raises:
        PersistenceFailure: unknown backend, or the store could not be
            opened within the retry policy
    """
    logger = LayerLogger("catalog_store")
    retry = retry or RetryPolicy(attempts=cfg.STORE_CONNECT_RETRIES)
    backend = (cfg.CATALOG_BACKEND or "memory").strip().lower()

    logger.log_decision(decision=f"backend_{backend}", reason="CATALOG_BACKEND setting")

    if backend == "memory":
        return MemoryCatalogStore()
    if backend == "sqlite":
        return retry.run(lambda: SqliteCatalogStore(cfg.DATABASE_PATH), "open sqlite store", logger)
    if backend == "json":
        return retry.run(lambda: JsonFileCatalogStore(cfg.JSON_STORE_PATH), "open json store", logger)

    raise PersistenceFailure(
        f"Unknown catalog backend '{backend}'. Expected one of: {', '.join(BACKENDS)}"
    )


__all__ = [
    "BACKENDS",
    "CatalogStore",
    "JsonFileCatalogStore",
    "MemoryCatalogStore",
    "RetryPolicy",
    "SqliteCatalogStore",
    "create_catalog_store",
]
