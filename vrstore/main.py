"""
VR App Store Backend - FastAPI Application
Main entry point with REST API endpoints for scraping and the app catalog.
"""
import math
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vrstore.config import Config, config
from vrstore.errors import AppNotFound, PersistenceFailure
from vrstore.layers.batch import BatchOrchestrator
from vrstore.layers.scraping import ScrapingLayer
from vrstore.models.app_record import CatalogAppRecord, ScrapedAppRecord, StoreModel
from vrstore.storage import CatalogStore, create_catalog_store
from vrstore.storage.base import DEFAULT_FEATURED_LIMIT
from vrstore.utils.file_size import format_file_size
from vrstore.utils.logger import get_logger, set_trace_id

logger = get_logger("main")


# Request models
class ScrapeRequest(StoreModel):
    """Request model for scraping: one URL or a batch."""
    url: Optional[Any] = None
    urls: Optional[List[Any]] = None


class MergeRequest(StoreModel):
    """Request model for merging a scraped record into a catalog entry."""
    scraped: ScrapedAppRecord
    confidence: Optional[Dict[str, str]] = None
    user_choices: Optional[Dict[str, str]] = None
    persist: bool = True


def error_body(error: str, error_type: str) -> Dict[str, Any]:
    return {"success": False, "error": error, "errorType": error_type}


def require_admin(request: Request, x_admin_token: Optional[str] = Header(None)):
    """Write routes need X-Admin-Token when ADMIN_TOKEN is configured."""
    cfg: Config = request.app.state.config
    if cfg.ADMIN_TOKEN and x_admin_token != cfg.ADMIN_TOKEN:
        raise HTTPException(status_code=401, detail="Invalid or missing admin token")


def get_store(request: Request) -> CatalogStore:
    return request.app.state.store


def get_scraper(request: Request) -> ScrapingLayer:
    return request.app.state.scraper


def create_app(
    cfg: Config = config,
    store: Optional[CatalogStore] = None,
    scraper: Optional[ScrapingLayer] = None,
    batch: Optional[BatchOrchestrator] = None,
) -> FastAPI:
    """
    Build the application.

    A store passed in is used as-is and left open on shutdown; otherwise one
    is opened from ``cfg`` at startup and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_store = app.state.store is None
        if owns_store:
            app.state.store = create_catalog_store(cfg)
        logger.info("app_started", backend=app.state.store.backend)
        yield
        if owns_store:
            app.state.store.close()
            app.state.store = None

    app = FastAPI(
        title="VR App Store Backend",
        description="Catalog API with storefront scraping and field-level merge",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    scraper = scraper or ScrapingLayer()
    app.state.config = cfg
    app.state.store = store
    app.state.scraper = scraper
    app.state.batch = batch or BatchOrchestrator(scraping_layer=scraper)

    @app.middleware("http")
    async def bind_trace_id(request: Request, call_next):
        trace_id = set_trace_id(request.headers.get("X-Trace-Id"))
        response = await call_next(request)
        response.headers["X-Trace-Id"] = trace_id
        return response

    # Error handlers
    @app.exception_handler(AppNotFound)
    async def app_not_found_handler(request: Request, exc: AppNotFound):
        return JSONResponse(status_code=404, content=error_body(str(exc), "not_found"))

    @app.exception_handler(PersistenceFailure)
    async def persistence_failure_handler(request: Request, exc: PersistenceFailure):
        logger.error("persistence_failure", error=str(exc), path=request.url.path)
        return JSONResponse(status_code=500, content=error_body(str(exc), "persistence_failure"))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={**error_body("Invalid request", "validation_error"), "details": jsonable_encoder(exc.errors())},
        )

    # API Routes
    @app.get("/api/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        store = request.app.state.store
        return {
            "status": "healthy",
            "version": "1.0.0",
            "backend": store.backend if store is not None else None,
        }

    @app.get("/api/scrape/stores")
    async def supported_stores(scraper: ScrapingLayer = Depends(get_scraper)):
        """List the storefronts that can be scraped."""
        return {"success": True, "stores": scraper.router.supported_stores()}

    @app.post("/api/scrape")
    async def scrape(body: ScrapeRequest, request: Request):
        """
        Scrape one storefront URL (``url``) or several (``urls``).

        Per-URL failures come back as 200 responses with ``success: false``.
        """
        if body.urls is not None:
            logger.info("batch_scrape_request", url_count=len(body.urls))
            result = await request.app.state.batch.run(body.urls)
            return result.to_response()

        if body.url is not None:
            logger.info("scrape_request", url=body.url)
            outcome = await request.app.state.scraper.scrape(body.url)
            return outcome.to_response()

        return JSONResponse(
            status_code=400,
            content=error_body("Provide 'url' or 'urls' in the request body", "invalid_request"),
        )

    @app.post("/api/apps/{app_id}/merge", dependencies=[Depends(require_admin)])
    def merge_app(
        app_id: int,
        body: MergeRequest,
        store: CatalogStore = Depends(get_store),
        scraper: ScrapingLayer = Depends(get_scraper),
    ):
        """Merge a scraped record into catalog entry ``app_id``."""
        existing = store.get_app(app_id)
        confidence = body.confidence
        if confidence is None:
            confidence = scraper.classifier.classify(body.scraped)

        merged = scraper.merge_engine.merge(
            existing,
            body.scraped,
            confidence=confidence,
            user_choices=body.user_choices,
        )

        if body.persist:
            store.update_app(app_id, merged)
            merged = store.get_app(app_id)

        return {"success": True, "data": merged.to_response(), "persisted": body.persist}

    @app.get("/api/apps")
    def list_apps(
        category: Optional[str] = Query(None),
        search: Optional[str] = Query(None),
        page: int = Query(1, ge=1),
        page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
        store: CatalogStore = Depends(get_store),
    ):
        """List active apps, newest first."""
        result = store.list_apps(category=category, search_text=search, page=page, page_size=page_size)
        total = result["total"]
        return {
            "success": True,
            "data": [record.to_response() for record in result["items"]],
            "pagination": {
                "page": page,
                "pageSize": page_size,
                "total": total,
                "pages": math.ceil(total / page_size) if total else 0,
            },
        }

    @app.get("/api/apps/{app_id}")
    def get_app(app_id: int, store: CatalogStore = Depends(get_store)):
        return {"success": True, "data": store.get_app(app_id).to_response()}

    @app.post("/api/apps", status_code=201, dependencies=[Depends(require_admin)])
    def create_catalog_app(record: CatalogAppRecord, store: CatalogStore = Depends(get_store)):
        """Add an app to the catalog."""
        if not record.title:
            return JSONResponse(status_code=400, content=error_body("title is required", "validation_error"))
        app_id = store.create_app(record.model_copy(update={"id": None}))
        return {"success": True, "id": app_id, "data": store.get_app(app_id).to_response()}

    @app.put("/api/apps/{app_id}", dependencies=[Depends(require_admin)])
    def update_catalog_app(app_id: int, record: CatalogAppRecord, store: CatalogStore = Depends(get_store)):
        """Update the fields present in the body; others are kept."""
        existing = store.get_app(app_id)
        changes = {
            name: getattr(record, name)
            for name in record.model_fields_set
            if name not in ("id", "created_at", "updated_at")
        }
        store.update_app(app_id, existing.model_copy(update=changes, deep=True))
        return {"success": True, "data": store.get_app(app_id).to_response()}

    @app.delete("/api/apps/{app_id}", dependencies=[Depends(require_admin)])
    def delete_catalog_app(app_id: int, store: CatalogStore = Depends(get_store)):
        store.delete_app(app_id)
        return {"success": True}

    @app.post("/api/apps/{app_id}/download")
    def record_download(app_id: int, request: Request, store: CatalogStore = Depends(get_store)):
        """Count a download and hand back the package URL."""
        client_info = {
            "ip_address": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent"),
        }
        store.record_download_event(app_id, client_info)
        record = store.get_app(app_id)
        return {
            "success": True,
            "downloadUrl": record.download_url,
            "downloadCount": record.download_count,
        }

    @app.get("/api/featured")
    def list_featured(
        limit: int = Query(DEFAULT_FEATURED_LIMIT, ge=1, le=100),
        store: CatalogStore = Depends(get_store),
    ):
        """Featured apps for the storefront front page."""
        return {"success": True, "data": [record.to_response() for record in store.list_featured(limit)]}

    @app.get("/api/stats")
    def catalog_stats(store: CatalogStore = Depends(get_store)):
        """Catalog totals over active apps."""
        totals = store.stats()
        return {
            "success": True,
            "stats": {
                "totalApps": totals["total_apps"],
                "totalDownloads": totals["total_downloads"],
                "totalCategories": totals["total_categories"],
                "totalSizeBytes": totals["total_size_bytes"],
                "totalSizeFormatted": format_file_size(totals["total_size_bytes"]),
            },
        }

    @app.get("/api/categories")
    def list_categories(store: CatalogStore = Depends(get_store)):
        categories = [
            {"name": c["name"], "description": c.get("description"), "appCount": c.get("app_count", 0)}
            for c in store.list_categories()
        ]
        return {"success": True, "data": categories}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level="debug" if config.DEBUG else "info")
