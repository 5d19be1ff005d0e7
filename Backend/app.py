from __future__ import annotations

import hmac
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file before the packages read them
BASE_DIR = Path(__file__).resolve().parent.parent
env_path = BASE_DIR / ".env"
if env_path.exists():
    load_dotenv(env_path)

sys.path.insert(0, str(BASE_DIR))
from catalog import Catalog, normalize_catalog
from retrieval import (
    find_category_path,
    find_matches,
    flatten_category_items,
    search_items,
)
from sync import (
    CatalogStore,
    GitHubReadmeFetcher,
    StoreError,
    SyncError,
    SyncOrchestrator,
    build_store_from_env,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_PORT = 8800

# Configuration
APP_ENV = os.environ.get("APP_ENV", "development").lower()
CRON_SECRET = os.environ.get("CRON_SECRET", "").strip()
DEFAULT_SEARCH_LIMIT = int(os.environ.get("DEFAULT_SEARCH_LIMIT", "20"))
MAX_SEARCH_LIMIT = 100
TRUTHY = ("1", "true")


class SearchPayload(BaseModel):
    query: str = Field(
        ..., min_length=1, max_length=500, description="Whitespace-separated search terms."
    )
    limit: int = Field(DEFAULT_SEARCH_LIMIT, ge=1, le=MAX_SEARCH_LIMIT)

    @field_validator("query")
    @classmethod
    def clean_query(cls, value: str) -> str:
        cleaned = " ".join(value.split())
        if not cleaned:
            raise ValueError("Search query is required")
        return cleaned


app = FastAPI(title="Awesome Catalog", version="2.0.0")

# CORS configuration - use environment variable for allowed origins
cors_origins_str = os.environ.get("CORS_ORIGINS", "*")
if cors_origins_str == "*":
    allowed_origins = ["*"]
else:
    allowed_origins = [origin.strip() for origin in cors_origins_str.split(",") if origin.strip()]
    logger.info(f"CORS allowed origins: {allowed_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Created on first use so a misconfigured store surfaces as a request error
store: Optional[CatalogStore] = None
fetcher = None


def get_store() -> CatalogStore:
    global store
    if store is None:
        store = build_store_from_env()
    return store


def get_fetcher():
    global fetcher
    if fetcher is None:
        fetcher = GitHubReadmeFetcher()
    return fetcher


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"ok": False, "error": message}, status_code=status_code)


def load_catalog() -> Optional[Catalog]:
    """Fetch and normalize the stored catalog (None when nothing is synced)."""
    return normalize_catalog(get_store().get())


def catalog_not_found() -> JSONResponse:
    return error_response("Catalog not found. Run sync first.", 404)


@app.get("/api/health")
def health_check() -> JSONResponse:
    """Store connectivity and catalog readiness.

    Only an unreachable store is unhealthy (503); an empty catalog is 200.
    """
    kv_error = None
    try:
        get_store().get_fingerprint()
    except StoreError as exc:
        kv_error = str(exc)

    catalog_ready = False
    if kv_error is None:
        try:
            catalog_ready = load_catalog() is not None
        except StoreError as exc:
            logger.warning(f"Catalog readiness check failed: {exc}")

    body = {
        "ok": kv_error is None,
        "details": {
            "kv": "connected" if kv_error is None else "unavailable",
            "catalog": "ready" if catalog_ready else "empty",
        },
    }
    if kv_error is not None:
        body["details"]["error"] = kv_error
    return JSONResponse(body, status_code=200 if kv_error is None else 503)


@app.get("/api/catalog")
def get_catalog() -> JSONResponse:
    """Return the entire normalized catalog."""
    try:
        catalog = load_catalog()
    except StoreError as exc:
        logger.error(f"Failed to fetch catalog: {exc}")
        return error_response(f"Failed to fetch catalog: {exc}", 500)

    if catalog is None:
        return catalog_not_found()
    return JSONResponse({"ok": True, "data": catalog.to_dict()})


@app.get("/api/categories")
def list_categories() -> JSONResponse:
    """List top-level categories with their subcategories and item counts."""
    try:
        catalog = load_catalog()
    except StoreError as exc:
        logger.error(f"Failed to fetch categories: {exc}")
        return error_response(f"Failed to fetch categories: {exc}", 500)

    if catalog is None:
        return catalog_not_found()

    categories = [
        {
            "title": category.title,
            "slug": category.slug,
            "count": category.count_items(),
            "subcategories": [
                {"title": child.title, "slug": child.slug, "count": child.count_items()}
                for child in category.children
            ],
        }
        for category in catalog.tree
    ]
    return JSONResponse({"ok": True, "data": categories})


@app.get("/api/categories/{slug}")
def get_category(slug: str) -> JSONResponse:
    """Return one category, its breadcrumb path and all items beneath it."""
    try:
        catalog = load_catalog()
    except StoreError as exc:
        logger.error(f"Failed to fetch category {slug}: {exc}")
        return error_response(f"Failed to fetch category: {exc}", 500)

    if catalog is None:
        return catalog_not_found()

    path = find_category_path(catalog.tree, slug)
    if not path:
        return error_response(f"Category '{slug}' not found.", 404)

    category = path[-1]
    items = flatten_category_items(category)
    return JSONResponse({
        "ok": True,
        "data": {
            "category": category.to_dict(),
            "path": [{"title": node.title, "slug": node.slug} for node in path],
            "total": len(items),
            "items": [item.to_dict() for item in items],
        },
    })


def run_search(query: str, limit: int) -> JSONResponse:
    logger.info(f"Received search: '{query[:100]}' (limit={limit})")
    try:
        catalog = load_catalog()
    except StoreError as exc:
        logger.error(f"Search failed: {exc}")
        return error_response(f"Search failed: {exc}", 500)

    if catalog is None:
        return catalog_not_found()

    results = search_items(catalog, query, limit)
    items: List[Dict] = []
    for item in results:
        data = item.to_dict()
        data["matches"] = [span.to_dict() for span in find_matches(item, query)]
        items.append(data)

    return JSONResponse({
        "ok": True,
        "data": {
            "query": query,
            "limit": limit,
            "total": len(items),
            "items": items,
        },
    })


@app.get("/api/search")
def handle_search_get(
    q: str = Query("", max_length=500),
    limit: int = Query(DEFAULT_SEARCH_LIMIT, ge=1, le=MAX_SEARCH_LIMIT),
) -> JSONResponse:
    query = " ".join(q.split())
    if not query:
        return error_response("Search query is required", 400)
    return run_search(query, limit)


@app.post("/api/search")
def handle_search_post(payload: SearchPayload) -> JSONResponse:
    return run_search(payload.query, payload.limit)


def verify_cron_secret(request: Request) -> Optional[JSONResponse]:
    """Check the sync trigger secret.

    Accepts either "x-cron-secret: <CRON_SECRET>" or
    "Authorization: Bearer <CRON_SECRET>". Only enforced when APP_ENV is
    production.

    Returns:
        Error response if the request must be rejected, otherwise None
    """
    if APP_ENV != "production":
        return None
    if not CRON_SECRET:
        return error_response("Missing CRON_SECRET on server", 500)

    header_secret = request.headers.get("x-cron-secret", "")
    header_auth = request.headers.get("authorization", "")
    if hmac.compare_digest(header_secret.encode(), CRON_SECRET.encode()) or hmac.compare_digest(
        header_auth.encode(), f"Bearer {CRON_SECRET}".encode()
    ):
        return None
    return error_response("Unauthorized", 401)


def is_forced(request: Request) -> bool:
    force_qs = request.query_params.get("force", "").lower()
    force_header = request.headers.get("x-force-sync", "").lower()
    return force_qs in TRUTHY or force_header in TRUTHY


@app.api_route("/api/admin/sync", methods=["GET", "POST"])
def handle_sync(request: Request) -> JSONResponse:
    """Pull the latest awesome list, parse it and store it.

    Supports ?force=1 (or header x-force-sync: 1) to bypass the stored ETag.
    """
    guard = verify_cron_secret(request)
    if guard is not None:
        return guard

    force = is_forced(request)
    logger.info(f"Sync requested (force={force})")
    try:
        orchestrator = SyncOrchestrator(get_fetcher(), get_store())
        result = orchestrator.sync(force=force)
    except (SyncError, StoreError) as exc:
        logger.error(f"Sync failed: {exc}")
        return error_response(str(exc), 500)

    return JSONResponse(result.to_dict())


def run_server(host: str = "0.0.0.0", port: int = DEFAULT_PORT, reload: bool = False) -> None:
    try:
        import uvicorn
    except ModuleNotFoundError as exc:  # pragma: no cover - runtime guard
        raise SystemExit(
            "Missing dependency 'uvicorn'. Install it with 'pip install uvicorn[standard]' and retry."
        ) from exc

    uvicorn.run(
        "app:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    run_server(port=DEFAULT_PORT, reload=False)
