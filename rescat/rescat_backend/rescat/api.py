from __future__ import annotations
import hmac
import concurrent.futures as _fut
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from . import __version__
from .cache import resource_cache
from .config import CACHE_TAG, CACHE_TTL_SECONDS, MAX_ITEMS_DEFAULT, Settings, get_settings
from .filters import build_facets, matches_filters, search_resources
from .models import Resource
from .taxonomy import FAMILIES
from .utils.logging import EventLogger, get_logger
from .zotero.changes import ChangeDetector
from .zotero.client import ZoteroClient, ZoteroConfigError, ZoteroError
from .zotero.transform import (
    deduplicate_resources,
    get_resource_stats,
    group_by_family,
    prepare_for_card,
    prepare_for_detail,
    transform_item,
    transform_items,
)
from .zotero.versions import open_version_store

FORMATS = ("card", "detail")
DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100

app = FastAPI(title="rescat API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------- helpers ----------

def _iso_utc(dt: datetime) -> str:
    """Return an ISO8601 with Z."""
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")

def _now() -> str:
    return _iso_utc(datetime.now(timezone.utc))

def _split(raw: Optional[str]) -> List[str]:
    return [p.strip() for p in (raw or "").split(",") if p.strip()]

def _values(raw: Optional[List[str]]) -> List[str]:
    """Repeated query parameter -> trimmed, non-empty values (never split)."""
    return [v.strip() for v in (raw or []) if v and v.strip()]

def _bad_request(message: str) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=400)

def _verify_token(authorization: Optional[str], settings: Settings, logger: EventLogger) -> bool:
    """Bearer check against RESCAT_CRON_SECRET; open when no secret is configured."""
    expected = settings.cron_secret
    if not expected:
        logger.warn("cron_secret_unset", detail="poll endpoint is unprotected")
        return True
    token = (authorization or "").replace("Bearer ", "", 1).strip()
    return hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8"))

def _load_resources(keys: List[str], settings: Settings, logger: EventLogger) -> tuple[List[Resource], Dict[str, str]]:
    """
    Fetch, transform and dedupe the given collections (cached under CACHE_TAG).

    Collections are fetched concurrently; any fetch failure propagates as ZoteroError.
    Collection names are best-effort.
    """
    cache_key = "resources:" + ",".join(keys)
    cached = resource_cache.get(cache_key)
    if cached is not None:
        logger.info("resources_cache_hit", collections=keys)
        return cached

    client = ZoteroClient(settings=settings, logger=logger)
    try:
        names = client.collection_names(keys)
    except ZoteroError as e:
        logger.warn("collection_names_failed", error=str(e))
        names = {}

    def _one(key: str) -> List[Resource]:
        raw = client.fetch_items_from_collection(key, limit=MAX_ITEMS_DEFAULT)
        return transform_items(raw, collection_name=names.get(key, ""), collection_key=key)

    with _fut.ThreadPoolExecutor(max_workers=min(8, max(1, len(keys)))) as pool:
        batches = list(pool.map(_one, keys))

    resources = deduplicate_resources(r for batch in batches for r in batch)
    result = (resources, names)
    resource_cache.set(cache_key, result, ttl=CACHE_TTL_SECONDS, tags=[CACHE_TAG])
    logger.info("resources_loaded", collections=keys, count=len(resources))
    return result

class PollCollection(BaseModel):
    """Model for one changed collection in a poll result."""
    key: str
    name: str = "Unknown"
    hasChanged: bool
    lastVersion: str
    currentVersion: str

class PollResult(BaseModel):
    """Model for the poll response body."""
    success: bool = True
    checked: int
    changed: int
    timestamp: str
    collections: List[PollCollection] = Field(default_factory=list)

class RevalidateResult(BaseModel):
    """Model for the revalidate response body."""
    success: bool = True
    message: str
    revalidatedAt: str
    invalidated: int = 0

@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError):
    """Malformed query parameters are a 400, not FastAPI's default 422."""
    msgs = [f"{'.'.join(str(p) for p in e.get('loc', ())[1:])}: {e.get('msg')}" for e in exc.errors()]
    return _bad_request("Invalid parameters: " + "; ".join(msgs))

# ---------- routes ----------

@app.get("/", include_in_schema=False)
def root():
    """Root endpoint."""
    return {"service": "rescat-api", "docs": "/docs", "health": "/health"}

@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "time": _now()}

# Poll collections for changes (called by an external scheduler)
@app.get("/poll", response_model=PollResult)
def poll(authorization: Optional[str] = Header(default=None)):
    """Compares collection versions and invalidates the resource cache on change."""
    settings = get_settings()
    logger = get_logger(settings.log_dir)

    if not _verify_token(authorization, settings, logger):
        logger.warn("poll_unauthorized")
        return JSONResponse({"success": False, "error": "Unauthorized"}, status_code=401)

    keys = settings.collection_keys
    try:
        client = ZoteroClient(settings=settings, logger=logger)
        try:
            names = client.collection_names(keys)
        except ZoteroError as e:
            logger.warn("collection_names_failed", error=str(e))
            names = {}

        store = open_version_store(settings.version_store, logger=logger)
        detector = ChangeDetector(client, store, logger=logger)
        changed = detector.poll_for_changes(keys)

        if changed:
            dropped = resource_cache.invalidate_tag(CACHE_TAG)
            logger.info("cache_invalidated", tag=CACHE_TAG, entries=dropped)

        return {
            "success": True,
            "checked": len(keys),
            "changed": len(changed),
            "timestamp": _now(),
            "collections": [
                {
                    "key": c["key"],
                    "name": names.get(c["key"], "Unknown"),
                    "hasChanged": c["hasChanged"],
                    "lastVersion": c["lastVersion"],
                    "currentVersion": c["currentVersion"],
                }
                for c in changed
            ],
        }
    except Exception as e:
        logger.error("poll_failed", error=str(e))
        return JSONResponse({
            "success": False,
            "error": "Failed to poll for changes",
            "message": str(e),
            "timestamp": _now(),
        }, status_code=500)

@app.head("/poll")
def poll_head():
    """Health probe for monitors."""
    return Response(status_code=200)

# List resources across collections
@app.get("/resources")
def list_resources(
    collection: Optional[str] = Query(None, description="Collection key(s), comma-separated"),
    family: Optional[str] = Query(None),
    page: int = Query(1),
    per_page: int = Query(DEFAULT_PER_PAGE, alias="perPage"),
    format: str = Query("card"),
    q: Optional[str] = Query(None, description="Search in title, creators and abstract"),
    sections: Optional[List[str]] = Query(None, description="Repeatable; values may contain commas"),
    tags: Optional[List[str]] = Query(None),
    types: Optional[List[str]] = Query(None),
    languages: Optional[List[str]] = Query(None),
):
    """Paginated, deduplicated, filtered resource list with stats."""
    keys = _split(collection)
    if not keys:
        return _bad_request("Missing required parameter: collection")
    if family and family not in FAMILIES:
        return _bad_request("Invalid family. Must be: bibliographic, multimedia, technical, or webpage")
    if format not in FORMATS:
        return _bad_request("Invalid format. Must be: card or detail")

    page = max(1, page)
    per_page = min(MAX_PER_PAGE, max(1, per_page))

    settings = get_settings()
    logger = get_logger(settings.log_dir)
    try:
        resources, names = _load_resources(keys, settings, logger)
    except Exception as e:
        logger.error("resources_failed", collections=keys, error=str(e))
        return JSONResponse({
            "success": False,
            "error": "Failed to fetch resources",
            "message": str(e),
        }, status_code=500)

    facets = build_facets(prepare_for_card(r) for r in resources)

    if family:
        resources = [r for r in resources if r.family == family]

    filters = {"sections": _values(sections), "tags": _values(tags),
               "types": _values(types), "languages": _values(languages)}
    if any(filters.values()) or (q or "").strip():
        details = [prepare_for_detail(r) for r in resources]
        details = search_resources([d for d in details if matches_filters(d, filters)], q)
        keep = {d["id"] for d in details}
        resources = [r for r in resources if r.id in keep]

    total = len(resources)
    total_pages = max(1, -(-total // per_page))
    start = (page - 1) * per_page
    paged = resources[start:start + per_page]
    view = prepare_for_card if format == "card" else prepare_for_detail
    grouped = group_by_family(resources)

    return {
        "success": True,
        "data": [view(r) for r in paged],
        "meta": {
            "total": total,
            "page": page,
            "perPage": per_page,
            "totalPages": total_pages,
            "collections": [{"key": k, "name": names.get(k, "")} for k in keys],
            "familyFilter": family or None,
            "format": format,
            "stats": get_resource_stats(resources),
            "countByFamily": {f: len(grouped[f]) for f in FAMILIES},
            "facets": facets,
        },
    }

# Single resource (detail view)
@app.get("/resources/{item_id}")
def get_resource(item_id: str):
    """Detail view of one item, tagged with every collection it belongs to."""
    settings = get_settings()
    logger = get_logger(settings.log_dir)
    try:
        client = ZoteroClient(settings=settings, logger=logger)
        raw = client.fetch_item(item_id)
        names = [c["name"] for c in client.fetch_item_collections(item_id) if c.get("name")]
    except ZoteroConfigError as e:
        logger.error("resource_failed", item=item_id, error=str(e))
        return JSONResponse({"success": False, "error": "Failed to fetch resource", "message": str(e)},
                            status_code=500)
    except ZoteroError as e:
        logger.warn("resource_not_found", item=item_id, error=str(e))
        return JSONResponse({"success": False, "error": "Resource not found"}, status_code=404)

    resource = transform_item(raw, collection_name=names or None)
    return {"success": True, "data": prepare_for_detail(resource)}

# Force a cache refresh
@app.post("/revalidate", response_model=RevalidateResult)
def revalidate():
    """Invalidates every cached resource listing."""
    logger = get_logger()
    try:
        dropped = resource_cache.invalidate_tag(CACHE_TAG)
    except Exception as e:
        logger.error("revalidate_failed", error=str(e))
        return JSONResponse({
            "success": False,
            "error": "Failed to revalidate cache",
            "message": str(e),
        }, status_code=500)
    logger.info("cache_invalidated", tag=CACHE_TAG, entries=dropped)
    return {
        "success": True,
        "message": "Cache revalidated successfully",
        "revalidatedAt": _now(),
        "invalidated": dropped,
    }
