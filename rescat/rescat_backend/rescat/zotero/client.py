from __future__ import annotations
from typing import Dict, Any, List, Optional
import json

import requests

from ..config import (
    DEFAULT_USER_AGENT,
    MAX_ITEMS_DEFAULT,
    PAGE_SIZE,
    Settings,
    ZOTERO_API,
    ZOTERO_API_VERSION,
    get_settings,
)
from ..utils.http import http_get
from ..utils.logging import EventLogger, get_logger

VERSION_HEADER = "last-modified-version"


class ZoteroError(RuntimeError):
    """An upstream Zotero request failed (network, auth, rate limit, bad payload)."""


class ZoteroConfigError(ZoteroError):
    """Credentials are missing from the environment."""


# ---------- Helpers ----------

def _default_headers(api_key: str) -> Dict[str, str]:
    """
    Identify the client and pin the API version.
    """
    return {
        "User-Agent": DEFAULT_USER_AGENT,
        "Accept": "application/json",
        "Zotero-API-Key": api_key,
        "Zotero-API-Version": ZOTERO_API_VERSION,
    }


class ZoteroClient:
    """
    Thin Zotero Web API v3 client scoped to one library.

    Every call is attempted once. Transport errors and non-2xx statuses are
    wrapped into ZoteroError with the request context:

        client = ZoteroClient()
        items = client.fetch_items_from_collection("F9DNTXQA", limit=500)
    """
    def __init__(
        self,
        settings: Settings | None = None,
        logger: EventLogger | None = None,
        session: requests.Session | None = None,
    ):
        """
        Initializes the client.

        Args:
            settings (Settings | None): Resolved configuration; read from the environment if omitted.
            logger (EventLogger | None): Event log; built from settings.log_dir if omitted.
            session (requests.Session | None): Shared HTTP session (one per client by default).

        Raises:
            ZoteroConfigError: If ZOTERO_KEY or ZOTERO_LIBRARY_ID is missing.
        """
        self.settings = settings or get_settings()
        self.logger = logger or get_logger(self.settings.log_dir)
        if not self.settings.zotero_key or not self.settings.library_id:
            raise ZoteroConfigError(
                "Missing Zotero credentials. Please set ZOTERO_KEY and ZOTERO_LIBRARY_ID in .env"
            )
        prefix = "users" if self.settings.library_type == "user" else "groups"
        self.base_url = f"{ZOTERO_API}/{prefix}/{self.settings.library_id}"
        self.session = session or requests.Session()

    # ---- transport ----

    def _get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        extra_headers: Optional[Dict[str, str]] = None,
        allow: tuple[int, ...] = (),
    ) -> tuple[int, Any, Dict[str, str]]:
        """
        GET `path` under the library; returns (status, parsed JSON or None, headers).

        Statuses listed in `allow` are returned as-is instead of raising.
        """
        headers = _default_headers(self.settings.zotero_key)
        headers.update(extra_headers or {})
        url = self.base_url + path
        try:
            status, txt, hdrs = http_get(
                url, params=params, headers=headers,
                timeout=self.settings.timeout, session=self.session,
            )
        except requests.RequestException as e:
            self.logger.error("zotero_request_failed", path=path, error=str(e))
            raise ZoteroError(f"GET {path} failed: {e}") from e

        if status in allow:
            return status, None, hdrs
        if status >= 400:
            self.logger.error("zotero_bad_status", path=path, status=status)
            raise ZoteroError(f"GET {path} -> {status}: {txt[:200]}")
        try:
            body = json.loads(txt) if txt else None
        except ValueError as e:
            raise ZoteroError(f"GET {path} returned invalid JSON: {e}") from e
        return status, body, hdrs

    # ---- collections ----

    def fetch_collections(self) -> List[Dict[str, Any]]:
        """
        Lists every collection of the library.

        Returns:
            List[Dict[str, Any]]: [{"key", "name", "parentCollection", "numItems"}, ...]
        """
        out: List[Dict[str, Any]] = []
        start = 0
        while True:
            _, body, _ = self._get("/collections", params={"limit": PAGE_SIZE, "start": start})
            page = body if isinstance(body, list) else []
            for c in page:
                data = c.get("data") or {}
                out.append({
                    "key": c.get("key") or data.get("key"),
                    "name": data.get("name") or c.get("name"),
                    "parentCollection": data.get("parentCollection") or c.get("parentCollection") or None,
                    "numItems": (c.get("meta") or {}).get("numItems", 0),
                })
            if len(page) < PAGE_SIZE:
                break
            start += PAGE_SIZE
        return out

    def collection_names(self, keys: List[str]) -> Dict[str, str]:
        """Maps the given collection keys to their names; unknown keys are left out."""
        wanted = set(keys)
        return {c["key"]: c["name"] for c in self.fetch_collections() if c.get("key") in wanted}

    # ---- items ----

    def fetch_items_from_collection(
        self,
        collection_key: str,
        limit: int = MAX_ITEMS_DEFAULT,
        since: str | None = None,
    ) -> List[Dict[str, Any]]:
        """
        Retrieves the top-level items of a collection, paging internally.

        Pages of PAGE_SIZE are requested until a short page comes back or
        `limit` items have been collected; the result is truncated to `limit`.

        Args:
            collection_key (str): The collection key (e.g. "F9DNTXQA").
            limit (int): Maximum number of items to return.
            since (str | None): Only return items modified after this library version.

        Returns:
            List[Dict[str, Any]]: Raw Zotero items (with the {key, version, data} envelope).

        Raises:
            ZoteroError: If any page request fails.
        """
        items: List[Dict[str, Any]] = []
        start = 0
        params: Dict[str, Any] = {"limit": PAGE_SIZE, "format": "json"}
        if since is not None:
            params["since"] = since

        while len(items) < limit:
            params["start"] = start
            try:
                _, body, _ = self._get(f"/collections/{collection_key}/items/top", params=dict(params))
            except ZoteroError as e:
                raise ZoteroError(f"Failed to fetch items from collection {collection_key}: {e}") from e
            page = body if isinstance(body, list) else []
            items.extend(page)
            if len(page) < PAGE_SIZE:
                break
            start += PAGE_SIZE

        self.logger.info("collection_fetched", collection=collection_key, count=min(len(items), limit))
        return items[:limit]

    def fetch_all_items(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Top-level items of the whole library (single request, capped by the API page size)."""
        _, body, _ = self._get("/items/top", params={"limit": min(limit, PAGE_SIZE), "format": "json"})
        return body if isinstance(body, list) else []

    def fetch_item(self, item_key: str) -> Dict[str, Any]:
        _, body, _ = self._get(f"/items/{item_key}", params={"format": "json"})
        if not isinstance(body, dict):
            raise ZoteroError(f"Item {item_key} not found")
        return body

    def fetch_item_collections(self, item_key: str) -> List[Dict[str, Any]]:
        """
        Collections that contain the item. Returns [] on any upstream error.
        """
        try:
            item = self.fetch_item(item_key)
            keys = (item.get("data") or item).get("collections") or []
            if not keys:
                return []
            return [c for c in self.fetch_collections() if c.get("key") in keys]
        except ZoteroError as e:
            self.logger.warn("item_collections_failed", item=item_key, error=str(e))
            return []

    def search_items(self, query: str, limit: int = 50) -> List[Dict[str, Any]]:
        _, body, _ = self._get("/items/top", params={"q": query, "limit": min(limit, PAGE_SIZE), "format": "json"})
        return body if isinstance(body, list) else []

    # ---- versions ----

    def fetch_collection_version(self, collection_key: str, since: str | None = None) -> str | None:
        """
        Reads the current library version as seen through a collection.

        Requests a single top-level item and returns the Last-Modified-Version
        header. With `since`, the request is conditional: a 304 means nothing
        changed and `since` is returned.

        Returns:
            str | None: The version token, or None when the header is absent.

        Raises:
            ZoteroError: On transport failure or an error status.
        """
        extra = {"If-Modified-Since-Version": str(since)} if since not in (None, "", "0") else None
        status, _, hdrs = self._get(
            f"/collections/{collection_key}/items/top",
            params={"limit": 1, "format": "json"},
            extra_headers=extra,
            allow=(304,),
        )
        if status == 304:
            return str(since)
        version = hdrs.get(VERSION_HEADER)
        return str(version) if version else None
