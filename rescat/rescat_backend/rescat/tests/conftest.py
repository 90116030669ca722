from __future__ import annotations
from typing import Any, Dict, List

import pytest

from rescat.cache import resource_cache
from rescat.zotero.client import ZoteroError


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Fresh log dir, version store and credentials per test; empty cache."""
    monkeypatch.setenv("RESCAT_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("RESCAT_VERSION_STORE", str(tmp_path / "versions.json"))
    monkeypatch.setenv("ZOTERO_KEY", "test-key")
    monkeypatch.setenv("ZOTERO_LIBRARY_ID", "12345")
    monkeypatch.setenv("ZOTERO_LIBRARY_TYPE", "group")
    monkeypatch.delenv("RESCAT_CRON_SECRET", raising=False)
    monkeypatch.delenv("RESCAT_COLLECTION_KEYS", raising=False)
    resource_cache.clear()
    yield
    resource_cache.clear()


def raw_item(key: str, item_type: str = "journalArticle", **data: Any) -> Dict[str, Any]:
    """A Zotero item in the {key, version, data} envelope."""
    body = {"key": key, "itemType": item_type, **data}
    return {"key": key, "version": 1, "data": body}


def make_fake_client(
    items: Dict[str, List[Dict[str, Any]]] | None = None,
    names: Dict[str, str] | None = None,
    versions: Dict[str, str | None] | None = None,
    failing: set[str] | None = None,
    item_collections: Dict[str, List[str]] | None = None,
):
    """
    Build a stand-in for ZoteroClient. Keys in `failing` raise ZoteroError on
    every call that touches them; "*names*" makes collection lookups fail.
    """
    items = items or {}
    names = names or {}
    versions = versions or {}
    failing = failing or set()
    item_collections = item_collections or {}
    calls: List[tuple] = []

    class FakeZoteroClient:
        def __init__(self, settings=None, logger=None, session=None):
            self.settings = settings
            self.logger = logger
            self.calls = calls

        def fetch_collections(self):
            if "*names*" in failing:
                raise ZoteroError("collections unavailable")
            return [{"key": k, "name": n, "parentCollection": None, "numItems": 0} for k, n in names.items()]

        def collection_names(self, keys):
            return {c["key"]: c["name"] for c in self.fetch_collections() if c["key"] in keys}

        def fetch_items_from_collection(self, key, limit=10000, since=None):
            calls.append(("items", key, since))
            if key in failing:
                raise ZoteroError(f"Failed to fetch items from collection {key}")
            return list(items.get(key, []))[:limit]

        def fetch_item(self, item_key):
            if item_key in failing:
                raise ZoteroError(f"Item {item_key} not found")
            for batch in items.values():
                for it in batch:
                    if it["key"] == item_key:
                        return it
            raise ZoteroError(f"Item {item_key} not found")

        def fetch_item_collections(self, item_key):
            wanted = item_collections.get(item_key, [])
            return [{"key": k, "name": names.get(k)} for k in wanted if k in names]

        def fetch_collection_version(self, key, since=None):
            calls.append(("version", key, since))
            if key in failing:
                raise ZoteroError(f"GET /collections/{key}/items/top failed: timeout")
            return versions.get(key)

    FakeZoteroClient.calls = calls
    return FakeZoteroClient
