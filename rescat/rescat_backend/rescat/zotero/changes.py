from __future__ import annotations
import concurrent.futures as _fut
from typing import Any, Dict, List

from ..config import MAX_ITEMS_DEFAULT
from ..models import VersionCheck
from ..utils.logging import EventLogger, get_logger
from .client import ZoteroClient
from .versions import (
    UNKNOWN_VERSION,
    VersionStore,
    check_if_collection_changed,
    get_last_known_version,
    log_version_info,
)

UNKNOWN_CURRENT = "unknown"


class ChangeDetector:
    """
    Decides, per collection, whether the upstream library moved since the last poll.

    The normal path compares real version tokens (Last-Modified-Version). Only
    when the version cannot be read does it fail open and report a change, so a
    downstream cache is never left stale.
    """

    def __init__(self, client: ZoteroClient, store: VersionStore,
                 logger: EventLogger | None = None, max_workers: int = 8):
        """
        Args:
            client (ZoteroClient): Upstream API client.
            store (VersionStore): Where last-seen versions live.
            logger (EventLogger | None): Event log; defaults to the client's.
            max_workers (int): Upper bound on concurrent collection checks.
        """
        self.client = client
        self.store = store
        self.logger = logger or getattr(client, "logger", None) or get_logger()
        self.max_workers = max_workers

    def detect_changes(self, collection_key: str) -> VersionCheck:
        """
        Checks one collection and records the new version when it changed.

        Any failure (upstream, store, parsing) fails open: the collection is
        reported as changed with currentVersion "unknown" and nothing is stored.

        Returns:
            VersionCheck: hasChanged / lastVersion / currentVersion (+ error on the fail-open path).
        """
        last = UNKNOWN_VERSION
        try:
            last = get_last_known_version(self.store, collection_key)
            current = self.client.fetch_collection_version(collection_key, since=last)
            if not current:
                self.logger.warn("version_header_missing", collection=collection_key)
                return VersionCheck(True, last, UNKNOWN_CURRENT, error="missing version header")

            check = check_if_collection_changed(self.store, collection_key, current)
            log_version_info(self.logger, collection_key, check)
            if check.has_changed:
                # expected is the version the upstream request was conditioned on
                if not self.store.compare_and_set(collection_key, last, current):
                    # another poller got there first; the change is still reported
                    self.logger.warn("version_store_conflict", collection=collection_key,
                                     expected=last, version=current)
            return check
        except Exception as e:
            self.logger.error("detect_changes_failed", collection=collection_key, error=str(e))
            return VersionCheck(True, last, UNKNOWN_CURRENT, error=str(e))

    def fetch_changed_items(self, collection_key: str, limit: int = MAX_ITEMS_DEFAULT) -> List[Dict[str, Any]]:
        """Items of the collection modified after the stored version."""
        last = get_last_known_version(self.store, collection_key)
        self.logger.info("fetch_changed_items", collection=collection_key, since=last)
        return self.client.fetch_items_from_collection(collection_key, limit=limit, since=last)

    def poll_for_changes(self, collection_keys: List[str]) -> List[Dict[str, Any]]:
        """
        Checks every collection concurrently and returns only the changed ones,
        each as {"key": ..., **VersionCheck.to_dict()}.
        """
        self.logger.info("poll_start", collections=collection_keys)
        if not collection_keys:
            return []

        def _one(key: str) -> Dict[str, Any]:
            return {"key": key, **self.detect_changes(key).to_dict()}

        with _fut.ThreadPoolExecutor(max_workers=min(self.max_workers, len(collection_keys))) as pool:
            results = list(pool.map(_one, collection_keys))

        changed = [r for r in results if r["hasChanged"]]
        self.logger.info("poll_done", checked=len(results), changed=len(changed))
        return changed
