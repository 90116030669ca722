"""
Last-seen version per collection.

Two backends share the VersionStore interface:
- JsonFileVersionStore: one JSON object {collection_key: version} re-read and
  rewritten wholesale on every access, under a per-file lock, and replaced
  atomically. Safe across threads of one process; separate processes still
  race (last write wins).
- SqliteVersionStore: one row per collection; compare_and_set is a single
  conditional UPDATE, so concurrent pollers cannot lose each other's updates.

I/O failures never propagate: reads fall back to UNKNOWN_VERSION, writes are
logged and dropped.
"""
from __future__ import annotations
import json, os, sqlite3, tempfile, threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict

from ..models import VersionCheck
from ..utils.logging import EventLogger, get_logger

UNKNOWN_VERSION = "0"


class VersionStore(ABC):
    """Interface: key -> opaque version token."""

    @abstractmethod
    def get(self, key: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, version: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def all(self) -> Dict[str, str]:
        raise NotImplementedError

    def compare_and_set(self, key: str, expected: str, version: str) -> bool:
        """
        Store `version` only if the current value is still `expected`.
        Not atomic here; backends that can do better override it.
        """
        if self.get(key) != expected:
            return False
        self.set(key, version)
        return True


_PATH_LOCKS: Dict[str, threading.Lock] = {}
_PATH_LOCKS_GUARD = threading.Lock()

def _lock_for(path: Path) -> threading.Lock:
    """One lock per resolved file, shared by every store instance in the process."""
    key = str(path.resolve())
    with _PATH_LOCKS_GUARD:
        return _PATH_LOCKS.setdefault(key, threading.Lock())


class JsonFileVersionStore(VersionStore):
    """
    Flat JSON file. Read-modify-write cycles hold a per-file lock and the file
    is replaced atomically, so readers never see a half-written document.
    """
    def __init__(self, path: Path, logger: EventLogger | None = None):
        self.path = Path(path)
        self.logger = logger or get_logger()
        self._lock = _lock_for(self.path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, ValueError) as e:
            self.logger.warn("version_store_read_failed", path=str(self.path), error=str(e))
            return {}
        if not isinstance(data, dict):
            self.logger.warn("version_store_corrupt", path=str(self.path))
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, versions: Dict[str, str]) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile("w", encoding="utf-8", dir=self.path.parent,
                                             prefix=self.path.name + ".", suffix=".tmp",
                                             delete=False) as tmp:
                tmp_name = tmp.name
                json.dump(versions, tmp, indent=2)
            os.replace(tmp_name, self.path)
        except OSError as e:
            self.logger.error("version_store_write_failed", path=str(self.path), error=str(e))
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)

    def get(self, key: str) -> str:
        with self._lock:
            return self._load().get(key) or UNKNOWN_VERSION

    def set(self, key: str, version: str) -> None:
        with self._lock:
            versions = self._load()
            versions[key] = str(version)
            self._save(versions)

    def compare_and_set(self, key: str, expected: str, version: str) -> bool:
        with self._lock:
            versions = self._load()
            if (versions.get(key) or UNKNOWN_VERSION) != expected:
                return False
            versions[key] = str(version)
            self._save(versions)
            return True

    def all(self) -> Dict[str, str]:
        with self._lock:
            return self._load()


class SqliteVersionStore(VersionStore):
    def __init__(self, db_path: Path, logger: EventLogger | None = None):
        self.db_path = Path(db_path)
        self.logger = logger or get_logger()
        self._ready = False

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, timeout=10.0)
        if not self._ready:
            cur = conn.cursor()
            # small, mostly single-writer workload
            cur.execute("PRAGMA journal_mode=WAL;")
            cur.execute("PRAGMA synchronous=NORMAL;")
            cur.execute("""
            CREATE TABLE IF NOT EXISTS collection_versions (
                collection_key TEXT PRIMARY KEY,
                version TEXT NOT NULL,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            );
            """)
            conn.commit()
            self._ready = True
        return conn

    def get(self, key: str) -> str:
        try:
            conn = self._connect()
            try:
                row = conn.execute(
                    "SELECT version FROM collection_versions WHERE collection_key = ?;", (key,)
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            self.logger.warn("version_store_read_failed", path=str(self.db_path), error=str(e))
            return UNKNOWN_VERSION
        return row[0] if row and row[0] else UNKNOWN_VERSION

    def set(self, key: str, version: str) -> None:
        try:
            conn = self._connect()
            try:
                conn.execute("""
                    INSERT INTO collection_versions (collection_key, version, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(collection_key) DO UPDATE
                    SET version = excluded.version, updated_at = CURRENT_TIMESTAMP;
                """, (key, str(version)))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            self.logger.error("version_store_write_failed", path=str(self.db_path), error=str(e))

    def compare_and_set(self, key: str, expected: str, version: str) -> bool:
        try:
            conn = self._connect()
            try:
                if expected == UNKNOWN_VERSION:
                    cur = conn.execute("""
                        INSERT OR IGNORE INTO collection_versions (collection_key, version)
                        VALUES (?, ?);
                    """, (key, str(version)))
                    if cur.rowcount == 0:
                        # a row exists; it only counts as unknown if it still says "0"
                        cur = conn.execute("""
                            UPDATE collection_versions SET version = ?, updated_at = CURRENT_TIMESTAMP
                            WHERE collection_key = ? AND version = ?;
                        """, (str(version), key, UNKNOWN_VERSION))
                else:
                    cur = conn.execute("""
                        UPDATE collection_versions SET version = ?, updated_at = CURRENT_TIMESTAMP
                        WHERE collection_key = ? AND version = ?;
                    """, (str(version), key, expected))
                conn.commit()
                return cur.rowcount == 1
            finally:
                conn.close()
        except sqlite3.Error as e:
            self.logger.error("version_store_write_failed", path=str(self.db_path), error=str(e))
            return False

    def all(self) -> Dict[str, str]:
        try:
            conn = self._connect()
            try:
                rows = conn.execute("SELECT collection_key, version FROM collection_versions;").fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            self.logger.warn("version_store_read_failed", path=str(self.db_path), error=str(e))
            return {}
        return {k: v for k, v in rows}


def open_version_store(path: Path, logger: EventLogger | None = None) -> VersionStore:
    """.sqlite / .sqlite3 / .db -> SqliteVersionStore, anything else -> JsonFileVersionStore."""
    path = Path(path)
    if path.suffix.lower() in (".sqlite", ".sqlite3", ".db"):
        return SqliteVersionStore(path, logger=logger)
    return JsonFileVersionStore(path, logger=logger)


# ---------- Helpers ----------

def get_last_known_version(store: VersionStore, collection_key: str) -> str:
    return store.get(collection_key)

def set_collection_version(store: VersionStore, collection_key: str, version: str,
                           logger: EventLogger | None = None) -> None:
    store.set(collection_key, str(version))
    if logger:
        logger.info("version_stored", collection=collection_key, version=str(version))

def check_if_collection_changed(store: VersionStore, collection_key: str, current_version: str) -> VersionCheck:
    """Compares `current_version` with the stored one. Does not write."""
    last = store.get(collection_key)
    current = str(current_version)
    return VersionCheck(has_changed=last != current, last_version=last, current_version=current)

def log_version_info(logger: EventLogger, collection_key: str, check: VersionCheck) -> None:
    if check.has_changed:
        logger.info("version_changed", collection=collection_key,
                    last_version=check.last_version, current_version=check.current_version)
    else:
        logger.info("version_unchanged", collection=collection_key, version=check.last_version)
