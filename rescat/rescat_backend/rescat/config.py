from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]
load_dotenv(dotenv_path=ROOT_DIR / ".env", override=False)

# API endpoints and User-Agent
ZOTERO_API = "https://api.zotero.org"                     # Web API v3, JSON
"""The base URL for the Zotero Web API."""
ZOTERO_API_VERSION = "3"
"""Value sent in the Zotero-API-Version header."""
DEFAULT_USER_AGENT = "rescat/0.1 (+https://example.org/contact)"
"""The default User-Agent string used for API requests."""

PAGE_SIZE = 100  # Zotero caps `limit` at 100 per request
"""The number of items requested per page when walking a collection."""
MAX_ITEMS_DEFAULT = 10000
"""The default maximum number of items to retrieve from one collection."""
ABSTRACT_PREVIEW_LENGTH = 150
"""Maximum length of the abstract preview shown on cards (before the ellipsis)."""

CACHE_TAG = "resources"
"""Cache tag shared by every resource listing; invalidated by /poll and /revalidate."""
CACHE_TTL_SECONDS = 3600
"""How long a cached resource listing stays fresh."""

DEFAULT_COLLECTION_KEYS = ["F9DNTXQA", "ZD2RV8H9", "L72L5WAP"]
"""Collections polled and listed when RESCAT_COLLECTION_KEYS is not set."""
DEFAULT_VERSION_STORE = ".zotero-versions.json"
"""Where last-seen collection versions are kept when RESCAT_VERSION_STORE is not set."""


def _split_keys(raw: str | None) -> list[str]:
    """Split a comma-separated env value into trimmed, non-empty keys."""
    return [k.strip() for k in (raw or "").split(",") if k.strip()]


@dataclass
class Settings:
    """
    Runtime configuration resolved from the environment.
    """
    zotero_key: str = ""
    """Zotero API key (ZOTERO_KEY)."""
    library_type: str = "group"
    """Either "user" or "group" (ZOTERO_LIBRARY_TYPE)."""
    library_id: str = ""
    """User or group id of the library (ZOTERO_LIBRARY_ID)."""
    collection_keys: list[str] = field(default_factory=lambda: list(DEFAULT_COLLECTION_KEYS))
    """Collections watched by the poller and listed by the front-end."""
    cron_secret: str = ""
    """Bearer token required by GET /poll; empty means the endpoint is open."""
    version_store: Path = Path(DEFAULT_VERSION_STORE)
    """Path of the version store (.json -> flat file, .sqlite/.db -> SQLite)."""
    log_dir: Path = Path("out")
    """Directory holding rescat.log."""
    timeout: float = 15.0
    """HTTP timeout in seconds per upstream request."""


def get_settings() -> Settings:
    """
    Read settings from the environment. Called per request so that tests and
    long-running processes pick up changes without a restart.
    """
    try:
        timeout = float(os.environ.get("RESCAT_TIMEOUT", "15"))
    except ValueError:
        timeout = 15.0
    keys = _split_keys(os.environ.get("RESCAT_COLLECTION_KEYS"))
    return Settings(
        zotero_key=(os.environ.get("ZOTERO_KEY") or "").strip(),
        library_type=(os.environ.get("ZOTERO_LIBRARY_TYPE") or "").strip() or "group",
        library_id=(os.environ.get("ZOTERO_LIBRARY_ID") or "").strip(),
        collection_keys=keys or list(DEFAULT_COLLECTION_KEYS),
        cron_secret=(os.environ.get("RESCAT_CRON_SECRET") or "").strip(),
        version_store=Path(os.environ.get("RESCAT_VERSION_STORE") or DEFAULT_VERSION_STORE),
        log_dir=Path(os.environ.get("RESCAT_LOG_DIR") or "out"),
        timeout=timeout,
    )
