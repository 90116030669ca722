"""Zotero access: client, item transformation, version tracking and change detection."""
from .client import ZoteroClient, ZoteroConfigError, ZoteroError
from .transform import transform_item, transform_items

__all__ = ["ZoteroClient", "ZoteroConfigError", "ZoteroError", "transform_item", "transform_items"]
