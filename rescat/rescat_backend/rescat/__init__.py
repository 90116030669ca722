"""
Resource Catalog (rescat)

A small, API-first service that pulls bibliographic and media items from a
Zotero library, classifies them into four resource families, and serves
them as card/detail views with filtering, search and per-family stats.

Pipeline (high-level):
- Fetch     = page through a collection's top-level items (Zotero Web API v3)
- Transform = classify by item type, format creators/year/abstract/citation
- Serve     = dedupe across collections, filter, paginate, cache
- Poll      = compare collection versions and invalidate the cache on change
"""
__all__ = ["zotero"]
__version__ = "0.1.0"
