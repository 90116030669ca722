from __future__ import annotations
import re
from typing import Any, Dict, Iterable, List, Mapping

FILTER_CATEGORIES = ("sections", "tags", "types", "languages")

def format_type_name(item_type: str | None) -> str:
    """camelCase item type -> "Title Case" label ("bookSection" -> "Book Section")."""
    if not item_type:
        return "Unknown"
    spaced = re.sub(r"([A-Z])", r" \1", item_type)
    return (spaced[:1].upper() + spaced[1:]).strip()

def format_language_name(language: str | None) -> str:
    if not language or language == "Unknown":
        return "Not specified"
    return language

def _parts(resource: Mapping[str, Any]) -> List[str]:
    mp = resource.get("manifestoPart")
    if isinstance(mp, list):
        return mp
    return [mp] if mp else []

def matches_filters(resource: Mapping[str, Any], filters: Mapping[str, Iterable[str]]) -> bool:
    """
    True when the resource satisfies every active category.

    Within a category any value may match; across categories all must.
    `resource` is a card or detail dict. A missing language counts as "Unknown".
    """
    sections = list(filters.get("sections") or [])
    if sections and not any(s in _parts(resource) for s in sections):
        return False

    tags = list(filters.get("tags") or [])
    if tags and not any(t in (resource.get("tags") or []) for t in tags):
        return False

    types = list(filters.get("types") or [])
    if types and resource.get("type") not in types:
        return False

    languages = list(filters.get("languages") or [])
    if languages and (resource.get("language") or "Unknown") not in languages:
        return False

    return True

def search_resources(resources: List[Dict[str, Any]], query: str | None) -> List[Dict[str, Any]]:
    """Case-insensitive substring match on title, creators and abstract."""
    q = (query or "").strip().lower()
    if not q:
        return resources
    out = []
    for r in resources:
        haystacks = (r.get("title"), r.get("creators"), r.get("abstract"))
        if any(h and q in h.lower() for h in haystacks):
            out.append(r)
    return out

def build_facets(resources: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Values available to the filter sidebar:
    sections (sorted), types and languages with counts (most frequent first).
    """
    sections: set[str] = set()
    types: Dict[str, int] = {}
    languages: Dict[str, int] = {}
    for r in resources:
        sections.update(p for p in _parts(r) if p)
        if r.get("type"):
            types[r["type"]] = types.get(r["type"], 0) + 1
        lang = r.get("language") or "Unknown"
        languages[lang] = languages.get(lang, 0) + 1

    def _ranked(counts: Dict[str, int], label: str) -> List[Dict[str, Any]]:
        ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
        return [{label: k, "count": n} for k, n in ordered]

    return {
        "sections": sorted(sections),
        "types": _ranked(types, "type"),
        "languages": _ranked(languages, "language"),
    }
