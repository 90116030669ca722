from __future__ import annotations
from dataclasses import replace
from typing import Any, Dict, Iterable, List

from ..config import ABSTRACT_PREVIEW_LENGTH
from ..models import (
    BibliographicDetails,
    FamilyDetails,
    MultimediaDetails,
    RawItem,
    Resource,
    TechnicalDetails,
    WebpageDetails,
)
from ..taxonomy import (
    BIBLIOGRAPHIC,
    FAMILIES,
    MULTIMEDIA,
    TECHNICAL,
    WEB_PAGE,
    get_color_for_family,
    get_color_for_item_type,
    get_family_for_item_type,
)
from ..utils.normalise import extract_year, normalise_doi, normalise_language, truncate_text

WORKSHOP_TAG = "workshop"
CITATION_CREATOR_TYPES = ("author", "director")

# ---------- Helpers ----------

def format_creators(creators: Any) -> str:
    """
    Formats Zotero creators as a comma-separated display string.

    Single-field creators (institutions) use `name`; persons use "first last".
    Creators that end up empty are dropped.

    Args:
        creators: The raw `creators` list from a Zotero item.

    Returns:
        str: e.g. "John Doe, Jane Smith, World Health Organization", or "" if none.
    """
    if not isinstance(creators, list) or not creators:
        return ""
    names = []
    for c in creators:
        if not isinstance(c, dict):
            continue
        if c.get("name"):
            names.append(c["name"])
            continue
        parts = [p for p in (c.get("firstName"), c.get("lastName")) if p]
        names.append(" ".join(parts))
    return ", ".join(n for n in names if n)

def format_tags(tags: Any) -> List[str]:
    """[{"tag": "EEG"}, "Research"] -> ["EEG", "Research"]"""
    if not isinstance(tags, list):
        return []
    out: List[str] = []
    for t in tags:
        name = t.get("tag") if isinstance(t, dict) else t
        if name:
            out.append(str(name))
    return out

def has_tag(tags: Any, tag_name: str) -> bool:
    """Case-insensitive exact match of `tag_name` against a raw tag list."""
    wanted = tag_name.lower()
    return any(t.lower() == wanted for t in format_tags(tags))

def _citation_author(c: dict) -> str:
    if c.get("name"):
        return c["name"]
    last = c.get("lastName") or ""
    first = c.get("firstName") or ""
    initial = f"{first[0]}." if first else ""
    return f"{last}, {initial}" if initial else last

def generate_citation(data: Dict[str, Any], item_type: str | None) -> str:
    """
    Builds an APA-like citation for a bibliographic item.

    Layout: "Authors (Year) Title. <venue details> <DOI link or URL>", where venue
    details depend on the item type (journalArticle, book, bookSection). Any
    missing piece is left out.

    Args:
        data (Dict[str, Any]): The raw Zotero `data` object.
        item_type (str | None): The Zotero item type.

    Returns:
        str: The citation, possibly "" when the item carries nothing usable.
    """
    parts: List[str] = []

    creators = data.get("creators") if isinstance(data.get("creators"), list) else []
    authors = [
        _citation_author(c) for c in creators
        if isinstance(c, dict) and c.get("creatorType") in CITATION_CREATOR_TYPES
    ]
    authors = [a for a in authors if a]
    if authors:
        parts.append(", ".join(authors))

    year = extract_year(data.get("date"))
    if year:
        parts.append(f"({year})")

    if data.get("title"):
        parts.append(f"{data['title']}.")

    if item_type == "journalArticle":
        venue = []
        if data.get("publicationTitle"):
            venue.append(f"*{data['publicationTitle']}*")
        if data.get("volume"):
            venue.append(str(data["volume"]))
        if data.get("issue"):
            venue.append(f"({data['issue']})")
        if data.get("pages"):
            venue.append(str(data["pages"]))
        if venue:
            parts.append(", ".join(venue) + ".")
    elif item_type == "book":
        if data.get("publisher"):
            parts.append(f"{data['publisher']}.")
    elif item_type == "bookSection":
        if data.get("bookTitle"):
            parts.append(f"In *{data['bookTitle']}*")
        if data.get("publisher"):
            parts.append(f"(pp. {data.get('pages') or ''}). {data['publisher']}.")

    doi = normalise_doi(data.get("DOI"))
    if doi:
        parts.append(f"https://doi.org/{doi}")
    elif data.get("url"):
        parts.append(data["url"])

    return " ".join(parts)

def _family_details(family: str, data: Dict[str, Any], item_type: str | None) -> FamilyDetails:
    if family == MULTIMEDIA:
        return MultimediaDetails(
            duration=data.get("runningTime") or None,
            studio=data.get("studio") or None,
            format=data.get("videoRecordingFormat") or None,
            description=data.get("abstractNote") or None,
        )
    if family == TECHNICAL:
        return TechnicalDetails(
            version=data.get("versionNumber") or None,
            company=data.get("company") or None,
            repository=data.get("repository") or None,
            description=data.get("abstractNote") or None,
        )
    if family == WEB_PAGE:
        return WebpageDetails(
            website_title=data.get("websiteTitle") or None,
            website_name=data.get("websiteName") or None,
            access_date=data.get("accessDate") or None,
            description=data.get("abstractNote") or None,
        )
    return BibliographicDetails(
        publication=data.get("publicationTitle") or None,
        publisher=data.get("publisher") or None,
        pages=data.get("pages") or None,
        volume=data.get("volume") or None,
        issue=data.get("issue") or None,
        book_title=data.get("bookTitle") or None,
        citation=generate_citation(data, item_type),
    )

def _as_parts(collection_name: str | List[str] | None) -> List[str]:
    if not collection_name:
        return []
    if isinstance(collection_name, str):
        return [collection_name]
    return [n for n in collection_name if n]

# ---------- Transform ----------

def transform_item(
    raw: RawItem | Dict[str, Any],
    collection_name: str | List[str] | None = None,
    collection_key: str | None = None,
) -> Resource:
    """
    Converts a raw Zotero item into a Resource.

    Args:
        raw: A RawItem or the JSON object returned by the API.
        collection_name: Name (or names) of the collection(s) the item came from.
        collection_key: Key of the collection the item came from.

    Returns:
        Resource: The normalised resource. Never raises on missing fields.
    """
    item = raw if isinstance(raw, RawItem) else RawItem.from_api(raw)
    data = item.data
    item_type = item.item_type
    family = get_family_for_item_type(item_type)

    res = Resource(
        id=item.key,
        type=item_type,
        family=family,
        color=get_color_for_item_type(item_type),
        theme_color=get_color_for_family(family),
        title=data.get("title") or "(Untitled)",
        manifesto_part=_as_parts(collection_name),
        collection_key=collection_key or None,
    )

    creators = data.get("creators")
    if isinstance(creators, list) and creators:
        res.creators = format_creators(creators)
        res.creators_raw = creators

    if data.get("date"):
        res.date = data["date"]
        res.year = extract_year(data["date"])

    tags = data.get("tags")
    if isinstance(tags, list) and tags:
        res.tags = format_tags(tags)
        res.is_workshop = has_tag(tags, WORKSHOP_TAG)

    res.url = data.get("url") or None
    res.doi = data.get("DOI") or None

    if data.get("abstractNote"):
        res.abstract = data["abstractNote"]
        res.abstract_preview = truncate_text(data["abstractNote"], ABSTRACT_PREVIEW_LENGTH)

    # technical items: the programming language wins over the document language
    if family == TECHNICAL and data.get("programmingLanguage"):
        res.language = normalise_language(data["programmingLanguage"])
    elif data.get("language"):
        res.language = normalise_language(data["language"])

    res.details = _family_details(family, data, item_type)
    return res

def transform_items(
    raw_items: Any,
    collection_name: str | List[str] | None = None,
    collection_key: str | None = None,
) -> List[Resource]:
    if not isinstance(raw_items, list):
        return []
    return [transform_item(r, collection_name, collection_key) for r in raw_items]

# ---------- Grouping & stats ----------

def group_by_family(resources: Iterable[Resource]) -> Dict[str, List[Resource]]:
    grouped: Dict[str, List[Resource]] = {f: [] for f in FAMILIES}
    for r in resources:
        if r.family in grouped:
            grouped[r.family].append(r)
    return grouped

def get_resource_stats(resources: List[Resource]) -> Dict[str, Any]:
    """
    Counts resources overall, per family (all four keys, even when 0) and per item type.
    """
    by_family = {f: 0 for f in FAMILIES}
    by_type: Dict[str, int] = {}
    for r in resources:
        if r.family in by_family:
            by_family[r.family] += 1
        key = r.type or "unknown"
        by_type[key] = by_type.get(key, 0) + 1
    return {"total": len(resources), "byFamily": by_family, "byType": by_type}

def deduplicate_resources(resources: Iterable[Resource]) -> List[Resource]:
    """
    Collapses resources sharing an id. The later occurrence wins for every field
    except `manifesto_part`, which becomes the ordered union of all occurrences.
    First-seen order of ids is kept.
    """
    merged: Dict[str, Resource] = {}
    for r in resources:
        existing = merged.get(r.id)
        if existing is None:
            merged[r.id] = replace(r, manifesto_part=list(r.manifesto_part))
            continue
        parts = list(existing.manifesto_part)
        for p in r.manifesto_part:
            if p not in parts:
                parts.append(p)
        merged[r.id] = replace(r, manifesto_part=parts)
    return list(merged.values())

# ---------- Views ----------

def prepare_for_card(resource: Resource) -> Dict[str, Any]:
    """Fields needed by the list view."""
    return {
        "id": resource.id,
        "type": resource.type,
        "family": resource.family,
        "color": resource.color,
        "themeColor": resource.theme_color,
        "title": resource.title,
        "creators": resource.creators or "",
        "manifestoPart": list(resource.manifesto_part),
        "year": resource.year or "",
        "abstractPreview": resource.abstract_preview or "",
        "tags": list(resource.tags or []),
        "language": resource.language,
    }

def prepare_for_detail(resource: Resource) -> Dict[str, Any]:
    """Every card field plus the full record, without creatorsRaw."""
    detail = prepare_for_card(resource)
    detail.update(resource.to_dict())
    detail.pop("creatorsRaw", None)
    return detail
