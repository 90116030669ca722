# rescat/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union


def _compact(d: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None or an empty string."""
    return {k: v for k, v in d.items() if v is not None and v != ""}


@dataclass
class RawItem:
    """
    An item as returned by the Zotero API. Read-only; every field of `data` is optional.
    """
    key: str
    """The unique item key (e.g. "ABC123XY")."""
    version: int | None
    """The item version, if the payload carried one."""
    data: dict[str, Any]
    """The loosely-typed field bag: itemType, title, creators, date, tags, abstractNote, ..."""

    @classmethod
    def from_api(cls, obj: dict[str, Any]) -> "RawItem":
        """Accepts both the enveloped shape {key, version, data} and a flat data dict."""
        data = obj.get("data") if isinstance(obj.get("data"), dict) else obj
        return cls(
            key=obj.get("key") or data.get("key") or "",
            version=obj.get("version", data.get("version")),
            data=data,
        )

    @property
    def item_type(self) -> str | None:
        return self.data.get("itemType")


@dataclass
class BibliographicDetails:
    family: ClassVar[str] = "bibliographic"
    publication: str | None = None
    """Journal or container title (publicationTitle)."""
    publisher: str | None = None
    pages: str | None = None
    volume: str | None = None
    issue: str | None = None
    book_title: str | None = None
    citation: str = ""
    """APA-style citation string, always generated for this family."""

    def to_dict(self) -> dict[str, Any]:
        out = _compact({
            "publication": self.publication,
            "publisher": self.publisher,
            "pages": self.pages,
            "volume": self.volume,
            "issue": self.issue,
            "bookTitle": self.book_title,
        })
        out["citation"] = self.citation
        return out


@dataclass
class MultimediaDetails:
    family: ClassVar[str] = "multimedia"
    duration: str | None = None
    """Running time."""
    studio: str | None = None
    format: str | None = None
    """Video recording format."""
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "duration": self.duration,
            "studio": self.studio,
            "format": self.format,
            "description": self.description,
        })


@dataclass
class TechnicalDetails:
    family: ClassVar[str] = "technical"
    version: str | None = None
    company: str | None = None
    repository: str | None = None
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "version": self.version,
            "company": self.company,
            "repository": self.repository,
            "description": self.description,
        })


@dataclass
class WebpageDetails:
    family: ClassVar[str] = "webpage"
    website_title: str | None = None
    website_name: str | None = None
    access_date: str | None = None
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "websiteTitle": self.website_title,
            "websiteName": self.website_name,
            "accessDate": self.access_date,
            "description": self.description,
        })


FamilyDetails = Union[BibliographicDetails, MultimediaDetails, TechnicalDetails, WebpageDetails]


@dataclass
class Resource:
    """
    A display-ready resource derived from one RawItem. Rebuilt on every fetch.
    """
    id: str
    """The source item key."""
    type: str | None
    """The Zotero item type (e.g. "book", "videoRecording")."""
    family: str
    """One of bibliographic, multimedia, technical, webpage."""
    color: str
    """Per-type colour shade (e.g. "blue-700")."""
    theme_color: str
    """Per-family colour (e.g. "blue")."""
    title: str = "(Untitled)"
    creators: str | None = None
    """Creators formatted as "First Last, Org Name"."""
    creators_raw: list[dict[str, Any]] = field(default_factory=list)
    year: str | None = None
    date: str | None = None
    tags: list[str] | None = None
    is_workshop: bool | None = None
    url: str | None = None
    doi: str | None = None
    abstract: str | None = None
    abstract_preview: str | None = None
    language: str | None = None
    """Normalised to English, French or Unknown."""
    manifesto_part: list[str] = field(default_factory=list)
    """Names of the collections the item was retrieved from."""
    collection_key: str | None = None
    details: FamilyDetails | None = None
    """Family-specific payload; its `family` always equals `self.family`."""

    def to_dict(self) -> dict[str, Any]:
        """Full camelCase view, including creatorsRaw."""
        out: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "family": self.family,
            "color": self.color,
            "themeColor": self.theme_color,
            "manifestoPart": list(self.manifesto_part),
            "title": self.title,
        }
        out.update(_compact({
            "collectionKey": self.collection_key,
            "creators": self.creators,
            "year": self.year,
            "date": self.date,
            "url": self.url,
            "doi": self.doi,
            "abstract": self.abstract,
            "abstractPreview": self.abstract_preview,
            "language": self.language,
        }))
        if self.creators_raw:
            out["creatorsRaw"] = self.creators_raw
        if self.tags is not None:
            out["tags"] = list(self.tags)
            out["isWorkshop"] = bool(self.is_workshop)
        if self.details is not None:
            out.update(self.details.to_dict())
        return out


@dataclass
class VersionCheck:
    """
    Outcome of comparing a collection's current version with the stored one.
    """
    has_changed: bool
    last_version: str
    current_version: str
    """"unknown" when the upstream version could not be determined."""
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "hasChanged": self.has_changed,
            "lastVersion": self.last_version,
            "currentVersion": self.current_version,
        }
        if self.error:
            out["error"] = self.error
        return out
