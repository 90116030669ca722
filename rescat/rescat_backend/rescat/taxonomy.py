"""
Resource families and display colours.

Every Zotero item type belongs to one of four families:
- bibliographic: books, articles, theses, reports...
- multimedia: film, audio, broadcasts, presentations...
- technical: software, datasets, standards, legal texts...
- webpage: web pages, blog and forum posts, attachments

Each family has a theme colour and each item type a shade of it.
"""
from __future__ import annotations

BIBLIOGRAPHIC = "bibliographic"
MULTIMEDIA = "multimedia"
TECHNICAL = "technical"
WEB_PAGE = "webpage"

FAMILIES = (BIBLIOGRAPHIC, MULTIMEDIA, TECHNICAL, WEB_PAGE)

DEFAULT_FAMILY = BIBLIOGRAPHIC
DEFAULT_THEME_COLOR = "blue"
DEFAULT_ITEM_COLOR = "blue-500"

FAMILY_COLORS = {
    BIBLIOGRAPHIC: "blue",
    MULTIMEDIA: "violet",
    TECHNICAL: "orange",
    WEB_PAGE: "yellow",
}

# item type -> (family, colour shade)
_TAXONOMY: dict[str, tuple[str, str]] = {
    # bibliographic
    "article": (BIBLIOGRAPHIC, "blue-500"),
    "book": (BIBLIOGRAPHIC, "blue-700"),
    "bookSection": (BIBLIOGRAPHIC, "blue-600"),
    "journalArticle": (BIBLIOGRAPHIC, "blue-500"),
    "magazineArticle": (BIBLIOGRAPHIC, "blue-400"),
    "newspaperArticle": (BIBLIOGRAPHIC, "blue-300"),
    "thesis": (BIBLIOGRAPHIC, "blue-800"),
    "letter": (BIBLIOGRAPHIC, "blue-400"),
    "manuscript": (BIBLIOGRAPHIC, "blue-500"),
    "preprint": (BIBLIOGRAPHIC, "blue-600"),
    "review": (BIBLIOGRAPHIC, "blue-500"),
    "report": (BIBLIOGRAPHIC, "blue-400"),
    "encyclopediaArticle": (BIBLIOGRAPHIC, "blue-600"),
    "conferencePaper": (BIBLIOGRAPHIC, "blue-700"),
    "document": (BIBLIOGRAPHIC, "blue-300"),
    # multimedia
    "film": (MULTIMEDIA, "violet-700"),
    "presentation": (MULTIMEDIA, "violet-600"),
    "videoRecording": (MULTIMEDIA, "violet-600"),
    "audioRecording": (MULTIMEDIA, "violet-500"),
    "interview": (MULTIMEDIA, "violet-500"),
    "artwork": (MULTIMEDIA, "violet-400"),
    "podcast": (MULTIMEDIA, "violet-400"),
    "radioBroadcast": (MULTIMEDIA, "violet-500"),
    "tvBroadcast": (MULTIMEDIA, "violet-700"),
    # technical & tools
    "software": (TECHNICAL, "orange-600"),
    "computerProgram": (TECHNICAL, "orange-600"),
    "dataset": (TECHNICAL, "orange-500"),
    "standard": (TECHNICAL, "orange-500"),
    "map": (TECHNICAL, "orange-400"),
    "patent": (TECHNICAL, "orange-600"),
    "case": (TECHNICAL, "orange-500"),
    "bill": (TECHNICAL, "orange-400"),
    "statute": (TECHNICAL, "orange-500"),
    # web pages
    "webpage": (WEB_PAGE, "yellow-500"),
    "blogPost": (WEB_PAGE, "yellow-600"),
    "forumPost": (WEB_PAGE, "yellow-400"),
    "attachment": (WEB_PAGE, "yellow-300"),
}

ITEM_TYPE_TO_FAMILY = {t: fam for t, (fam, _) in _TAXONOMY.items()}
ITEM_TYPE_COLORS = {t: color for t, (_, color) in _TAXONOMY.items()}

# Zotero fields worth showing for each family
FAMILY_DISPLAY_FIELDS = {
    BIBLIOGRAPHIC: ["creators", "title", "date", "publicationTitle", "publisher", "pages", "DOI", "url"],
    MULTIMEDIA: ["creators", "title", "date", "runningTime", "studio", "url"],
    TECHNICAL: ["title", "versionNumber", "date", "company", "programmingLanguage", "repository", "url"],
    WEB_PAGE: ["title", "url", "accessDate", "websiteTitle", "creators"],
}


def get_family_for_item_type(item_type: str | None) -> str:
    return ITEM_TYPE_TO_FAMILY.get(item_type or "", DEFAULT_FAMILY)


def get_color_for_family(family: str | None) -> str:
    return FAMILY_COLORS.get(family or "", DEFAULT_THEME_COLOR)


def get_color_for_item_type(item_type: str | None) -> str:
    return ITEM_TYPE_COLORS.get(item_type or "", DEFAULT_ITEM_COLOR)
