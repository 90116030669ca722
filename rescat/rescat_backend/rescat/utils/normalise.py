from __future__ import annotations
import re

ELLIPSIS = "..."

def normalise_doi(doi: str | None) -> str | None:
    if not doi:
        return None
    doi = doi.strip()
    doi = re.sub(r"^https?://(dx\.)?doi\.org/", "", doi, flags=re.I)
    return doi or None

def normalise_language(code: str | None) -> str:
    """
    Map a free-form language value to "English", "French" or "Unknown".

    en, en-US, en_GB, eng, English -> English
    fr, fr-FR, fr_CA, French       -> French
    anything else, None, ""        -> Unknown
    """
    if not code:
        return "Unknown"
    c = code.strip().lower()
    if c in ("en", "eng", "english") or c.startswith(("en-", "en_")):
        return "English"
    if c in ("fr", "french") or c.startswith(("fr-", "fr_")):
        return "French"
    return "Unknown"

def extract_year(date: str | None) -> str:
    """First 4-digit run of `date`; the raw string when there is none."""
    if not date:
        return ""
    m = re.search(r"\d{4}", date)
    return m.group(0) if m else date

def truncate_text(text: str | None, max_length: int = 150) -> str:
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    cut = text[:max_length]
    last_space = cut.rfind(" ")
    if last_space > 0:
        cut = cut[:last_space]
    return cut + ELLIPSIS
