from conftest import raw_item

from rescat.models import RawItem
from rescat.zotero.transform import (
    deduplicate_resources,
    format_creators,
    generate_citation,
    get_resource_stats,
    group_by_family,
    prepare_for_card,
    prepare_for_detail,
    transform_item,
    transform_items,
)

ARTICLE = raw_item(
    "ART1",
    "journalArticle",
    title="Spectral analysis of resting EEG",
    creators=[
        {"creatorType": "author", "firstName": "Ada", "lastName": "Lovelace"},
        {"creatorType": "author", "name": "EEG Consortium"},
        {"creatorType": "editor", "firstName": "Ed", "lastName": "Itor"},
    ],
    date="2021-06-01",
    publicationTitle="NeuroImage",
    volume="12",
    issue="3",
    pages="100-110",
    DOI="10.1000/eeg.1",
    url="https://example.org/art1",
    language="en-US",
    abstractNote="A " * 120,
    tags=[{"tag": "EEG"}, {"tag": "Workshop"}],
)

def test_article_fields():
    """
    Tests the common fields and bibliographic payload of a journal article.
    """
    r = transform_item(ARTICLE, collection_name="Part 1: Validity", collection_key="F9DNTXQA")
    assert r.id == "ART1"
    assert r.family == "bibliographic"
    assert r.color == "blue-500" and r.theme_color == "blue"
    assert r.creators == "Ada Lovelace, EEG Consortium, Ed Itor"
    assert r.year == "2021" and r.date == "2021-06-01"
    assert r.tags == ["EEG", "Workshop"]
    assert r.is_workshop is True
    assert r.language == "English"
    assert r.manifesto_part == ["Part 1: Validity"]
    assert r.collection_key == "F9DNTXQA"
    assert r.abstract_preview.endswith("...")
    d = r.to_dict()
    assert d["publication"] == "NeuroImage"
    assert d["doi"] == "10.1000/eeg.1"

def test_article_citation():
    citation = generate_citation(ARTICLE["data"], "journalArticle")
    assert citation == (
        "Lovelace, A., EEG Consortium (2021) Spectral analysis of resting EEG. "
        "*NeuroImage*, 12, (3), 100-110. https://doi.org/10.1000/eeg.1"
    )

def test_book_section_citation_omits_missing_fields():
    data = {"itemType": "bookSection", "title": "Chapter", "bookTitle": "Handbook",
            "publisher": "MIT Press", "url": "https://example.org/ch"}
    assert generate_citation(data, "bookSection") == \
        "Chapter. In *Handbook* (pp. ). MIT Press. https://example.org/ch"

def test_book_citation():
    data = {"itemType": "book", "title": "EEG Basics", "date": "circa 1999",
            "creators": [{"creatorType": "author", "lastName": "Berger"}], "publisher": "Springer"}
    assert generate_citation(data, "book") == "Berger (1999) EEG Basics. Springer."

def test_citation_only_for_bibliographic():
    video = transform_item(raw_item("VID1", "videoRecording", title="Talk", runningTime="01:02:03",
                                    abstractNote="About EEG"))
    d = video.to_dict()
    assert video.family == "multimedia"
    assert "citation" not in d
    assert d["duration"] == "01:02:03"
    assert d["description"] == "About EEG"

def test_technical_language_prefers_programming_language():
    r = transform_item(raw_item("SW1", "computerProgram", programmingLanguage="fr",
                                language="en", versionNumber="2.1"))
    assert r.family == "technical"
    assert r.language == "French"
    assert r.to_dict()["version"] == "2.1"

def test_webpage_payload():
    r = transform_item(raw_item("WEB1", "blogPost", websiteTitle="Brain Blog", accessDate="2024-01-02"))
    d = r.to_dict()
    assert r.family == "webpage"
    assert d["websiteTitle"] == "Brain Blog"
    assert d["accessDate"] == "2024-01-02"

def test_missing_fields_degrade_quietly():
    r = transform_item({"key": "BARE", "data": {}})
    assert r.title == "(Untitled)"
    assert r.family == "bibliographic" and r.color == "blue-500"
    assert r.creators is None and r.tags is None and r.language is None
    card = prepare_for_card(r)
    assert card["creators"] == "" and card["tags"] == [] and card["year"] == ""

def test_flat_item_shape_accepted():
    item = RawItem.from_api({"key": "FLAT", "itemType": "film", "title": "Flat"})
    assert transform_item(item).family == "multimedia"

def test_format_creators_edge_cases():
    assert format_creators([]) == ""
    assert format_creators(None) == ""
    assert format_creators([{"firstName": "", "lastName": ""}, {"lastName": "Solo"}]) == "Solo"

def test_workshop_tag_is_case_insensitive_exact():
    r1 = transform_item(raw_item("T1", tags=["WORKSHOP"]))
    r2 = transform_item(raw_item("T2", tags=[{"tag": "workshops"}]))
    assert r1.is_workshop is True
    assert r2.is_workshop is False

def test_deduplicate_merges_collection_names():
    """
    Tests that the same item fetched from two collections becomes one resource with both names.
    """
    a = transform_item(ARTICLE, collection_name="Part 1", collection_key="K1")
    b = transform_item(ARTICLE, collection_name="Part 2", collection_key="K2")
    c = transform_item(ARTICLE, collection_name="Part 1", collection_key="K1")
    other = transform_item(raw_item("OTHER"), collection_name="Part 2")
    out = deduplicate_resources([a, other, b, c])
    assert [r.id for r in out] == ["ART1", "OTHER"]
    assert out[0].manifesto_part == ["Part 1", "Part 2"]
    # the input resources are left untouched
    assert a.manifesto_part == ["Part 1"]

def test_detail_is_superset_of_card():
    samples = [
        ARTICLE,
        raw_item("VID1", "videoRecording", title="Talk"),
        raw_item("SW1", "software", versionNumber="1.0", tags=["tool"]),
        raw_item("WEB1", "webpage", url="https://example.org"),
        {"key": "BARE", "data": {}},
    ]
    for raw in samples:
        r = transform_item(raw, collection_name="Part 3")
        card, detail = prepare_for_card(r), prepare_for_detail(r)
        for k, v in card.items():
            assert k in detail
        assert "creatorsRaw" not in detail

def test_empty_collection_stats():
    resources = transform_items([])
    stats = get_resource_stats(resources)
    assert resources == []
    assert stats == {
        "total": 0,
        "byFamily": {"bibliographic": 0, "multimedia": 0, "technical": 0, "webpage": 0},
        "byType": {},
    }
    assert transform_items(None) == []

def test_group_and_stats():
    resources = transform_items([ARTICLE, raw_item("V", "podcast"), raw_item("B", "book")])
    grouped = group_by_family(resources)
    assert [r.id for r in grouped["bibliographic"]] == ["ART1", "B"]
    assert [r.id for r in grouped["multimedia"]] == ["V"]
    stats = get_resource_stats(resources)
    assert stats["total"] == 3
    assert stats["byFamily"]["bibliographic"] == 2
    assert stats["byType"] == {"journalArticle": 1, "podcast": 1, "book": 1}
