import json

import pytest
import requests

from rescat.zotero import client as zclient
from rescat.zotero.client import ZoteroClient, ZoteroConfigError, ZoteroError


def _items(n, offset=0):
    return [{"key": f"K{offset + i}", "version": 1, "data": {"itemType": "book"}} for i in range(n)]


def _fake_http(pages, calls, status=200, resp_headers=None):
    """Serve `pages` in order; record (url, params, headers) of every request."""
    def fake(url, params=None, headers=None, timeout=15.0, session=None):
        calls.append((url, dict(params or {}), headers or {}))
        body = pages[len(calls) - 1] if len(calls) <= len(pages) else []
        return status, json.dumps(body), dict(resp_headers or {})
    return fake


def test_missing_credentials(monkeypatch):
    monkeypatch.delenv("ZOTERO_KEY")
    with pytest.raises(ZoteroConfigError):
        ZoteroClient()


def test_base_url_by_library_type(monkeypatch):
    assert ZoteroClient().base_url == "https://api.zotero.org/groups/12345"
    monkeypatch.setenv("ZOTERO_LIBRARY_TYPE", "user")
    assert ZoteroClient().base_url == "https://api.zotero.org/users/12345"


def test_pagination_stops_on_short_page(monkeypatch):
    """
    Tests that a full page triggers the next request and a short page ends paging.
    """
    calls = []
    monkeypatch.setattr(zclient, "http_get", _fake_http([_items(100), _items(40, 100)], calls))
    items = ZoteroClient().fetch_items_from_collection("COLL", limit=10000)
    assert len(items) == 140
    assert [c[1]["start"] for c in calls] == [0, 100]
    assert all(c[1]["limit"] == 100 for c in calls)
    assert calls[0][0].endswith("/collections/COLL/items/top")


def test_pagination_respects_limit(monkeypatch):
    calls = []
    monkeypatch.setattr(zclient, "http_get", _fake_http([_items(100), _items(100, 100), _items(100, 200)], calls))
    items = ZoteroClient().fetch_items_from_collection("COLL", limit=150)
    assert len(items) == 150
    assert len(calls) == 2


def test_empty_collection(monkeypatch):
    calls = []
    monkeypatch.setattr(zclient, "http_get", _fake_http([[]], calls))
    assert ZoteroClient().fetch_items_from_collection("EMPTY") == []
    assert len(calls) == 1


def test_bad_status_is_wrapped(monkeypatch):
    calls = []
    monkeypatch.setattr(zclient, "http_get", _fake_http([{"error": "nope"}], calls, status=403))
    with pytest.raises(ZoteroError) as exc:
        ZoteroClient().fetch_items_from_collection("COLL")
    assert "COLL" in str(exc.value)


def test_transport_error_is_wrapped(monkeypatch):
    def boom(*a, **k):
        raise requests.ConnectionError("dns failure")
    monkeypatch.setattr(zclient, "http_get", boom)
    with pytest.raises(ZoteroError) as exc:
        ZoteroClient().fetch_items_from_collection("COLL")
    assert "dns failure" in str(exc.value)


def test_collection_version_from_header(monkeypatch):
    calls = []
    monkeypatch.setattr(zclient, "http_get",
                        _fake_http([_items(1)], calls, resp_headers={"last-modified-version": "1234"}))
    assert ZoteroClient().fetch_collection_version("COLL") == "1234"
    assert calls[0][1]["limit"] == 1


def test_collection_version_not_modified(monkeypatch):
    calls = []
    monkeypatch.setattr(zclient, "http_get", _fake_http([None], calls, status=304))
    assert ZoteroClient().fetch_collection_version("COLL", since="99") == "99"
    assert calls[0][2]["If-Modified-Since-Version"] == "99"


def test_collection_version_missing_header(monkeypatch):
    calls = []
    monkeypatch.setattr(zclient, "http_get", _fake_http([_items(1)], calls))
    assert ZoteroClient().fetch_collection_version("COLL") is None


def test_collection_names(monkeypatch):
    calls = []
    page = [{"key": "A", "data": {"name": "Part 1"}, "meta": {"numItems": 3}},
            {"key": "B", "data": {"name": "Part 2", "parentCollection": "A"}}]
    monkeypatch.setattr(zclient, "http_get", _fake_http([page], calls))
    assert ZoteroClient().collection_names(["A", "Z"]) == {"A": "Part 1"}


def test_item_collections_swallow_errors(monkeypatch):
    calls = []
    monkeypatch.setattr(zclient, "http_get", _fake_http([{}], calls, status=500))
    assert ZoteroClient().fetch_item_collections("ITEM") == []
