import time

from rescat.cache import TaggedCache

def test_set_get_and_tag_invalidation():
    c = TaggedCache(default_ttl=60)
    c.set("a", 1, tags=["resources"])
    c.set("b", 2, tags=["other"])
    assert c.get("a") == 1
    assert c.invalidate_tag("resources") == 1
    assert c.get("a") is None
    assert c.get("b") == 2
    assert c.invalidate_tag("resources") == 0

def test_expiry(monkeypatch):
    c = TaggedCache(default_ttl=10)
    now = time.time()
    monkeypatch.setattr("rescat.cache.time.time", lambda: now)
    c.set("k", "v")
    monkeypatch.setattr("rescat.cache.time.time", lambda: now + 11)
    assert c.get("k") is None
    assert len(c) == 0
