from rescat.utils import http


class _FakeResponse:
    status_code = 200
    text = "[]"
    headers = {"Last-Modified-Version": "42"}


class _FakeSession:
    instances = []

    def __init__(self):
        self.closed = False
        _FakeSession.instances.append(self)

    def get(self, url, params=None, headers=None, timeout=None):
        return _FakeResponse()

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def test_own_session_is_closed(monkeypatch):
    """
    Tests that a session created for a single request is closed afterwards.
    """
    _FakeSession.instances.clear()
    monkeypatch.setattr(http.requests, "Session", _FakeSession)
    status, text, headers = http.http_get("https://api.example.org/x")
    assert (status, text) == (200, "[]")
    assert headers == {"last-modified-version": "42"}
    assert [s.closed for s in _FakeSession.instances] == [True]


def test_shared_session_is_left_open():
    shared = _FakeSession()
    http.http_get("https://api.example.org/x", session=shared)
    assert shared.closed is False
