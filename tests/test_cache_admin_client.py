import pytest
import requests

from zenith.services.cache_admin_client import CacheAdminClient
from zenith.utils import http


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


@pytest.fixture
def calls(monkeypatch):
    recorded = []
    replies = []

    def fake_request(method, url, timeout=None, **kwargs):
        recorded.append((method, url, kwargs.get("json")))
        return replies.pop(0)

    monkeypatch.setattr(http.requests, "request", fake_request)
    monkeypatch.setattr(http.time, "sleep", lambda s: None)
    return recorded, replies


def test_stats(calls):
    recorded, replies = calls
    replies.append(FakeResponse({"entries": 3, "hits": 10}))
    assert CacheAdminClient("http://portal:5002/").stats() == {"entries": 3, "hits": 10}
    assert recorded == [("GET", "http://portal:5002/cache/stats", None)]


def test_invalidate_and_clear(calls):
    recorded, replies = calls
    replies.append(FakeResponse({"pattern": "users:", "removed": 4}))
    replies.append(FakeResponse({"ok": True}))
    client = CacheAdminClient("http://portal:5002")
    assert client.invalidate("users:") == 4
    client.clear()
    assert recorded == [
        ("POST", "http://portal:5002/cache/invalidate", {"pattern": "users:"}),
        ("POST", "http://portal:5002/cache/clear", {}),
    ]


def test_retries_then_raises(calls):
    recorded, replies = calls
    replies.extend([FakeResponse({}, 503), FakeResponse({"entries": 0})])
    assert CacheAdminClient("http://portal:5002", retries=1).stats() == {"entries": 0}

    replies.extend([FakeResponse({}, 500), FakeResponse({}, 500)])
    with pytest.raises(requests.HTTPError):
        CacheAdminClient("http://portal:5002", retries=1).stats()
    assert len(recorded) == 4
