import pytest
import requests

from catalog import fetch
from catalog.fetch import FetchError, fetch_text


class FakeResponse:
    def __init__(self, text: str = "", status_code: int = 200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")


async def test_fetch_returns_body(monkeypatch):
    seen = {}

    def fake_get(url, timeout):
        seen.update(url=url, timeout=timeout)
        return FakeResponse("name,shortDescription,sku\n")

    monkeypatch.setattr(fetch.requests, "get", fake_get)

    assert await fetch_text("https://example.test/feed.csv", timeout=5) == "name,shortDescription,sku\n"
    assert seen == {"url": "https://example.test/feed.csv", "timeout": 5}


async def test_non_success_status(monkeypatch):
    monkeypatch.setattr(fetch.requests, "get", lambda url, timeout: FakeResponse(status_code=404))

    with pytest.raises(FetchError):
        await fetch_text("https://example.test/missing.csv")


async def test_network_failure(monkeypatch):
    def fake_get(url, timeout):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(fetch.requests, "get", fake_get)

    with pytest.raises(FetchError):
        await fetch_text("https://example.test/feed.csv")
