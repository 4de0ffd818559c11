import gzip
import json
from typing import Any, Optional

import pytest
import requests

from mirrorshare.domain.errors import UpstreamUnavailable
from mirrorshare.domain.models import VideoReference
from mirrorshare.infrastructure.metadata import http
from mirrorshare.infrastructure.metadata.oembed_source import OEmbedSource
from mirrorshare.infrastructure.metadata.resolver import MetadataResolver
from mirrorshare.infrastructure.metadata.scrape_source import ScrapeSource


REF = VideoReference("dQw4w9WgXcQ")

PAGE = (
    "<html><script>var ytInitialPlayerResponse = "
    + json.dumps({"videoDetails": {"title": "Never Gonna Give You Up", "author": "Rick Astley"}})
    + ";</script></html>"
).encode("utf-8")


class FakeRaw:
    def __init__(self, body: bytes) -> None:
        self.body = body
        self.reads: list[tuple[Optional[int], bool]] = []

    def read(self, amt: Optional[int] = None, decode_content: bool = True) -> bytes:
        self.reads.append((amt, decode_content))
        return self.body if amt is None else self.body[:amt]


class FakeResponse:
    def __init__(self, status_code: int = 200, *, payload: Any = None, body: bytes = b"", headers: Optional[dict] = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.raw = FakeRaw(body)
        self.headers = headers or {}

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("Expecting value")
        return self._payload

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc: Any) -> None:
        return None


def _route(monkeypatch, handlers: dict) -> list[str]:
    """Patch requests.get; ``handlers`` maps a URL prefix to a response or exception."""
    seen: list[str] = []

    def _get(url, **kwargs):
        seen.append(url)
        for prefix, outcome in handlers.items():
            if url.startswith(prefix):
                if isinstance(outcome, BaseException):
                    raise outcome
                return outcome
        raise AssertionError(f"unexpected GET {url}")

    monkeypatch.setattr(http.requests, "get", _get)
    return seen


@pytest.mark.parametrize(
    "outcome",
    [
        FakeResponse(404),
        FakeResponse(200, payload=None),
        requests.ConnectionError("refused"),
        requests.Timeout("read timed out"),
    ],
)
async def test_fetch_json_failures_become_upstream_unavailable(monkeypatch, outcome):
    _route(monkeypatch, {"https://example.test": outcome})
    with pytest.raises(UpstreamUnavailable):
        await http.fetch_json("https://example.test/api", timeout=1.0)


async def test_fetch_json_returns_parsed_body(monkeypatch):
    _route(monkeypatch, {"https://example.test": FakeResponse(200, payload={"title": "ok"})})
    assert await http.fetch_json("https://example.test/api", timeout=1.0) == {"title": "ok"}


async def test_fetch_page_reads_raw_body_up_to_cap_and_decodes(monkeypatch):
    response = FakeResponse(200, body=gzip.compress(PAGE), headers={"Content-Encoding": "gzip"})
    _route(monkeypatch, {"https://www.youtube.com/watch": response})
    body = await http.fetch_page(REF.watch_url, timeout=1.0, max_bytes=4096)
    assert body == PAGE
    assert response.raw.reads == [(4096, False)]


async def test_fetch_page_truncates_uncompressed_body(monkeypatch):
    _route(monkeypatch, {"https://www.youtube.com/watch": FakeResponse(200, body=b"x" * 100)})
    assert await http.fetch_page(REF.watch_url, timeout=1.0, max_bytes=10) == b"x" * 10


@pytest.mark.parametrize("outcome", [FakeResponse(503), requests.Timeout("slow")])
async def test_fetch_page_failures_become_upstream_unavailable(monkeypatch, outcome):
    _route(monkeypatch, {"https://www.youtube.com/watch": outcome})
    with pytest.raises(UpstreamUnavailable):
        await http.fetch_page(REF.watch_url, timeout=1.0, max_bytes=4096)


@pytest.mark.parametrize(
    "oembed_outcome",
    [FakeResponse(401), FakeResponse(200, payload=None), requests.ConnectionError("down")],
)
async def test_resolver_advances_past_failed_oembed_to_scrape(monkeypatch, oembed_outcome):
    seen = _route(
        monkeypatch,
        {
            "https://www.youtube.com/oembed": oembed_outcome,
            "https://www.youtube.com/watch": FakeResponse(200, body=PAGE),
        },
    )
    meta = await MetadataResolver([OEmbedSource(timeout=2.0), ScrapeSource(timeout=2.0)]).resolve(REF)
    assert meta.source == "scrape"
    assert meta.title == "Never Gonna Give You Up"
    assert seen == ["https://www.youtube.com/oembed", REF.watch_url]


async def test_resolver_falls_back_when_every_request_fails(monkeypatch):
    _route(
        monkeypatch,
        {
            "https://www.youtube.com/oembed": requests.Timeout("slow"),
            "https://www.youtube.com/watch": FakeResponse(500),
        },
    )
    meta = await MetadataResolver([OEmbedSource(timeout=2.0), ScrapeSource(timeout=2.0)]).resolve(REF)
    assert meta.source == "fallback"
    assert meta.title == "YouTube Video"
