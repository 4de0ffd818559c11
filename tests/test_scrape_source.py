import gzip
import json
import tracemalloc
import zlib

import brotli
import pytest

from mirrorshare.domain.errors import UpstreamUnavailable
from mirrorshare.domain.models import VideoReference
from mirrorshare.infrastructure.metadata import scrape_source
from mirrorshare.infrastructure.metadata.http import decode_body
from mirrorshare.infrastructure.metadata.scrape_source import ScrapeSource, parse_watch_page


REF = VideoReference("dQw4w9WgXcQ")

PLAYER_RESPONSE = {
    "videoDetails": {
        "videoId": "dQw4w9WgXcQ",
        "title": "Never Gonna Give You Up",
        "author": "Rick Astley",
        "lengthSeconds": "213",
        "viewCount": "1500000000",
        "shortDescription": "The official video; {braces} and \"quotes\"",
        "keywords": ["rick", "astley"],
        "thumbnail": {"thumbnails": [{"url": "https://i.ytimg.com/small.jpg"}, {"url": "https://i.ytimg.com/big.jpg"}]},
    },
    "microformat": {"playerMicroformatRenderer": {"publishDate": "2009-10-24", "category": "Music"}},
    "captions": {
        "playerCaptionsTracklistRenderer": {"captionTracks": [{"languageCode": "en"}, {"languageCode": "de"}]}
    },
}


def _watch_page(player_response: dict) -> str:
    return (
        "<html><head><title>Never Gonna Give You Up - YouTube</title></head><body>"
        "<script>var ytInitialPlayerResponse = "
        + json.dumps(player_response)
        + ";var meta = document.createElement('meta');</script></body></html>"
    )


def test_parse_watch_page_prefers_player_response():
    meta = parse_watch_page(_watch_page(PLAYER_RESPONSE), REF)
    assert meta.title == "Never Gonna Give You Up"
    assert meta.channel == "Rick Astley"
    assert meta.duration_seconds == 213
    assert meta.view_count == 1_500_000_000
    assert meta.description.startswith("The official video")
    assert meta.published_at == "2009-10-24"
    assert meta.category == "Music"
    assert meta.caption_tracks == ["en", "de"]
    assert meta.thumbnail_url == "https://i.ytimg.com/big.jpg"
    assert meta.source == "scrape"


def test_parse_watch_page_falls_back_to_meta_tags():
    page = (
        "<html><head><meta property=\"og:title\" content=\"Rock &amp; Roll\">"
        "<meta name=\"description\" content=\"A song\"></head>"
        "<script>var ytInitialPlayerResponse = {broken json</script></html>"
    )
    meta = parse_watch_page(page, REF)
    assert meta.title == "Rock & Roll"
    assert meta.description == "A song"
    assert meta.thumbnail_url == REF.thumbnail_url


def test_parse_watch_page_title_tag_last_resort():
    meta = parse_watch_page("<html><title>Some Clip - YouTube</title></html>", REF)
    assert meta.title == "Some Clip"


@pytest.mark.parametrize("page", ["", "<html><title>YouTube</title></html>", "garbage"])
def test_parse_watch_page_gives_up(page):
    assert parse_watch_page(page, REF) is None


BODY = b"<html>" + b"x" * 5000 + b"</html>"


def _deflate_raw(data: bytes) -> bytes:
    c = zlib.compressobj(wbits=-zlib.MAX_WBITS)
    return c.compress(data) + c.flush()


@pytest.mark.parametrize(
    "encoded, encoding",
    [
        (gzip.compress(BODY), "gzip"),
        (zlib.compress(BODY), "deflate"),
        (_deflate_raw(BODY), "deflate"),
        (brotli.compress(BODY), "br"),
        (BODY, None),
        (BODY, "identity"),
    ],
)
def test_decode_body(encoded, encoding):
    assert decode_body(encoded, encoding, 1_000_000) == BODY


def test_decode_body_caps_output():
    assert len(decode_body(gzip.compress(BODY), "gzip", 100)) == 100


def _brotli_zeros(total: int, chunk: int = 1 << 20) -> bytes:
    block = b"\0" * chunk
    c = brotli.Compressor(quality=1)
    parts = [c.process(block) for _ in range(total // chunk)]
    parts.append(c.finish())
    return b"".join(parts)


def test_decode_body_brotli_bomb_stays_within_cap():
    cap = 2 * 1024 * 1024
    encoded = _brotli_zeros(256 * 1024 * 1024)
    assert len(encoded) < cap

    tracemalloc.start()
    try:
        out = decode_body(encoded, "br", cap)
        _current, peak = tracemalloc.get_traced_memory()
    finally:
        tracemalloc.stop()

    assert 0 < len(out) <= cap
    assert out.count(0) == len(out)
    assert peak < 32 * 1024 * 1024


def test_decode_body_uses_raw_bytes_when_decompression_fails():
    assert decode_body(b"not gzip at all", "gzip", 1000) == b"not gzip at all"
    assert decode_body(b"not brotli", "br", 1000) == b"not brotli"


async def test_scrape_source_decodes_page(monkeypatch):
    async def _fetch_page(url, *, timeout, max_bytes):
        assert url == REF.watch_url
        return _watch_page(PLAYER_RESPONSE).encode("utf-8")

    monkeypatch.setattr(scrape_source, "fetch_page", _fetch_page)
    meta = await ScrapeSource().attempt(REF)
    assert meta.title == "Never Gonna Give You Up"


async def test_scrape_source_propagates_upstream_failure(monkeypatch):
    async def _fetch_page(url, *, timeout, max_bytes):
        raise UpstreamUnavailable("503")

    monkeypatch.setattr(scrape_source, "fetch_page", _fetch_page)
    with pytest.raises(UpstreamUnavailable):
        await ScrapeSource().attempt(REF)
