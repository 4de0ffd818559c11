from __future__ import annotations

import asyncio
import logging
import zlib
from typing import Any, Mapping, Optional

import brotli
import requests

from mirrorshare.domain.errors import UpstreamUnavailable


_log = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0 Safari/537.36"
)
DEFAULT_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept-Language": "en-US,en;q=0.9",
}


def _get_json(url: str, params: Optional[Mapping[str, Any]], timeout: float) -> Any:
    try:
        r = requests.get(url, params=params, headers=DEFAULT_HEADERS, timeout=timeout)
    except requests.RequestException as exc:
        raise UpstreamUnavailable(f"GET {url} failed: {exc}") from exc
    if r.status_code != 200:
        raise UpstreamUnavailable(f"GET {url} returned {r.status_code}")
    try:
        return r.json()
    except ValueError as exc:
        raise UpstreamUnavailable(f"GET {url} returned invalid JSON") from exc


def decode_body(data: bytes, content_encoding: Optional[str], max_bytes: int) -> bytes:
    """Undo ``Content-Encoding`` on a raw body, keeping at most ``max_bytes``.

    Codings are removed in reverse order of application. Any decompression
    failure returns the raw bytes instead.
    """
    codings = [c.strip().lower() for c in (content_encoding or "").split(",") if c.strip()]
    out = data
    try:
        for coding in reversed(codings):
            if coding in {"gzip", "x-gzip"}:
                out = zlib.decompressobj(16 + zlib.MAX_WBITS).decompress(out, max_bytes)
            elif coding == "deflate":
                # servers disagree on zlib-wrapped vs raw deflate
                try:
                    out = zlib.decompressobj().decompress(out, max_bytes)
                except zlib.error:
                    out = zlib.decompressobj(-zlib.MAX_WBITS).decompress(out, max_bytes)
            elif coding == "br":
                out = brotli.Decompressor().process(out, output_buffer_limit=max_bytes)
            elif coding != "identity":
                _log.debug("unknown content-encoding %r; using body as-is", coding)
    except (zlib.error, brotli.error) as exc:
        _log.info("body decompression failed (%s): %s; using raw bytes", content_encoding, exc)
        out = data
    return out[:max_bytes]


def _get_page(url: str, timeout: float, max_bytes: int) -> bytes:
    headers = dict(DEFAULT_HEADERS)
    headers["Accept-Encoding"] = "gzip, deflate, br"
    try:
        with requests.get(url, headers=headers, timeout=timeout, stream=True) as r:
            if r.status_code != 200:
                raise UpstreamUnavailable(f"GET {url} returned {r.status_code}")
            raw = r.raw.read(max_bytes, decode_content=False)
            encoding = r.headers.get("Content-Encoding")
    except requests.RequestException as exc:
        raise UpstreamUnavailable(f"GET {url} failed: {exc}") from exc
    return decode_body(raw or b"", encoding, max_bytes)


async def fetch_json(url: str, *, params: Optional[Mapping[str, Any]] = None, timeout: float) -> Any:
    return await asyncio.to_thread(_get_json, url, params, timeout)


async def fetch_page(url: str, *, timeout: float, max_bytes: int) -> bytes:
    return await asyncio.to_thread(_get_page, url, timeout, max_bytes)
