from __future__ import annotations

import html
import json
import logging
import re
from typing import Any, Optional

from mirrorshare.domain.models import VideoMetadata, VideoReference
from mirrorshare.infrastructure.metadata.http import fetch_page


_log = logging.getLogger(__name__)

_PLAYER_RESPONSE_RE = re.compile(r"ytInitialPlayerResponse\s*=\s*(?=\{)")
_OG_TITLE_RE = re.compile(r"<meta\s+property=[\"']og:title[\"']\s+content=[\"']([^\"']*)[\"']", re.IGNORECASE)
_NAME_TITLE_RE = re.compile(r"<meta\s+name=[\"']title[\"']\s+content=[\"']([^\"']*)[\"']", re.IGNORECASE)
_TITLE_TAG_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)
_OG_IMAGE_RE = re.compile(r"<meta\s+property=[\"']og:image[\"']\s+content=[\"']([^\"']*)[\"']", re.IGNORECASE)
_DESCRIPTION_RE = re.compile(r"<meta\s+name=[\"']description[\"']\s+content=[\"']([^\"']*)[\"']", re.IGNORECASE)


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def extract_player_response(page: str) -> Optional[dict]:
    match = _PLAYER_RESPONSE_RE.search(page)
    if not match:
        return None
    try:
        data, _end = json.JSONDecoder().raw_decode(page, match.end())
    except ValueError as exc:
        _log.debug("player response not parseable: %s", exc)
        return None
    return data if isinstance(data, dict) else None


def _from_player_response(data: dict, ref: VideoReference) -> Optional[VideoMetadata]:
    details = data.get("videoDetails") or {}
    title = str(details.get("title") or "").strip()
    if not title:
        return None
    micro = (data.get("microformat") or {}).get("playerMicroformatRenderer") or {}
    tracks = ((data.get("captions") or {}).get("playerCaptionsTracklistRenderer") or {}).get("captionTracks") or []
    thumbs = (details.get("thumbnail") or {}).get("thumbnails") or []
    thumbnail = thumbs[-1].get("url") if thumbs and isinstance(thumbs[-1], dict) else None
    captions = [str(t.get("languageCode")) for t in tracks if isinstance(t, dict) and t.get("languageCode")]
    return VideoMetadata(
        title=title,
        channel=details.get("author") or micro.get("ownerChannelName") or None,
        thumbnail_url=thumbnail or ref.thumbnail_url,
        source_url=ref.watch_url,
        description=details.get("shortDescription") or "",
        duration_seconds=_to_int(details.get("lengthSeconds")),
        view_count=_to_int(details.get("viewCount")),
        published_at=micro.get("publishDate") or None,
        category=micro.get("category") or None,
        tags=[str(k) for k in details.get("keywords") or []],
        caption_tracks=captions,
        source=ScrapeSource.name,
    )


def _from_meta_tags(page: str, ref: VideoReference) -> Optional[VideoMetadata]:
    title = None
    for pattern in (_OG_TITLE_RE, _NAME_TITLE_RE, _TITLE_TAG_RE):
        match = pattern.search(page)
        if match and match.group(1).strip():
            title = html.unescape(match.group(1)).strip()
            break
    if title and title.endswith(" - YouTube"):
        title = title[: -len(" - YouTube")].strip()
    # A bare "YouTube" title is what the consent/error pages carry
    if not title or title == "YouTube":
        return None
    image = _OG_IMAGE_RE.search(page)
    description = _DESCRIPTION_RE.search(page)
    return VideoMetadata(
        title=title,
        thumbnail_url=html.unescape(image.group(1)) if image else ref.thumbnail_url,
        source_url=ref.watch_url,
        description=html.unescape(description.group(1)) if description else "",
        source=ScrapeSource.name,
    )


def parse_watch_page(page: str, ref: VideoReference) -> Optional[VideoMetadata]:
    """Pull metadata out of a watch page; player response first, meta tags last."""
    data = extract_player_response(page)
    if data is not None:
        meta = _from_player_response(data, ref)
        if meta is not None:
            return meta
    return _from_meta_tags(page, ref)


class ScrapeSource:
    """Last resort: the public watch page. Best effort only."""

    name = "scrape"

    def __init__(self, timeout: float = 10.0, max_bytes: int = 2 * 1024 * 1024) -> None:
        self.timeout = timeout
        self._max_bytes = max_bytes

    async def attempt(self, ref: VideoReference) -> Optional[VideoMetadata]:
        body = await fetch_page(ref.watch_url, timeout=self.timeout, max_bytes=self._max_bytes)
        page = body.decode("utf-8", errors="replace")
        return parse_watch_page(page, ref)
