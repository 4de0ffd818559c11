from __future__ import annotations

import logging
import re
from typing import Any, Optional

from mirrorshare.domain.models import VideoMetadata, VideoReference
from mirrorshare.infrastructure.metadata.http import fetch_json


_log = logging.getLogger(__name__)

VIDEOS_URL = "https://www.googleapis.com/youtube/v3/videos"

_DURATION_RE = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$")


def parse_iso8601_duration(value: Any) -> Optional[int]:
    """``PT1H2M3S`` -> 3723. None for anything that is not a PT duration."""
    if not isinstance(value, str):
        return None
    match = _DURATION_RE.match(value.strip())
    if not match or not any(match.groups()):
        return None
    hours, minutes, seconds = (int(g or 0) for g in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _best_thumbnail(thumbnails: dict) -> Optional[str]:
    for key in ("maxres", "standard", "high", "medium", "default"):
        url = (thumbnails.get(key) or {}).get("url")
        if url:
            return url
    return None


class DataApiSource:
    """YouTube Data API v3 lookup; the richest record, needs an API key."""

    name = "data_api"

    def __init__(self, api_key: Optional[str], timeout: float = 8.0, endpoint: str = VIDEOS_URL) -> None:
        self.timeout = timeout
        self._api_key = (api_key or "").strip()
        self._endpoint = endpoint

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    async def attempt(self, ref: VideoReference) -> Optional[VideoMetadata]:
        if not self.enabled:
            _log.debug("data api skipped: no api key configured")
            return None
        data = await fetch_json(
            self._endpoint,
            params={"part": "snippet,contentDetails,statistics", "id": ref.id, "key": self._api_key},
            timeout=self.timeout,
        )
        items = data.get("items") if isinstance(data, dict) else None
        if not items:
            return None
        return self.parse_item(items[0], ref)

    def parse_item(self, item: dict, ref: VideoReference) -> Optional[VideoMetadata]:
        snippet = item.get("snippet") or {}
        details = item.get("contentDetails") or {}
        stats = item.get("statistics") or {}
        title = str(snippet.get("title") or "").strip()
        if not title:
            return None
        language = snippet.get("defaultAudioLanguage") or snippet.get("defaultLanguage") or "en"
        captions = [language] if str(details.get("caption", "")).lower() == "true" else []
        return VideoMetadata(
            title=title,
            channel=snippet.get("channelTitle") or None,
            thumbnail_url=_best_thumbnail(snippet.get("thumbnails") or {}) or ref.thumbnail_url,
            source_url=ref.watch_url,
            description=snippet.get("description") or "",
            duration_seconds=parse_iso8601_duration(details.get("duration")),
            view_count=_to_int(stats.get("viewCount")),
            like_count=_to_int(stats.get("likeCount")),
            published_at=snippet.get("publishedAt") or None,
            category=snippet.get("categoryId") or None,
            tags=[str(t) for t in snippet.get("tags") or []],
            language=language,
            caption_tracks=captions,
            source=self.name,
        )
