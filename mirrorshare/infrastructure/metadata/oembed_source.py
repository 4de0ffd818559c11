from __future__ import annotations

from typing import Optional

from mirrorshare.domain.models import VideoMetadata, VideoReference
from mirrorshare.infrastructure.metadata.http import fetch_json


OEMBED_URL = "https://www.youtube.com/oembed"


class OEmbedSource:
    """Cheap unauthenticated lookup. Title, channel and thumbnail only."""

    name = "oembed"

    def __init__(self, timeout: float = 5.0, endpoint: str = OEMBED_URL) -> None:
        self.timeout = timeout
        self._endpoint = endpoint

    async def attempt(self, ref: VideoReference) -> Optional[VideoMetadata]:
        data = await fetch_json(
            self._endpoint,
            params={"url": ref.watch_url, "format": "json"},
            timeout=self.timeout,
        )
        if not isinstance(data, dict):
            return None
        title = str(data.get("title") or "").strip()
        if not title:
            return None
        return VideoMetadata(
            title=title,
            channel=data.get("author_name") or None,
            thumbnail_url=data.get("thumbnail_url") or ref.thumbnail_url,
            source_url=ref.watch_url,
            source=self.name,
        )
