from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from mirrorshare.domain.errors import InvalidReference


VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")

THUMBNAIL_URL_TEMPLATE = "https://img.youtube.com/vi/{video_id}/mqdefault.jpg"
WATCH_URL_TEMPLATE = "https://www.youtube.com/watch?v={video_id}"


@dataclass(frozen=True, slots=True)
class VideoReference:
    id: str

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not VIDEO_ID_RE.match(self.id):
            raise InvalidReference(f"invalid YouTube video id: {self.id!r}")

    @property
    def watch_url(self) -> str:
        return WATCH_URL_TEMPLATE.format(video_id=self.id)

    @property
    def thumbnail_url(self) -> str:
        return THUMBNAIL_URL_TEMPLATE.format(video_id=self.id)

    def __str__(self) -> str:
        return self.id


@dataclass(slots=True)
class VideoMetadata:
    """Best-effort description of a video. Only ``title`` is guaranteed."""

    title: str
    channel: Optional[str] = None
    thumbnail_url: Optional[str] = None
    source_url: Optional[str] = None
    description: str = ""
    duration_seconds: Optional[int] = None
    view_count: Optional[int] = None
    like_count: Optional[int] = None
    published_at: Optional[str] = None
    category: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    language: str = "en"
    caption_tracks: list[str] = field(default_factory=list)
    # strategy that produced the record: oembed, data_api, scrape, fallback
    source: str = "fallback"

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"

    def to_dict(self) -> dict[str, Any]:
        # Key names are what the PWA reads
        return {
            "title": self.title,
            "channel": self.channel,
            "thumbnail": self.thumbnail_url,
            "url": self.source_url,
            "description": self.description,
            "duration": self.duration_seconds,
            "views": self.view_count,
            "likes": self.like_count,
            "publishedAt": self.published_at,
            "category": self.category,
            "tags": list(self.tags),
            "quality": "Auto",
            "language": self.language,
            "captions": list(self.caption_tracks),
            "source": self.source,
        }


@dataclass(slots=True)
class CaptionSettings:
    enabled: bool = False
    lang: str = "en"

    def to_dict(self) -> dict[str, Any]:
        return {"enabled": self.enabled, "lang": self.lang}


@dataclass(slots=True)
class QualitySettings:
    target: str = "auto"
    floor: Optional[str] = None
    ceiling: Optional[str] = None
    lock: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"target": self.target, "floor": self.floor, "ceiling": self.ceiling, "lock": self.lock}


@dataclass(slots=True)
class PlaybackState:
    """Server-held mirror of what the display client is doing.

    The display client is authoritative; this copy may lag behind it.
    """

    playing: bool = False
    last_url: Optional[str] = None
    last_video_id: Optional[str] = None
    caption: CaptionSettings = field(default_factory=CaptionSettings)
    quality: QualitySettings = field(default_factory=QualitySettings)

    def snapshot(self) -> "PlaybackState":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "playing": self.playing,
            "lastUrl": self.last_url,
            "lastVideoId": self.last_video_id,
            "caption": self.caption.to_dict(),
            "quality": self.quality.to_dict(),
        }
