from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from mirrorshare.domain.errors import InvalidReference
from mirrorshare.domain.models import VideoMetadata
from mirrorshare.domain.video_id import extract
from mirrorshare.infrastructure.metadata.resolver import MetadataResolver


@dataclass(slots=True)
class GetVideoInfo:
    resolver: MetadataResolver

    async def __call__(self, video_id_or_url: Any) -> VideoMetadata:
        ref = extract(video_id_or_url)
        if ref is None:
            raise InvalidReference("Invalid video ID")
        return await self.resolver.resolve(ref)
