from __future__ import annotations

from typing import Optional, Protocol

from mirrorshare.domain.models import VideoMetadata, VideoReference


class IMetadataSource(Protocol):
    name: str
    timeout: float

    async def attempt(self, ref: VideoReference) -> Optional[VideoMetadata]:
        """Return a record for ``ref`` or None when this source has nothing.

        May raise; the resolver treats exceptions like None.
        """
        ...
