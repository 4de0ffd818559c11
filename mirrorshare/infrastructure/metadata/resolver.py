from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from mirrorshare.domain.models import VideoMetadata, VideoReference
from mirrorshare.domain.ports.metadata_source import IMetadataSource
from mirrorshare.infrastructure.metrics.metrics import METADATA_ATTEMPTS


_log = logging.getLogger(__name__)

FALLBACK_TITLE = "YouTube Video"


def fallback_metadata(ref: VideoReference) -> VideoMetadata:
    return VideoMetadata(
        title=FALLBACK_TITLE,
        channel="YouTube",
        thumbnail_url=ref.thumbnail_url,
        source_url=ref.watch_url,
        description="Video information could not be loaded",
        source="fallback",
    )


class MetadataResolver:
    """Try each source in order, cheapest first; never raises.

    Sources run one after another, not raced: a later source only runs once
    the previous one has failed, returned nothing, or timed out.
    """

    def __init__(self, sources: Sequence[IMetadataSource]) -> None:
        self._sources = list(sources)

    @property
    def source_names(self) -> list[str]:
        return [s.name for s in self._sources]

    async def resolve(self, ref: VideoReference) -> VideoMetadata:
        for source in self._sources:
            try:
                meta = await asyncio.wait_for(source.attempt(ref), timeout=source.timeout)
            except asyncio.TimeoutError:
                _log.info("metadata source %s timed out for %s", source.name, ref.id)
                METADATA_ATTEMPTS.labels(source=source.name, outcome="timeout").inc()
                continue
            except Exception as exc:  # noqa: BLE001
                _log.info("metadata source %s failed for %s: %s", source.name, ref.id, exc)
                METADATA_ATTEMPTS.labels(source=source.name, outcome="error").inc()
                continue
            if meta is not None and (meta.title or "").strip():
                METADATA_ATTEMPTS.labels(source=source.name, outcome="ok").inc()
                _log.debug("metadata for %s resolved via %s", ref.id, source.name)
                return meta
            METADATA_ATTEMPTS.labels(source=source.name, outcome="empty").inc()
        _log.warning("all metadata sources failed for %s; using fallback record", ref.id)
        METADATA_ATTEMPTS.labels(source="none", outcome="fallback").inc()
        return fallback_metadata(ref)
