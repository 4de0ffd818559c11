from __future__ import annotations

from functools import lru_cache

from mirrorshare.config import settings
from mirrorshare.application.playback_relay import PlaybackRelay
from mirrorshare.application.use_cases.playback_use_cases import (
    ControlVideo,
    GetPlaybackStatus,
    PlayVideo,
    RecordDisplayStopped,
    SetOverlayMode,
    SetPlaybackOptions,
    StopPlayback,
)
from mirrorshare.application.use_cases.video_info_use_cases import GetVideoInfo
from mirrorshare.domain.models import CaptionSettings, PlaybackState, QualitySettings
from mirrorshare.infrastructure.admission.rate_limiter import FixedWindowRateLimiter
from mirrorshare.infrastructure.display.display_channel_impl import WebSocketDisplayChannel
from mirrorshare.infrastructure.metadata.data_api_source import DataApiSource
from mirrorshare.infrastructure.metadata.oembed_source import OEmbedSource
from mirrorshare.infrastructure.metadata.resolver import MetadataResolver
from mirrorshare.infrastructure.metadata.scrape_source import ScrapeSource


@lru_cache(maxsize=1)
def display_channel() -> WebSocketDisplayChannel:
    return WebSocketDisplayChannel()


@lru_cache(maxsize=1)
def playback_relay() -> PlaybackRelay:
    state = PlaybackState(
        caption=CaptionSettings(enabled=settings.caption_enabled, lang=settings.caption_lang),
        quality=QualitySettings(
            target=settings.quality_target,
            floor=settings.quality_floor,
            ceiling=settings.quality_ceiling,
            lock=settings.quality_lock,
        ),
    )
    return PlaybackRelay(state=state, display=display_channel())


@lru_cache(maxsize=1)
def metadata_resolver() -> MetadataResolver:
    return MetadataResolver(
        [
            OEmbedSource(timeout=settings.oembed_timeout_sec),
            DataApiSource(settings.youtube_api_key, timeout=settings.data_api_timeout_sec),
            ScrapeSource(timeout=settings.scrape_timeout_sec, max_bytes=settings.scrape_max_bytes),
        ]
    )


@lru_cache(maxsize=1)
def rate_limiter() -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(
        settings.rate_limit_max,
        settings.rate_limit_window_ms,
        sweep_interval=settings.rate_limit_sweep_sec,
        max_clients=settings.rate_limit_max_clients,
    )


@lru_cache(maxsize=None)
def play_video() -> PlayVideo:
    return PlayVideo(relay=playback_relay())


@lru_cache(maxsize=None)
def stop_playback() -> StopPlayback:
    return StopPlayback(relay=playback_relay())


@lru_cache(maxsize=None)
def control_video() -> ControlVideo:
    return ControlVideo(relay=playback_relay())


@lru_cache(maxsize=None)
def set_playback_options() -> SetPlaybackOptions:
    return SetPlaybackOptions(relay=playback_relay())


@lru_cache(maxsize=None)
def set_overlay_mode() -> SetOverlayMode:
    return SetOverlayMode(relay=playback_relay())


@lru_cache(maxsize=None)
def get_playback_status() -> GetPlaybackStatus:
    return GetPlaybackStatus(relay=playback_relay())


@lru_cache(maxsize=None)
def record_display_stopped() -> RecordDisplayStopped:
    return RecordDisplayStopped(relay=playback_relay())


@lru_cache(maxsize=None)
def get_video_info() -> GetVideoInfo:
    return GetVideoInfo(resolver=metadata_resolver())


def reset() -> None:
    """Drop every cached singleton; the next lookup rebuilds from settings."""
    for provider in (
        display_channel,
        playback_relay,
        metadata_resolver,
        rate_limiter,
        play_video,
        stop_playback,
        control_video,
        set_playback_options,
        set_overlay_mode,
        get_playback_status,
        record_display_stopped,
        get_video_info,
    ):
        # tests may have swapped a provider for a plain callable
        cache_clear = getattr(provider, "cache_clear", None)
        if cache_clear is not None:
            cache_clear()
