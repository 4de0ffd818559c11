from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from mirrorshare.application.playback_relay import PlaybackRelay
from mirrorshare.domain.models import PlaybackState


@dataclass(slots=True)
class PlayVideo:
    relay: PlaybackRelay

    async def __call__(self, url: Any) -> dict[str, str]:
        return await self.relay.play(url)


@dataclass(slots=True)
class StopPlayback:
    relay: PlaybackRelay

    async def __call__(self, reason: str = "api") -> None:
        await self.relay.stop(reason)


@dataclass(slots=True)
class ControlVideo:
    relay: PlaybackRelay

    async def __call__(self, action: Any, seconds: Any = None) -> dict[str, Any]:
        return await self.relay.control(action, seconds)


@dataclass(slots=True)
class SetPlaybackOptions:
    relay: PlaybackRelay

    async def __call__(
        self,
        caption: Optional[Mapping[str, Any]] = None,
        quality: Optional[Mapping[str, Any]] = None,
    ) -> tuple[PlaybackState, bool]:
        return await self.relay.set_options(caption=caption, quality=quality)


@dataclass(slots=True)
class SetOverlayMode:
    relay: PlaybackRelay

    async def __call__(self, action: Any) -> None:
        await self.relay.set_overlay_mode(action)


@dataclass(slots=True)
class GetPlaybackStatus:
    relay: PlaybackRelay

    def __call__(self) -> PlaybackState:
        return self.relay.status()


@dataclass(slots=True)
class RecordDisplayStopped:
    relay: PlaybackRelay

    def __call__(self, reason: Optional[str]) -> None:
        self.relay.display_stopped(reason)
