from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Optional

from mirrorshare.domain.errors import InvalidAction, InvalidParameter, InvalidReference
from mirrorshare.domain.models import PlaybackState
from mirrorshare.domain.ports.display_channel import IDisplayChannel
from mirrorshare.domain.video_id import extract


_log = logging.getLogger(__name__)

STOP_REASONS = {"manual", "ended", "error", "escape", "api", "module_stop"}
CONTROL_ACTIONS = {"pause", "resume", "rewind", "forward"}
SEEK_ACTIONS = {"rewind", "forward"}
OVERLAY_ACTIONS = {"fullscreen", "windowed", "toggle"}
DEFAULT_SEEK_SECONDS = 10

_CAPTION_FIELDS = ("enabled", "lang")
_QUALITY_FIELDS = ("target", "floor", "ceiling", "lock")
_BOOL_FIELDS = {"enabled", "lock"}


def _seek_seconds(seconds: Any) -> float | int:
    if seconds is None:
        return DEFAULT_SEEK_SECONDS
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        raise InvalidParameter("seconds must be a positive number")
    if not math.isfinite(seconds) or seconds <= 0:
        raise InvalidParameter("seconds must be a positive number")
    return seconds


def _merge(record: Any, patch: Mapping[str, Any], fields: tuple[str, ...]) -> bool:
    changed = False
    for name in fields:
        if name not in patch:
            continue
        value = patch[name]
        if name in _BOOL_FIELDS:
            value = bool(value)
        if getattr(record, name) != value:
            setattr(record, name, value)
            changed = True
    return changed


class PlaybackRelay:
    """Turns API calls into display commands and keeps the last-known state.

    Every operation mutates the state before its first await, so a snapshot
    taken by another request never sees a half-applied update.
    """

    def __init__(self, state: PlaybackState, display: IDisplayChannel) -> None:
        self._state = state
        self._display = display

    async def play(self, url_or_id: Any) -> dict[str, str]:
        ref = extract(url_or_id)
        if ref is None:
            raise InvalidReference("Invalid YouTube URL")
        url = url_or_id.strip()
        self._state.playing = True
        self._state.last_url = url
        self._state.last_video_id = ref.id
        _log.info("playing video %s", ref.id)
        await self._display.send("start-playback", {"videoId": ref.id, "url": url})
        return {"videoId": ref.id}

    async def stop(self, reason: str = "api") -> None:
        if reason not in STOP_REASONS:
            _log.debug("unrecognised stop reason %r", reason)
        self._state.playing = False
        _log.info("stopping playback (%s)", reason)
        await self._display.send("stop-playback", {"reason": reason})

    async def control(self, action: Any, seconds: Any = None) -> dict[str, Any]:
        if not isinstance(action, str) or action not in CONTROL_ACTIONS:
            raise InvalidAction(f"Invalid action: {action}")
        payload: dict[str, Any] = {"action": action}
        if action in SEEK_ACTIONS:
            payload["seconds"] = _seek_seconds(seconds)
        await self._display.send("video-control", payload)
        return {"action": action, "seconds": payload.get("seconds")}

    async def set_options(
        self,
        caption: Optional[Mapping[str, Any]] = None,
        quality: Optional[Mapping[str, Any]] = None,
    ) -> tuple[PlaybackState, bool]:
        for name, patch in (("caption", caption), ("quality", quality)):
            if patch is not None and not isinstance(patch, Mapping):
                raise InvalidParameter(f"{name} must be an object")
        changes: dict[str, Any] = {}
        if caption and _merge(self._state.caption, caption, _CAPTION_FIELDS):
            changes["caption"] = self._state.caption.to_dict()
        if quality and _merge(self._state.quality, quality, _QUALITY_FIELDS):
            changes["quality"] = self._state.quality.to_dict()
        snapshot = self._state.snapshot()
        if changes:
            await self._display.send("apply-options", changes)
        return snapshot, bool(changes)

    async def set_overlay_mode(self, action: Any) -> None:
        if not isinstance(action, str) or action not in OVERLAY_ACTIONS:
            raise InvalidAction(f"Invalid overlay action: {action}")
        await self._display.send("set-overlay-mode", {"action": action})

    def display_stopped(self, reason: Optional[str]) -> None:
        """A display client reported that playback ended on its side."""
        self._state.playing = False
        _log.info("display reported playback stopped: %s", reason or "unknown")

    def status(self) -> PlaybackState:
        return self._state.snapshot()
