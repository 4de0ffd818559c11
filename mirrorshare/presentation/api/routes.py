from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Body, HTTPException
from fastapi.responses import JSONResponse

from mirrorshare.config import settings
from mirrorshare.container import (
    control_video as uc_control_video,
    get_playback_status as uc_get_playback_status,
    get_video_info as uc_get_video_info,
    play_video as uc_play_video,
    set_overlay_mode as uc_set_overlay_mode,
    set_playback_options as uc_set_playback_options,
    stop_playback as uc_stop_playback,
)
from mirrorshare.domain.errors import InputValidationError
from mirrorshare.domain.video_id import extract
from mirrorshare.infrastructure.metadata.resolver import fallback_metadata
from mirrorshare.infrastructure.metrics.metrics import process_uptime


_log = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@router.post("/play")
async def play(payload: dict | None = Body(default=None)) -> dict:
    url = (payload or {}).get("url")
    try:
        result = await uc_play_video()(url)
    except InputValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"ok": True, "mode": "embedded", "videoId": result["videoId"]}


@router.post("/stop")
async def stop(payload: dict | None = Body(default=None)) -> dict:
    reason = str((payload or {}).get("reason") or "api")
    await uc_stop_playback()(reason)
    return {"ok": True, "message": "Playback stopped"}


@router.post("/control")
async def control(payload: dict | None = Body(default=None)) -> dict:
    body = payload or {}
    try:
        result = await uc_control_video()(body.get("action"), body.get("seconds"))
    except InputValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"ok": True, "action": result["action"], "seconds": result["seconds"]}


@router.post("/options")
async def options(payload: dict | None = Body(default=None)) -> dict:
    body = payload or {}
    try:
        state, updated = await uc_set_playback_options()(
            caption=body.get("caption"),
            quality=body.get("quality"),
        )
    except InputValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"ok": True, "state": state.to_dict(), "updated": updated}


@router.get("/status")
async def status() -> dict:
    state = uc_get_playback_status()()
    return {
        "ok": True,
        "state": state.to_dict(),
        "config": {"port": settings.port, "httpsEnabled": settings.https_ready},
        "timestamp": _now_iso(),
    }


@router.post("/video-info")
async def video_info(payload: dict | None = Body(default=None)) -> Any:
    video_id = (payload or {}).get("videoId")
    try:
        meta = await uc_get_video_info()(video_id)
    except InputValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception:  # noqa: BLE001
        # resolve() does not raise; this guards the wiring around it
        _log.exception("video info failed for %s", video_id)
        ref = extract(video_id)
        fallback = fallback_metadata(ref).to_dict() if ref is not None else None
        return JSONResponse(
            status_code=500,
            content={"ok": False, "error": "Failed to fetch video information", "fallback": fallback},
        )
    if meta.is_fallback:
        return JSONResponse(
            status_code=500,
            content={"ok": False, "error": "Video information unavailable", "fallback": meta.to_dict()},
        )
    return {"ok": True, "data": meta.to_dict()}


@router.post("/overlay")
async def overlay(payload: dict | None = Body(default=None)) -> dict:
    action = (payload or {}).get("action")
    try:
        await uc_set_overlay_mode()(action)
    except InputValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"ok": True, "action": action}


@router.get("/health")
async def health() -> dict:
    return {
        "ok": True,
        "status": "healthy",
        "uptime": round(process_uptime(), 3),
        "timestamp": _now_iso(),
    }
