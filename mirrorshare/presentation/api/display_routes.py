from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from mirrorshare.container import display_channel, record_display_stopped


_log = logging.getLogger(__name__)

router = APIRouter(prefix="/display")


@router.websocket("/ws")
async def display_ws(ws: WebSocket) -> None:
    channel = display_channel()
    await ws.accept()
    await channel.register(ws)
    try:
        while True:
            frame = await ws.receive()
            if frame["type"] == "websocket.disconnect":
                break
            raw = frame.get("text")
            if raw is None:
                _log.debug("ignoring binary display frame")
                continue
            try:
                message = json.loads(raw)
            except ValueError:
                _log.debug("ignoring non-JSON display message")
                continue
            if not isinstance(message, dict):
                continue
            if message.get("type") == "playback-stopped":
                payload = message.get("payload") if isinstance(message.get("payload"), dict) else {}
                record_display_stopped()(message.get("reason") or payload.get("reason"))
    except WebSocketDisconnect:
        pass
    finally:
        await channel.unregister(ws)
