from __future__ import annotations

import asyncio
import logging
from typing import Any, Set

from fastapi import WebSocket

from mirrorshare.domain.ports.display_channel import CommandKind, DisplayCommand, IDisplayChannel
from mirrorshare.infrastructure.metrics.metrics import DISPLAY_COMMANDS, GAUGE_DISPLAY_CLIENTS


_log = logging.getLogger(__name__)


class WebSocketDisplayChannel(IDisplayChannel):
    def __init__(self) -> None:
        self._clients: Set[WebSocket] = set()
        self._lock = asyncio.Lock()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def register(self, ws: WebSocket) -> None:
        async with self._lock:
            self._clients.add(ws)
            GAUGE_DISPLAY_CLIENTS.set(len(self._clients))
        _log.info("display client connected (%s total)", len(self._clients))

    async def unregister(self, ws: WebSocket) -> None:
        async with self._lock:
            self._clients.discard(ws)
            GAUGE_DISPLAY_CLIENTS.set(len(self._clients))
        _log.info("display client disconnected (%s total)", len(self._clients))

    async def send(self, kind: CommandKind, payload: dict[str, Any]) -> None:
        # broadcast without failing the caller
        command: DisplayCommand = {"type": kind, "payload": payload}
        DISPLAY_COMMANDS.labels(kind=kind).inc()
        async with self._lock:
            clients = list(self._clients)
        if not clients:
            _log.debug("no display client connected; dropped %s", kind)
            return
        to_drop: list[WebSocket] = []
        for ws in clients:
            try:
                await ws.send_json(command)
            except Exception as exc:  # noqa: BLE001
                _log.debug("display send failed, dropping client: %s", exc)
                to_drop.append(ws)
        if to_drop:
            async with self._lock:
                for ws in to_drop:
                    self._clients.discard(ws)
                GAUGE_DISPLAY_CLIENTS.set(len(self._clients))
