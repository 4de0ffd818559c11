from __future__ import annotations

from typing import Any, Literal, Protocol, TypedDict


CommandKind = Literal[
    "start-playback",
    "stop-playback",
    "apply-options",
    "video-control",
    "set-overlay-mode",
]


class DisplayCommand(TypedDict):
    type: CommandKind
    payload: dict[str, Any]


class IDisplayChannel(Protocol):
    async def send(self, kind: CommandKind, payload: dict[str, Any]) -> None:
        """Deliver a command to every connected display client.

        At-most-once and unacknowledged; implementations must never raise.
        """
        ...
