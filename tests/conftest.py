from __future__ import annotations

import asyncio
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

from mirrorshare import container
from mirrorshare.domain.models import VideoMetadata, VideoReference


class FakeDisplayChannel:
    def __init__(self) -> None:
        self.commands: list[tuple[str, dict[str, Any]]] = []

    async def send(self, kind: str, payload: dict[str, Any]) -> None:
        self.commands.append((kind, payload))

    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.commands]


class FakeSource:
    """Metadata source double: returns a fixed record, None, or raises."""

    def __init__(self, name: str, result: Any = None, *, timeout: float = 1.0, delay: float = 0.0) -> None:
        self.name = name
        self.timeout = timeout
        self.delay = delay
        self.result = result
        self.calls: list[str] = []

    async def attempt(self, ref: VideoReference) -> Optional[VideoMetadata]:
        self.calls.append(ref.id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result


@pytest.fixture(autouse=True)
def fresh_container():
    container.reset()
    yield
    container.reset()


@pytest.fixture
def display(monkeypatch) -> FakeDisplayChannel:
    fake = FakeDisplayChannel()
    monkeypatch.setattr(container, "display_channel", lambda: fake)
    return fake


@pytest.fixture
def client() -> TestClient:
    from mirrorshare.presentation.app_factory import app

    return TestClient(app)
