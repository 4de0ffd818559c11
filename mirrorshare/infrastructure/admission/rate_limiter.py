from __future__ import annotations

import asyncio
import logging
import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable


_log = logging.getLogger(__name__)


@dataclass(slots=True)
class RateWindow:
    count: int
    window_start: float  # seconds, from the limiter clock


@dataclass(frozen=True, slots=True)
class AdmissionDecision:
    allowed: bool
    retry_after: int = 0


ALLOW = AdmissionDecision(True)


class FixedWindowRateLimiter:
    """Per-identifier request window: ``max_requests`` per ``window_ms``.

    Expired windows are dropped lazily on access and by ``sweep()``. The
    number of tracked identifiers is capped; the oldest windows go first.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_ms: int = 60_000,
        *,
        sweep_interval: float = 30.0,
        max_clients: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1 or window_ms < 1:
            raise ValueError("max_requests and window_ms must be positive")
        self.max_requests = max_requests
        self.window_ms = window_ms
        self.sweep_interval = sweep_interval
        self.max_clients = max(1, max_clients)
        self._clock = clock
        # insertion order == window_start order; fresh windows are moved to the end
        self._windows: OrderedDict[str, RateWindow] = OrderedDict()
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._windows)

    def _elapsed_ms(self, window: RateWindow, now: float) -> float:
        return (now - window.window_start) * 1000.0

    def admit(self, identifier: str) -> AdmissionDecision:
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.sweep_interval:
                self._sweep_locked(now)
            window = self._windows.get(identifier)
            if window is None or self._elapsed_ms(window, now) > self.window_ms:
                self._windows[identifier] = RateWindow(count=1, window_start=now)
                self._windows.move_to_end(identifier)
                while len(self._windows) > self.max_clients:
                    self._windows.popitem(last=False)
                return ALLOW
            window.count += 1
            if window.count > self.max_requests:
                remaining = self.window_ms - self._elapsed_ms(window, now)
                return AdmissionDecision(False, max(1, math.ceil(remaining / 1000.0)))
            return ALLOW

    def _sweep_locked(self, now: float) -> int:
        expired = [k for k, w in self._windows.items() if self._elapsed_ms(w, now) > self.window_ms]
        for k in expired:
            del self._windows[k]
        self._last_sweep = now
        return len(expired)

    def sweep(self) -> int:
        with self._lock:
            return self._sweep_locked(self._clock())


async def sweep_loop(limiter: FixedWindowRateLimiter, stop_event: asyncio.Event) -> None:
    while not stop_event.is_set():
        try:
            removed = limiter.sweep()
            if removed:
                _log.debug("rate limiter sweep: removed=%s tracked=%s", removed, len(limiter))
        except Exception as exc:  # noqa: BLE001
            _log.error("rate limiter sweep error: %s", exc)
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=max(1.0, limiter.sweep_interval))
        except asyncio.TimeoutError:
            pass
