from __future__ import annotations

import logging
import os
import threading
import time
from typing import Optional

import psutil
from fastapi import FastAPI
from prometheus_client import Counter, Gauge
from prometheus_fastapi_instrumentator import Instrumentator


_log = logging.getLogger(__name__)

_PROCESS: Optional[psutil.Process] = None
_SAMPLER_THREAD: Optional[threading.Thread] = None
_STOP_EVENT: Optional[threading.Event] = None


# Domain counters
METADATA_ATTEMPTS = Counter(
    "mirrorshare_metadata_attempts_total",
    "Metadata source attempts by source and outcome (ok, empty, timeout, error, fallback)",
    ["source", "outcome"],
)
DISPLAY_COMMANDS = Counter(
    "mirrorshare_display_commands_total",
    "Commands sent toward display clients",
    ["kind"],
)
ADMISSION_REJECTIONS = Counter(
    "mirrorshare_admission_rejections_total",
    "Requests rejected by the rate limiter",
)

# Gauges for current process metrics
GAUGE_DISPLAY_CLIENTS = Gauge(
    "mirrorshare_display_clients",
    "Display clients currently connected over WebSocket",
)
GAUGE_PROC_CPU_PERCENT = Gauge(
    "mirrorshare_process_cpu_percent",
    "Current process CPU utilization percent",
)
GAUGE_PROC_RSS_BYTES = Gauge(
    "mirrorshare_process_memory_rss_bytes",
    "Current process Resident Set Size in bytes",
)


def _sample_metrics_loop(stop_event: threading.Event, poll_seconds: float = 5.0) -> None:
    assert _PROCESS is not None
    # Prime cpu_percent to avoid first-call 0.0
    _ = _PROCESS.cpu_percent(interval=None)
    while not stop_event.is_set():
        try:
            GAUGE_PROC_CPU_PERCENT.set(_PROCESS.cpu_percent(interval=None))
            GAUGE_PROC_RSS_BYTES.set(_PROCESS.memory_info().rss)
        except Exception as exc:  # noqa: BLE001
            _log.debug("metrics sample failed: %s", exc)
        stop_event.wait(poll_seconds)


def process_uptime() -> float:
    proc = _PROCESS or psutil.Process(os.getpid())
    return max(0.0, time.time() - proc.create_time())


def setup_metrics(app: FastAPI) -> None:
    """Attach Prometheus instrumentation and the process sampler.

    - Exposes /metrics with default FastAPI request metrics
    - Samples process CPU and memory via psutil while the app runs
    """
    instrumentator = Instrumentator().instrument(app)
    instrumentator.expose(app, include_in_schema=False)

    global _PROCESS
    _PROCESS = psutil.Process(os.getpid())

    @app.on_event("startup")
    async def _start_sampler() -> None:
        global _STOP_EVENT, _SAMPLER_THREAD
        if _SAMPLER_THREAD is not None and _SAMPLER_THREAD.is_alive():
            return
        _STOP_EVENT = threading.Event()
        _SAMPLER_THREAD = threading.Thread(
            target=_sample_metrics_loop, name="metrics-sampler", args=(_STOP_EVENT,), daemon=True
        )
        _SAMPLER_THREAD.start()

    @app.on_event("shutdown")
    async def _stop_sampler() -> None:
        if _STOP_EVENT is not None:
            _STOP_EVENT.set()
        if _SAMPLER_THREAD is not None and _SAMPLER_THREAD.is_alive():
            _SAMPLER_THREAD.join(timeout=2.0)
