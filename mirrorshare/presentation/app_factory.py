from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from mirrorshare.config import settings
from mirrorshare.container import rate_limiter
from mirrorshare.infrastructure.admission.rate_limiter import sweep_loop
from mirrorshare.infrastructure.logging_setup import init_logging, install_fault_handlers
from mirrorshare.infrastructure.metrics.metrics import setup_metrics
from mirrorshare.presentation.api.display_routes import router as display_router
from mirrorshare.presentation.api.routes import router as api_router
from mirrorshare.presentation.api.share_routes import router as share_router
from mirrorshare.presentation.middleware import install_exception_handlers, install_middleware


_log = logging.getLogger(__name__)

_sweep_stop_event: Optional[asyncio.Event] = None
_sweep_task: Optional[asyncio.Task] = None


def create_app() -> FastAPI:
    # Initialize logging before app construction to capture startup logs
    init_logging()
    app = FastAPI(title=settings.app_name)

    install_middleware(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    install_exception_handlers(app)

    app.include_router(api_router)
    app.include_router(share_router)
    app.include_router(display_router)

    if settings.metrics_enabled:
        # Prometheus metrics (/metrics) + psutil process gauges
        setup_metrics(app)

    # PWA assets; mounted last so the routers above take precedence
    public_dir = Path(settings.public_dir)
    if public_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(public_dir), html=True), name="public")
    else:
        _log.debug("public dir %s not found; PWA not served", public_dir)

    app.add_event_handler("startup", _startup)
    app.add_event_handler("shutdown", _shutdown)
    return app


async def _startup() -> None:
    global _sweep_stop_event, _sweep_task
    _log.info("application startup")
    install_fault_handlers(asyncio.get_running_loop())
    _sweep_stop_event = asyncio.Event()
    _sweep_task = asyncio.create_task(sweep_loop(rate_limiter(), _sweep_stop_event))


async def _shutdown() -> None:
    _log.info("application shutdown")
    if _sweep_stop_event is not None:
        _sweep_stop_event.set()
    if _sweep_task is not None:
        _sweep_task.cancel()


app = create_app()
