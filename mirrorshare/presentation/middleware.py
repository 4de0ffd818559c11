from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mirrorshare.config import settings
from mirrorshare.container import rate_limiter
from mirrorshare.infrastructure.metrics.metrics import ADMISSION_REJECTIONS


_log = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline' https://www.youtube.com; "
        "frame-src https://www.youtube.com; "
        "img-src 'self' data: https:; "
        "style-src 'self' 'unsafe-inline'; "
        "connect-src 'self'"
    ),
}

TOO_LARGE = "Request too large"

# never rate limited
_UNLIMITED_PATHS = {"/metrics"}

CallNext = Callable[[Request], Awaitable[Response]]


def client_identifier(request: Request) -> str:
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


class BodySizeLimitMiddleware:
    """Reject request bodies above ``settings.max_body_bytes`` with 413.

    A declared ``Content-Length`` is checked up front; chunked bodies are
    counted as they are read and abort the handler once over the limit.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        limit = settings.max_body_bytes
        declared = Headers(scope=scope).get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > limit:
            _log.debug("rejecting %s byte body on %s", declared, scope.get("path"))
            response = JSONResponse(status_code=413, content={"ok": False, "error": TOO_LARGE})
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    # surfaces through the HTTPException handler as a 413 envelope
                    raise HTTPException(status_code=413, detail=TOO_LARGE)
            return message

        await self.app(scope, limited_receive, send)


def install_middleware(app: FastAPI) -> None:
    app.add_middleware(BodySizeLimitMiddleware)

    @app.middleware("http")
    async def _admission(request: Request, call_next: CallNext) -> Response:
        if request.url.path in _UNLIMITED_PATHS or request.method == "OPTIONS":
            return await call_next(request)
        decision = rate_limiter().admit(client_identifier(request))
        if not decision.allowed:
            ADMISSION_REJECTIONS.inc()
            _log.debug("rate limited %s on %s", client_identifier(request), request.url.path)
            return JSONResponse(
                status_code=429,
                content={"ok": False, "error": "Too many requests", "retryAfter": decision.retry_after},
                headers={"Retry-After": str(decision.retry_after)},
            )
        return await call_next(request)

    # registered last, so outermost: 429s and 413s get the headers too
    @app.middleware("http")
    async def _security_headers(request: Request, call_next: CallNext) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"ok": False, "error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
        invalid_json = any(err.get("type") == "json_invalid" for err in exc.errors())
        return JSONResponse(
            status_code=400,
            content={"ok": False, "error": "Invalid JSON" if invalid_json else "Invalid request body"},
        )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        _log.error("request error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"ok": False, "error": "Internal server error"})
