from __future__ import annotations

import logging
import ssl

import uvicorn

from mirrorshare.config import settings
from mirrorshare.infrastructure.logging_setup import init_logging


_log = logging.getLogger(__name__)


def tls_options() -> dict:
    """uvicorn TLS kwargs, or {} when TLS is off or the key/cert do not load."""
    if settings.https_enabled and not settings.https_ready:
        _log.warning("HTTPS enabled but key/cert path missing; serving plain HTTP")
        settings.https_enabled = False
        return {}
    if not settings.https_ready:
        return {}
    try:
        ssl.create_default_context(ssl.Purpose.CLIENT_AUTH).load_cert_chain(
            certfile=settings.https_cert_path,
            keyfile=settings.https_key_path,
        )
    except (OSError, ssl.SSLError) as exc:
        _log.warning("HTTPS setup failed (%s); falling back to HTTP", exc)
        settings.https_enabled = False
        return {}
    return {"ssl_certfile": settings.https_cert_path, "ssl_keyfile": settings.https_key_path}


def run() -> None:
    init_logging()
    tls = tls_options()
    _log.info(
        "%s listening on %s://%s:%s",
        settings.app_name,
        "https" if tls else "http",
        settings.host,
        settings.port,
    )
    uvicorn.run(
        "mirrorshare.presentation.app_factory:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        **tls,
    )


if __name__ == "__main__":
    run()
