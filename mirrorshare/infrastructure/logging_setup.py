from __future__ import annotations

import asyncio
import json
import logging
import os
import socket
import sys
import threading
import time as _time
from datetime import datetime, timezone
from logging import Handler
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Any

from mirrorshare.config import settings


_STANDARD_LOG_KEYS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
}


_LOGGING_INITIALIZED = False

_log = logging.getLogger(__name__)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        if bool(getattr(settings, "log_utc", True)):
            _dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        else:
            _dt = datetime.fromtimestamp(record.created, tz=timezone.utc).astimezone()

        payload: dict[str, Any] = {
            "time": _dt.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "lineno": record.lineno,
            "func": record.funcName,
            "process": record.process,
        }
        payload["service"] = getattr(settings, "app_name", "app")
        payload["host"] = socket.gethostname()
        env_name = os.getenv("ENV") or os.getenv("ENVIRONMENT") or None
        if env_name:
            payload["environment"] = env_name
        # extras
        for k, v in record.__dict__.items():
            if k not in _STANDARD_LOG_KEYS and k not in payload:
                try:
                    json.dumps(v)  # ensure serializable
                    payload[k] = v
                except (TypeError, ValueError):
                    payload[k] = str(v)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)
        return json.dumps(payload, ensure_ascii=False)


def _apply_formatter_to_logger(logger_name: str, formatter: logging.Formatter) -> None:
    logger = logging.getLogger(logger_name)
    for h in logger.handlers:
        h.setFormatter(formatter)


def _build_file_handler(log_path: Path) -> Handler:
    if getattr(settings, "log_rotation", "size").lower() == "time":
        return TimedRotatingFileHandler(
            filename=os.fspath(log_path),
            when=settings.log_when,
            interval=int(settings.log_interval),
            backupCount=int(settings.log_backup_count),
            encoding="utf-8",
            utc=bool(settings.log_utc),
        )
    return RotatingFileHandler(
        filename=os.fspath(log_path),
        maxBytes=int(settings.log_max_bytes),
        backupCount=int(settings.log_backup_count),
        encoding="utf-8",
    )


def init_logging() -> None:
    global _LOGGING_INITIALIZED
    if _LOGGING_INITIALIZED:
        return
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    # Console: human-readable text; File: JSON (if enabled)
    text_formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if bool(settings.log_utc):
        text_formatter.converter = _time.gmtime  # type: ignore[attr-defined]
    else:
        text_formatter.converter = _time.localtime  # type: ignore[attr-defined]

    # Stream handler (console): ensure exactly one
    stream_handlers = [
        h for h in root.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]
    if not stream_handlers:
        sh = logging.StreamHandler()
        sh.setLevel(level)
        sh.setFormatter(text_formatter)
        root.addHandler(sh)
    else:
        # Keep the first, remove duplicates to avoid double logs
        stream_handlers[0].setFormatter(text_formatter)
        for h in stream_handlers[1:]:
            root.removeHandler(h)

    if settings.log_file_enabled:
        log_dir = Path(settings.log_dir)
        log_path = log_dir / settings.log_file_name
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            _log.warning("cannot create log dir %s: %s; file logging disabled", log_dir, exc)
        else:
            def is_same_file_handler(handler: Handler) -> bool:
                return (
                    getattr(handler, "baseFilename", None) == os.path.abspath(log_path)
                    and isinstance(handler, (RotatingFileHandler, TimedRotatingFileHandler))
                )

            if not any(is_same_file_handler(h) for h in root.handlers):
                fh = _build_file_handler(log_path)
                fh.setLevel(level)
                fh.setFormatter(JsonFormatter())
                root.addHandler(fh)

    # Align uvicorn formatters with the console
    _apply_formatter_to_logger("uvicorn", text_formatter)
    _apply_formatter_to_logger("uvicorn.error", text_formatter)
    _apply_formatter_to_logger("uvicorn.access", text_formatter)

    _LOGGING_INITIALIZED = True


def install_fault_handlers(loop: asyncio.AbstractEventLoop | None = None) -> None:
    """Log uncaught exceptions instead of letting them take the process down."""

    def _excepthook(exc_type, exc, tb) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc, tb)
            return
        _log.critical("uncaught exception", exc_info=(exc_type, exc, tb))

    def _thread_excepthook(args: threading.ExceptHookArgs) -> None:
        thread_name = args.thread.name if args.thread is not None else "?"
        _log.critical(
            "uncaught exception in thread %s",
            thread_name,
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )

    def _loop_exception_handler(_loop: asyncio.AbstractEventLoop, context: dict) -> None:
        exc = context.get("exception")
        _log.error(
            "unhandled async error: %s",
            context.get("message", "unknown"),
            exc_info=(type(exc), exc, exc.__traceback__) if exc is not None else None,
        )

    sys.excepthook = _excepthook
    threading.excepthook = _thread_excepthook
    if loop is not None:
        loop.set_exception_handler(_loop_exception_handler)
