"""Centralised observability helpers for structured lifecycle logging."""

from __future__ import annotations

import logging
import os
import platform
import socket
import sys
import traceback
from typing import Any, Optional

from riskagent.logging_config import AUDIT_LOGGER_NAME

LOGGER = logging.getLogger("riskagent.telemetry")
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)

_ENV_KEYS_TO_LOG: tuple[str, ...] = (
    "CHUNK_SIZE",
    "CHUNK_OVERLAP",
    "CHUNKING_STRATEGY",
    "INDEX_MAX_RETRIES",
    "INDEX_INITIAL_DELAY_MS",
    "INDEX_DOCUMENT_PATH",
    "WEBSITE_HOSTNAME",
    "ELASTICSEARCH_URI",
    "ELASTICSEARCH_INDEX_NAME",
    "ENVIRONMENT",
)


def _format_exception(error: BaseException) -> str:
    return "".join(traceback.format_exception(error.__class__, error, error.__traceback__))


def log_event(
    logger: Optional[logging.Logger],
    step: str,
    *,
    level: str = "info",
    document_id: str | None = None,
    duration_ms: float | None = None,
    exc: BaseException | str | None = None,
    details: dict[str, Any] | None = None,
    **payload: Any,
) -> None:
    """Emit a structured log event with the agreed-upon schema."""

    logger = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": logger.name}
    if document_id:
        event["document_id"] = document_id
    if duration_ms is not None:
        event["duration_ms"] = round(duration_ms, 3)
    if details is not None:
        event["details"] = details
    event.update(payload)

    exc_info = None
    if exc is not None:
        if isinstance(exc, BaseException):
            event["exc"] = _format_exception(exc)
            exc_info = (exc.__class__, exc, exc.__traceback__)
        else:
            event["exc"] = str(exc)

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(event, exc_info=exc_info)


def emit_app_startup_event() -> None:
    env = {key: os.getenv(key) for key in _ENV_KEYS_TO_LOG}
    details = {
        "python": sys.version.split()[0],
        "platform": platform.platform(),
        "hostname": socket.gethostname(),
        "env": env,
    }
    log_event(LOGGER, "app_startup", details=details)


def emit_ingest_event(
    step: str,
    *,
    file_name: str | None,
    document_id: str | None,
    size_bytes: int | None = None,
    duration_ms: float | None = None,
    pages: int | None = None,
    chunks: int | None = None,
    indexing: bool | None = None,
) -> None:
    details = {
        "file": file_name,
        "size_bytes": size_bytes,
        "pages": pages,
        "chunks": chunks,
        "indexing": indexing,
    }
    log_event(LOGGER, step, document_id=document_id, duration_ms=duration_ms, details=details)


def emit_delivery_event(
    step: str,
    *,
    file_name: str | None,
    page_number: int | None = None,
    page_chunk_number: int | None = None,
    status: str | None = None,
    attempts: int | None = None,
    status_code: int | None = None,
    duration_ms: float | None = None,
    level: str = "info",
    **payload: Any,
) -> None:
    """Record the outcome of an indexing delivery on the audit channel."""

    details = {
        "file": file_name,
        "page_number": page_number,
        "page_chunk_number": page_chunk_number,
        "status": status,
        "attempts": attempts,
        "status_code": status_code,
    }
    details.update(payload)
    log_event(AUDIT_LOGGER, step, level=level, duration_ms=duration_ms, details=details)


def emit_exception(step: str, error: BaseException, *, logger: Optional[logging.Logger] = None) -> None:
    log_event(logger or LOGGER, step, level="error", exc=error)
