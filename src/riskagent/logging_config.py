"""Application logging configuration utilities."""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

AUDIT_LOGGER_NAME = "riskagent.indexing.audit"
DELIVERY_LOG_FILENAME = "index_delivery.log"

# pdfminer reports every unknown glyph and httpx every request at INFO
_NOISY_LOGGERS = ("pdfminer", "PyPDF2", "httpx", "httpcore")

_STANDARD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


def _utc_timestamp(created: float) -> str:
    return datetime.fromtimestamp(created, tz=timezone.utc).isoformat().replace("+00:00", "Z")


class MinimalJSONFormatter(logging.Formatter):
    """Render a record as one JSON object per line.

    Dict messages (structured events from :mod:`riskagent.telemetry`) are merged
    into the top level; ``extra=`` attributes are copied verbatim.
    """

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - inherited
        timestamp = _utc_timestamp(record.created)
        payload: dict[str, Any] = {
            "ts": timestamp,
            "timestamp": timestamp,
            "level": record.levelname,
            "module": record.name,
        }

        if isinstance(record.msg, dict):
            payload.update(record.msg)
        else:
            message = record.getMessage()
            if message:
                payload["message"] = message

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRIBUTES and not key.startswith("_")
        )
        return json.dumps(payload, ensure_ascii=False, default=str)


def delivery_log_path(log_dir: Path | str = "logs") -> Path:
    return Path(log_dir) / DELIVERY_LOG_FILENAME


def configure_logging(log_dir: Path | str = "logs", level: str = "INFO") -> None:
    """Install JSON console logging plus the chunk delivery audit file.

    Background deliveries are not tied to any request, so their outcomes are
    only recorded in the audit file and the console stream.
    """

    audit_path = delivery_log_path(log_dir)
    audit_path.parent.mkdir(parents=True, exist_ok=True)

    loggers: dict[str, Any] = {
        AUDIT_LOGGER_NAME: {
            "level": "INFO",
            "handlers": ["index_delivery"],
            "propagate": False,
        }
    }
    loggers.update({name: {"level": "WARNING"} for name in _NOISY_LOGGERS})

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"json": {"()": MinimalJSONFormatter}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                },
                "index_delivery": {
                    "class": "logging.FileHandler",
                    "filename": str(audit_path),
                    "mode": "a",
                    "encoding": "utf-8",
                    "formatter": "json",
                },
            },
            "root": {"level": level.upper(), "handlers": ["console"]},
            "loggers": loggers,
        }
    )
