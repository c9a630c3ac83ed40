"""Environment driven settings for the ingestion service."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

LOGGER = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 500
DEFAULT_CHUNK_OVERLAP = 50
DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY_MS = 1000
DEFAULT_INDEX_DOCUMENT_PATH = "/api/index-document"
DEFAULT_LOCAL_BASE_URL = "http://localhost:8000"
DEFAULT_ELASTICSEARCH_URI = "http://localhost:9200"
DEFAULT_ELASTICSEARCH_INDEX = "risk-agent-documents"


def _str_from_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value or default


def _int_from_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        LOGGER.warning("Invalid integer for %s: %s; using default %s", name, value, default)
        return default


def _float_from_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        LOGGER.warning("Invalid float for %s: %s; using default %s", name, value, default)
        return default


@dataclass(slots=True, frozen=True)
class IngestSettings:
    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP
    chunking_strategy: str = "recursive"
    index_max_retries: int = DEFAULT_MAX_RETRIES
    index_initial_delay_ms: int = DEFAULT_INITIAL_DELAY_MS
    index_document_path: str = DEFAULT_INDEX_DOCUMENT_PATH
    index_api_key: str | None = None
    index_timeout_seconds: float = 30.0
    website_hostname: str | None = None
    local_base_url: str = DEFAULT_LOCAL_BASE_URL
    elasticsearch_uri: str = DEFAULT_ELASTICSEARCH_URI
    elasticsearch_api_key: str | None = None
    elasticsearch_index_name: str = DEFAULT_ELASTICSEARCH_INDEX
    environment: str = "development"
    log_dir: str = "logs"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "IngestSettings":
        """Build settings from process environment variables."""

        return cls(
            chunk_size=_int_from_env("CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            chunk_overlap=_int_from_env("CHUNK_OVERLAP", DEFAULT_CHUNK_OVERLAP),
            chunking_strategy=(_str_from_env("CHUNKING_STRATEGY", "recursive") or "recursive").lower(),
            index_max_retries=_int_from_env("INDEX_MAX_RETRIES", DEFAULT_MAX_RETRIES),
            index_initial_delay_ms=_int_from_env("INDEX_INITIAL_DELAY_MS", DEFAULT_INITIAL_DELAY_MS),
            index_document_path=_str_from_env("INDEX_DOCUMENT_PATH", DEFAULT_INDEX_DOCUMENT_PATH)
            or DEFAULT_INDEX_DOCUMENT_PATH,
            index_api_key=_str_from_env("INDEX_FUNCTION_KEY"),
            index_timeout_seconds=_float_from_env("INDEX_TIMEOUT_SECONDS", 30.0),
            website_hostname=_str_from_env("WEBSITE_HOSTNAME"),
            local_base_url=_str_from_env("INDEX_LOCAL_BASE_URL", DEFAULT_LOCAL_BASE_URL)
            or DEFAULT_LOCAL_BASE_URL,
            elasticsearch_uri=_str_from_env("ELASTICSEARCH_URI", DEFAULT_ELASTICSEARCH_URI)
            or DEFAULT_ELASTICSEARCH_URI,
            elasticsearch_api_key=_str_from_env("ELASTICSEARCH_API_KEY"),
            elasticsearch_index_name=_str_from_env("ELASTICSEARCH_INDEX_NAME", DEFAULT_ELASTICSEARCH_INDEX)
            or DEFAULT_ELASTICSEARCH_INDEX,
            environment=_str_from_env("ENVIRONMENT", "development") or "development",
            log_dir=_str_from_env("LOG_DIR", "logs") or "logs",
            log_level=(_str_from_env("LOG_LEVEL", "INFO") or "INFO").upper(),
        )


@lru_cache()
def get_settings() -> IngestSettings:
    return IngestSettings.from_env()
