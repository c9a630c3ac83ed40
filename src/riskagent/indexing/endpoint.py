"""Resolve where chunk indexing requests are sent."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from riskagent.config import IngestSettings

LOGGER = logging.getLogger(__name__)

_LOCAL_HOSTNAMES = ("localhost", "127.0.0.1", "0.0.0.0", "[::1]")


@dataclass(slots=True, frozen=True)
class IndexEndpoint:
    base_url: str
    verify_tls: bool
    api_key: Optional[str]
    is_local: bool


def _is_local_hostname(hostname: str) -> bool:
    host = hostname.lower()
    return any(host == name or host.startswith(f"{name}:") for name in _LOCAL_HOSTNAMES)


def resolve_index_endpoint(settings: IngestSettings) -> IndexEndpoint:
    """Pick the deployed host when one is advertised, otherwise the local server."""

    hostname = (settings.website_hostname or "").strip()
    if hostname and not _is_local_hostname(hostname):
        endpoint = IndexEndpoint(
            base_url=f"https://{hostname}",
            verify_tls=True,
            api_key=settings.index_api_key,
            is_local=False,
        )
    else:
        endpoint = IndexEndpoint(
            base_url=settings.local_base_url.rstrip("/"),
            verify_tls=False,
            api_key=None,
            is_local=True,
        )
    LOGGER.info(
        "Index endpoint resolved to %s (local=%s, api_key=%s)",
        endpoint.base_url,
        endpoint.is_local,
        "set" if endpoint.api_key else "unset",
    )
    return endpoint
