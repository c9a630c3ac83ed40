"""Base64 decoding for uploaded document content."""
from __future__ import annotations

import base64
import binascii
import re

from riskagent.errors import FormatError

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_base64(value: str) -> str:
    """Map the URL-safe alphabet to the standard one, drop whitespace and pad."""

    normalized = value.replace("-", "+").replace("_", "/")
    normalized = _WHITESPACE_RE.sub("", normalized)
    remainder = len(normalized) % 4
    if remainder:
        normalized += "=" * (4 - remainder)
    return normalized


def decode_base64(value: str) -> bytes:
    """Decode standard or URL-safe Base64, tolerating whitespace and missing padding."""

    if value is None:
        raise FormatError("Base64 content cannot be empty.")

    normalized = normalize_base64(value)
    if not normalized:
        raise FormatError("Base64 content cannot be empty.")

    try:
        return base64.b64decode(normalized, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise FormatError(f"Content is not valid Base64: {exc}", cause=exc) from exc
