from __future__ import annotations

import base64

import pytest

from riskagent.errors import FormatError
from riskagent.ingest.encoding import decode_base64, normalize_base64


def test_decode_standard_base64():
    payload = b"%PDF-1.4\ntest content"
    assert decode_base64(base64.b64encode(payload).decode()) == payload


BUFFERS = [bytes(range(length)) for length in range(1, 9)] + [
    bytes(range(256)),
    bytes(range(255, -1, -1)) * 3,
    b"\x00" * 12,
    b"\xff" * 10,
]


@pytest.mark.parametrize("payload", BUFFERS, ids=lambda payload: f"{len(payload)}-bytes")
def test_decode_round_trips_every_byte_value(payload):
    assert decode_base64(base64.b64encode(payload).decode()) == payload
    unpadded = base64.urlsafe_b64encode(payload).decode().rstrip("=")
    assert decode_base64(unpadded) == payload


def test_decode_url_safe_without_padding():
    payload = bytes(range(250, 256)) + b"??>>"
    encoded = base64.urlsafe_b64encode(payload).decode().rstrip("=")
    assert "-" in encoded or "_" in encoded
    assert decode_base64(encoded) == payload


def test_decode_ignores_embedded_whitespace():
    encoded = base64.b64encode(b"hello world, this is a pdf").decode()
    wrapped = "\n".join(encoded[i : i + 8] for i in range(0, len(encoded), 8))
    assert decode_base64(f"  {wrapped}\t\r\n") == b"hello world, this is a pdf"


def test_normalize_pads_to_multiple_of_four():
    assert normalize_base64("YWJj ZA") == "YWJjZA=="
    assert normalize_base64("a-b_") == "a+b/"


@pytest.mark.parametrize("value", [None, "", "   \n\t"])
def test_empty_content_is_format_error(value):
    with pytest.raises(FormatError):
        decode_base64(value)


def test_invalid_alphabet_is_format_error():
    with pytest.raises(FormatError) as excinfo:
        decode_base64("not*valid*base64!")
    assert excinfo.value.__cause__ is not None
