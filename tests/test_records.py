from __future__ import annotations

import hashlib
import re

import pytest

from riskagent.errors import InvalidArgumentError
from riskagent.ingest.models import ElasticsearchConfig, IndexDocumentRequest
from riskagent.ingest.records import build_index_request, from_request, generate_id


def test_generate_id_is_sha256_of_filename_page_chunk():
    expected = hashlib.sha256(b"report.pdf_2_3").hexdigest()
    assert generate_id("report.pdf", 2, 3) == expected


def test_generate_id_is_stable_and_lowercase_hex():
    first = generate_id("report.pdf", 1, 1)
    assert first == generate_id("report.pdf", 1, 1)
    assert re.fullmatch(r"[0-9a-f]{64}", first)


def test_generate_id_distinguishes_positions():
    ids = {generate_id("report.pdf", page, chunk) for page in (1, 2) for chunk in (1, 2)}
    assert len(ids) == 4


@pytest.mark.parametrize(
    "other",
    [("other.pdf", 1, 1), ("test.pdf", 2, 1), ("test.pdf", 1, 2)],
    ids=["filename", "page", "chunk"],
)
def test_generate_id_changes_with_each_input(other):
    assert generate_id(*other) != generate_id("test.pdf", 1, 1)


@pytest.mark.parametrize("filename", [None, ""])
def test_generate_id_requires_filename(filename):
    with pytest.raises(InvalidArgumentError):
        generate_id(filename, 1, 1)


def test_build_index_request_carries_position(metadata):
    override = ElasticsearchConfig(index_name="custom-index")
    request = build_index_request(metadata, 2, 5, "chunk text", override)

    assert request.document_metadata == metadata
    assert (request.page_number, request.page_chunk_number) == (2, 5)
    assert request.chunk == "chunk text"
    assert request.elasticsearch_config == override


def test_from_request_copies_metadata_fields(metadata):
    request = build_index_request(metadata, 1, 4, "body")
    document = from_request(request)

    assert document.id == generate_id("test.pdf", 1, 4)
    assert document.filename_with_extension == "test.pdf"
    assert document.full_path == metadata.full_path
    assert document.version_number == "1.0"
    assert document.link == metadata.link
    assert (document.page_number, document.page_chunk_number, document.chunk) == (1, 4, "body")


def test_from_request_without_filename_fails():
    with pytest.raises(InvalidArgumentError):
        from_request(IndexDocumentRequest(page_number=1, page_chunk_number=1, chunk="x"))
