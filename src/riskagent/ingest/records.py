"""Deterministic chunk identity and index record construction."""
from __future__ import annotations

import hashlib
from typing import Optional

from riskagent.errors import InvalidArgumentError

from .models import DocumentMetadata, ElasticsearchConfig, ElasticsearchDocument, IndexDocumentRequest


def generate_id(filename: Optional[str], page_number: int, page_chunk_number: int) -> str:
    """Return the SHA-256 hex id of ``{filename}_{page}_{chunk}``.

    Re-ingesting the same file, page and chunk yields the same id, so the sink
    overwrites instead of duplicating.
    """

    if not filename:
        raise InvalidArgumentError("Filename cannot be null or empty", argument="filename")
    seed = f"{filename}_{page_number}_{page_chunk_number}"
    return hashlib.sha256(seed.encode("utf-8")).hexdigest()


def from_request(request: IndexDocumentRequest) -> ElasticsearchDocument:
    metadata = request.document_metadata or DocumentMetadata()
    return ElasticsearchDocument(
        id=generate_id(metadata.filename_with_extension, request.page_number, request.page_chunk_number),
        filename_with_extension=metadata.filename_with_extension,
        full_path=metadata.full_path,
        version_number=metadata.version_number,
        modified=metadata.modified,
        created=metadata.created,
        link=metadata.link,
        page_number=request.page_number,
        page_chunk_number=request.page_chunk_number,
        chunk=request.chunk,
    )


def build_index_request(
    metadata: DocumentMetadata,
    page_number: int,
    page_chunk_number: int,
    chunk: str,
    index_override: Optional[ElasticsearchConfig] = None,
) -> IndexDocumentRequest:
    return IndexDocumentRequest(
        document_metadata=metadata,
        page_number=page_number,
        page_chunk_number=page_chunk_number,
        chunk=chunk,
        elasticsearch_config=index_override,
    )
