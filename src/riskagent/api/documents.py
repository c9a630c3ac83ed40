"""Document processing and indexing routes."""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from riskagent.config import get_settings
from riskagent.errors import FormatError, InvalidArgumentError
from riskagent.indexing.delivery import ChunkIndexer
from riskagent.indexing.elasticsearch import ElasticsearchService
from riskagent.ingest.models import (
    CamelModel,
    DocumentMetadata,
    ElasticsearchConfig,
    IndexDocumentRequest,
)
from riskagent.ingest.pipeline import ProcessPdfData, ProcessPdfParser
from riskagent.ingest.records import from_request

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["documents"])


class ProcessPdfRequest(CamelModel):
    file_content: Optional[str] = None
    metadata: Optional[DocumentMetadata] = None
    elasticsearch_config: Optional[ElasticsearchConfig] = None
    index_document: bool = False


def get_pdf_parser() -> ProcessPdfParser:
    return ProcessPdfParser(get_settings())


def get_chunk_indexer_factory():
    """Return a callable building the indexer used when indexing is requested."""

    def _factory() -> ChunkIndexer:
        return ChunkIndexer.from_settings(get_settings())

    return _factory


def get_elasticsearch_service() -> ElasticsearchService:
    return ElasticsearchService.from_settings(get_settings())


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _read_json(request: Request) -> Any:
    body = await request.body()
    if not body.strip():
        return None
    return json.loads(body)


def _summarise(data: ProcessPdfData, payload: ProcessPdfRequest) -> dict[str, Any]:
    override = payload.elasticsearch_config
    stats = data.chunking_stats
    return {
        "message": "PDF accepted for processing and indexing."
        if payload.index_document
        else "PDF accepted for processing.",
        "size": data.size,
        "metadata": data.metadata.to_wire(),
        "indexingEnabled": payload.index_document,
        "elasticsearchConfig": {
            "hasCustomConfig": override is not None,
            "indexName": override.index_name if override else None,
            "uri": override.uri if override else None,
        },
        "document": {
            "id": data.metadata.id,
            "filenameWithExtension": data.metadata.filename_with_extension,
            "versionNumber": data.metadata.version_number,
            "pageCount": stats.page_count,
            "averageChunksPerPage": stats.avg_chunks_per_page,
            "maxChunksPerPage": stats.max_chunks_in_page,
            "minChunksPerPage": stats.min_chunks_in_page,
        },
    }


@router.post("/process-pdf", status_code=202)
async def process_pdf(
    request: Request,
    parser: ProcessPdfParser = Depends(get_pdf_parser),
    indexer_factory=Depends(get_chunk_indexer_factory),
) -> JSONResponse:
    """Decode and chunk a Base64 PDF; optionally schedule chunk indexing."""

    try:
        raw = await _read_json(request)
    except ValueError as exc:
        LOGGER.warning("Failed to decode process-pdf body: %s", exc)
        return _error(400, "Invalid JSON payload.")
    if raw is None:
        return _error(400, "Request body is empty.")

    try:
        payload = ProcessPdfRequest.model_validate(raw)
    except ValidationError as exc:
        LOGGER.warning("Invalid process-pdf payload: %s", exc)
        return _error(400, "Invalid JSON payload.")

    if not payload.file_content or not payload.file_content.strip() or payload.metadata is None:
        return _error(400, "Both fileContent and metadata are required.")

    indexer = indexer_factory() if payload.index_document else None
    try:
        data = await run_in_threadpool(
            parser.parse,
            payload.file_content,
            payload.metadata,
            indexer,
            payload.elasticsearch_config,
        )
    except FormatError as exc:
        LOGGER.warning("fileContent must be a valid Base64 string: %s", exc)
        return _error(400, "fileContent must be a valid Base64 string.")
    except InvalidArgumentError as exc:
        LOGGER.warning("Invalid payload supplied to process-pdf: %s", exc)
        return _error(400, str(exc))

    LOGGER.info(
        "process-pdf accepted %s bytes for document %s (indexing=%s)",
        data.size,
        data.metadata.id,
        payload.index_document,
    )
    return JSONResponse(status_code=202, content=_summarise(data, payload))


@router.post("/index-document")
async def index_document(
    request: Request,
    service: ElasticsearchService = Depends(get_elasticsearch_service),
) -> JSONResponse:
    """Store one chunk in the search index under its deterministic id."""

    try:
        raw = await _read_json(request)
        if raw is None:
            return _error(400, "Request body cannot be empty")
        payload = IndexDocumentRequest.model_validate(raw)
    except (ValueError, ValidationError) as exc:
        LOGGER.error("Invalid JSON in index-document body: %s", exc)
        return _error(400, "Invalid JSON format")

    if payload.document_metadata is None:
        LOGGER.warning("Invalid request: documentMetadata is required")
        return _error(400, "DocumentMetadata is required")
    if not payload.document_metadata.filename_with_extension:
        LOGGER.warning("Invalid request: filenameWithExtension is required")
        return _error(400, "FilenameWithExtension is required")

    try:
        document = from_request(payload)
        LOGGER.info("Processing document with generated id %s", document.id)
        indexed = await service.index_document(document, payload.elasticsearch_config)
    except Exception:
        LOGGER.exception("An error occurred while indexing a document")
        return _error(500, "An internal error occurred")

    if not indexed:
        LOGGER.error("Failed to index document %s", document.id)
        return _error(500, "Failed to index document")
    return JSONResponse(
        status_code=200,
        content={"success": True, "documentId": document.id, "message": "Document successfully indexed"},
    )
