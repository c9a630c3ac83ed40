"""High level entry point turning a Base64 PDF into chunking statistics."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from riskagent.config import IngestSettings, get_settings
from riskagent.errors import InvalidArgumentError
from riskagent.indexing.worker import DeliveryWorker, get_delivery_worker
from riskagent.telemetry import emit_ingest_event

from .chunking import ChunkingStats, TextChunker, create_chunker
from .encoding import decode_base64
from .extractors import PdfTextExtractor
from .models import DocumentMetadata, ElasticsearchConfig

if TYPE_CHECKING:
    from riskagent.indexing.delivery import ChunkIndexer

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ProcessPdfData:
    pdf_bytes: bytes
    metadata: DocumentMetadata
    chunking_stats: ChunkingStats

    @property
    def size(self) -> int:
        return len(self.pdf_bytes)


class ProcessPdfParser:
    """Decode, extract and chunk a PDF, optionally scheduling chunk delivery."""

    def __init__(
        self,
        settings: Optional[IngestSettings] = None,
        *,
        chunker: Optional[TextChunker] = None,
        extractor: Optional[PdfTextExtractor] = None,
        worker: Optional[DeliveryWorker] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.chunker = chunker or create_chunker(self.settings.chunking_strategy)
        self.extractor = extractor or PdfTextExtractor()
        self._worker = worker

    @property
    def worker(self) -> DeliveryWorker:
        if self._worker is None:
            self._worker = get_delivery_worker()
        return self._worker

    def parse(
        self,
        file_content: Optional[str],
        metadata: Optional[DocumentMetadata],
        indexer: Optional["ChunkIndexer"] = None,
        index_override: Optional[ElasticsearchConfig] = None,
    ) -> ProcessPdfData:
        """Return the decoded bytes and per-page chunk statistics.

        When ``indexer`` is given, delivery of every chunk is handed to the
        background worker and this call returns without waiting for it.
        """

        if file_content is None or not file_content.strip():
            raise InvalidArgumentError("fileContent is required", argument="file_content")
        if metadata is None:
            raise InvalidArgumentError("metadata is required", argument="metadata")

        started = time.perf_counter()
        pdf_bytes = decode_base64(file_content)
        LOGGER.info(
            "Processing %s (%s bytes) with %s chunking",
            metadata.filename_with_extension,
            len(pdf_bytes),
            self.chunker.name,
        )

        pages = self.extractor.extract_text_from_all_pages(pdf_bytes)
        chunk_size = self.settings.chunk_size
        overlap = self.settings.chunk_overlap
        stats = self.chunker.chunk_pages(pages, chunk_size, overlap)
        LOGGER.info(
            "Chunked %s pages of %s into %s chunks",
            stats.page_count,
            metadata.filename_with_extension,
            stats.total_chunks,
        )

        if indexer is not None:
            self.worker.submit(
                indexer.deliver_pages(pages, metadata, chunk_size, overlap, self.chunker, index_override)
            )
            LOGGER.info("Scheduled chunk delivery for %s", metadata.filename_with_extension)

        emit_ingest_event(
            "document_parsed",
            file_name=metadata.filename_with_extension,
            document_id=metadata.id,
            size_bytes=len(pdf_bytes),
            duration_ms=(time.perf_counter() - started) * 1000,
            pages=stats.page_count,
            chunks=stats.total_chunks,
            indexing=indexer is not None,
        )
        return ProcessPdfData(pdf_bytes=pdf_bytes, metadata=metadata, chunking_stats=stats)
