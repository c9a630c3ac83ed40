"""Deliver document chunks to the index-document endpoint with retries."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from riskagent.config import IngestSettings, get_settings
from riskagent.errors import InvalidArgumentError
from riskagent.ingest.chunking import TextChunker
from riskagent.ingest.models import DocumentMetadata, ElasticsearchConfig, IndexDocumentRequest
from riskagent.ingest.records import build_index_request
from riskagent.telemetry import emit_delivery_event, emit_exception

from .endpoint import IndexEndpoint, resolve_index_endpoint

LOGGER = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class DeliveryStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class ChunkDelivery:
    """Outcome of delivering one chunk, including retries."""

    status: DeliveryStatus
    attempts: int
    status_code: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status is DeliveryStatus.SUCCEEDED


@dataclass(slots=True)
class DeliveryReport:
    """Per-document tally of chunk deliveries."""

    file_name: Optional[str]
    delivered: int = 0
    failed: int = 0
    attempts: int = 0

    @property
    def total(self) -> int:
        return self.delivered + self.failed

    def record(self, outcome: ChunkDelivery) -> None:
        self.attempts += outcome.attempts
        if outcome.succeeded:
            self.delivered += 1
        else:
            self.failed += 1


def is_retryable_status(status_code: int) -> bool:
    return status_code >= 500 or status_code == 429


def _describe_response(response: httpx.Response) -> str:
    return f"HTTP {response.status_code}"


def _describe(outcome) -> str:
    if outcome.failed:
        error = outcome.exception()
        return f"{type(error).__name__}: {error}"
    return _describe_response(outcome.result())


class ChunkIndexer:
    """Post index requests for every chunk of a document.

    Server errors, HTTP 429 and transport failures are retried with exponential
    backoff. Any other non-success status aborts that chunk at once. Failures
    are logged and counted, never raised.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        verify_tls: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        index_path: str = "/api/index-document",
        max_retries: int = 3,
        initial_delay_ms: int = 1000,
        timeout: float = 30.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_retries < 0:
            raise InvalidArgumentError("max_retries cannot be negative", argument="max_retries")
        if initial_delay_ms < 0:
            raise InvalidArgumentError("initial_delay_ms cannot be negative", argument="initial_delay_ms")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.verify_tls = verify_tls
        self.transport = transport
        self.index_path = index_path if index_path.startswith("/") else f"/{index_path}"
        self.max_retries = max_retries
        self.initial_delay_ms = initial_delay_ms
        self.timeout = timeout
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: Optional[IngestSettings] = None,
        *,
        endpoint: Optional[IndexEndpoint] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ChunkIndexer":
        settings = settings or get_settings()
        endpoint = endpoint or resolve_index_endpoint(settings)
        return cls(
            endpoint.base_url,
            api_key=endpoint.api_key,
            verify_tls=endpoint.verify_tls,
            transport=transport,
            index_path=settings.index_document_path,
            max_retries=settings.index_max_retries,
            initial_delay_ms=settings.index_initial_delay_ms,
            timeout=settings.index_timeout_seconds,
        )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def create_client(self) -> httpx.AsyncClient:
        params = {"code": self.api_key} if self.api_key else None
        return httpx.AsyncClient(
            base_url=self.base_url,
            transport=self.transport,
            verify=self.verify_tls,
            timeout=self.timeout,
            params=params,
        )

    def _retrying(self, label: str) -> AsyncRetrying:
        def log_retry(retry_state: RetryCallState) -> None:
            LOGGER.warning(
                "Indexing %s failed (%s); retrying in %.3fs (attempt %s/%s)",
                label,
                _describe(retry_state.outcome),
                retry_state.next_action.sleep,
                retry_state.attempt_number,
                self.max_attempts,
            )

        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.initial_delay_ms / 1000.0, exp_base=2),
            retry=(
                retry_if_exception_type(httpx.HTTPError)
                | retry_if_result(lambda response: is_retryable_status(response.status_code))
            ),
            sleep=self._sleep,
            before_sleep=log_retry,
        )

    async def index_chunk(self, client: httpx.AsyncClient, request: IndexDocumentRequest) -> ChunkDelivery:
        payload = request.to_wire()
        metadata = request.document_metadata
        file_name = metadata.filename_with_extension if metadata else None
        label = f"{file_name} page {request.page_number} chunk {request.page_chunk_number}"
        started = time.perf_counter()
        attempts = 0

        async def post() -> httpx.Response:
            nonlocal attempts
            attempts += 1
            LOGGER.debug("Posting %s (attempt %s/%s)", label, attempts, self.max_attempts)
            return await client.post(self.index_path, json=payload)

        try:
            response = await self._retrying(label)(post)
        except RetryError as error:
            last = error.last_attempt
            status_code = None if last.failed else last.result().status_code
            reason = _describe(last)
            LOGGER.error("Indexing %s failed after %s attempts: %s", label, attempts, reason)
            return self._failed(request, file_name, attempts, status_code, reason, started)

        if not response.is_success:
            reason = _describe_response(response)
            LOGGER.error("Indexing %s failed with non-retryable %s", label, reason)
            return self._failed(request, file_name, attempts, response.status_code, reason, started)

        LOGGER.info("Indexed %s on attempt %s", label, attempts)
        emit_delivery_event(
            "chunk_indexed",
            file_name=file_name,
            page_number=request.page_number,
            page_chunk_number=request.page_chunk_number,
            status=DeliveryStatus.SUCCEEDED.value,
            attempts=attempts,
            status_code=response.status_code,
            duration_ms=(time.perf_counter() - started) * 1000,
        )
        return ChunkDelivery(DeliveryStatus.SUCCEEDED, attempts, response.status_code)

    def _failed(
        self,
        request: IndexDocumentRequest,
        file_name: Optional[str],
        attempts: int,
        status_code: Optional[int],
        reason: str,
        started: float,
    ) -> ChunkDelivery:
        emit_delivery_event(
            "chunk_failed",
            level="error",
            file_name=file_name,
            page_number=request.page_number,
            page_chunk_number=request.page_chunk_number,
            status=DeliveryStatus.FAILED.value,
            attempts=attempts,
            status_code=status_code,
            duration_ms=(time.perf_counter() - started) * 1000,
            reason=reason,
        )
        return ChunkDelivery(DeliveryStatus.FAILED, attempts, status_code)

    async def deliver_pages(
        self,
        pages: Sequence[str],
        metadata: DocumentMetadata,
        chunk_size: int,
        overlap_size: int,
        chunker: TextChunker,
        index_override: Optional[ElasticsearchConfig] = None,
    ) -> DeliveryReport:
        """Chunk each page again and deliver every chunk in page order."""

        report = DeliveryReport(file_name=metadata.filename_with_extension)
        started = time.perf_counter()
        try:
            async with self.create_client() as client:
                for page_index, page_text in enumerate(pages):
                    chunks = chunker.chunk_text(page_text, chunk_size, overlap_size)
                    for chunk_index, chunk in enumerate(chunks):
                        request = build_index_request(
                            metadata, page_index + 1, chunk_index + 1, chunk, index_override
                        )
                        try:
                            outcome = await self.index_chunk(client, request)
                        except Exception:
                            LOGGER.exception(
                                "Unexpected error delivering page %s chunk %s of %s",
                                page_index + 1,
                                chunk_index + 1,
                                report.file_name,
                            )
                            report.failed += 1
                            continue
                        report.record(outcome)
        except Exception as error:
            LOGGER.exception("Chunk delivery for %s aborted", report.file_name)
            emit_exception("document_delivery_aborted", error)

        level = "info" if report.failed == 0 else "warning"
        emit_delivery_event(
            "document_delivery_completed",
            level=level,
            file_name=report.file_name,
            attempts=report.attempts,
            duration_ms=(time.perf_counter() - started) * 1000,
            delivered=report.delivered,
            failed=report.failed,
        )
        LOGGER.info(
            "Delivered %s/%s chunks of %s (%s failed)",
            report.delivered,
            report.total,
            report.file_name,
            report.failed,
        )
        return report
