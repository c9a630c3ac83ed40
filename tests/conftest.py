"""Shared fixtures: in-process PDF builder, settings and delivery worker."""
from __future__ import annotations

import base64
from typing import Any, Callable, Dict, Iterator, List, Optional, Type

import pytest
from elastic_transport import ApiResponseMeta, HttpHeaders, NodeConfig
from elasticsearch import ApiError, BadRequestError

from riskagent.config import IngestSettings, get_settings
from riskagent.indexing.worker import DeliveryWorker
from riskagent.ingest.models import DocumentMetadata

PdfFactory = Callable[..., bytes]


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(*pages: str) -> bytes:
    """Return a minimal PDF with one Helvetica text line per page."""

    page_count = len(pages)
    font_id = 3 + 2 * page_count
    objects: List[bytes] = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        (
            "<< /Type /Pages /Kids ["
            + " ".join(f"{3 + 2 * index} 0 R" for index in range(page_count))
            + f"] /Count {page_count} >>"
        ).encode("latin-1"),
    ]
    for index, text in enumerate(pages):
        content_id = 4 + 2 * index
        objects.append(
            (
                "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
                f"/Resources << /Font << /F1 {font_id} 0 R >> >> /Contents {content_id} 0 R >>"
            ).encode("latin-1")
        )
        stream = f"BT /F1 12 Tf 72 720 Td ({_escape(text)}) Tj ET".encode("latin-1")
        objects.append(
            b"<< /Length " + str(len(stream)).encode("ascii") + b" >>\nstream\n" + stream + b"\nendstream"
        )
    objects.append(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")

    output = bytearray(b"%PDF-1.4\n")
    offsets: List[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(output))
        output += f"{number} 0 obj\n".encode("ascii") + body + b"\nendobj\n"

    xref_offset = len(output)
    output += f"xref\n0 {len(objects) + 1}\n".encode("ascii")
    output += b"0000000000 65535 f \n"
    for offset in offsets:
        output += f"{offset:010d} 00000 n \n".encode("ascii")
    output += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_offset}\n%%EOF\n"
    ).encode("ascii")
    return bytes(output)


@pytest.fixture()
def make_pdf() -> PdfFactory:
    return build_pdf


@pytest.fixture()
def encode_pdf() -> Callable[[bytes], str]:
    return lambda data: base64.b64encode(data).decode("ascii")


@pytest.fixture()
def metadata() -> DocumentMetadata:
    return DocumentMetadata(
        id="test-doc-id",
        name="Test Document",
        filename_with_extension="test.pdf",
        full_path="/sites/risk/Shared Documents/test.pdf",
        version_number="1.0",
        link="https://example.sharepoint.com/test.pdf",
    )


@pytest.fixture()
def settings() -> IngestSettings:
    return IngestSettings(index_initial_delay_ms=1)


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def worker() -> Iterator[DeliveryWorker]:
    delivery_worker = DeliveryWorker(name="test-delivery")
    yield delivery_worker
    delivery_worker.shutdown(timeout=5.0)


def build_api_error(error_type: str, status: int = 400, cls: Type[ApiError] = BadRequestError) -> ApiError:
    meta = ApiResponseMeta(
        status=status,
        http_version="1.1",
        headers=HttpHeaders(),
        duration=0.0,
        node=NodeConfig("http", "es", 9200),
    )
    return cls(message=error_type, meta=meta, body={"error": {"type": error_type}, "status": status})


class FakeSearchCluster:
    """Stands in for ``AsyncElasticsearch``; ``indices`` calls land on the same object."""

    def __init__(self) -> None:
        self.index_exists = False
        self.exists_error: Optional[Exception] = None
        self.create_error: Optional[Exception] = None
        self.index_error: Optional[Exception] = None
        self.calls: List[tuple] = []
        self.configs: List[Any] = []
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.closed = 0

    @property
    def indices(self) -> "FakeSearchCluster":
        return self

    def connect(self, config) -> "FakeSearchCluster":
        self.configs.append(config)
        return self

    async def exists(self, *, index):
        self.calls.append(("exists", index))
        if self.exists_error is not None:
            raise self.exists_error
        return self.index_exists

    async def create(self, *, index, settings):
        self.calls.append(("create", index, settings))
        if self.create_error is not None:
            raise self.create_error
        self.index_exists = True

    async def index(self, *, index, id, document, op_type):
        self.calls.append(("index", index, id, op_type))
        if self.index_error is not None:
            raise self.index_error
        self.documents[id] = document
        return {"_id": id, "result": "created"}

    async def close(self) -> None:
        self.closed += 1


@pytest.fixture()
def search_cluster() -> FakeSearchCluster:
    return FakeSearchCluster()


@pytest.fixture()
def make_api_error() -> Callable[..., ApiError]:
    return build_api_error
