from __future__ import annotations

import asyncio
import json
from typing import Iterator

import httpx
import pytest
from elasticsearch import ApiError
from fastapi.testclient import TestClient

from riskagent import main
from riskagent.api.documents import (
    get_chunk_indexer_factory,
    get_elasticsearch_service,
    get_pdf_parser,
)
from riskagent.indexing.delivery import ChunkIndexer
from riskagent.indexing.elasticsearch import ElasticsearchService
from riskagent.ingest.pipeline import ProcessPdfParser
from riskagent.ingest.records import generate_id
from riskagent.main import app


@pytest.fixture()
def client(settings, worker) -> Iterator[TestClient]:
    app.dependency_overrides[get_pdf_parser] = lambda: ProcessPdfParser(settings, worker=worker)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def delivered(worker):
    received = []

    def sink(request):
        received.append(json.loads(request.content))
        return httpx.Response(200)

    indexer = ChunkIndexer("http://localhost:8000", transport=httpx.MockTransport(sink), initial_delay_ms=1)
    app.dependency_overrides[get_chunk_indexer_factory] = lambda: (lambda: indexer)
    return received


def _payload(pdf_b64, **extra):
    body = {
        "fileContent": pdf_b64,
        "metadata": {"id": "doc-1", "filenameWithExtension": "register.pdf", "versionNumber": "2.0"},
    }
    body.update(extra)
    return body


def test_process_pdf_accepts_document(client, make_pdf, encode_pdf):
    pdf = make_pdf("Page one text.", "Page two text.")
    response = client.post("/api/process-pdf", json=_payload(encode_pdf(pdf)))

    assert response.status_code == 202
    body = response.json()
    assert body["message"] == "PDF accepted for processing."
    assert body["size"] == len(pdf)
    assert body["indexingEnabled"] is False
    assert body["metadata"]["filenameWithExtension"] == "register.pdf"
    assert body["elasticsearchConfig"] == {"hasCustomConfig": False, "indexName": None, "uri": None}
    assert body["document"]["id"] == "doc-1"
    assert body["document"]["pageCount"] == 2
    assert body["document"]["averageChunksPerPage"] == 1.0


def test_process_pdf_with_indexing_delivers_chunks(client, delivered, worker, make_pdf, encode_pdf):
    payload = _payload(
        encode_pdf(make_pdf("Only page.")),
        indexDocument=True,
        elasticsearchConfig={"indexName": "tenant", "apiKey": "hidden"},
    )
    response = client.post("/api/process-pdf", json=payload)

    assert response.status_code == 202
    body = response.json()
    assert body["message"] == "PDF accepted for processing and indexing."
    assert body["elasticsearchConfig"] == {"hasCustomConfig": True, "indexName": "tenant", "uri": None}
    assert "hidden" not in response.text

    assert worker.wait_idle(timeout=10)
    assert len(delivered) == 1
    assert delivered[0]["elasticsearchConfig"]["indexName"] == "tenant"


@pytest.mark.parametrize(
    "payload",
    [
        {"metadata": {"id": "x"}},
        {"fileContent": "", "metadata": {"id": "x"}},
        {"fileContent": "JVBERi0="},
    ],
)
def test_process_pdf_requires_content_and_metadata(client, payload):
    response = client.post("/api/process-pdf", json=payload)
    assert response.status_code == 400
    assert response.json() == {"error": "Both fileContent and metadata are required."}


def test_process_pdf_rejects_invalid_base64(client):
    response = client.post("/api/process-pdf", json=_payload("***not-base64***"))
    assert response.status_code == 400
    assert response.json() == {"error": "fileContent must be a valid Base64 string."}


def test_process_pdf_rejects_malformed_json(client):
    response = client.post(
        "/api/process-pdf", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid JSON payload."}


def test_process_pdf_rejects_empty_body(client):
    response = client.post("/api/process-pdf", content=b"")
    assert response.status_code == 400


@pytest.fixture()
def cluster(search_cluster):
    search_cluster.index_exists = True
    service = ElasticsearchService(
        "http://es:9200", "key", "risk-agent-documents", client_factory=search_cluster.connect
    )
    app.dependency_overrides[get_elasticsearch_service] = lambda: service
    yield search_cluster
    app.dependency_overrides.clear()


def _index_payload(**metadata):
    return {
        "documentMetadata": metadata,
        "pageNumber": 1,
        "pageChunkNumber": 2,
        "chunk": "chunk text",
    }


def test_index_document_success(client, cluster):
    response = client.post("/api/index-document", json=_index_payload(filenameWithExtension="a.pdf"))

    expected_id = generate_id("a.pdf", 1, 2)
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "documentId": expected_id,
        "message": "Document successfully indexed",
    }
    assert cluster.calls[-1] == ("index", "risk-agent-documents", expected_id, "index")
    assert cluster.documents[expected_id]["chunk"] == "chunk text"


def test_index_document_sink_failure_is_500(client, cluster, make_api_error):
    cluster.index_error = make_api_error("unavailable_shards_exception", 503, ApiError)
    response = client.post("/api/index-document", json=_index_payload(filenameWithExtension="a.pdf"))
    assert response.status_code == 500


def test_index_document_requires_metadata(client, cluster):
    response = client.post("/api/index-document", json={"pageNumber": 1, "chunk": "x"})
    assert response.status_code == 400
    assert response.json() == {"error": "DocumentMetadata is required"}


def test_index_document_requires_filename(client, cluster):
    response = client.post("/api/index-document", json=_index_payload(fullPath="/x"))
    assert response.status_code == 400
    assert response.json() == {"error": "FilenameWithExtension is required"}


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_deployment_info(client, monkeypatch):
    monkeypatch.setenv("WEBSITE_HOSTNAME", "riskagent.azurewebsites.net")
    body = client.get("/api/deployment-info").json()

    assert body["status"] == "deployed"
    assert body["buildVersion"] == "1.0.1"
    assert body["environment"]["websiteHostname"] == "riskagent.azurewebsites.net"


def test_shutdown_drains_worker_off_the_event_loop(monkeypatch):
    calls = []

    class _Worker:
        def shutdown(self, timeout=None):
            try:
                asyncio.get_running_loop()
                in_event_loop = True
            except RuntimeError:
                in_event_loop = False
            calls.append((timeout, in_event_loop))

    monkeypatch.setattr(main, "configure_logging", lambda *args: None)
    monkeypatch.setattr(main, "get_delivery_worker", lambda: _Worker())
    with TestClient(app):
        pass

    assert calls == [(30.0, False)]
