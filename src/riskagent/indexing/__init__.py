"""Chunk delivery to the index-document endpoint and the search sink behind it."""

from .delivery import ChunkDelivery, ChunkIndexer, DeliveryReport, DeliveryStatus
from .elasticsearch import ElasticsearchService
from .endpoint import IndexEndpoint, resolve_index_endpoint
from .worker import DeliveryWorker, get_delivery_worker

__all__ = [
    "ChunkDelivery",
    "ChunkIndexer",
    "DeliveryReport",
    "DeliveryStatus",
    "DeliveryWorker",
    "ElasticsearchService",
    "IndexEndpoint",
    "get_delivery_worker",
    "resolve_index_endpoint",
]
