"""Elasticsearch sink used by the index-document endpoint."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from elasticsearch import ApiError, AsyncElasticsearch, BadRequestError, TransportError

from riskagent.config import DEFAULT_ELASTICSEARCH_INDEX, IngestSettings, get_settings
from riskagent.ingest.models import ElasticsearchConfig, ElasticsearchDocument

LOGGER = logging.getLogger(__name__)

INDEX_SETTINGS = {"number_of_shards": 1, "number_of_replicas": 0}

ClientFactory = Callable[[ElasticsearchConfig], AsyncElasticsearch]


def _error_type(error: ApiError) -> Optional[str]:
    body = error.body
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("type")
    return None


class ElasticsearchService:
    """Create the target index on demand and upsert documents by id."""

    def __init__(
        self,
        uri: str,
        api_key: Optional[str] = None,
        index_name: str = DEFAULT_ELASTICSEARCH_INDEX,
        *,
        client_factory: Optional[ClientFactory] = None,
        timeout: float = 30.0,
    ) -> None:
        self.defaults = ElasticsearchConfig(uri=uri, api_key=api_key, index_name=index_name)
        self.timeout = timeout
        self._client_factory = client_factory or self._connect

    @classmethod
    def from_settings(
        cls,
        settings: Optional[IngestSettings] = None,
        *,
        client_factory: Optional[ClientFactory] = None,
    ) -> "ElasticsearchService":
        settings = settings or get_settings()
        return cls(
            settings.elasticsearch_uri,
            settings.elasticsearch_api_key,
            settings.elasticsearch_index_name,
            client_factory=client_factory,
            timeout=settings.index_timeout_seconds,
        )

    def resolve(self, config: Optional[ElasticsearchConfig] = None) -> ElasticsearchConfig:
        if config is None:
            return self.defaults
        return config.merge_with_fallbacks(
            self.defaults.uri or "",
            self.defaults.api_key,
            self.defaults.index_name or "",
        )

    def _connect(self, config: ElasticsearchConfig) -> AsyncElasticsearch:
        # async node backed by httpx rather than aiohttp
        return AsyncElasticsearch(
            config.uri,
            api_key=config.api_key,
            request_timeout=self.timeout,
            node_class="httpxasync",
        )

    async def _ensure_index(self, client: AsyncElasticsearch, index_name: str) -> None:
        if await client.indices.exists(index=index_name):
            return
        LOGGER.info("Creating Elasticsearch index %s", index_name)
        try:
            await client.indices.create(index=index_name, settings=INDEX_SETTINGS)
        except BadRequestError as error:
            # another writer may have created it in the meantime
            if _error_type(error) != "resource_already_exists_exception":
                raise
            LOGGER.info("Index %s was created concurrently", index_name)

    async def index_document(
        self,
        document: ElasticsearchDocument,
        config: Optional[ElasticsearchConfig] = None,
    ) -> bool:
        """Upsert ``document`` under its id. Returns ``False`` instead of raising."""

        resolved = self.resolve(config)
        index_name = resolved.index_name or ""
        client = self._client_factory(resolved)
        try:
            await self._ensure_index(client, index_name)
            await client.index(
                index=index_name,
                id=document.id,
                document=document.to_wire(),
                op_type="index",
            )
        except (ApiError, TransportError) as error:
            LOGGER.error("Failed to index document %s into %s: %s", document.id, index_name, error)
            return False
        finally:
            await client.close()

        LOGGER.info("Indexed document %s into %s", document.id, index_name)
        return True
