"""Data models shared by the ingestion pipeline and the indexing sink."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _has_text(value: Optional[str]) -> bool:
    return value is not None and bool(value.strip())


class CamelModel(BaseModel):
    """Immutable model serialised with lower-camel field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


def _metadata_field(*aliases: str, serialization_alias: str) -> Any:
    return Field(
        None,
        validation_alias=AliasChoices(*aliases),
        serialization_alias=serialization_alias,
    )


class DocumentMetadata(BaseModel):
    """Caller supplied descriptor of the source document.

    Accepts both the lower-camel keys produced by this service and the
    bracketed keys emitted by the SharePoint connector (``{FullPath}`` etc.).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: Optional[str] = _metadata_field("id", "ID", "Id", serialization_alias="id")
    name: Optional[str] = _metadata_field("name", "{Name}", serialization_alias="name")
    filename_with_extension: Optional[str] = _metadata_field(
        "filename_with_extension",
        "filenameWithExtension",
        "{FilenameWithExtension}",
        serialization_alias="filenameWithExtension",
    )
    full_path: Optional[str] = _metadata_field(
        "full_path", "fullPath", "{FullPath}", serialization_alias="fullPath"
    )
    version_number: Optional[str] = _metadata_field(
        "version_number", "versionNumber", "{VersionNumber}", serialization_alias="versionNumber"
    )
    created: Optional[datetime] = _metadata_field("created", "Created", serialization_alias="created")
    modified: Optional[datetime] = _metadata_field("modified", "Modified", serialization_alias="modified")
    link: Optional[str] = _metadata_field("link", "{Link}", serialization_alias="link")
    drive_id: Optional[str] = _metadata_field("drive_id", "driveId", "{DriveId}", serialization_alias="driveId")
    drive_item_id: Optional[str] = _metadata_field(
        "drive_item_id", "driveItemId", "{DriveItemId}", serialization_alias="driveItemId"
    )

    @field_validator("id", "version_number", mode="before")
    @classmethod
    def _coerce_number(cls, value: Any) -> Any:
        # SharePoint sends the list item id and version as numbers.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ElasticsearchConfig(CamelModel):
    """Optional index destination override supplied with a request."""

    uri: Optional[str] = None
    api_key: Optional[str] = None
    index_name: Optional[str] = None

    def merge_with_fallbacks(
        self,
        fallback_uri: str,
        fallback_api_key: Optional[str],
        fallback_index_name: str,
    ) -> "ElasticsearchConfig":
        """Return a new config where blank fields take the fallback values."""

        return ElasticsearchConfig(
            uri=self.uri if _has_text(self.uri) else fallback_uri,
            api_key=self.api_key if _has_text(self.api_key) else fallback_api_key,
            index_name=self.index_name if _has_text(self.index_name) else fallback_index_name,
        )


class IndexDocumentRequest(CamelModel):
    """One chunk of one page, as posted to the index-document endpoint."""

    document_metadata: Optional[DocumentMetadata] = None
    page_number: int = 0
    page_chunk_number: int = 0
    chunk: str = ""
    elasticsearch_config: Optional[ElasticsearchConfig] = None


class ElasticsearchDocument(CamelModel):
    """Record stored in the search index, keyed by a deterministic id."""

    id: str
    filename_with_extension: Optional[str] = None
    full_path: Optional[str] = None
    version_number: Optional[str] = None
    modified: Optional[datetime] = None
    created: Optional[datetime] = None
    link: Optional[str] = None
    page_number: int = 0
    page_chunk_number: int = 0
    chunk: str = ""
