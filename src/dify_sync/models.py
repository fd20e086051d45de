"""Data models for upload/download sync."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class UploadStatus(str, Enum):
    """Terminal status of a single file upload."""

    SUCCESS = "success"
    ERROR = "error"


class DownloadStatus(str, Enum):
    """Terminal status of a single document download."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


class ConflictDecision(str, Enum):
    """Answer to an existing-file conflict."""

    OVERWRITE = "overwrite"
    SKIP = "skip"


class LocalFile(BaseModel):
    """A local file selected for upload."""

    model_config = ConfigDict(frozen=True)

    name: str
    """Display name, may include '/'-joined relative subdirectories."""

    path: str
    """Filesystem path used to read the file."""

    size: int | None = None
    """File size in bytes, when known."""


class RemoteDocument(BaseModel):
    """
    A document stored in a Dify dataset.

    Only `id` and `name` matter to the sync engine; the rest is carried for display.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    position: int | None = None
    word_count: int | None = None
    indexing_status: str | None = None
    created_at: int | None = None
    enabled: bool | None = None


class DocumentSegment(BaseModel):
    """A positioned fragment of a remote document's text."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    content: str
    position: int


class UploadResult(BaseModel):
    """Outcome of uploading one local file."""

    model_config = ConfigDict(frozen=True)

    file_name: str
    status: UploadStatus
    document_id: str | None = None
    error: str | None = None


class DownloadResult(BaseModel):
    """Outcome of downloading one remote document."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    document_name: str
    status: DownloadStatus
    error: str | None = None


class FileConflict(BaseModel):
    """A download whose target file already exists."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    document_name: str
    file_path: str


class UploadStats(BaseModel):
    """Summary counts for a batch upload."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)
    """'<file name>: <error>' for each failed file that carries a message."""


class DownloadStats(BaseModel):
    """Summary counts for a batch download."""

    total: int = 0
    successful: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)


# Dify API payloads


class Dataset(BaseModel):
    """Dify dataset (knowledge base) metadata."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    description: str | None = None
    permission: str | None = None
    indexing_technique: str | None = None
    document_count: int = 0
    word_count: int = 0
    created_at: int | None = None
    updated_at: int | None = None


class DatasetListResponse(BaseModel):
    """One page of datasets."""

    data: list[Dataset] = Field(default_factory=list)
    has_more: bool = False
    limit: int = 20
    total: int = 0
    page: int = 1


class DocumentListResponse(BaseModel):
    """One page of documents in a dataset."""

    data: list[RemoteDocument] = Field(default_factory=list)
    has_more: bool = False
    limit: int = 20
    total: int = 0
    page: int = 1


class CreateDocumentResponse(BaseModel):
    """Response to creating or updating a document from text."""

    model_config = ConfigDict(extra="ignore")

    document: RemoteDocument
    batch: str = ""
