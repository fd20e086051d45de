"""Binds the Dify client and local filesystem to the sync engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from dify_sync import local_files
from dify_sync.core.download import DownloadDependencies
from dify_sync.core.upload import UploadDependencies
from dify_sync.dify_client import DifyClient

if TYPE_CHECKING:
    from dify_sync.config import DifyConfig
    from dify_sync.models import DocumentSegment, RemoteDocument

log = structlog.get_logger()


def create_client(config: DifyConfig) -> DifyClient:
    """Create an API client for the configured Dify instance."""
    log.debug("dify_client_created", api_url=config.api_url)
    return DifyClient(
        base_url=config.api_url,
        api_key=config.api_key,
        timeout=config.request_timeout,
    )


def create_upload_dependencies(client: DifyClient, config: DifyConfig) -> UploadDependencies:
    """Upload dependencies writing into the configured dataset."""

    async def create_document(name: str, content: str) -> RemoteDocument:
        response = await client.create_document_from_text(
            config.dataset_id,
            name,
            content,
            indexing_technique=config.indexing_technique,
        )
        return response.document

    return UploadDependencies(
        read_file_content=local_files.read_file_content,
        create_document=create_document,
    )


def create_download_dependencies(client: DifyClient, config: DifyConfig) -> DownloadDependencies:
    """Download dependencies reading from the configured dataset."""

    async def fetch_document_segments(document_id: str) -> list[DocumentSegment]:
        return await client.get_document_segments(config.dataset_id, document_id)

    return DownloadDependencies(
        fetch_document_segments=fetch_document_segments,
        check_file_exists=local_files.check_file_exists,
        save_file=local_files.save_file,
    )


async def list_all_documents(client: DifyClient, config: DifyConfig) -> list[RemoteDocument]:
    """Every document in the configured dataset."""
    return [document async for document in client.iter_documents(config.dataset_id)]
