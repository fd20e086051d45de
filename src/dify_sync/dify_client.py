"""
Dify dataset API client.

Covers the knowledge-base endpoints the sync tool needs: datasets, documents
and document segments.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import httpx
import structlog

from dify_sync.errors import DifyError
from dify_sync.models import (
    CreateDocumentResponse,
    Dataset,
    DatasetListResponse,
    DocumentListResponse,
    DocumentSegment,
    RemoteDocument,
)

log = structlog.get_logger()

# Default timeout for API calls
DEFAULT_TIMEOUT = 60.0

# HTTP 204 No Content status code
HTTP_NO_CONTENT = 204

# Largest page size the dataset API accepts
MAX_PAGE_SIZE = 100


class DifyClient:
    """
    HTTP client for the Dify dataset API.

    Authenticates with a dataset API key as a bearer token.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize client.

        Args:
            base_url: API base URL (e.g., https://api.dify.ai/v1).
            api_key: Dataset API key.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).

        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> DifyClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> Any:
        """Make HTTP request and handle errors."""
        client = await self._get_client()
        log.debug("dify_request", method=method, path=path)

        try:
            response = await client.request(method, path, **kwargs)
            response.raise_for_status()

            # Some endpoints return empty response
            if response.status_code == HTTP_NO_CONTENT or not response.content:
                return None

            return response.json()

        except httpx.HTTPStatusError as e:
            error_detail = ""
            try:
                error_data = e.response.json()
                error_detail = error_data.get("message", str(error_data))
            except Exception:
                error_detail = e.response.text[:200] if e.response.text else ""

            log.error(
                "dify_api_error",
                method=method,
                path=path,
                status_code=e.response.status_code,
                detail=error_detail,
            )
            raise DifyError(
                f"API error: {error_detail or e.response.reason_phrase}",
                status_code=e.response.status_code,
            ) from e

        except httpx.TimeoutException as e:
            log.error("dify_timeout", method=method, path=path)
            raise DifyError("Request timed out") from e

        except httpx.TransportError as e:
            log.error("dify_transport_error", method=method, path=path, error=str(e))
            raise DifyError(f"Connection failed: {e}") from e

    # Dataset Operations

    async def list_datasets(self, page: int = 1, limit: int = 20) -> DatasetListResponse:
        """
        List datasets visible to the API key.

        Args:
            page: 1-based page number.
            limit: Page size.

        Returns:
            One page of datasets.

        """
        data = await self._request("GET", "/datasets", params={"page": page, "limit": limit})
        return DatasetListResponse.model_validate(data or {})

    async def get_dataset(self, dataset_id: str) -> Dataset:
        """Get dataset metadata."""
        data = await self._request("GET", f"/datasets/{dataset_id}")
        return Dataset.model_validate(data)

    async def create_dataset(self, name: str, permission: str = "only_me") -> Dataset:
        """
        Create an empty dataset.

        Args:
            name: Dataset name.
            permission: Visibility (only_me, all_team_members, partial_members).

        Returns:
            Created dataset.

        """
        data = await self._request(
            "POST",
            "/datasets",
            json={"name": name, "permission": permission},
        )
        log.info("dataset_created", name=name)
        return Dataset.model_validate(data)

    async def delete_dataset(self, dataset_id: str) -> None:
        """Delete a dataset."""
        await self._request("DELETE", f"/datasets/{dataset_id}")

    # Document Operations

    async def list_documents(
        self,
        dataset_id: str,
        page: int = 1,
        limit: int = 20,
    ) -> DocumentListResponse:
        """
        List one page of documents in a dataset.

        Args:
            dataset_id: Dataset ID.
            page: 1-based page number.
            limit: Page size.

        Returns:
            One page of documents.

        """
        data = await self._request(
            "GET",
            f"/datasets/{dataset_id}/documents",
            params={"page": page, "limit": limit},
        )
        return DocumentListResponse.model_validate(data or {})

    async def iter_documents(
        self,
        dataset_id: str,
        limit: int = MAX_PAGE_SIZE,
    ) -> AsyncIterator[RemoteDocument]:
        """Yield every document in a dataset, following pagination."""
        page = 1
        while True:
            response = await self.list_documents(dataset_id, page=page, limit=limit)
            for document in response.data:
                yield document
            if not response.has_more or not response.data:
                return
            page += 1

    async def create_document_from_text(
        self,
        dataset_id: str,
        name: str,
        text: str,
        indexing_technique: str = "high_quality",
    ) -> CreateDocumentResponse:
        """
        Create a document from plain text.

        Args:
            dataset_id: Target dataset ID.
            name: Document name, kept verbatim (including any extension).
            text: Document content.
            indexing_technique: high_quality or economy.

        Returns:
            Created document and its indexing batch ID.

        """
        log.debug("create_document", dataset_id=dataset_id, name=name, chars=len(text))
        data = await self._request(
            "POST",
            f"/datasets/{dataset_id}/document/create-by-text",
            json={
                "name": name,
                "text": text,
                "indexing_technique": indexing_technique,
                "process_rule": {"mode": "automatic"},
            },
        )
        return CreateDocumentResponse.model_validate(data)

    async def update_document_with_text(
        self,
        dataset_id: str,
        document_id: str,
        name: str,
        text: str,
    ) -> CreateDocumentResponse:
        """Replace a document's name and content."""
        data = await self._request(
            "POST",
            f"/datasets/{dataset_id}/documents/{document_id}/update_by_text",
            json={"name": name, "text": text},
        )
        return CreateDocumentResponse.model_validate(data)

    async def delete_document(self, dataset_id: str, document_id: str) -> None:
        """Delete a document."""
        await self._request("DELETE", f"/datasets/{dataset_id}/documents/{document_id}")

    async def get_indexing_status(self, dataset_id: str, batch: str) -> list[dict[str, Any]]:
        """
        Get indexing progress for a creation batch.

        Returns:
            Per-document status entries.

        """
        data = await self._request(
            "GET",
            f"/datasets/{dataset_id}/documents/{batch}/indexing-status",
        )
        return (data or {}).get("data", [])  # type: ignore[no-any-return]

    async def get_document_segments(
        self,
        dataset_id: str,
        document_id: str,
        limit: int = MAX_PAGE_SIZE,
    ) -> list[DocumentSegment]:
        """
        Get every content segment of a document.

        Segments come back in whatever order the API returns them; callers
        sort by position.

        Args:
            dataset_id: Dataset ID.
            document_id: Document ID.
            limit: Page size.

        Returns:
            All segments (empty for a document without content).

        """
        segments: list[DocumentSegment] = []
        page = 1
        while True:
            data = await self._request(
                "GET",
                f"/datasets/{dataset_id}/documents/{document_id}/segments",
                params={"page": page, "limit": limit},
            )
            data = data or {}
            items = data.get("data") or []
            segments.extend(DocumentSegment.model_validate(item) for item in items)
            if not data.get("has_more") or not items:
                return segments
            page += 1
