"""Tests for the Dify API client."""

import json

import httpx
import pytest

from dify_sync.dify_client import DifyClient
from dify_sync.errors import DifyError


def make_client(handler):
    """Client whose requests are answered by `handler`."""
    return DifyClient(
        base_url="https://dify.test/v1/",
        api_key="dataset-key",
        transport=httpx.MockTransport(handler),
    )


def document_json(document_id, name):
    return {"id": document_id, "name": name, "position": 1, "word_count": 10, "extra": "x"}


class TestRequests:
    """Tests for request building and error mapping."""

    @pytest.mark.asyncio
    async def test_sends_bearer_token(self):
        """Requests carry the API key and hit the base URL."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"id": "ds-1", "name": "KB"})

        async with make_client(handler) as client:
            dataset = await client.get_dataset("ds-1")

        assert dataset.name == "KB"
        assert seen[0].headers["Authorization"] == "Bearer dataset-key"
        assert str(seen[0].url) == "https://dify.test/v1/datasets/ds-1"

    @pytest.mark.asyncio
    async def test_api_error_uses_message(self):
        """HTTP errors are raised as DifyError with the API's message."""

        def handler(request):
            return httpx.Response(
                404, json={"code": "not_found", "message": "Dataset not found", "status": 404}
            )

        async with make_client(handler) as client:
            with pytest.raises(DifyError, match="API error: Dataset not found") as exc_info:
                await client.get_dataset("missing")

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_api_error_without_json(self):
        """Non-JSON error bodies fall back to the response text."""

        def handler(request):
            return httpx.Response(502, text="Bad gateway")

        async with make_client(handler) as client:
            with pytest.raises(DifyError, match="Bad gateway"):
                await client.list_datasets()

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Timeouts are raised as DifyError."""

        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_client(handler) as client:
            with pytest.raises(DifyError, match="Request timed out"):
                await client.list_datasets()

    @pytest.mark.asyncio
    async def test_connection_error(self):
        """Transport failures are raised as DifyError."""

        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(DifyError, match="Connection failed"):
                await client.list_datasets()

    @pytest.mark.asyncio
    async def test_empty_response(self):
        """Delete calls tolerate empty responses."""

        def handler(request):
            assert request.method == "DELETE"
            return httpx.Response(204)

        async with make_client(handler) as client:
            assert await client.delete_document("ds-1", "doc-1") is None


class TestDatasets:
    """Tests for dataset endpoints."""

    @pytest.mark.asyncio
    async def test_list_datasets(self):
        """Pagination parameters are sent and the page is parsed."""

        def handler(request):
            assert request.url.params["page"] == "2"
            assert request.url.params["limit"] == "50"
            return httpx.Response(
                200,
                json={
                    "data": [{"id": "ds-1", "name": "KB", "document_count": 3}],
                    "has_more": False,
                    "limit": 50,
                    "total": 1,
                    "page": 2,
                },
            )

        async with make_client(handler) as client:
            response = await client.list_datasets(page=2, limit=50)

        assert [d.id for d in response.data] == ["ds-1"]
        assert response.data[0].document_count == 3
        assert response.has_more is False

    @pytest.mark.asyncio
    async def test_create_dataset(self):
        """Dataset creation posts name and permission."""

        def handler(request):
            assert json.loads(request.content) == {"name": "Notes", "permission": "only_me"}
            return httpx.Response(200, json={"id": "ds-9", "name": "Notes"})

        async with make_client(handler) as client:
            dataset = await client.create_dataset("Notes")

        assert dataset.id == "ds-9"

    @pytest.mark.asyncio
    async def test_delete_dataset(self):
        """Datasets are deleted by id."""
        seen = []

        def handler(request):
            seen.append((request.method, request.url.path))
            return httpx.Response(204)

        async with make_client(handler) as client:
            assert await client.delete_dataset("ds-9") is None

        assert seen == [("DELETE", "/v1/datasets/ds-9")]

    @pytest.mark.asyncio
    async def test_delete_missing_dataset(self):
        """Deleting an unknown dataset raises DifyError."""

        def handler(request):
            return httpx.Response(404, json={"message": "Dataset not found"})

        async with make_client(handler) as client:
            with pytest.raises(DifyError, match="Dataset not found"):
                await client.delete_dataset("missing")


class TestDocuments:
    """Tests for document and segment endpoints."""

    @pytest.mark.asyncio
    async def test_update_document_with_text(self):
        """Name and text are posted to the document's update endpoint."""

        def handler(request):
            assert request.method == "POST"
            assert request.url.path == "/v1/datasets/ds-1/documents/doc-7/update_by_text"
            assert json.loads(request.content) == {"name": "notes.md", "text": "new text"}
            return httpx.Response(
                200,
                json={"document": document_json("doc-7", "notes.md"), "batch": "b-2"},
            )

        async with make_client(handler) as client:
            response = await client.update_document_with_text(
                "ds-1", "doc-7", "notes.md", "new text"
            )

        assert response.document.id == "doc-7"
        assert response.batch == "b-2"

    @pytest.mark.asyncio
    async def test_iter_documents_follows_pages(self):
        """Every page is fetched until has_more is false."""
        pages = {
            "1": {"data": [document_json("doc-1", "a.txt")], "has_more": True},
            "2": {"data": [document_json("doc-2", "b.txt")], "has_more": False},
        }
        requested = []

        def handler(request):
            page = request.url.params["page"]
            requested.append(page)
            return httpx.Response(200, json=pages[page])

        async with make_client(handler) as client:
            documents = [d async for d in client.iter_documents("ds-1")]

        assert [d.id for d in documents] == ["doc-1", "doc-2"]
        assert requested == ["1", "2"]

    @pytest.mark.asyncio
    async def test_iter_documents_stops_on_empty_page(self):
        """An empty page ends iteration even if has_more is set."""

        def handler(request):
            return httpx.Response(200, json={"data": [], "has_more": True})

        async with make_client(handler) as client:
            assert [d async for d in client.iter_documents("ds-1")] == []

    @pytest.mark.asyncio
    async def test_create_document_from_text(self):
        """The name is sent verbatim with automatic processing."""

        def handler(request):
            assert request.method == "POST"
            assert request.url.path == "/v1/datasets/ds-1/document/create-by-text"
            assert json.loads(request.content) == {
                "name": "docs/api.md",
                "text": "# API",
                "indexing_technique": "economy",
                "process_rule": {"mode": "automatic"},
            }
            return httpx.Response(
                200,
                json={"document": document_json("doc-7", "docs/api.md"), "batch": "b-1"},
            )

        async with make_client(handler) as client:
            response = await client.create_document_from_text(
                "ds-1", "docs/api.md", "# API", indexing_technique="economy"
            )

        assert response.document.id == "doc-7"
        assert response.batch == "b-1"

    @pytest.mark.asyncio
    async def test_get_document_segments_pages(self):
        """Segments from every page are collected."""

        def handler(request):
            assert request.url.path == "/v1/datasets/ds-1/documents/doc-1/segments"
            if request.url.params["page"] == "1":
                return httpx.Response(
                    200,
                    json={"data": [{"content": "B", "position": 2}], "has_more": True},
                )
            return httpx.Response(
                200,
                json={"data": [{"content": "A", "position": 1}], "has_more": False},
            )

        async with make_client(handler) as client:
            segments = await client.get_document_segments("ds-1", "doc-1")

        assert [(s.content, s.position) for s in segments] == [("B", 2), ("A", 1)]

    @pytest.mark.asyncio
    async def test_get_indexing_status(self):
        """Indexing status entries are unwrapped."""

        def handler(request):
            return httpx.Response(
                200, json={"data": [{"id": "doc-1", "indexing_status": "completed"}]}
            )

        async with make_client(handler) as client:
            status = await client.get_indexing_status("ds-1", "b-1")

        assert status == [{"id": "doc-1", "indexing_status": "completed"}]
