"""Unit tests for the Qdrant vector store client."""

import json

import httpx
import pytest

from agentic_search.errors import BackendError, BackendErrorKind
from agentic_search.infrastructure.vector_stores.qdrant_store import QdrantVectorStore


def _store(handler, api_key=None) -> QdrantVectorStore:
    return QdrantVectorStore(
        base_url="http://qdrant.test/",
        payload_field="text",
        api_key=api_key,
        transport=httpx.MockTransport(handler),
    )


class TestQdrantSearch:

    @pytest.mark.asyncio
    async def test_request_shape(self):
        """Test endpoint, body and api-key header."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            seen["api_key"] = request.headers.get("api-key")
            return httpx.Response(200, json={"result": [], "status": "ok"})

        store = _store(handler, api_key="qd-key")
        await store.search([0.1, 0.2], "docs", 5, 0.5)
        await store.aclose()

        assert seen["url"] == "http://qdrant.test/collections/docs/points/search"
        assert seen["body"] == {
            "vector": [0.1, 0.2],
            "limit": 5,
            "score_threshold": 0.5,
            "with_payload": True,
        }
        assert seen["api_key"] == "qd-key"

    @pytest.mark.asyncio
    async def test_no_api_key_header(self):
        """Test the header is omitted without a key."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["has_key"] = "api-key" in request.headers
            return httpx.Response(200, json={"result": []})

        await _store(handler).search([0.1], "docs", 5, 0.5)

        assert seen["has_key"] is False

    @pytest.mark.asyncio
    async def test_parses_hits(self):
        """Test scored points become RawHits."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"result": [
                {"id": 1, "score": 0.81, "payload": {"text": "Refunds within 30 days"}},
                {"id": 2, "score": 0.77, "payload": {"text": "Returns", "lang": "en"}},
            ]})

        hits = await _store(handler).search([0.1], "docs", 10, 0.5)

        assert [h.score for h in hits] == [0.81, 0.77]
        assert hits[0].payload == {"text": "Refunds within 30 days"}

    @pytest.mark.asyncio
    async def test_skips_hits_without_payload_field(self, caplog):
        """Test hits lacking the payload field are skipped with a warning."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"result": [
                {"id": 1, "score": 0.9, "payload": {"title": "no text"}},
                {"id": 2, "score": 0.8, "payload": None},
                {"id": 3, "score": "high", "payload": {"text": "bad score"}},
                {"id": 4, "score": 0.7, "payload": {"text": "kept"}},
            ]})

        with caplog.at_level("WARNING"):
            hits = await _store(handler).search([0.1], "docs", 10, 0.5)

        assert [h.payload["text"] for h in hits] == ["kept"]
        assert "payload has no 'text' field" in caplog.text

    @pytest.mark.asyncio
    async def test_http_error(self):
        """Test a 500 raises BackendError with the status."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="internal error")

        with pytest.raises(BackendError) as exc_info:
            await _store(handler).search([0.1], "docs", 10, 0.5)

        assert exc_info.value.error_kind is BackendErrorKind.HTTP
        assert exc_info.value.status == 500

    @pytest.mark.asyncio
    async def test_connection_error(self):
        """Test a connection failure raises a transport BackendError."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(BackendError) as exc_info:
            await _store(handler).search([0.1], "docs", 10, 0.5)

        assert exc_info.value.error_kind is BackendErrorKind.TRANSPORT

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [b"not json", b'{"status": "ok"}', b'{"result": {"points": []}}'])
    async def test_malformed_response(self, body):
        """Test unexpected bodies raise a malformed BackendError."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=body)

        with pytest.raises(BackendError) as exc_info:
            await _store(handler).search([0.1], "docs", 10, 0.5)

        assert exc_info.value.error_kind is BackendErrorKind.MALFORMED
