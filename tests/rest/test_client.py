"""Tests for the REST client, using httpx.MockTransport."""

import json

import httpx
import pytest

from dolphin_mcp.rest.client import RestClient
from dolphin_mcp.rest.errors import INVALID_JSON_REMEDIATION, RestError, RestErrorKind
from dolphin_mcp.rest.models import SearchRequest


def _client(handler) -> RestClient:
    return RestClient("http://kb.test/", transport=httpx.MockTransport(handler))


class TestEndpoints:
    """Requests are shaped correctly and responses decoded."""

    @pytest.mark.asyncio
    async def test_search_posts_body_without_unset_fields(self):
        """POST /search sends only the fields that were set."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            seen["client"] = request.headers["X-Client"]
            return httpx.Response(
                200,
                json={
                    "hits": [
                        {
                            "chunk_id": "c1",
                            "repo": "r",
                            "path": "a.py",
                            "start_line": 1,
                            "end_line": 3,
                            "score": 0.9,
                            "new_field": "ignored",
                        }
                    ],
                    "meta": {"top_k": 5, "complete": True},
                },
            )

        async with _client(handler) as client:
            res = await client.search(SearchRequest(query="find me", top_k=5))

        assert seen["method"] == "POST"
        assert seen["path"] == "/search"
        assert seen["client"] == "mcp"
        assert seen["body"] == {
            "query": "find me",
            "top_k": 5,
            "include_prompt_ready": False,
            "include_graph_context": True,
        }
        assert res.hits[0].chunk_id == "c1"
        assert res.meta.complete is True

    @pytest.mark.asyncio
    async def test_get_chunk_quotes_id(self):
        """Chunk ids are URL-quoted into the path."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["raw_path"] = request.url.raw_path.decode()
            return httpx.Response(
                200,
                json={
                    "chunk_id": "a/b#1",
                    "repo": "r",
                    "path": "p",
                    "start_line": 1,
                    "end_line": 2,
                },
            )

        async with _client(handler) as client:
            chunk = await client.get_chunk("a/b#1")

        assert seen["raw_path"] == "/chunks/a%2Fb%231"
        assert chunk.content == ""

    @pytest.mark.asyncio
    async def test_get_file_slice_query_params(self):
        """GET /file passes repo, path, start and end as query params."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(
                200,
                json={
                    "repo": "r",
                    "path": "src/x.ts",
                    "start_line": 4,
                    "end_line": 9,
                    "content": "code",
                    "_meta": {"warnings": ["truncated"]},
                },
            )

        async with _client(handler) as client:
            res = await client.get_file_slice("r", "src/x.ts", 4, 9)

        assert seen["params"] == {"repo": "r", "path": "src/x.ts", "start": "4", "end": "9"}
        assert res.content == "code"
        assert res.warnings == ["truncated"]

    @pytest.mark.asyncio
    async def test_list_repos(self):
        """GET /repos returns the repo list."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/repos"
            return httpx.Response(200, json={"repos": [{"name": "r", "path": "/src/r"}]})

        async with _client(handler) as client:
            repos = await client.list_repos()

        assert [r.name for r in repos] == ["r"]


class TestErrors:
    """Failures are classified at the boundary."""

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        """Non-JSON bodies become invalid_response / invalid_json."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="Internal Server Error")

        async with _client(handler) as client:
            with pytest.raises(RestError) as exc_info:
                await client.list_repos()

        err = exc_info.value
        assert err.kind is RestErrorKind.INVALID_RESPONSE
        assert err.code == "invalid_json"
        assert err.message.startswith("JSON parse error:")
        assert err.remediation == INVALID_JSON_REMEDIATION
        assert err.details["status"] == 500
        assert err.details["body_snippet"] == "Internal Server Error"

    @pytest.mark.asyncio
    async def test_long_body_snippet_truncated(self):
        """Only the first 200 characters of the body are kept."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="x" * 1000)

        async with _client(handler) as client:
            with pytest.raises(RestError) as exc_info:
                await client.list_repos()
        assert len(exc_info.value.details["body_snippet"]) == 200

    @pytest.mark.asyncio
    async def test_structured_error_envelope(self):
        """A structured error body is surfaced as-is."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400,
                json={
                    "error": {
                        "code": "bad_filter",
                        "message": "path_prefix invalid",
                        "remediation": "Fix path_prefix.",
                    }
                },
            )

        async with _client(handler) as client:
            with pytest.raises(RestError) as exc_info:
                await client.search(SearchRequest(query="q"))

        err = exc_info.value
        assert err.kind is RestErrorKind.UPSTREAM_ERROR
        assert (err.code, err.message, err.remediation) == (
            "bad_filter",
            "path_prefix invalid",
            "Fix path_prefix.",
        )
        assert err.status == 400

    @pytest.mark.asyncio
    async def test_404_is_not_found(self):
        """A 404 maps to not_found."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": {"code": "not_found", "message": "nope"}})

        async with _client(handler) as client:
            with pytest.raises(RestError) as exc_info:
                await client.get_chunk("missing")
        assert exc_info.value.kind is RestErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_plain_http_error(self):
        """A JSON body without an error envelope becomes HTTP <status> <reason>."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, json={"detail": "busy"})

        async with _client(handler) as client:
            with pytest.raises(RestError) as exc_info:
                await client.list_repos()

        err = exc_info.value
        assert err.code == "upstream_error"
        assert err.message == "HTTP 503 Service Unavailable"
        assert err.remediation is None

    @pytest.mark.asyncio
    async def test_network_failure(self):
        """Transport errors become network_error."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(RestError) as exc_info:
                await client.list_repos()

        assert exc_info.value.kind is RestErrorKind.UPSTREAM_ERROR
        assert exc_info.value.code == "network_error"

    @pytest.mark.asyncio
    async def test_invalid_payload(self):
        """A body missing required fields becomes invalid_payload."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"chunk_id": "c"})

        async with _client(handler) as client:
            with pytest.raises(RestError) as exc_info:
                await client.get_chunk("c")

        assert exc_info.value.kind is RestErrorKind.INVALID_RESPONSE
        assert exc_info.value.code == "invalid_payload"

    @pytest.mark.asyncio
    async def test_empty_body_is_empty_object(self):
        """An empty 200 body decodes to {} (and then validates)."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"")

        async with _client(handler) as client:
            assert await client.list_repos() == []

    def test_to_dict(self):
        """to_dict yields the upstream envelope."""
        err = RestError(RestErrorKind.UPSTREAM_ERROR, "x", "msg", status=502)
        assert err.to_dict() == {
            "kind": "upstream_error",
            "status": 502,
            "error": {"code": "x", "message": "msg"},
        }
