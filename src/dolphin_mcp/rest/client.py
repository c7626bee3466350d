"""Async client for the knowledge-base REST service.

All requests share one ``httpx.AsyncClient``. Responses are decoded and
validated here; anything that goes wrong surfaces as a ``RestError``.
"""

from __future__ import annotations

import json
from types import TracebackType
from typing import Any, Self, TypeVar
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from dolphin_mcp.rest.errors import RestError
from dolphin_mcp.rest.models import (
    ChunkResponse,
    FileSliceResponse,
    RepoInfo,
    ReposResponse,
    SearchRequest,
    SearchResponse,
)

log = structlog.get_logger(__name__)

_ModelT = TypeVar("_ModelT", bound=BaseModel)

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
    "X-Client": "mcp",
}


class RestClient:
    """Thin typed wrapper over the service's HTTP endpoints.

    Args:
        base_url: Service root, e.g. ``http://127.0.0.1:7777``.
        timeout_s: Default timeout for every request.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=DEFAULT_HEADERS,
            timeout=timeout_s,
            transport=transport,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # -------------------------------------------------------------------------
    # Endpoints
    # -------------------------------------------------------------------------

    async def search(self, request: SearchRequest) -> SearchResponse:
        data = await self._request("POST", "/search", json=request.to_body())
        return self._validate(SearchResponse, data)

    async def get_chunk(self, chunk_id: str) -> ChunkResponse:
        data = await self._request("GET", f"/chunks/{quote(chunk_id, safe='')}")
        return self._validate(ChunkResponse, data)

    async def get_file_slice(
        self, repo: str, path: str, start: int, end: int
    ) -> FileSliceResponse:
        params = {"repo": repo, "path": path, "start": str(start), "end": str(end)}
        data = await self._request("GET", "/file", params=params)
        return self._validate(FileSliceResponse, data)

    async def list_repos(self) -> list[RepoInfo]:
        data = await self._request("GET", "/repos")
        return self._validate(ReposResponse, data).repos

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            log.debug("rest_request_failed", method=method, path=path, error=str(e))
            raise RestError.network(e) from e
        except (httpx.InvalidURL, httpx.StreamError) as e:
            raise RestError.unexpected(e) from e

        text = response.text
        try:
            data = json.loads(text) if text else {}
        except json.JSONDecodeError as e:
            raise RestError.invalid_json(
                response.status_code, response.reason_phrase, text, e.msg
            ) from e

        if response.is_success:
            return data
        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            raise RestError.from_envelope(response.status_code, data)
        raise RestError.http_status(response.status_code, response.reason_phrase, text)

    @staticmethod
    def _validate(model: type[_ModelT], data: Any) -> _ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            err = e.errors()[0]
            where = ".".join(str(loc) for loc in err["loc"]) or model.__name__
            raise RestError.invalid_payload(200, f"{where}: {err['msg']}") from e
