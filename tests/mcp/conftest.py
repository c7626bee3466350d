"""Shared fixtures for MCP tests.

``FakeKnowledgeService`` answers the REST endpoints through
``httpx.MockTransport``; no test touches the network.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Generator
from pathlib import Path
from typing import Any

import httpx
import pytest

from dolphin_mcp.config.models import DolphinConfig, WorkspaceConfig
from dolphin_mcp.mcp.context import AppContext
from dolphin_mcp.mcp.registry import ToolRegistry, registry
from dolphin_mcp.mcp.server import invoke_tool
from dolphin_mcp.mcp.tools import files, repos, retrieval, search  # noqa: F401
from dolphin_mcp.rest.client import RestClient
from dolphin_mcp.search.snippets import SnippetFetchOptions

BASE_URL = "http://kb.test"


class FakeKnowledgeService:
    """In-memory stand-in for the knowledge-base REST service."""

    def __init__(self) -> None:
        self.repos: list[dict[str, Any]] = [
            {"name": "alpha", "path": "/abs/alpha", "files": 3, "chunks": 10},
            {"name": "beta", "path": "/abs/beta", "files": 1, "chunks": 5},
        ]
        self.chunks: dict[str, dict[str, Any]] = {}
        self.files: dict[tuple[str, str], list[str]] = {}
        self.search_hits: list[dict[str, Any]] = []
        self.search_meta: dict[str, Any] = {"top_k": 10, "complete": True}
        self.search_override: httpx.Response | None = None
        self.failing_files: set[str] = set()
        self.requests: list[httpx.Request] = []

    def add_file(self, repo: str, path: str, line_count: int, width: int = 10) -> None:
        self.files[(repo, path)] = [
            f"{path}:{n}".ljust(width, "x") for n in range(1, line_count + 1)
        ]

    def add_hit(
        self, repo: str, path: str, start: int, end: int, score: float, **extra: Any
    ) -> None:
        self.search_hits.append(
            {
                "chunk_id": f"{repo}:{path}:{start}",
                "repo": repo,
                "path": path,
                "start_line": start,
                "end_line": end,
                "score": score,
                **extra,
            }
        )

    def count(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == path)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/search":
            if self.search_override is not None:
                return self.search_override
            return httpx.Response(200, json={"hits": self.search_hits, "meta": self.search_meta})
        if path == "/repos":
            return httpx.Response(200, json={"repos": self.repos})
        if path.startswith("/chunks/"):
            chunk = self.chunks.get(path.removeprefix("/chunks/"))
            if chunk is None:
                return httpx.Response(
                    404, json={"error": {"code": "not_found", "message": "Chunk not found"}}
                )
            return httpx.Response(200, json=chunk)
        if path == "/file":
            return self._file_slice(request)
        return httpx.Response(404, text="no route")

    def _file_slice(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        repo, file_path = params["repo"], params["path"]
        if file_path in self.failing_files:
            return httpx.Response(500, text="Internal Server Error")
        lines = self.files.get((repo, file_path))
        if lines is None:
            return httpx.Response(404, json={"error": {"code": "not_found", "message": "No file"}})
        start, end = int(params["start"]), min(int(params["end"]), len(lines))
        return httpx.Response(
            200,
            json={
                "repo": repo,
                "path": file_path,
                "start_line": start,
                "end_line": end,
                "content": "\n".join(lines[start - 1 : end]),
                "lang": "python" if file_path.endswith(".py") else None,
            },
        )


@pytest.fixture
def service() -> FakeKnowledgeService:
    return FakeKnowledgeService()


@pytest.fixture
def make_context(
    tmp_path: Path, service: FakeKnowledgeService
) -> Callable[..., AppContext]:
    """Build an AppContext wired to the fake service and a tmp workspace."""

    def _make(**sections: Any) -> AppContext:
        sections.setdefault("workspace", WorkspaceConfig(root=str(tmp_path)))
        config = DolphinConfig(**sections)
        rest = RestClient(BASE_URL, transport=httpx.MockTransport(service.handle))
        ctx = AppContext.create(config, rest=rest)
        # Fast retries for tests
        ctx.snippet_options = SnippetFetchOptions(
            max_concurrent=config.snippets.max_concurrent,
            request_timeout_ms=config.snippets.timeout_ms,
            retry_attempts=config.snippets.retry_attempts,
            backoff_base_ms=1,
        )
        return ctx

    return _make


@pytest.fixture
def app(make_context: Callable[..., AppContext]) -> AppContext:
    return make_context()


@pytest.fixture
def call_tool() -> Callable[..., Awaitable[dict[str, Any]]]:
    """Invoke a registered tool through the server wrapper."""

    async def _call(ctx: AppContext, name: str, **arguments: Any) -> dict[str, Any]:
        spec = registry.get(name)
        assert spec is not None, f"tool {name} not registered"
        return await invoke_tool(spec, ctx, arguments)

    return _call


@pytest.fixture
def clean_registry() -> Generator[ToolRegistry, None, None]:
    """Clear and yield the global registry, restore after test."""
    original_tools = dict(registry._tools)
    registry.clear()
    yield registry
    registry._tools = original_tools
