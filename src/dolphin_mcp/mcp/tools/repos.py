"""Repository tools - get_vector_store_info, open_in_editor."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import structlog
from pydantic import Field

from dolphin_mcp.config.constants import (
    VECTOR_DIMS,
    VECTOR_NAMESPACES,
    VECTOR_SNIPPET_TOKENS_CAP,
    VECTOR_TOP_K_MAX,
)
from dolphin_mcp.mcp.errors import RepoNotFoundError
from dolphin_mcp.mcp.registry import registry
from dolphin_mcp.mcp.results import ToolOutput
from dolphin_mcp.mcp.tools.base import BaseParams

if TYPE_CHECKING:
    from dolphin_mcp.mcp.context import AppContext
    from dolphin_mcp.rest.models import RepoInfo

log = structlog.get_logger(__name__)

# Characters JavaScript's encodeURI leaves alone; editors expect this form.
_URI_SAFE = "/:;,?@&=+$-_.!~*'()#"


class VectorStoreInfoParams(BaseParams):
    """get_vector_store_info takes no parameters."""


class OpenInEditorParams(BaseParams):
    """Parameters for open_in_editor."""

    repo: str = Field(..., min_length=1, description="Repository name as listed by /repos")
    path: str = Field(..., min_length=1, description="File path relative to the repo root")
    line: int | None = Field(None, ge=1, description="1-indexed line")
    column: int | None = Field(None, ge=1, description="1-indexed column (default 1 with line)")


def vector_store_info(repos: list[RepoInfo]) -> dict[str, Any]:
    return {
        "namespaces": list(VECTOR_NAMESPACES),
        "dims": dict(VECTOR_DIMS),
        "limits": {"top_k_max": VECTOR_TOP_K_MAX, "snippet_tokens_cap": VECTOR_SNIPPET_TOKENS_CAP},
        "counts": {"approx_chunks_total": sum(r.chunks or 0 for r in repos)},
        "latency": {"search_p50_ms": None, "search_p95_ms": None},
    }


def editor_uri(
    repo_root: str, path: str, line: int | None = None, column: int | None = None
) -> str:
    """``vscode://file/<abs path>[:line[:column]]``; column defaults to 1 with a line."""
    abs_path = f"{repo_root.rstrip('/')}/{path.lstrip('/')}"
    while "//" in abs_path:
        abs_path = abs_path.replace("//", "/")
    suffix = ""
    if line is not None:
        suffix = f":{line}:{column if column is not None else 1}"
    return f"vscode://file/{quote(abs_path.lstrip('/'), safe=_URI_SAFE)}{suffix}"


@registry.register(
    "get_vector_store_info",
    "Report namespaces, dims, limits, and approximate counts.",
    VectorStoreInfoParams,
    title="Vector Store Info",
    remediation="Ensure the REST service is running and reachable at the configured URL.",
)
async def get_vector_store_info(
    ctx: AppContext,
    params: VectorStoreInfoParams,  # noqa: ARG001
) -> ToolOutput:
    repos = await ctx.rest.list_repos()
    ctx.repo_cache.store(repos)
    return ToolOutput.text("Vector store info ready.", data=vector_store_info(repos))


@registry.register(
    "open_in_editor",
    "Compute a vscode://file URI for a repo path and optional position.",
    OpenInEditorParams,
    title="Open in VS Code",
    remediation="List repositories (/repos) and use an exact repo name.",
)
async def open_in_editor(ctx: AppContext, params: OpenInEditorParams) -> ToolOutput:
    repo_name = params.repo.strip()
    repos = await ctx.repo_cache.get(ctx.rest.list_repos)
    repo = ctx.repo_cache.find(repo_name)
    if repo is None:
        raise RepoNotFoundError(repo_name, [r.name for r in repos])

    uri = editor_uri(repo.path, params.path, params.line, params.column)
    log.debug("editor_uri_built", repo=repo_name, uri=uri)
    return ToolOutput.text(uri, data={"uri": uri})
