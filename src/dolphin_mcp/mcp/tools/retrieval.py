"""Retrieval tools - fetch_chunk, fetch_lines, get_metadata."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, model_validator

from dolphin_mcp.core.languages import mime_from_lang_or_path
from dolphin_mcp.mcp.registry import registry
from dolphin_mcp.mcp.results import ToolOutput
from dolphin_mcp.mcp.tools.base import BaseParams
from dolphin_mcp.search.assembly import ResourceBlock, TextBlock, resource_uri

if TYPE_CHECKING:
    from dolphin_mcp.mcp.context import AppContext

CHUNK_REMEDIATION = "Verify chunk_id or re-run search."
LINES_REMEDIATION = "Verify repo/path and line range."


# =============================================================================
# Parameter Models
# =============================================================================


class ChunkParams(BaseParams):
    """Parameters for fetch_chunk and get_metadata."""

    chunk_id: str = Field(..., min_length=1, description="Chunk identifier from search results")


class FetchLinesParams(BaseParams):
    """Parameters for fetch_lines. Both bounds are inclusive and 1-indexed."""

    repo: str = Field(..., min_length=1, description="Repository name")
    path: str = Field(..., min_length=1, description="File path relative to the repo root")
    start: int = Field(..., ge=1, description="First line (inclusive)")
    end: int = Field(..., ge=1, description="Last line (inclusive)")

    @model_validator(mode="after")
    def validate_range(self) -> FetchLinesParams:
        if self.end < self.start:
            raise ValueError(f"end ({self.end}) must be >= start ({self.start})")
        return self


# =============================================================================
# Tool Handlers
# =============================================================================


@registry.register(
    "fetch_chunk",
    "Fetch a chunk by chunk_id and return its code with a citation.",
    ChunkParams,
    title="Fetch Chunk",
    remediation=CHUNK_REMEDIATION,
)
async def fetch_chunk(ctx: AppContext, params: ChunkParams) -> ToolOutput:
    chunk = await ctx.rest.get_chunk(params.chunk_id)
    citation = f"{chunk.repo}/{chunk.path}#L{chunk.start_line}-L{chunk.end_line}"
    uri = chunk.resource_link or resource_uri(
        chunk.repo, chunk.path, chunk.start_line, chunk.end_line
    )
    return ToolOutput(
        content=[
            TextBlock(f"Chunk {chunk.chunk_id} - {citation}"),
            ResourceBlock(uri, mime_from_lang_or_path(chunk.lang, chunk.path), chunk.content),
        ],
        meta={"data": chunk.model_dump(exclude_none=True)},
    )


@registry.register(
    "fetch_lines",
    "Fetch a file slice [start, end] inclusive and return it with a citation.",
    FetchLinesParams,
    title="Fetch File Lines",
    remediation=LINES_REMEDIATION,
)
async def fetch_lines(ctx: AppContext, params: FetchLinesParams) -> ToolOutput:
    res = await ctx.rest.get_file_slice(params.repo.strip(), params.path, params.start, params.end)
    return ToolOutput(
        content=[
            TextBlock(f"{res.repo}/{res.path}#L{res.start_line}-L{res.end_line}"),
            ResourceBlock(
                resource_uri(res.repo, res.path, res.start_line, res.end_line),
                mime_from_lang_or_path(res.lang, res.path),
                res.content,
            ),
        ],
        meta={"data": res.model_dump(exclude_none=True, by_alias=True)},
    )


@registry.register(
    "get_metadata",
    "Return metadata for a chunk by chunk_id, without its content.",
    ChunkParams,
    title="Chunk Metadata",
    remediation=CHUNK_REMEDIATION,
)
async def get_metadata(ctx: AppContext, params: ChunkParams) -> ToolOutput:
    chunk = await ctx.rest.get_chunk(params.chunk_id)
    return ToolOutput.text(
        "Metadata ready.", data=chunk.model_dump(exclude={"content"}, exclude_none=True)
    )
