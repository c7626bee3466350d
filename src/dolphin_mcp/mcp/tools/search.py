"""search_knowledge tool - semantic search with snippets, trimmed to budget.

Flow:
1. POST /search with the caller's filters
2. stable-sort hits by descending score (trimming drops from the end)
3. fetch every hit's source slice in parallel
4. assemble summary, prompt-ready text, resource blocks and meta hits
5. shrink the result until it fits the payload budget
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Literal

import structlog
from pydantic import Field, field_validator

from dolphin_mcp.config.constants import (
    ANN_NPROBES_MAX,
    ANN_REFINE_FACTOR_MAX,
    CONTEXT_LINES_MAX,
    DEADLINE_MS_MIN,
    SEARCH_TOP_K_MAX,
)
from dolphin_mcp.mcp.registry import registry
from dolphin_mcp.mcp.tools.base import BaseParams
from dolphin_mcp.rest.models import SearchHit, SearchRequest
from dolphin_mcp.search.assembly import AssembledResponse, assemble_response
from dolphin_mcp.search.snippets import SnippetFetcher, requests_from_hits

if TYPE_CHECKING:
    from dolphin_mcp.mcp.context import AppContext

log = structlog.get_logger(__name__)

SEARCH_REMEDIATION = (
    "Check repo names with /repos, adjust filters, or increase deadline_ms/top_k."
)


class SearchKnowledgeParams(BaseParams):
    """Parameters for search_knowledge."""

    query: str = Field(..., min_length=1, description="Natural-language or code query")
    repos: list[str] | None = Field(None, description="Restrict to these repositories")
    path_prefix: list[str] | None = Field(None, description="Only paths under these prefixes")
    exclude_paths: list[str] | None = Field(None, description="Paths to leave out")
    exclude_patterns: list[str] | None = Field(None, description="Glob patterns to leave out")
    top_k: int | None = Field(None, ge=1, le=SEARCH_TOP_K_MAX, description="Maximum hits")
    max_snippets: int | None = Field(None, ge=1, description="Maximum snippets per result set")
    deadline_ms: int | None = Field(
        None, ge=DEADLINE_MS_MIN, description="Upstream search deadline in milliseconds"
    )
    embed_model: Literal["small", "large"] = Field("large", description="Embedding model")
    score_cutoff: float | None = Field(None, description="Drop hits scoring below this")
    mmr_enabled: bool | None = Field(None, description="Diversify results with MMR")
    mmr_lambda: float | None = Field(None, ge=0, le=1, description="MMR relevance weight")
    cursor: str | None = Field(None, description="Pagination cursor from a previous call")
    ann_strategy: Literal["speed", "accuracy", "adaptive", "custom"] | None = Field(
        None, description="ANN search strategy"
    )
    ann_nprobes: int | None = Field(None, ge=1, le=ANN_NPROBES_MAX)
    ann_refine_factor: int | None = Field(None, ge=1, le=ANN_REFINE_FACTOR_MAX)
    include_graph_context: bool = Field(
        True, description="Include code-graph relationships for each hit"
    )
    context_lines_before: int = Field(
        0, ge=0, le=CONTEXT_LINES_MAX, description="Extra lines before each hit"
    )
    context_lines_after: int = Field(
        0, ge=0, le=CONTEXT_LINES_MAX, description="Extra lines after each hit"
    )

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("query must not be blank")
        return v

    @field_validator("repos")
    @classmethod
    def strip_repos(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        return [r.strip() for r in v if r.strip()]

    def to_request(self) -> SearchRequest:
        return SearchRequest(
            query=self.query,
            repos=self.repos or None,
            path_prefix=self.path_prefix,
            exclude_paths=self.exclude_paths,
            exclude_patterns=self.exclude_patterns,
            top_k=self.top_k,
            max_snippets=self.max_snippets,
            deadline_ms=self.deadline_ms,
            embed_model=self.embed_model,
            score_cutoff=self.score_cutoff,
            mmr_enabled=self.mmr_enabled,
            mmr_lambda=self.mmr_lambda,
            cursor=self.cursor,
            include_prompt_ready=False,
            ann_strategy=self.ann_strategy,
            ann_nprobes=self.ann_nprobes,
            ann_refine_factor=self.ann_refine_factor,
            include_graph_context=self.include_graph_context,
        )

    @property
    def context_requested(self) -> bool:
        return self.context_lines_before > 0 or self.context_lines_after > 0


def rank_hits(hits: list[SearchHit]) -> list[SearchHit]:
    """Hits by descending score; ties keep their upstream order."""
    return sorted(hits, key=lambda hit: -hit.score)


@registry.register(
    "search_knowledge",
    "Semantic search over indexed repositories. Returns a summary, prompt-ready "
    "citations with fenced code, one resource block per hit and compact hit "
    "metadata. Results are trimmed to fit the payload budget; when "
    "_meta.complete is false, call again with _meta.cursor for more.",
    SearchKnowledgeParams,
    title="Search Knowledge Base",
    remediation=SEARCH_REMEDIATION,
)
async def search_knowledge(ctx: AppContext, params: SearchKnowledgeParams) -> AssembledResponse:
    started = time.monotonic()

    response = await ctx.rest.search(params.to_request())
    hits = rank_hits(response.hits)

    fetcher = SnippetFetcher(ctx.rest.get_file_slice, ctx.snippet_options)
    snippets = await fetcher.fetch_all(
        requests_from_hits(hits, params.context_lines_before, params.context_lines_after),
        cancel_event=ctx.shutdown,
    )

    assembled = assemble_response(
        hits,
        snippets,
        response.meta,
        started=started,
        context_requested=params.context_requested,
    )
    report = ctx.trimmer.trim(assembled)

    failed = sum(1 for s in snippets.values() if s.failed)
    log.info(
        "search_complete",
        hits=len(hits),
        returned=len(assembled.meta_hits),
        snippets_ok=len(snippets) - failed,
        snippets_failed=failed,
        payload_bytes=report.final_bytes,
        trimmed=report.trimmed,
        complete=assembled.complete,
        elapsed_ms=int((time.monotonic() - started) * 1000),
        **ctx.snippet_options.as_log_fields(),
    )
    return assembled
