"""Wire models for the knowledge-base REST service.

Responses are validated leniently: unknown fields are ignored so that newer
service versions keep working against an older bridge.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class _Wire(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# =============================================================================
# Search
# =============================================================================


class SearchRequest(BaseModel):
    """Body of ``POST /search``. Unset fields are omitted from the request."""

    query: str
    repos: list[str] | None = None
    path_prefix: list[str] | None = None
    exclude_paths: list[str] | None = None
    exclude_patterns: list[str] | None = None
    top_k: int | None = None
    max_snippets: int | None = None
    deadline_ms: int | None = None
    embed_model: Literal["small", "large"] | None = None
    score_cutoff: float | None = None
    mmr_enabled: bool | None = None
    mmr_lambda: float | None = None
    cursor: str | None = None
    include_prompt_ready: bool = False
    ann_strategy: Literal["speed", "accuracy", "adaptive", "custom"] | None = None
    ann_nprobes: int | None = None
    ann_refine_factor: int | None = None
    include_graph_context: bool = True

    def to_body(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class GraphRef(_Wire):
    qualified_name: str = ""


class GraphNode(_Wire):
    type: str = "symbol"
    qualified_name: str = ""
    signature: str | None = None
    line_range: tuple[int, int] | None = None


class GraphRelationship(_Wire):
    type: str
    direction: str = "outgoing"
    target: GraphRef | None = None
    source: GraphRef | None = None
    line_number: int | None = None


class GraphContext(_Wire):
    """Code-graph neighbourhood the service may attach to a hit."""

    nodes: list[GraphNode] = Field(default_factory=list)
    relationships: list[GraphRelationship] = Field(default_factory=list)


class SearchHit(_Wire):
    chunk_id: str
    repo: str
    path: str
    start_line: int
    end_line: int
    score: float = 0.0
    lang: str | None = None
    language: str | None = None
    snippet: str | None = None
    resource_link: str | None = None
    graph_context: GraphContext | None = None

    @property
    def language_name(self) -> str | None:
        return self.language or self.lang


class SearchMeta(_Wire):
    top_k: int | None = None
    model: str | None = None
    latency_ms: float | None = None
    cursor: str | None = None
    estimated_total: int | None = None
    complete: bool | None = None
    warnings: list[str] | None = None


class SearchResponse(_Wire):
    hits: list[SearchHit] = Field(default_factory=list)
    meta: SearchMeta = Field(default_factory=SearchMeta)


# =============================================================================
# Chunks, file slices, repositories
# =============================================================================


class Symbol(_Wire):
    kind: str | None = None
    name: str | None = None
    path: str | None = None


class ChunkResponse(_Wire):
    chunk_id: str
    repo: str
    path: str
    start_line: int
    end_line: int
    content: str = ""
    lang: str | None = None
    symbol: Symbol | None = None
    resource_link: str | None = None


class SliceMeta(_Wire):
    warnings: list[str] | None = None


class FileSliceResponse(_Wire):
    repo: str
    path: str
    start_line: int
    end_line: int
    content: str = ""
    lang: str | None = None
    source: str | None = None
    symbol_context: list[Symbol] | None = None
    meta: SliceMeta | None = Field(default=None, alias="_meta")

    @property
    def warnings(self) -> list[str] | None:
        return self.meta.warnings if self.meta is not None else None


class RepoInfo(_Wire):
    name: str
    path: str
    default_embed_model: str | None = None
    files: int | None = None
    chunks: int | None = None


class ReposResponse(_Wire):
    repos: list[RepoInfo] = Field(default_factory=list)
