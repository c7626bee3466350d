"""Knowledge-base REST client."""

from dolphin_mcp.rest.client import RestClient
from dolphin_mcp.rest.errors import RestError, RestErrorKind
from dolphin_mcp.rest.models import (
    ChunkResponse,
    FileSliceResponse,
    GraphContext,
    RepoInfo,
    SearchHit,
    SearchMeta,
    SearchRequest,
    SearchResponse,
)

__all__ = [
    "RestClient",
    "RestError",
    "RestErrorKind",
    "ChunkResponse",
    "FileSliceResponse",
    "GraphContext",
    "RepoInfo",
    "SearchHit",
    "SearchMeta",
    "SearchRequest",
    "SearchResponse",
]
