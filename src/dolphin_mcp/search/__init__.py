"""Search pipeline: snippet fetching and result assembly."""

from dolphin_mcp.search.assembly import (
    AssembledResponse,
    ResourceBlock,
    TextBlock,
    assemble_response,
)
from dolphin_mcp.search.snippets import (
    SnippetFetchOptions,
    SnippetFetchRequest,
    SnippetFetchResult,
    SnippetFetcher,
    requests_from_hits,
)

__all__ = [
    "AssembledResponse",
    "ResourceBlock",
    "TextBlock",
    "assemble_response",
    "SnippetFetchOptions",
    "SnippetFetchRequest",
    "SnippetFetchResult",
    "SnippetFetcher",
    "requests_from_hits",
]
