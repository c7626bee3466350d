"""Build the search tool's result from hits and fetched snippets.

Result layout (before any trimming)::

    content[0]      summary text
    content[1]      prompt-ready text (citations, graph context, fenced code)
    content[2 + i]  resource block for hit i
    _meta.hits[i]   compact record for hit i

Resource blocks and meta hits stay paired by position. The only way to remove
one is ``AssembledResponse.drop_last_result``, which removes both.
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from dolphin_mcp.config.constants import RESOURCE_URI_SCHEME
from dolphin_mcp.core.languages import fence_lang, mime_from_lang_or_path
from dolphin_mcp.core.progress import pluralize
from dolphin_mcp.rest.models import SearchHit, SearchMeta
from dolphin_mcp.search.graph import render_graph_context
from dolphin_mcp.search.snippets import SnippetFetchResult

RESULT_START_MARKER = "# --- Result starts (line {line}) ---"
RESULT_END_MARKER = "# --- Result ends (line {line}) ---"


@dataclass(slots=True)
class TextBlock:
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(slots=True)
class ResourceBlock:
    uri: str
    mime_type: str
    text: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "resource",
            "resource": {"uri": self.uri, "mimeType": self.mime_type, "text": self.text},
        }


@dataclass(slots=True)
class AssembledResponse:
    """Search result in its mutable, pre-serialisation form."""

    summary: TextBlock
    prompt_ready: TextBlock | None = None
    resources: list[ResourceBlock] = field(default_factory=list)
    meta_hits: list[dict[str, Any]] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)
    is_error: bool = False

    @property
    def content_blocks(self) -> list[TextBlock | ResourceBlock]:
        blocks: list[TextBlock | ResourceBlock] = [self.summary]
        if self.prompt_ready is not None:
            blocks.append(self.prompt_ready)
        blocks.extend(self.resources)
        return blocks

    @property
    def complete(self) -> bool | None:
        return self.meta.get("complete")

    def drop_last_result(self) -> bool:
        """Remove the trailing result block, keeping blocks and meta hits paired.

        Removes the last resource block together with its meta hit; once no
        resources remain, removes the prompt-ready block. The summary is never
        removed. Returns False when there was nothing left to drop.
        """
        if self.resources:
            self.resources.pop()
            self.meta_hits.pop()
            return True
        if self.prompt_ready is not None:
            self.prompt_ready = None
            return True
        return False

    def to_dict(self) -> dict[str, Any]:
        meta = {"hits": self.meta_hits}
        meta.update({k: v for k, v in self.meta.items() if v is not None})
        return {
            "content": [block.to_dict() for block in self.content_blocks],
            "isError": self.is_error,
            "_meta": meta,
        }


# =============================================================================
# Rendering helpers
# =============================================================================


def resource_uri(repo: str, path: str, start_line: int, end_line: int) -> str:
    return f"{RESOURCE_URI_SCHEME}://{repo}/{path}#L{start_line}-L{end_line}"


def build_summary(hits: Sequence[SearchHit], meta: SearchMeta) -> str:
    repo_count = len({hit.repo for hit in hits})
    head = f"Found {pluralize(len(hits), 'result')}"
    if repo_count > 0:
        head += f" across {pluralize(repo_count, 'repo')}"
    parts = [head + "."]
    if meta.estimated_total is not None:
        parts.append(f"~{meta.estimated_total} estimated results.")
    if meta.complete is False and meta.cursor:
        parts.append("More available; call search_knowledge again with cursor.")
    return " ".join(parts)


def _has_context(
    hit: SearchHit, snippet: SnippetFetchResult | None, context_requested: bool
) -> bool:
    if not context_requested or snippet is None or snippet.actual_start_line is None:
        return False
    return snippet.actual_start_line != hit.start_line or snippet.actual_end_line != hit.end_line


def mark_result_bounds(
    code: str,
    context_start: int,
    context_end: int,
    chunk_start: int,
    chunk_end: int,
) -> str:
    """Insert markers where the matched region begins and ends inside *code*."""
    out: list[str] = []
    for offset, line in enumerate(code.split("\n")):
        line_no = context_start + offset
        if line_no == chunk_start and context_start < chunk_start:
            out.append(RESULT_START_MARKER.format(line=chunk_start))
        out.append(line)
        if line_no == chunk_end and chunk_end < context_end:
            out.append(RESULT_END_MARKER.format(line=chunk_end))
    return "\n".join(out)


def build_prompt_ready(
    hits: Sequence[SearchHit],
    snippets: Mapping[int, SnippetFetchResult],
    *,
    context_requested: bool = False,
) -> str:
    """Citations, graph context and fenced code for every hit, in order."""
    parts: list[str] = []
    for i, hit in enumerate(hits):
        snippet = snippets.get(i)
        code = snippet.content if snippet is not None else ""

        if _has_context(hit, snippet, context_requested):
            assert snippet is not None
            start = snippet.actual_start_line or hit.start_line
            end = snippet.actual_end_line or hit.end_line
            if code:
                code = mark_result_bounds(
                    code,
                    context_start=start,
                    context_end=end,
                    chunk_start=snippet.chunk_start_line or hit.start_line,
                    chunk_end=snippet.chunk_end_line or hit.end_line,
                )
        else:
            start, end = hit.start_line, hit.end_line

        parts.append(f"[{hit.repo}] {hit.path}#L{start}-L{end}")
        graph = render_graph_context(hit.graph_context)
        if graph:
            parts.append(graph)
        parts.append("```" + (fence_lang(hit.language_name, hit.path) or ""))
        parts.append(code)
        parts.append("```")
    return "\n".join(parts) + ("\n" if parts else "")


def _meta_hit(hit: SearchHit, snippet: SnippetFetchResult | None) -> dict[str, Any]:
    record: dict[str, Any] = {
        "chunk_id": hit.chunk_id,
        "repo": hit.repo,
        "path": hit.path,
        "start_line": hit.start_line,
        "end_line": hit.end_line,
        "score": hit.score,
    }
    if snippet is not None and snippet.warnings:
        record["warnings"] = list(snippet.warnings)
    return record


def assemble_response(
    hits: Sequence[SearchHit],
    snippets: Mapping[int, SnippetFetchResult],
    meta: SearchMeta,
    *,
    started: float,
    context_requested: bool = False,
) -> AssembledResponse:
    """Assemble the full, untrimmed search result.

    Args:
        hits: Ranked hits, in the order they should appear.
        snippets: Fetched snippet per hit position.
        meta: Upstream search metadata.
        started: ``time.monotonic()`` when the tool call began.
        context_requested: Whether context lines were asked for.
    """
    prompt_ready = build_prompt_ready(hits, snippets, context_requested=context_requested)

    resources: list[ResourceBlock] = []
    meta_hits: list[dict[str, Any]] = []
    for i, hit in enumerate(hits):
        snippet = snippets.get(i)
        resources.append(
            ResourceBlock(
                uri=resource_uri(hit.repo, hit.path, hit.start_line, hit.end_line),
                mime_type=mime_from_lang_or_path(hit.language_name, hit.path),
                text=snippet.content if snippet is not None else "",
            )
        )
        meta_hits.append(_meta_hit(hit, snippet))

    return AssembledResponse(
        summary=TextBlock(build_summary(hits, meta)),
        prompt_ready=TextBlock(prompt_ready) if prompt_ready else None,
        resources=resources,
        meta_hits=meta_hits,
        meta={
            "cursor": meta.cursor,
            "estimated_total": meta.estimated_total,
            "complete": True if meta.complete is None else meta.complete,
            "warnings": meta.warnings,
            "model": meta.model,
            "top_k": meta.top_k,
            "mcp_latency_ms": int((time.monotonic() - started) * 1000),
        },
    )
