"""Application context for MCP handlers.

Single object passed to all tool handlers with access to the REST client,
configuration and shared caches.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dolphin_mcp.config.models import DolphinConfig
    from dolphin_mcp.files.ops import WorkspaceFiles
    from dolphin_mcp.mcp.budget import PayloadTrimmer
    from dolphin_mcp.mcp.repo_cache import RepoCache
    from dolphin_mcp.rest.client import RestClient
    from dolphin_mcp.search.snippets import SnippetFetchOptions


@dataclass
class AppContext:
    """Context object passed to all MCP tool handlers.

    Per-request cancellation is task cancellation: when the host cancels a
    call, ``asyncio.CancelledError`` propagates through the tool wrapper and
    cancels every snippet fetch still in flight. ``shutdown`` is only set by
    ``aclose()``, after the transport has stopped; a search that runs after
    that point returns placeholders instead of fetching snippets.
    """

    config: DolphinConfig
    rest: RestClient
    repo_cache: RepoCache
    workspace: WorkspaceFiles
    trimmer: PayloadTrimmer
    snippet_options: SnippetFetchOptions
    shutdown: asyncio.Event = field(default_factory=asyncio.Event)

    @classmethod
    def create(
        cls,
        config: DolphinConfig,
        rest: RestClient | None = None,
    ) -> AppContext:
        """Factory to create context with all collaborators wired together.

        Args:
            config: Resolved configuration
            rest: Optional existing client (tests pass one with a mock transport)
        """
        from dolphin_mcp.files.ops import WorkspaceFiles
        from dolphin_mcp.mcp.budget import PayloadTrimmer
        from dolphin_mcp.mcp.repo_cache import RepoCache
        from dolphin_mcp.rest.client import RestClient as Client
        from dolphin_mcp.search.snippets import SnippetFetchOptions

        if rest is None:
            rest = Client(config.upstream.base_url, timeout_s=config.upstream.request_timeout_sec)

        return cls(
            config=config,
            rest=rest,
            repo_cache=RepoCache(ttl_sec=config.cache.repo_ttl_sec),
            workspace=WorkspaceFiles(config.workspace.resolved_root()),
            trimmer=PayloadTrimmer.from_config(config.payload),
            snippet_options=SnippetFetchOptions.from_config(config.snippets),
        )

    async def aclose(self) -> None:
        self.shutdown.set()
        await self.rest.aclose()
