"""Tool registry for MCP server.

Provides decorator-based tool registration with Pydantic param validation.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

if TYPE_CHECKING:
    from dolphin_mcp.mcp.context import AppContext
    from dolphin_mcp.mcp.results import ToolPayload

# Handler signature: (ctx, validated_params) -> payload with to_dict()
HandlerFn = Callable[["AppContext", Any], Awaitable["ToolPayload"]]

DEFAULT_REMEDIATION = "Check the tool arguments and try again. See server logs."


@dataclass
class ToolSpec:
    """Specification for a registered tool."""

    name: str
    handler: HandlerFn
    description: str
    params_model: type[BaseModel]
    title: str | None = None
    read_only: bool = True
    remediation: str = DEFAULT_REMEDIATION


class ToolRegistry:
    """Registry for MCP tools with decorator-based registration."""

    _instance: ToolRegistry | None = None
    _tools: dict[str, ToolSpec]

    def __new__(cls) -> ToolRegistry:
        """Singleton pattern for global registry."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._tools = {}
        return cls._instance

    def register(
        self,
        name: str,
        description: str,
        params_model: type[BaseModel],
        *,
        title: str | None = None,
        read_only: bool = True,
        remediation: str = DEFAULT_REMEDIATION,
    ) -> Callable[[HandlerFn], HandlerFn]:
        """Decorator to register a tool handler.

        Usage:
            @registry.register("fetch_chunk", "Fetch a chunk", FetchChunkParams)
            async def fetch_chunk(ctx: AppContext, params: FetchChunkParams) -> ToolOutput:
                ...
        """

        def decorator(fn: HandlerFn) -> HandlerFn:
            self._tools[name] = ToolSpec(
                name=name,
                handler=fn,
                description=description,
                params_model=params_model,
                title=title,
                read_only=read_only,
                remediation=remediation,
            )
            return fn

        return decorator

    def get_all(self) -> list[ToolSpec]:
        """Get all registered tool specs."""
        return list(self._tools.values())

    def get(self, name: str) -> ToolSpec | None:
        """Get a specific tool spec by name."""
        return self._tools.get(name)

    def clear(self) -> None:
        """Clear all registrations (for testing)."""
        self._tools.clear()


# Global registry instance
registry = ToolRegistry()
