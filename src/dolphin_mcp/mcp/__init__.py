"""MCP server layer: registry, context, tool wiring."""

from dolphin_mcp.mcp.context import AppContext
from dolphin_mcp.mcp.registry import ToolRegistry, ToolSpec, registry
from dolphin_mcp.mcp.server import create_mcp_server, invoke_tool

__all__ = [
    "AppContext",
    "ToolRegistry",
    "ToolSpec",
    "registry",
    "create_mcp_server",
    "invoke_tool",
]
