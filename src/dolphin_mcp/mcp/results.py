"""Tool result shapes and conversion to the MCP wire types.

Handlers return plain objects with a ``to_dict()`` producing the host
protocol shape ``{"content": [...], "isError": bool, "_meta": {...}}``.
The server turns that dict into ``mcp.types`` models at the last moment, so
the byte budget is measured on exactly what gets sent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from fastmcp.tools import ToolResult
from mcp import types

from dolphin_mcp.search.assembly import ResourceBlock, TextBlock


class ToolPayload(Protocol):
    def to_dict(self) -> dict[str, Any]: ...


@dataclass(slots=True)
class ToolOutput:
    """Generic tool result: content blocks plus optional metadata."""

    content: list[TextBlock | ResourceBlock]
    meta: dict[str, Any] | None = None
    is_error: bool = False

    @classmethod
    def text(cls, text: str, **meta: Any) -> ToolOutput:
        return cls(content=[TextBlock(text)], meta=meta or None)

    @classmethod
    def error(cls, message: str, remediation: str | None, upstream: dict[str, Any]) -> ToolOutput:
        text = f"{message} Remediation: {remediation}" if remediation else message
        return cls(content=[TextBlock(text)], meta={"upstream": upstream}, is_error=True)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "content": [block.to_dict() for block in self.content],
            "isError": self.is_error,
        }
        if self.meta is not None:
            result["_meta"] = self.meta
        return result


def _content_block(block: dict[str, Any]) -> types.ContentBlock:
    if block.get("type") == "resource":
        return types.EmbeddedResource.model_validate(block)
    return types.TextContent.model_validate(block)


def to_tool_result(payload: dict[str, Any]) -> ToolResult:
    """Convert a serialised payload into a FastMCP tool result.

    ``meta`` and ``is_error`` map onto ``_meta`` and ``isError`` of the MCP
    ``CallToolResult``.
    """
    return ToolResult(
        content=[_content_block(b) for b in payload.get("content", [])],
        meta=payload.get("_meta"),
        is_error=bool(payload.get("isError", False)),
    )


@dataclass(slots=True)
class UpstreamError:
    """Error envelope placed under ``_meta.upstream``."""

    code: str
    message: str
    remediation: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.remediation:
            error["remediation"] = self.remediation
        if self.details:
            error["details"] = self.details
        return {"error": error}
