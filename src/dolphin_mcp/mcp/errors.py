"""Structured error system for MCP tools.

Provides typed exceptions with error codes and remediation hints so the
calling agent can understand a failure and correct its next call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from fastmcp.exceptions import ToolError


class MCPErrorCode(StrEnum):
    """Machine-readable error codes for MCP tool failures."""

    # Validation errors - agent should fix input
    INVALID_PARAMS = "INVALID_PARAMS"
    REPO_NOT_FOUND = "REPO_NOT_FOUND"

    # File errors
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    NOT_A_FILE = "NOT_A_FILE"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    ENCODING_ERROR = "ENCODING_ERROR"

    # System errors
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    IO_ERROR = "IO_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass
class ErrorResponse:
    """Structured error response for MCP tools."""

    code: MCPErrorCode
    message: str
    remediation: str
    path: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "remediation": self.remediation,
            "path": self.path,
            "context": self.context,
        }


class MCPError(ToolError):
    """Base exception for MCP tool errors with structured response.

    Extends FastMCP's ToolError so FastMCP passes it through untouched if it
    ever escapes the tool wrapper.
    """

    def __init__(
        self,
        code: MCPErrorCode,
        message: str,
        remediation: str,
        path: str | None = None,
        **context: Any,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.remediation = remediation
        self.path = path
        self.context = context

    def to_response(self) -> ErrorResponse:
        """Convert to ErrorResponse."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            remediation=self.remediation,
            path=self.path,
            context=self.context,
        )


# =============================================================================
# Specific Error Classes
# =============================================================================


class RepoNotFoundError(MCPError):
    """Raised when a repository name is not known to the service."""

    def __init__(self, repo: str, available: list[str] | None = None) -> None:
        super().__init__(
            code=MCPErrorCode.REPO_NOT_FOUND,
            message=f"Repository '{repo}' not found",
            remediation="List repositories (/repos) and use an exact repo name.",
            repo=repo,
            available=available or [],
        )


class PathOutsideWorkspaceError(MCPError):
    """Raised when a path resolves outside the workspace root."""

    def __init__(self, path: str, root: str) -> None:
        super().__init__(
            code=MCPErrorCode.PERMISSION_DENIED,
            message=f"Access denied: {path} resolves outside workspace",
            remediation="Use a path relative to the workspace root without '..' segments.",
            path=path,
            root=root,
        )


class FileTooLargeError(MCPError):
    """Raised when a file exceeds the per-file read limit."""

    def __init__(self, path: str, size: int, limit: int) -> None:
        super().__init__(
            code=MCPErrorCode.FILE_TOO_LARGE,
            message=f"File exceeds max_size_bytes ({limit}) with size {size}",
            remediation="Raise max_size_bytes or fetch a line range with fetch_lines.",
            path=path,
            size=size,
            limit=limit,
        )


class WorkspaceFileNotFoundError(MCPError):
    """Raised when a requested workspace file does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(
            code=MCPErrorCode.FILE_NOT_FOUND,
            message=f"File not found: {path}",
            remediation="Check the path relative to the workspace root.",
            path=path,
        )


class NotAFileError(MCPError):
    """Raised when a path exists but is not a regular file."""

    def __init__(self, path: str) -> None:
        super().__init__(
            code=MCPErrorCode.NOT_A_FILE,
            message=f"Path is not a regular file: {path}",
            remediation="Pass a file path, not a directory.",
            path=path,
        )


class TooManyPathsError(MCPError):
    """Raised when a batch read names more paths than the workspace allows."""

    def __init__(self, count: int, limit: int) -> None:
        super().__init__(
            code=MCPErrorCode.INVALID_PARAMS,
            message=f"Too many paths: {count} given, workspace.max_paths is {limit}",
            remediation=f"Split the request into batches of at most {limit} paths.",
            count=count,
            limit=limit,
        )
