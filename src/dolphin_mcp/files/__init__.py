"""Workspace file operations."""

from dolphin_mcp.files.ops import (
    FileReadResult,
    ReadFilesResult,
    WorkspaceFiles,
    WriteResult,
    validate_path_in_workspace,
)

__all__ = [
    "FileReadResult",
    "ReadFilesResult",
    "WorkspaceFiles",
    "WriteResult",
    "validate_path_in_workspace",
]
