"""Workspace file tools - read_files, file_write.

Both are confined to the configured workspace root; see ``files.ops``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field

from dolphin_mcp.config.constants import READ_FILES_MAX_PATHS
from dolphin_mcp.mcp.errors import TooManyPathsError
from dolphin_mcp.mcp.registry import registry
from dolphin_mcp.mcp.results import ToolOutput
from dolphin_mcp.mcp.tools.base import BaseParams

if TYPE_CHECKING:
    from dolphin_mcp.mcp.context import AppContext


class ReadFilesParams(BaseParams):
    """Parameters for read_files."""

    paths: list[str] = Field(
        ...,
        min_length=1,
        max_length=READ_FILES_MAX_PATHS,
        description="File paths relative to the workspace root",
    )
    max_size_bytes: int | None = Field(
        None, gt=0, description="Per-file size limit in bytes (default: workspace.read_max_bytes)"
    )
    fail_on_error: bool = Field(True, description="Stop at the first file that cannot be read")


class FileWriteParams(BaseParams):
    """Parameters for file_write."""

    path: str = Field(..., min_length=1, description="File path relative to the workspace root")
    content: str = Field(..., description="Full new file content (UTF-8)")
    create_backup: bool = Field(True, description="Copy an existing file aside first")
    create_directories: bool = Field(True, description="Create missing parent directories")


@registry.register(
    "read_files",
    "Read one or more UTF-8 files from the workspace. Returns per-file content "
    "or error plus summary totals.",
    ReadFilesParams,
    title="Read Files",
    remediation="Check the paths relative to the workspace root and the size limit.",
)
async def read_files(ctx: AppContext, params: ReadFilesParams) -> ToolOutput:
    max_paths = ctx.config.workspace.max_paths
    if len(params.paths) > max_paths:
        raise TooManyPathsError(len(params.paths), max_paths)

    result = ctx.workspace.read_files(
        params.paths,
        max_size_bytes=params.max_size_bytes or ctx.config.workspace.read_max_bytes,
        fail_on_error=params.fail_on_error,
    )
    summary = result.summary()
    text = (
        f"Read {summary['successful']} of {summary['total_requested']} file(s), "
        f"{summary['total_bytes_read']} bytes."
    )
    if result.stopped_early:
        failed = next(r for r in result.results if r.status == "error")
        text += f" Stopped at {failed.path}: {failed.error}"
    output = ToolOutput.text(text, data=result.to_dict())
    output.is_error = result.stopped_early
    return output


@registry.register(
    "file_write",
    "Write a UTF-8 file in the workspace atomically, backing up an existing file.",
    FileWriteParams,
    title="Write File",
    read_only=False,
    remediation="Use a path inside the workspace and check directory permissions.",
)
async def file_write(ctx: AppContext, params: FileWriteParams) -> ToolOutput:
    result = ctx.workspace.write_file(
        params.path,
        params.content,
        create_backup=params.create_backup,
        create_directories=params.create_directories,
    )
    verb = "Created" if result.created_new else "Updated"
    return ToolOutput.text(
        f"{verb} {result.path} ({result.bytes_written} bytes).", data=result.to_dict()
    )
