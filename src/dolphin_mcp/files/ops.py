"""Workspace file operations - read_files and file_write tool implementation.

Pure filesystem I/O, confined to one workspace root. Every user path is
resolved and checked against the root before it is touched.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

import structlog

from dolphin_mcp.mcp.errors import (
    FileTooLargeError,
    MCPError,
    MCPErrorCode,
    NotAFileError,
    PathOutsideWorkspaceError,
    WorkspaceFileNotFoundError,
)

log = structlog.get_logger(__name__)


@dataclass
class FileReadResult:
    """Outcome of reading one file. ``content`` is set on success, ``error`` otherwise."""

    path: str
    status: Literal["success", "error"]
    content: str | None = None
    size_bytes: int | None = None
    line_count: int | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class ReadFilesResult:
    """Result of read_files operation."""

    results: list[FileReadResult] = field(default_factory=list)
    total_requested: int = 0
    stopped_early: bool = False

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.status == "success")

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == "error")

    @property
    def total_bytes_read(self) -> int:
        return sum(r.size_bytes or 0 for r in self.results if r.status == "success")

    def summary(self) -> dict[str, int]:
        return {
            "total_requested": self.total_requested,
            "successful": self.successful,
            "failed": self.failed,
            "total_bytes_read": self.total_bytes_read,
        }

    def to_dict(self) -> dict[str, Any]:
        return {"results": [r.to_dict() for r in self.results], "summary": self.summary()}


@dataclass
class WriteResult:
    """Result of file_write operation."""

    path: str
    bytes_written: int
    created_new: bool
    timestamp: str
    backup_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def validate_path_in_workspace(root: Path, user_path: str) -> Path:
    """Validate that user_path is within root, preventing traversal attacks.

    Args:
        root: Workspace root directory
        user_path: User-provided path (relative, or absolute inside root)

    Returns:
        Resolved absolute path if valid

    Raises:
        PathOutsideWorkspaceError: If the path escapes root
    """
    resolved_root = root.resolve()
    full_path = (resolved_root / user_path).resolve()
    if not full_path.is_relative_to(resolved_root):
        raise PathOutsideWorkspaceError(user_path, str(resolved_root))
    return full_path


def _count_lines(content: str) -> int:
    return 0 if content == "" else len(content.splitlines()) + (1 if content.endswith("\n") else 0)


def _backup_suffix(now: datetime) -> str:
    return ".backup-" + now.isoformat().replace(":", "-").replace(".", "-").replace("+", "-")


class WorkspaceFiles:
    """File operations for the read_files and file_write tools."""

    def __init__(self, root: Path) -> None:
        self._root = root.resolve()

    @property
    def root(self) -> Path:
        return self._root

    def read_file(self, user_path: str, *, max_size_bytes: int) -> FileReadResult:
        """Read one UTF-8 file.

        Raises:
            MCPError: If the path is invalid, missing, not a file, too large or
                not valid UTF-8.
        """
        rel = user_path.strip()
        if not rel:
            raise MCPError(
                code=MCPErrorCode.INVALID_PARAMS,
                message="Path must not be empty",
                remediation="Pass a non-empty path relative to the workspace root.",
            )
        full_path = validate_path_in_workspace(self._root, rel)
        if not full_path.exists():
            raise WorkspaceFileNotFoundError(user_path)
        if not full_path.is_file():
            raise NotAFileError(user_path)

        size = full_path.stat().st_size
        if size > max_size_bytes:
            raise FileTooLargeError(user_path, size, max_size_bytes)

        try:
            content = full_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise MCPError(
                code=MCPErrorCode.ENCODING_ERROR,
                message=f"File is not valid UTF-8: {user_path}",
                remediation="Only text files can be read with read_files.",
                path=user_path,
            ) from e

        return FileReadResult(
            path=user_path,
            status="success",
            content=content,
            size_bytes=size,
            line_count=_count_lines(content),
        )

    def read_files(
        self,
        paths: list[str],
        *,
        max_size_bytes: int,
        fail_on_error: bool = True,
    ) -> ReadFilesResult:
        """Read several files in order.

        A failing path is recorded as an error entry. With ``fail_on_error``
        reading stops at the first failure.
        """
        result = ReadFilesResult(total_requested=len(paths))
        for user_path in paths:
            try:
                result.results.append(self.read_file(user_path, max_size_bytes=max_size_bytes))
            except (MCPError, OSError) as e:
                message = e.message if isinstance(e, MCPError) else str(e)
                result.results.append(FileReadResult(path=user_path, status="error", error=message))
                if fail_on_error:
                    result.stopped_early = True
                    break
        return result

    def write_file(
        self,
        user_path: str,
        content: str,
        *,
        create_backup: bool = True,
        create_directories: bool = True,
    ) -> WriteResult:
        """Atomically write *content* to a workspace file.

        The text goes to a temporary file in the target directory which then
        replaces the target with ``os.replace``. An existing file is copied
        to ``<name>.backup-<timestamp>`` first when ``create_backup`` is set.
        """
        full_path = validate_path_in_workspace(self._root, user_path)
        now = datetime.now(UTC)

        backup_path: Path | None = None
        created_new = not full_path.exists()
        if not created_new:
            if not full_path.is_file():
                raise NotAFileError(user_path)
            if create_backup:
                backup_path = full_path.with_name(full_path.name + _backup_suffix(now))
                shutil.copy2(full_path, backup_path)
        elif create_directories:
            full_path.parent.mkdir(parents=True, exist_ok=True)

        if not full_path.parent.is_dir():
            raise MCPError(
                code=MCPErrorCode.IO_ERROR,
                message=f"Parent directory does not exist: {full_path.parent.name}",
                remediation="Set create_directories=true or create the directory first.",
                path=user_path,
            )

        fd, tmp_name = tempfile.mkstemp(dir=full_path.parent, prefix=f".{full_path.name}.tmp-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            os.replace(tmp_name, full_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        bytes_written = full_path.stat().st_size
        log.info(
            "file_written",
            path=user_path,
            bytes=bytes_written,
            created_new=created_new,
            backup=backup_path is not None,
        )
        return WriteResult(
            path=user_path,
            bytes_written=bytes_written,
            created_new=created_new,
            timestamp=now.isoformat(),
            backup_path=str(backup_path) if backup_path is not None else None,
        )
