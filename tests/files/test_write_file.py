"""Tests for WorkspaceFiles.write_file."""

from __future__ import annotations

from pathlib import Path

import pytest

from dolphin_mcp.files.ops import WorkspaceFiles
from dolphin_mcp.mcp.errors import MCPError, MCPErrorCode


@pytest.fixture
def files(tmp_path: Path) -> WorkspaceFiles:
    return WorkspaceFiles(tmp_path)


class TestWriteFile:
    """Atomic writes with optional backup."""

    def test_creates_new_file_and_dirs(self, files: WorkspaceFiles) -> None:
        result = files.write_file("pkg/new.py", "x = 1\n")

        assert result.created_new
        assert result.bytes_written == 6
        assert result.backup_path is None
        assert (files.root / "pkg" / "new.py").read_text() == "x = 1\n"

    def test_overwrite_makes_backup(self, files: WorkspaceFiles) -> None:
        target = files.root / "a.txt"
        target.write_text("old")

        result = files.write_file("a.txt", "new")

        assert not result.created_new
        assert target.read_text() == "new"
        assert result.backup_path is not None
        backup = Path(result.backup_path)
        assert backup.name.startswith("a.txt.backup-")
        assert backup.read_text() == "old"

    def test_overwrite_without_backup(self, files: WorkspaceFiles) -> None:
        (files.root / "a.txt").write_text("old")
        result = files.write_file("a.txt", "new", create_backup=False)
        assert result.backup_path is None
        assert sorted(p.name for p in files.root.iterdir()) == ["a.txt"]

    def test_no_temp_files_left(self, files: WorkspaceFiles) -> None:
        files.write_file("a.txt", "content")
        assert [p.name for p in files.root.iterdir()] == ["a.txt"]

    def test_preserves_newlines(self, files: WorkspaceFiles) -> None:
        files.write_file("crlf.txt", "a\r\nb\r\n")
        assert (files.root / "crlf.txt").read_bytes() == b"a\r\nb\r\n"

    def test_missing_parent_without_create(self, files: WorkspaceFiles) -> None:
        with pytest.raises(MCPError) as exc_info:
            files.write_file("nope/a.txt", "x", create_directories=False)
        assert exc_info.value.code == MCPErrorCode.IO_ERROR

    def test_rejects_directory_target(self, files: WorkspaceFiles) -> None:
        (files.root / "dir").mkdir()
        with pytest.raises(MCPError) as exc_info:
            files.write_file("dir", "x")
        assert exc_info.value.code == MCPErrorCode.NOT_A_FILE

    def test_rejects_escape(self, files: WorkspaceFiles) -> None:
        with pytest.raises(MCPError) as exc_info:
            files.write_file("../evil.txt", "x")
        assert exc_info.value.code == MCPErrorCode.PERMISSION_DENIED
        assert not (files.root.parent / "evil.txt").exists()
