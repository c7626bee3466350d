"""Tests for validate_path_in_workspace and path security.

Tests the path validation utility that prevents directory traversal attacks.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from dolphin_mcp.files.ops import validate_path_in_workspace
from dolphin_mcp.mcp.errors import MCPError, MCPErrorCode


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace structure."""
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.py").write_text("content")
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "readme.md").write_text("docs")
    return tmp_path.resolve()


class TestValidatePathInWorkspace:
    """Tests for validate_path_in_workspace function."""

    def test_valid_relative_path(self, workspace: Path) -> None:
        """Valid relative path returns resolved absolute path."""
        result = validate_path_in_workspace(workspace, "src/main.py")
        assert result == workspace / "src" / "main.py"
        assert result.is_absolute()

    def test_dot_path_returns_root(self, workspace: Path) -> None:
        """Dot path resolves to the workspace root."""
        assert validate_path_in_workspace(workspace, ".") == workspace

    def test_allows_internal_parent_navigation(self, workspace: Path) -> None:
        """Allows .. that stays within the workspace."""
        result = validate_path_in_workspace(workspace, "src/../docs/readme.md")
        assert result == workspace / "docs" / "readme.md"

    def test_allows_absolute_path_inside(self, workspace: Path) -> None:
        """Accepts an absolute path that is inside the workspace."""
        result = validate_path_in_workspace(workspace, str(workspace / "src" / "main.py"))
        assert result == workspace / "src" / "main.py"

    # ==========================================================================
    # Path traversal attack prevention
    # ==========================================================================

    @pytest.mark.parametrize(
        "user_path",
        ["../outside", "src/../../outside", "a/b/c/../../../../outside", "/etc/passwd"],
    )
    def test_rejects_escape(self, workspace: Path, user_path: str) -> None:
        """Paths resolving outside the root are refused."""
        with pytest.raises(MCPError) as exc_info:
            validate_path_in_workspace(workspace, user_path)

        assert exc_info.value.code == MCPErrorCode.PERMISSION_DENIED
        assert "outside workspace" in exc_info.value.message

    def test_rejects_symlink_escape(self, workspace: Path, tmp_path_factory) -> None:
        """Rejects a symlink that points outside the workspace."""
        outside = tmp_path_factory.mktemp("outside")
        try:
            (workspace / "evil_link").symlink_to(outside)
        except OSError:
            pytest.skip("Cannot create symlinks on this system")

        with pytest.raises(MCPError) as exc_info:
            validate_path_in_workspace(workspace, "evil_link/something")

        assert exc_info.value.code == MCPErrorCode.PERMISSION_DENIED

    def test_error_includes_context(self, workspace: Path) -> None:
        """Error carries the root and a remediation hint."""
        with pytest.raises(MCPError) as exc_info:
            validate_path_in_workspace(workspace, "../escape")

        assert exc_info.value.context["root"] == str(workspace)
        assert "relative to the workspace root" in exc_info.value.remediation
