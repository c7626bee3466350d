"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

import sys
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local dolphin_mcp package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

_CONFIG_ENV_VARS = (
    "DOLPHIN_CONFIG",
    "DOLPHIN_API_URL",
    "KB_REST_BASE_URL",
    "LOG_LEVEL",
    "SERVER_NAME",
    "SERVER_VERSION",
    "MAX_CONCURRENT_SNIPPET_FETCH",
    "SNIPPET_FETCH_TIMEOUT_MS",
    "SNIPPET_FETCH_RETRY_ATTEMPTS",
)


@pytest.fixture(autouse=True)
def isolated_config_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the developer's environment and home config out of every test."""
    import os

    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    for name in list(os.environ):
        if name.upper().startswith("DOLPHIN__"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(
        "dolphin_mcp.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "no-such-config.yaml"
    )
