"""Core module exports."""

from dolphin_mcp.core.concurrency import TaskResult, map_with_concurrency
from dolphin_mcp.core.errors import (
    ConfigError,
    DolphinError,
    ErrorCode,
    InternalError,
)
from dolphin_mcp.core.logging import (
    clear_request_id,
    configure_logging,
    get_logger,
    get_request_id,
    set_request_id,
)

__all__ = [
    # Concurrency
    "TaskResult",
    "map_with_concurrency",
    # Errors
    "ConfigError",
    "DolphinError",
    "ErrorCode",
    "InternalError",
    # Logging
    "clear_request_id",
    "configure_logging",
    "get_logger",
    "get_request_id",
    "set_request_id",
]
