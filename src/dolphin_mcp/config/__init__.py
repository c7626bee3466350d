"""Config module exports."""

from dolphin_mcp.config.loader import DolphinSettings, config_summary, load_config
from dolphin_mcp.config.models import (
    DolphinConfig,
    LoggingConfig,
    PayloadConfig,
    SnippetsConfig,
    UpstreamConfig,
)

__all__ = [
    "load_config",
    "config_summary",
    "DolphinConfig",
    "DolphinSettings",
    "LoggingConfig",
    "PayloadConfig",
    "SnippetsConfig",
    "UpstreamConfig",
]
