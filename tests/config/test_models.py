"""Tests for configuration models."""

import pytest
from pydantic import ValidationError

from dolphin_mcp.config.models import (
    LoggingConfig,
    LogOutputConfig,
    PayloadConfig,
    SnippetsConfig,
    UpstreamConfig,
)


class TestLoggingModels:
    """Logging config validation."""

    def test_level_normalised(self):
        """Lowercase and WARN are accepted."""
        assert LoggingConfig(level="debug").level == "DEBUG"
        assert LoggingConfig(level="warn").level == "WARNING"

    def test_relative_file_destination_rejected(self):
        """File destinations must be absolute."""
        with pytest.raises(ValidationError):
            LogOutputConfig(destination="logs/out.log")

    def test_console_destinations(self):
        """stderr and stdout pass through unchanged."""
        assert LogOutputConfig(destination="stderr").destination == "stderr"


class TestUpstreamConfig:
    """Upstream URL validation."""

    def test_trailing_slash_removed(self):
        """Trailing slashes are stripped."""
        assert UpstreamConfig(base_url="https://kb/").base_url == "https://kb"

    @pytest.mark.parametrize("url", ["kb.local:7777", "ftp://kb", "http://"])
    def test_bad_urls(self, url):
        """Non-http(s) or hostless URLs are rejected."""
        with pytest.raises(ValidationError):
            UpstreamConfig(base_url=url)


class TestSnippetsConfig:
    """Snippet fetch settings."""

    def test_clamps(self):
        """Values outside the range are clamped."""
        cfg = SnippetsConfig(max_concurrent=100, timeout_ms=1, retry_attempts=7)
        assert (cfg.max_concurrent, cfg.timeout_ms, cfg.retry_attempts) == (12, 500, 3)

    def test_deadline_must_be_positive(self):
        """A zero or negative deadline is rejected."""
        with pytest.raises(ValidationError):
            SnippetsConfig(deadline_ms=0)


class TestPayloadConfig:
    """Payload budget settings."""

    def test_floor_above_cap_rejected(self):
        """snippet_char_floor may not exceed snippet_char_cap."""
        with pytest.raises(ValidationError):
            PayloadConfig(snippet_char_cap=100, snippet_char_floor=200)

    def test_budget_positive(self):
        """A zero budget is rejected."""
        with pytest.raises(ValidationError):
            PayloadConfig(budget_bytes=0)
