"""Tests for core/errors.py."""

import pytest

from dolphin_mcp.core.errors import ConfigError, DolphinError, ErrorCode, InternalError


class TestErrorCode:
    """Tests for ErrorCode enum."""

    def test_codes_are_unique(self):
        """Every code has a distinct value."""
        values = [code.value for code in ErrorCode]
        assert len(values) == len(set(values))

    def test_ranges(self):
        """Config codes are 2xxx and internal codes 9xxx."""
        assert 2000 <= ErrorCode.CONFIG_PARSE_ERROR < 3000
        assert 9000 <= ErrorCode.INTERNAL_SERIALIZATION < 10000


class TestDolphinError:
    """Tests for the base error."""

    def test_to_dict(self):
        """to_dict exposes code, name, message and details."""
        err = DolphinError(code=ErrorCode.INTERNAL_ERROR, message="bad", details={"k": 1})
        assert err.to_dict() == {
            "code": 9001,
            "error": "INTERNAL_ERROR",
            "message": "bad",
            "retryable": False,
            "details": {"k": 1},
        }

    def test_str_includes_code_and_name(self):
        """String form is readable in logs."""
        err = DolphinError(code=ErrorCode.INTERNAL_ERROR, message="bad")
        assert str(err) == "[9001] INTERNAL_ERROR: bad"

    def test_can_be_raised(self):
        """Errors raise and carry their fields."""
        with pytest.raises(ConfigError) as exc_info:
            raise ConfigError.file_not_found("/tmp/x.yaml")
        assert exc_info.value.code == ErrorCode.CONFIG_FILE_NOT_FOUND
        assert exc_info.value.details == {"path": "/tmp/x.yaml"}


class TestFactories:
    """Tests for the classmethod constructors."""

    def test_parse_error(self):
        """parse_error mentions path and reason."""
        err = ConfigError.parse_error("/a.yaml", "bad indent")
        assert err.code == ErrorCode.CONFIG_PARSE_ERROR
        assert "/a.yaml" in err.message
        assert "bad indent" in err.message

    def test_invalid_value(self):
        """invalid_value stringifies the offending value."""
        err = ConfigError.invalid_value("upstream.base_url", 42, "must be http(s)")
        assert err.details == {
            "field": "upstream.base_url",
            "value": "42",
            "reason": "must be http(s)",
        }

    def test_serialization(self):
        """serialization is an internal error with its own code."""
        err = InternalError.serialization("not JSON")
        assert err.code == ErrorCode.INTERNAL_SERIALIZATION
        assert err.error_name == "INTERNAL_SERIALIZATION"
        assert "not JSON" in err.message

    def test_unexpected(self):
        """unexpected wraps a reason and keeps extra details."""
        err = InternalError.unexpected("boom", exception="RuntimeError")
        assert err.code == ErrorCode.INTERNAL_ERROR
        assert err.message == "Internal error: boom"
        assert err.details == {"exception": "RuntimeError"}
