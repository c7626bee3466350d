"""Errors raised by the REST client.

Every failure talking to the knowledge-base service is classified once, at
the HTTP boundary, into a ``RestError`` with an explicit ``kind``. Callers
branch on ``kind``/``code`` instead of inspecting response bodies.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

INVALID_JSON_REMEDIATION = (
    'Upstream returned non-JSON (e.g., "Internal Server Error"). Inspect server logs, '
    "verify endpoints and filters, or increase deadline_ms/top_k."
)


class RestErrorKind(StrEnum):
    """Broad failure classes."""

    UPSTREAM_ERROR = "upstream_error"
    INVALID_RESPONSE = "invalid_response"
    NOT_FOUND = "not_found"
    UNEXPECTED = "unexpected"


class RestError(Exception):
    """A classified failure from the knowledge-base service."""

    def __init__(
        self,
        kind: RestErrorKind,
        code: str,
        message: str,
        *,
        remediation: str | None = None,
        status: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.code = code
        self.message = message
        self.remediation = remediation
        self.status = status
        self.details = details or {}

    def __repr__(self) -> str:
        return f"RestError(kind={self.kind.value!r}, code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict[str, Any]:
        """Upstream error envelope, as returned under ``_meta.upstream``."""
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.remediation:
            error["remediation"] = self.remediation
        if self.details:
            error["details"] = self.details
        return {"kind": self.kind.value, "status": self.status, "error": error}

    # -- constructors used by the client ------------------------------------

    @classmethod
    def invalid_json(cls, status: int, reason: str, body: str, parse_error: str) -> RestError:
        return cls(
            RestErrorKind.INVALID_RESPONSE,
            "invalid_json",
            f"JSON parse error: {parse_error}",
            remediation=INVALID_JSON_REMEDIATION,
            status=status,
            details={"status": status, "statusText": reason, "body_snippet": body[:200]},
        )

    @classmethod
    def http_status(cls, status: int, reason: str, body: str) -> RestError:
        kind = RestErrorKind.NOT_FOUND if status == 404 else RestErrorKind.UPSTREAM_ERROR
        return cls(
            kind,
            "upstream_error",
            f"HTTP {status} {reason}".rstrip(),
            status=status,
            details={"body_snippet": body[:200]},
        )

    @classmethod
    def from_envelope(cls, status: int, envelope: dict[str, Any]) -> RestError:
        """Build from a structured ``{"error": {...}}`` body."""
        error = envelope.get("error") or {}
        kind = RestErrorKind.NOT_FOUND if status == 404 else RestErrorKind.UPSTREAM_ERROR
        details = error.get("details")
        if details is not None and not isinstance(details, dict):
            details = {"details": details}
        return cls(
            kind,
            str(error.get("code") or "upstream_error"),
            str(error.get("message") or f"HTTP {status}"),
            remediation=error.get("remediation"),
            status=status,
            details=details,
        )

    @classmethod
    def network(cls, exc: Exception) -> RestError:
        return cls(
            RestErrorKind.UPSTREAM_ERROR,
            "network_error",
            f"Request to knowledge-base service failed: {exc}",
            details={"exception": type(exc).__name__},
        )

    @classmethod
    def invalid_payload(cls, status: int, reason: str) -> RestError:
        return cls(
            RestErrorKind.INVALID_RESPONSE,
            "invalid_payload",
            f"Unexpected response shape: {reason}",
            status=status,
        )

    @classmethod
    def unexpected(cls, exc: Exception) -> RestError:
        return cls(
            RestErrorKind.UNEXPECTED,
            "unexpected_error",
            f"Unexpected client failure: {exc}",
            details={"exception": type(exc).__name__},
        )
