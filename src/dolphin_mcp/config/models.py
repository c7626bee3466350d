"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (DOLPHIN__SECTION__KEY, plus legacy flat names)
3. YAML (~/.config/dolphin-mcp/config.yaml or $DOLPHIN_CONFIG)
4. Built-in defaults (this file)

Environment Variable Format:
    DOLPHIN__<SECTION>__<KEY>=<VALUE>

Examples:
    DOLPHIN__LOGGING__LEVEL=DEBUG
    DOLPHIN__UPSTREAM__BASE_URL=http://127.0.0.1:7777
    DOLPHIN__SNIPPETS__MAX_CONCURRENT=4
    DOLPHIN__PAYLOAD__BUDGET_BYTES=51200
"""

from pathlib import Path
from typing import Literal, Self

from pydantic import BaseModel, Field, field_validator, model_validator

from dolphin_mcp.config.constants import (
    READ_FILES_MAX_BYTES,
    READ_FILES_MAX_PATHS,
    REPO_CACHE_TTL_SEC,
    RESPONSE_BUDGET_BYTES,
    SNIPPET_CHAR_CAP,
    SNIPPET_CHAR_FLOOR,
    SNIPPET_CONCURRENCY_DEFAULT,
    SNIPPET_CONCURRENCY_MAX,
    SNIPPET_CONCURRENCY_MIN,
    SNIPPET_RETRIES_DEFAULT,
    SNIPPET_RETRIES_MAX,
    SNIPPET_RETRIES_MIN,
    SNIPPET_TIMEOUT_MS_DEFAULT,
    SNIPPET_TIMEOUT_MS_MAX,
    SNIPPET_TIMEOUT_MS_MIN,
)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        DOLPHIN__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every snippet fetch attempt.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])
    rotate_max_bytes: int = Field(
        default=5 * 1024 * 1024,
        description="Rotate file outputs once they reach this size.",
    )
    rotate_backups: int = Field(
        default=3,
        description="Rotated files kept per output (mcp.log.1 .. mcp.log.N).",
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> object:
        if isinstance(v, str):
            upper = v.strip().upper()
            return "WARNING" if upper == "WARN" else upper
        return v


class ServerConfig(BaseModel):
    """MCP server identity.

    Env vars:
        DOLPHIN__SERVER__NAME: Server name reported during the handshake
        DOLPHIN__SERVER__VERSION: Server version reported during the handshake
    """

    name: str = Field(default="dolphin-mcp", description="Server name for the MCP handshake.")
    version: str = Field(default="1.0.0", description="Server version for the MCP handshake.")


class UpstreamConfig(BaseModel):
    """Remote search service connection.

    Env vars:
        DOLPHIN__UPSTREAM__BASE_URL: REST base URL (default: http://127.0.0.1:7777)
        DOLPHIN__UPSTREAM__REQUEST_TIMEOUT_SEC: Whole-request timeout for REST calls
    """

    base_url: str = Field(
        default="http://127.0.0.1:7777",
        description="Base URL of the knowledge-base REST service.",
    )
    request_timeout_sec: float = Field(
        default=30.0,
        description="Timeout for search/chunk/repo calls. Snippet fetches use "
        "snippets.timeout_ms per attempt instead.",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")) or len(v.split("://", 1)[1]) == 0:
            raise ValueError(f"Expected http(s)://host[:port], got {v!r}")
        return v.rstrip("/")


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


class SnippetsConfig(BaseModel):
    """Parallel snippet fetching.

    Values outside the supported range are clamped, not rejected.

    Env vars:
        DOLPHIN__SNIPPETS__MAX_CONCURRENT: In-flight fetches (1-12, default 8)
        DOLPHIN__SNIPPETS__TIMEOUT_MS: Per-attempt timeout (500-10000, default 1500)
        DOLPHIN__SNIPPETS__RETRY_ATTEMPTS: Retries after the first attempt (0-3, default 1)
        DOLPHIN__SNIPPETS__DEADLINE_MS: Optional cap on total time per snippet
    """

    max_concurrent: int = Field(
        default=SNIPPET_CONCURRENCY_DEFAULT,
        description="Simultaneous snippet fetches. "
        "TRADEOFF: Higher values finish faster but load the REST service harder.",
    )
    timeout_ms: int = Field(
        default=SNIPPET_TIMEOUT_MS_DEFAULT,
        description="Timeout for a single fetch attempt.",
    )
    retry_attempts: int = Field(
        default=SNIPPET_RETRIES_DEFAULT,
        description="Retries after a failed or timed-out attempt (exponential backoff).",
    )
    deadline_ms: int | None = Field(
        default=None,
        description="Stop starting new attempts for a snippet after this much time. "
        "Unset means attempts are bounded only by retry_attempts.",
    )

    @field_validator("max_concurrent")
    @classmethod
    def clamp_concurrency(cls, v: int) -> int:
        return _clamp(v, SNIPPET_CONCURRENCY_MIN, SNIPPET_CONCURRENCY_MAX)

    @field_validator("timeout_ms")
    @classmethod
    def clamp_timeout(cls, v: int) -> int:
        return _clamp(v, SNIPPET_TIMEOUT_MS_MIN, SNIPPET_TIMEOUT_MS_MAX)

    @field_validator("retry_attempts")
    @classmethod
    def clamp_retries(cls, v: int) -> int:
        return _clamp(v, SNIPPET_RETRIES_MIN, SNIPPET_RETRIES_MAX)

    @field_validator("deadline_ms")
    @classmethod
    def validate_deadline(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            raise ValueError(f"deadline_ms must be positive, got {v}")
        return v


class PayloadConfig(BaseModel):
    """Search result size budget.

    Env vars:
        DOLPHIN__PAYLOAD__BUDGET_BYTES: Max serialized size of a search result
        DOLPHIN__PAYLOAD__SNIPPET_CHAR_CAP: First-pass per-snippet cap
        DOLPHIN__PAYLOAD__SNIPPET_CHAR_FLOOR: Second-pass per-snippet cap
    """

    budget_bytes: int = Field(
        default=RESPONSE_BUDGET_BYTES,
        gt=0,
        description="Serialized result budget. "
        "RISK: Values near the host's transport limit get responses truncated client-side.",
    )
    snippet_char_cap: int = Field(default=SNIPPET_CHAR_CAP, ge=0)
    snippet_char_floor: int = Field(default=SNIPPET_CHAR_FLOOR, ge=0)

    @model_validator(mode="after")
    def check_floor_below_cap(self) -> Self:
        if self.snippet_char_floor > self.snippet_char_cap:
            raise ValueError(
                f"snippet_char_floor ({self.snippet_char_floor}) must not exceed "
                f"snippet_char_cap ({self.snippet_char_cap})"
            )
        return self


class CacheConfig(BaseModel):
    """In-process caches.

    Env vars:
        DOLPHIN__CACHE__REPO_TTL_SEC: Lifetime of the cached repository list
    """

    repo_ttl_sec: float = Field(default=REPO_CACHE_TTL_SEC, ge=0)


class WorkspaceConfig(BaseModel):
    """Local workspace file tools (read_files, file_write).

    Env vars:
        DOLPHIN__WORKSPACE__ROOT: Workspace root (default: current directory)
        DOLPHIN__WORKSPACE__READ_MAX_BYTES: Default per-file read limit
    """

    root: str | None = Field(
        default=None,
        description="Directory the file tools are confined to. Default: process cwd.",
    )
    read_max_bytes: int = Field(default=READ_FILES_MAX_BYTES, gt=0)
    max_paths: int = Field(default=READ_FILES_MAX_PATHS, gt=0)

    def resolved_root(self) -> Path:
        return Path(self.root).expanduser().resolve() if self.root else Path.cwd().resolve()


class DolphinConfig(BaseModel):
    """Root configuration for the bridge.

    All settings can be configured via:
    1. Environment variables: DOLPHIN__SECTION__KEY
    2. YAML config file
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    snippets: SnippetsConfig = Field(default_factory=SnippetsConfig)
    payload: PayloadConfig = Field(default_factory=PayloadConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
