"""Configuration loading with pydantic-settings.

Supports loading configuration from multiple sources with precedence:
1. Direct kwargs (highest priority)
2. Environment variables (DOLPHIN__SECTION__KEY)
3. Legacy flat environment variables (DOLPHIN_API_URL, LOG_LEVEL, ...)
4. YAML file (~/.config/dolphin-mcp/config.yaml, or $DOLPHIN_CONFIG)
5. Built-in defaults (lowest priority)

The legacy names are the ones existing MCP host configurations already set,
so a bridge dropped into an old ``mcpServers`` entry keeps its settings.
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from dolphin_mcp.config.models import (
    CacheConfig,
    DolphinConfig,
    LoggingConfig,
    PayloadConfig,
    ServerConfig,
    SnippetsConfig,
    UpstreamConfig,
    WorkspaceConfig,
)
from dolphin_mcp.core.errors import ConfigError

GLOBAL_CONFIG_PATH = Path("~/.config/dolphin-mcp/config.yaml").expanduser()
CONFIG_PATH_ENV = "DOLPHIN_CONFIG"

# Flat variable -> (section, key). First listed wins when several are set.
LEGACY_ENV_VARS: tuple[tuple[str, str, str], ...] = (
    ("DOLPHIN_API_URL", "upstream", "base_url"),
    ("KB_REST_BASE_URL", "upstream", "base_url"),
    ("LOG_LEVEL", "logging", "level"),
    ("SERVER_NAME", "server", "name"),
    ("SERVER_VERSION", "server", "version"),
    ("MAX_CONCURRENT_SNIPPET_FETCH", "snippets", "max_concurrent"),
    ("SNIPPET_FETCH_TIMEOUT_MS", "snippets", "timeout_ms"),
    ("SNIPPET_FETCH_RETRY_ATTEMPTS", "snippets", "retry_attempts"),
)


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top level must be a mapping")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def legacy_env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Translate legacy flat env vars into a nested config dict."""
    env = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    for var, section, key in LEGACY_ENV_VARS:
        value = env.get(var, "").strip()
        if not value:
            continue
        overrides.setdefault(section, {}).setdefault(key, value)
    return overrides


def resolve_config_path(config_path: Path | None = None) -> Path:
    """Explicit path, then $DOLPHIN_CONFIG, then the global default."""
    if config_path is not None:
        return config_path.expanduser()
    from_env = os.environ.get(CONFIG_PATH_ENV, "").strip()
    if from_env:
        return Path(from_env).expanduser()
    return GLOBAL_CONFIG_PATH


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source that reads from pre-loaded YAML config."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._yaml_config


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Create a Settings class with instance-based YAML source (thread-safe)."""

    class DolphinSettings(BaseSettings):
        """Root config. Env vars: DOLPHIN__LOGGING__LEVEL, DOLPHIN__UPSTREAM__BASE_URL, etc."""

        model_config = SettingsConfigDict(
            env_prefix="DOLPHIN__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        server: ServerConfig = ServerConfig()
        upstream: UpstreamConfig = UpstreamConfig()
        snippets: SnippetsConfig = SnippetsConfig()
        payload: PayloadConfig = PayloadConfig()
        cache: CacheConfig = CacheConfig()
        workspace: WorkspaceConfig = WorkspaceConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # Precedence (first wins): init kwargs > env vars > legacy env + yaml
            return (init_settings, env_settings, _YamlSource(settings_cls, yaml_config))

    return DolphinSettings


DolphinSettings = _make_settings_class({})


def load_config(config_path: Path | None = None, **kwargs: Any) -> DolphinConfig:
    """Load config: defaults < yaml < legacy env vars < env vars < kwargs.

    Args:
        config_path: YAML file to read. Defaults to $DOLPHIN_CONFIG, then
                     ~/.config/dolphin-mcp/config.yaml. A missing default file
                     is not an error; a missing explicit file is.
        **kwargs: Override values (highest precedence), keyed by section.

    Returns:
        Fully resolved configuration object.

    Raises:
        ConfigError: On invalid YAML syntax or validation errors.
    """
    path = resolve_config_path(config_path)
    explicit = config_path is not None or bool(os.environ.get(CONFIG_PATH_ENV, "").strip())
    if explicit and not path.exists():
        raise ConfigError.file_not_found(str(path))

    yaml_config = _deep_merge(_load_yaml(path), legacy_env_overrides())

    settings_cls = _make_settings_class(yaml_config)
    try:
        return settings_cls(**kwargs)  # type: ignore[return-value]
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e


def config_summary(config: DolphinConfig) -> dict[str, Any]:
    """Flat view of the settings worth logging at startup."""
    return {
        "server_name": config.server.name,
        "server_version": config.server.version,
        "upstream_url": config.upstream.base_url,
        "log_level": config.logging.level,
        "snippet_max_concurrent": config.snippets.max_concurrent,
        "snippet_timeout_ms": config.snippets.timeout_ms,
        "snippet_retry_attempts": config.snippets.retry_attempts,
        "snippet_deadline_ms": config.snippets.deadline_ms,
        "budget_bytes": config.payload.budget_bytes,
        "snippet_char_cap": config.payload.snippet_char_cap,
        "snippet_char_floor": config.payload.snippet_char_floor,
        "repo_cache_ttl_sec": config.cache.repo_ttl_sec,
        "workspace_root": str(config.workspace.resolved_root()),
    }
