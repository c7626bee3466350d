"""Shared CLI helpers."""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import click

from dolphin_mcp.config.loader import load_config
from dolphin_mcp.config.models import DolphinConfig
from dolphin_mcp.core.errors import ConfigError
from dolphin_mcp.rest.client import RestClient
from dolphin_mcp.rest.errors import RestError

T = TypeVar("T")


def load_cli_config(ctx: click.Context) -> DolphinConfig:
    """Resolve config for a command, turning ConfigError into a usage failure."""
    config_path: Path | None = (ctx.obj or {}).get("config_path")
    try:
        return load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(e.message) from e


def run_with_client(config: DolphinConfig, call: Callable[[RestClient], Awaitable[T]]) -> T:
    """Run *call* against a fresh REST client; upstream failures exit non-zero."""

    async def _run() -> T:
        async with RestClient(
            config.upstream.base_url, timeout_s=config.upstream.request_timeout_sec
        ) as client:
            return await call(client)

    try:
        return asyncio.run(_run())
    except RestError as e:
        hint = f" ({e.remediation})" if e.remediation else ""
        raise click.ClickException(f"{e.message}{hint}") from e
