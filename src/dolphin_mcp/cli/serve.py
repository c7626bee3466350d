"""dolphin-mcp serve / config commands."""

import json

import click

from dolphin_mcp.cli.utils import load_cli_config
from dolphin_mcp.config.loader import config_summary


@click.command()
@click.pass_context
def serve_command(ctx: click.Context) -> None:
    """Run the MCP server over stdio.

    stdout carries the protocol stream; logs go to stderr and any
    configured log files.
    """
    from dolphin_mcp.mcp.server import run_server

    config = load_cli_config(ctx)
    if ctx.obj.get("verbose"):
        config.logging.level = "DEBUG"
    run_server(config)


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def config_command(ctx: click.Context, as_json: bool) -> None:
    """Show the resolved configuration."""
    summary = config_summary(load_cli_config(ctx))
    if as_json:
        click.echo(json.dumps(summary, indent=2))
        return
    width = max(len(key) for key in summary)
    for key, value in summary.items():
        click.echo(f"{key.ljust(width)}  {value}")
