"""dolphin-mcp CLI."""

from pathlib import Path

import click

from dolphin_mcp.cli.query import chunk_command, lines_command, repos_command, search_command
from dolphin_mcp.cli.serve import config_command, serve_command
from dolphin_mcp.core.logging import configure_logging


@click.group()
@click.version_option(version="1.0.0", prog_name="dolphin-mcp")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML config file (default: $DOLPHIN_CONFIG or ~/.config/dolphin-mcp/config.yaml)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Path | None) -> None:
    """dolphin-mcp - MCP bridge to a semantic code search service."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config_path
    configure_logging(level="DEBUG" if verbose else "INFO")


cli.add_command(serve_command, name="serve")
cli.add_command(search_command, name="search")
cli.add_command(repos_command, name="repos")
cli.add_command(chunk_command, name="chunk")
cli.add_command(lines_command, name="lines")
cli.add_command(config_command, name="config")


if __name__ == "__main__":
    cli()
