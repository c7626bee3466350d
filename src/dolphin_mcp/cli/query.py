"""Commands that query the search service directly: search, repos, chunk, lines."""

import asyncio
from typing import Any

import click

from dolphin_mcp.cli.utils import load_cli_config, run_with_client
from dolphin_mcp.core.progress import get_console, pluralize, spinner, status


@click.command()
@click.argument("query", nargs=-1, required=True)
@click.option("--top-k", type=click.IntRange(1, 100), default=None, help="Maximum hits")
@click.option("--repo", "repos", multiple=True, help="Restrict to a repository (repeatable)")
@click.pass_context
def search_command(
    ctx: click.Context, query: tuple[str, ...], top_k: int | None, repos: tuple[str, ...]
) -> None:
    """Run search_knowledge and print one line per hit."""
    from dolphin_mcp.mcp.context import AppContext
    from dolphin_mcp.mcp.registry import registry
    from dolphin_mcp.mcp.server import invoke_tool
    from dolphin_mcp.mcp.tools import search  # noqa: F401

    config = load_cli_config(ctx)
    spec = registry.get("search_knowledge")
    assert spec is not None

    arguments: dict[str, Any] = {"query": " ".join(query)}
    if top_k is not None:
        arguments["top_k"] = top_k
    if repos:
        arguments["repos"] = list(repos)

    async def _run() -> dict[str, Any]:
        app = AppContext.create(config)
        try:
            return await invoke_tool(spec, app, arguments)
        finally:
            await app.aclose()

    with spinner("Searching"):
        payload = asyncio.run(_run())

    text = payload["content"][0]["text"]
    if payload.get("isError"):
        raise click.ClickException(text)

    click.echo(text)
    for hit in payload.get("_meta", {}).get("hits", []):
        line = (
            f"{hit['score']:.3f}  [{hit['repo']}] {hit['path']}"
            f"#L{hit['start_line']}-L{hit['end_line']}"
        )
        if hit.get("warnings"):
            line += f"  ({'; '.join(hit['warnings'])})"
        click.echo(line)


@click.command()
@click.pass_context
def repos_command(ctx: click.Context) -> None:
    """List indexed repositories."""
    config = load_cli_config(ctx)
    repos = run_with_client(config, lambda client: client.list_repos())
    if not repos:
        status("No repositories indexed", style="warning")
        return
    for repo in repos:
        counts = []
        if repo.files is not None:
            counts.append(pluralize(repo.files, "file"))
        if repo.chunks is not None:
            counts.append(pluralize(repo.chunks, "chunk"))
        suffix = f"  ({', '.join(counts)})" if counts else ""
        click.echo(f"{repo.name}  {repo.path}{suffix}")


def _print_code(citation: str, content: str) -> None:
    get_console().print(citation, style="bold", highlight=False)
    click.echo(content)


@click.command()
@click.argument("chunk_id")
@click.pass_context
def chunk_command(ctx: click.Context, chunk_id: str) -> None:
    """Print a chunk by id."""
    config = load_cli_config(ctx)
    chunk = run_with_client(config, lambda client: client.get_chunk(chunk_id))
    _print_code(f"{chunk.repo}/{chunk.path}#L{chunk.start_line}-L{chunk.end_line}", chunk.content)


@click.command()
@click.argument("repo")
@click.argument("path")
@click.argument("start", type=click.IntRange(min=1))
@click.argument("end", type=click.IntRange(min=1))
@click.pass_context
def lines_command(ctx: click.Context, repo: str, path: str, start: int, end: int) -> None:
    """Print lines START..END (inclusive) of a file."""
    if end < start:
        raise click.BadParameter(f"END ({end}) must be >= START ({start})", param_hint="END")
    config = load_cli_config(ctx)
    res = run_with_client(config, lambda client: client.get_file_slice(repo, path, start, end))
    _print_code(f"{res.repo}/{res.path}#L{res.start_line}-L{res.end_line}", res.content)
    for warning in res.warnings or []:
        status(warning, style="warning")
