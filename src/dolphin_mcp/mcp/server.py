"""FastMCP server creation and wiring.

Every tool call goes through ``invoke_tool``:
- two-phase logging: tool_start with params, tool_complete with a summary
- one request id per call, bound into every log line
- every failure becomes an ``isError`` result carrying a remediation hint;
  tracebacks are logged at debug level only
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import structlog
from fastmcp.utilities.json_schema import dereference_refs
from pydantic import ValidationError

from dolphin_mcp.core.errors import DolphinError, InternalError
from dolphin_mcp.core.logging import clear_request_id, set_request_id
from dolphin_mcp.mcp.errors import MCPError
from dolphin_mcp.mcp.results import ToolOutput, UpstreamError, to_tool_result
from dolphin_mcp.rest.errors import RestError

if TYPE_CHECKING:
    from fastmcp import FastMCP

    from dolphin_mcp.config.models import DolphinConfig
    from dolphin_mcp.mcp.context import AppContext
    from dolphin_mcp.mcp.registry import ToolSpec

log = structlog.get_logger(__name__)

VALIDATION_REMEDIATION = "Fix the arguments to match the tool's input schema."


def _extract_log_params(kwargs: dict[str, Any]) -> dict[str, Any]:
    """Key params for the tool_start log line, with long values shortened."""
    params: dict[str, Any] = {}
    for key, value in kwargs.items():
        if key == "content":
            params[key] = f"[{len(value)} chars]" if isinstance(value, str) else value
        elif isinstance(value, str) and len(value) > 50:
            params[key] = value[:50] + "..."
        elif isinstance(value, list) and len(value) > 3:
            params[key] = f"[{len(value)} items]"
        elif value is not None:
            params[key] = value
    return params


def _extract_result_summary(payload: dict[str, Any]) -> dict[str, Any]:
    """Summary metrics from a serialised result for logging."""
    summary: dict[str, Any] = {
        "blocks": len(payload.get("content", [])),
        "is_error": payload.get("isError", False),
    }
    meta = payload.get("_meta") or {}
    if isinstance(meta.get("hits"), list):
        summary["hits"] = len(meta["hits"])
    if meta.get("complete") is False:
        summary["complete"] = False
    return summary


async def invoke_tool(
    spec: ToolSpec, context: AppContext, arguments: dict[str, Any]
) -> dict[str, Any]:
    """Validate arguments, run the handler and serialise the result.

    Never raises for tool-level failures: validation errors, ``MCPError``,
    ``RestError`` and unexpected exceptions all come back as ``isError``
    payloads of the form ``"<message> Remediation: <hint>"``.
    """
    tool_name = spec.name
    request_id = set_request_id()
    start_time = time.perf_counter()
    log.info("tool_start", tool=tool_name, request_id=request_id, **_extract_log_params(arguments))

    def elapsed() -> int:
        return int((time.perf_counter() - start_time) * 1000)

    try:
        try:
            params = spec.params_model(**arguments)
        except ValidationError as e:
            errors = e.errors()
            first = errors[0]["msg"] if errors else str(e)
            log.warning("tool_validation_error", tool=tool_name, error=first, elapsed_ms=elapsed())
            return ToolOutput.error(
                f"Validation error: {first}",
                VALIDATION_REMEDIATION,
                UpstreamError(
                    code="invalid_params",
                    message=first,
                    details={
                        "validation_errors": [
                            {"field": ".".join(str(x) for x in err["loc"]), "message": err["msg"]}
                            for err in errors[:5]
                        ]
                    },
                ).to_dict(),
            ).to_dict()

        try:
            output = await spec.handler(context, params)
            payload = output.to_dict()
        except MCPError as e:
            log.warning(
                "tool_error",
                tool=tool_name,
                error_code=e.code.value,
                error=e.message,
                path=e.path,
                elapsed_ms=elapsed(),
            )
            return ToolOutput.error(
                e.message, e.remediation, {"error": e.to_response().to_dict()}
            ).to_dict()
        except RestError as e:
            log.warning(
                "tool_upstream_error",
                tool=tool_name,
                kind=e.kind.value,
                error_code=e.code,
                error=e.message,
                status=e.status,
                elapsed_ms=elapsed(),
            )
            return ToolOutput.error(
                e.message, e.remediation or spec.remediation, e.to_dict()
            ).to_dict()
        except Exception as e:
            log.error("tool_internal_error", tool=tool_name, error=str(e), elapsed_ms=elapsed())
            # Full traceback at DEBUG level (file output only)
            log.debug("tool_internal_error_traceback", tool=tool_name, exc_info=True)
            if isinstance(e, DolphinError):
                error = e
            else:
                reason = str(e) or type(e).__name__
                error = InternalError.unexpected(reason, exception=type(e).__name__)
            return ToolOutput.error(
                error.message, spec.remediation, {"error": error.to_dict()}
            ).to_dict()

        log.info(
            "tool_complete",
            tool=tool_name,
            elapsed_ms=elapsed(),
            **_extract_result_summary(payload),
        )
        return payload
    finally:
        clear_request_id()


def create_mcp_server(context: AppContext) -> FastMCP:
    """Create FastMCP server with all tools wired to context.

    Args:
        context: AppContext with the REST client, config and caches

    Returns:
        Configured FastMCP server ready to run
    """
    from fastmcp import FastMCP

    from dolphin_mcp.mcp.registry import registry

    # Import tools to trigger registration
    from dolphin_mcp.mcp.tools import files, repos, retrieval, search  # noqa: F401

    server_cfg = context.config.server
    log.info("mcp_server_creating", name=server_cfg.name, version=server_cfg.version)

    mcp = FastMCP(
        server_cfg.name,
        version=server_cfg.version,
        instructions=(
            "Semantic code search over indexed repositories. Start with search_knowledge, "
            "then fetch_chunk or fetch_lines for more context."
        ),
    )

    tool_count = 0
    for spec in registry.get_all():
        _wire_tool(mcp, spec, context)
        tool_count += 1

    log.info("mcp_server_created", tool_count=tool_count)
    return mcp


def _wire_tool(mcp: FastMCP, spec: ToolSpec, context: AppContext) -> None:
    """Wire a single tool spec to FastMCP.

    Creates a handler function with the params model's fields as direct
    parameters, ensuring FastMCP generates a flat schema compatible with
    all MCP clients.
    """
    from fastmcp.tools import FunctionTool
    from mcp.types import ToolAnnotations

    # dereference_refs inlines all $refs and removes $defs for full compatibility
    flat_schema = dereference_refs(spec.params_model.model_json_schema())

    async def handler(**kwargs: Any) -> Any:
        payload = await invoke_tool(spec, context, kwargs)
        return to_tool_result(payload)

    tool = FunctionTool(
        name=spec.name,
        description=spec.description,
        parameters=flat_schema,
        fn=handler,
        annotations=ToolAnnotations(
            title=spec.title,
            readOnlyHint=spec.read_only,
            openWorldHint=False,
        ),
    )
    mcp.add_tool(tool)


def run_server(config: DolphinConfig) -> None:
    """Create and run the MCP server over stdio."""
    import asyncio

    from dolphin_mcp.config.loader import config_summary
    from dolphin_mcp.core.logging import configure_logging, get_log_file_path
    from dolphin_mcp.mcp.context import AppContext

    configure_logging(config=config.logging)

    log.info(
        "mcp_server_starting",
        log_file=str(get_log_file_path()) if get_log_file_path() else None,
        **config_summary(config),
    )

    context = AppContext.create(config)
    mcp = create_mcp_server(context)

    async def _serve() -> None:
        try:
            await mcp.run_async(transport="stdio", show_banner=False)
        finally:
            await context.aclose()
            log.info("mcp_server_stopped")

    log.info("mcp_server_running", transport="stdio")
    asyncio.run(_serve())
