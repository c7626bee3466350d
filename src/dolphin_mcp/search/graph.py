"""Markdown rendering of the code-graph context attached to search hits."""

from __future__ import annotations

from dolphin_mcp.rest.models import GraphContext, GraphRelationship

EDGE_LIMIT = 5
"""Max call / dependency edges listed per direction."""


def _line_suffix(rel: GraphRelationship) -> str:
    return f" (line {rel.line_number})" if rel.line_number else ""


def _target(rel: GraphRelationship) -> str:
    return rel.target.qualified_name if rel.target is not None else ""


def _source(rel: GraphRelationship) -> str:
    return rel.source.qualified_name if rel.source is not None else ""


def render_graph_context(ctx: GraphContext | None) -> str:
    """Render entities and relationships, or ``""`` when there are no entities."""
    if ctx is None or not ctx.nodes:
        return ""

    lines = ["", "### Code Graph Context", "", "**Entities:**"]
    for node in ctx.nodes:
        sig = f" - {node.signature}" if node.signature else ""
        span = f" (lines {node.line_range[0]}-{node.line_range[1]})" if node.line_range else ""
        lines.append(f"- **{node.type}** `{node.qualified_name}`{sig}{span}")
    lines.append("")

    rels = ctx.relationships
    calls = [r for r in rels if r.type == "calls" and r.direction == "outgoing"]
    called_by = [r for r in rels if r.type == "calls" and r.direction == "incoming"]
    inherits = [r for r in rels if r.type == "inherits" and r.direction == "outgoing"]
    implements = [r for r in rels if r.type == "implements"]
    imports = [r for r in rels if r.type == "imports" and r.direction == "outgoing"]

    if calls:
        lines.append("**Calls:**")
        lines.extend(f"- → `{_target(r)}`{_line_suffix(r)}" for r in calls[:EDGE_LIMIT])
        lines.append("")
    if called_by:
        lines.append("**Called by:**")
        lines.extend(f"- ← `{_source(r)}`{_line_suffix(r)}" for r in called_by[:EDGE_LIMIT])
        lines.append("")
    if inherits:
        lines.append("**Inherits from:**")
        lines.extend(f"- `{_target(r)}`" for r in inherits)
        lines.append("")
    if implements:
        lines.append("**Implementations:**")
        for r in implements:
            if r.direction == "outgoing":
                lines.append(f"- Implements `{_target(r)}`")
            else:
                lines.append(f"- Implemented by `{_source(r)}`")
        lines.append("")
    if imports:
        lines.append("**Dependencies:**")
        lines.extend(f"- `{_target(r)}`" for r in imports[:EDGE_LIMIT])
        lines.append("")

    return "\n".join(lines)
