"""
Draw.io Extract MCP Server: read .drawio files via Model Context Protocol.

Exposes one action-dispatched tool that lets an LLM agent query the
structure of an existing diagram without a browser.

Actions of the ``extract`` tool:
  overview: page names and aggregate counts
  components: labelled shapes with their shape type
  text: every text label, connectors included
  classes: swimlane / process containers with their members
  relationships: connectors with resolved endpoint names
  structure: full containment tree, connectors and floating labels
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from drawio_extract.errors import DiagramError
from drawio_extract.queries import QueryContext, run_query
from drawio_extract.styles import RELATION_RULES, SHAPE_RULES, RelationType, ShapeType
from drawio_extract.validation import (
    ValidationError,
    validate_action,
    validate_limit,
    validate_source,
    validate_string,
    _EXTRACT_ACTIONS,
)

# ---------------------------------------------------------------------------
# Logging: suppress routine FastMCP INFO messages that editors show
# as warnings (they go to stderr).
# ---------------------------------------------------------------------------
logging.getLogger("mcp.server").setLevel(logging.WARNING)
logger = logging.getLogger("drawio-extract")

# ---------------------------------------------------------------------------
# MCP Server
# ---------------------------------------------------------------------------
mcp = FastMCP(
    "drawio-extract",
    instructions=(
        "MCP server for reading draw.io / diagrams.net files.\n\n"
        "=== ONE TOOL: use the 'action' parameter to pick the query ===\n\n"
        "extract(action, file_path | xml_content, page_name, limit)\n"
        "  overview, components, text, classes, relationships, structure.\n\n"
        "=== TIPS ===\n"
        "- Start with action='overview' to learn the page names.\n"
        "- Pass page_name to restrict a query to one page.\n"
        "- Compressed pages are decoded automatically; pages that cannot be\n"
        "  decoded are listed under 'failed_pages' in the overview.\n"
        "- Use action='structure' to see containment, connectors and\n"
        "  floating labels ('orphans') in one result.\n"
    ),
)

# Immutable; carries the result limits used by every query.
_context = QueryContext()


# ===================================================================
# RESOURCES: classifier catalogs
# ===================================================================

@mcp.resource("drawio://catalog/shapes")
def shape_catalog() -> str:
    """Return the shape types in the order they are matched."""
    ordered = [t.value for t, _ in SHAPE_RULES] + [ShapeType.SHAPE.value]
    return "Shape types (first match wins):\n" + "\n".join(f"  {v}" for v in ordered)


@mcp.resource("drawio://catalog/relations")
def relation_catalog() -> str:
    """Return the relationship types in the order they are matched."""
    ordered: list[str] = []
    for t, _ in RELATION_RULES:
        if t.value not in ordered:
            ordered.append(t.value)
    ordered.append(RelationType.ASSOCIATION.value)
    return "Relationship types (first match wins):\n" + "\n".join(f"  {v}" for v in ordered)


# ===================================================================
# TOOL: extract, read-only queries
# ===================================================================

@mcp.tool()
def extract(
    action: str,
    file_path: str = "",
    xml_content: str = "",
    page_name: str = "",
    limit: int = 0,
) -> str:
    """Read-only queries over a draw.io diagram.

    Actions:
      overview: Page names, cell / text / connection counts, swimlanes,
                decisions, hyperlinks, undecodable pages.
      components: Labelled shapes grouped by page. Params: page_name, limit.
      text: All text labels grouped by page. Params: page_name, limit.
      classes: Swimlane / process containers with members. Params: page_name.
      relationships: Connectors with resolved source/target names.
                     Params: page_name, limit.
      structure: Containment tree, connectors and floating labels.
                 Params: page_name.

    Args:
        action: One of: overview, components, text, classes, relationships, structure.
        file_path: Path to a .drawio / .drawio.xml file.
        xml_content: Raw draw.io XML (instead of file_path).
        page_name: Restrict the query to the page with this name.
        limit: Maximum entries for capped listings (0 = server default of 100).

    Returns:
        JSON result or an error string.
    """
    try:
        action = validate_action(action, "extract", _EXTRACT_ACTIONS)
        path, xml = validate_source(file_path, xml_content)
        page_name = validate_string(page_name, "page_name").strip()
        limit = validate_limit(limit)
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if path and not Path(path).exists():
        return f"Error: file '{path}' not found."

    logger.debug("extract action=%s source=%s page=%s", action, path or "<inline>", page_name)
    try:
        result = run_query(
            _context,
            action,
            path,
            page_name=page_name or None,
            limit=limit or None,
            xml_content=xml or None,
        )
    except DiagramError as exc:
        return f"Error: {exc.message}"
    return json.dumps(result, indent=2, ensure_ascii=False)


# ===================================================================
# Entry point
# ===================================================================

def main() -> None:
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
