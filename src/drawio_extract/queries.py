"""
Read-only projections over parsed diagrams.

Every operation is a pure function of a :class:`QueryContext` and a
:class:`Document` and returns JSON-ready dicts/lists.  Listing order always
follows document order: pages first, then cells as they were encountered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from drawio_extract.errors import DiagramError, PageNotFound, SourceUnavailable, UnknownOperation
from drawio_extract.models import Document, Node, Page, text_lines, truncate
from drawio_extract.parser import load_document, parse_document
from drawio_extract.styles import ShapeType

logger = logging.getLogger("drawio-extract")


# ---------------------------------------------------------------------------
# Configuration / context
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReaderConfig:
    """Limits applied by the projections."""
    max_results: int = 100
    name_length: int = 60      # endpoint names in relationship listings
    link_text_length: int = 60
    max_depth: int = 64        # structural render recursion cap


@dataclass(frozen=True)
class QueryContext:
    """Explicit per-server state threaded through every operation."""
    config: ReaderConfig = field(default_factory=ReaderConfig)

    def load(self, source: str = "", xml_content: Optional[str] = None) -> Document:
        if xml_content:
            return parse_document(xml_content, source=source or "<inline>")
        if not source:
            raise SourceUnavailable("no diagram source given.")
        return load_document(source)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def select_pages(doc: Document, page_name: Optional[str], operation: str = "") -> list[Page]:
    """Pages matching *page_name* (all pages when no filter is given)."""
    if not page_name:
        return list(doc.pages)
    pages = [p for p in doc.pages if p.name == page_name]
    if not pages:
        raise PageNotFound(
            f"page '{page_name}' not found. Pages: {', '.join(doc.page_names) or 'none'}.",
            operation=operation, source=doc.source,
        )
    return pages


def _cap(ctx: QueryContext, limit: Optional[int]) -> int:
    if limit is None or limit <= 0:
        return ctx.config.max_results
    return limit


def _paginate(
    grouped: list[tuple[Page, list[dict[str, Any]]]],
    key: str,
    cap: Optional[int],
) -> dict[str, Any]:
    """Group entries by page, stopping once *cap* entries have been shown."""
    total = sum(len(items) for _, items in grouped)
    shown = 0
    pages: list[dict[str, Any]] = []
    for page, items in grouped:
        if not items:
            continue
        if cap is not None and shown >= cap:
            break
        take = items if cap is None else items[: cap - shown]
        pages.append({"name": page.name, "count": len(items), key: take})
        shown += len(take)
    return {"total": total, "shown": shown, "truncated": shown < total, "pages": pages}


def endpoint_name(ctx: QueryContext, page: Page, ref: Optional[str]) -> str:
    """Display name for an edge endpoint; falls back to the raw id."""
    if not ref:
        return "?"
    node = page.get(ref)
    if node is None or not node.text:
        return ref
    return truncate(node.text, ctx.config.name_length)


def _relationship_entry(ctx: QueryContext, page: Page, edge: Node) -> dict[str, Any]:
    return {
        "id": edge.id,
        "source": edge.cell.source_id or "?",
        "target": edge.cell.target_id or "?",
        "source_name": endpoint_name(ctx, page, edge.cell.source_id),
        "target_name": endpoint_name(ctx, page, edge.cell.target_id),
        "label": edge.text,
        "type": edge.relation_type.value,
    }


def _count(nodes: Iterable[Node], predicate: Callable[[Node], bool]) -> int:
    return sum(1 for n in nodes if predicate(n))


# ---------------------------------------------------------------------------
# Projections
# ---------------------------------------------------------------------------

def overview(ctx: QueryContext, doc: Document, page_name: Optional[str] = None) -> dict[str, Any]:
    """Page names and aggregate counts."""
    pages = select_pages(doc, page_name, "overview")
    nodes = [n for p in pages for n in p.nodes]
    links = [
        {
            "id": n.id,
            "page": p.name,
            "text": truncate(n.text, ctx.config.link_text_length),
            "target": n.cell.hyperlink,
        }
        for p in pages for n in p.nodes if n.cell.hyperlink
    ]
    return {
        "source": doc.source,
        "total_pages": len(pages),
        "pages": [p.name for p in pages],
        "total_cells": len(nodes),
        "with_text": _count(nodes, lambda n: bool(n.text)),
        "total_connections": _count(nodes, lambda n: n.is_edge),
        "swimlanes": _count(nodes, lambda n: not n.is_edge and n.shape_type is ShapeType.SWIMLANE),
        "decisions": _count(nodes, lambda n: not n.is_edge and n.shape_type is ShapeType.DECISION),
        "links": links,
        "compressed_pages": [p.name for p in pages if p.compressed],
        "failed_pages": [
            {"name": p.name, "reason": p.decode_error} for p in pages if p.decode_error
        ],
    }


def _component_entry(node: Node) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "id": node.id,
        "text": node.text,
        "type": node.shape_type.value,
        "has_link": bool(node.cell.hyperlink),
    }
    if node.cell.tooltip:
        entry["tooltip"] = node.cell.tooltip
    if node.cell.metadata:
        entry["metadata"] = dict(node.cell.metadata)
    return entry


def components(
    ctx: QueryContext,
    doc: Document,
    page_name: Optional[str] = None,
    limit: Optional[int] = None,
) -> dict[str, Any]:
    """Non-edge cells with text, grouped by page, capped at *limit*.

    ``tooltip`` and ``metadata`` appear only on cells that carry them.
    ``truncated`` is set only when entries were actually left out, so a
    listing of exactly *limit* entries is complete.
    """
    grouped = [
        (page, [_component_entry(n) for n in page.nodes if not n.is_edge and n.text])
        for page in select_pages(doc, page_name, "components")
    ]
    result = _paginate(grouped, "components", _cap(ctx, limit))
    return {"page_filter": page_name or None, **result}


def text_content(
    ctx: QueryContext,
    doc: Document,
    page_name: Optional[str] = None,
    limit: Optional[int] = None,
) -> dict[str, Any]:
    """Every cell with text, edges included; uncapped unless *limit* > 0."""
    grouped = [
        (page, [{"id": n.id, "text": n.text, "is_edge": n.is_edge} for n in page.nodes if n.text])
        for page in select_pages(doc, page_name, "text")
    ]
    cap = limit if limit and limit > 0 else None
    return {"page_filter": page_name or None, **_paginate(grouped, "items", cap)}


def classes(ctx: QueryContext, doc: Document, page_name: Optional[str] = None) -> dict[str, Any]:
    """Swimlane and process containers as class-like entries.

    ``name`` is the first label line; ``members`` are the remaining lines
    followed by the text of the container's non-edge children (the
    compartments of a UML class drawn as a swimlane).
    """
    found: list[dict[str, Any]] = []
    for page in select_pages(doc, page_name, "classes"):
        for node in page.nodes:
            tokens = node.style_tokens
            if not node.cell.value or node.is_edge:
                continue
            if not (tokens.mentions("swimlane") or tokens.get("shape") == "process"):
                continue
            lines = text_lines(node.cell.value)
            members = lines[1:] + [c.text for c in node.children if not c.is_edge and c.text]
            found.append({
                "id": node.id,
                "name": lines[0] if lines else "Unnamed",
                "type": node.shape_type.value,
                "members": members,
                "page": page.name,
            })
    return {"total": len(found), "classes": found}


def relationships(
    ctx: QueryContext,
    doc: Document,
    page_name: Optional[str] = None,
    limit: Optional[int] = None,
) -> dict[str, Any]:
    """Every edge with endpoints resolved to their cells' text."""
    grouped = [
        (page, [_relationship_entry(ctx, page, e) for e in page.edges])
        for page in select_pages(doc, page_name, "relationships")
    ]
    result = _paginate(grouped, "relationships", _cap(ctx, limit))
    return {"page_filter": page_name or None, **result}


# ---------------------------------------------------------------------------
# Structural render
# ---------------------------------------------------------------------------

def find_orphans(page: Page) -> list[Node]:
    """Textual nodes whose container has no text and no other textual child."""
    orphans: list[Node] = []
    for node in page.nodes:
        if not node.id or not node.text:
            continue
        parent = page.parent_of(node)
        if parent is None or parent.text:
            continue
        if any(c is not node and c.text for c in parent.children):
            continue
        orphans.append(node)
    return orphans


class _Renderer:
    """Guarded depth-first render of one page's tree."""

    def __init__(self, ctx: QueryContext, page: Page, skip: set[int]) -> None:
        self.ctx = ctx
        self.page = page
        self.skip = skip
        self.visited: set[int] = set()

    def children(self, nodes: list[Node], depth: int) -> tuple[list[dict], list[dict]]:
        rendered: list[dict] = []
        arrows: list[dict] = []
        for child in nodes:
            if id(child) in self.visited or id(child) in self.skip:
                continue
            self.visited.add(id(child))
            if child.is_edge:
                arrows.append({
                    "id": child.id,
                    "label": child.text,
                    "target_name": endpoint_name(self.ctx, self.page, child.cell.target_id),
                })
                continue
            sub_nodes, sub_arrows = self.node(child, depth)
            rendered.extend(sub_nodes)
            arrows.extend(sub_arrows)
        return rendered, arrows

    def subtree(self, node: Node, depth: int) -> tuple[list[dict], list[dict]]:
        if depth < self.ctx.config.max_depth:
            return self.children(node.children, depth + 1)
        logger.warning("Depth cap %d reached at cell '%s' on page '%s'",
                       self.ctx.config.max_depth, node.id, self.page.name)
        return [], []

    def orphan(self, node: Node) -> dict[str, Any]:
        """Orphans are listed separately but still carry their subtree."""
        self.visited.add(id(node))
        sub_nodes, sub_arrows = self.subtree(node, 0)
        return {
            "id": node.id,
            "text": node.text,
            "type": node.type_label,
            "parent": node.cell.parent_id,
            "children": sub_nodes,
            "arrows": sub_arrows,
        }

    def node(self, node: Node, depth: int) -> tuple[list[dict], list[dict]]:
        sub_nodes, sub_arrows = self.subtree(node, depth)
        if not node.text:
            # Textless containers are transparent.
            return sub_nodes, sub_arrows
        return [{
            "id": node.id,
            "text": node.text,
            "type": node.shape_type.value,
            "children": sub_nodes,
            "arrows": sub_arrows,
        }], []


def render_page(ctx: QueryContext, page: Page) -> dict[str, Any]:
    orphans = find_orphans(page)
    renderer = _Renderer(ctx, page, {id(n) for n in orphans})
    top_nodes = [n for n in page.top_level if not n.is_edge]
    nodes, _ = renderer.children(top_nodes, 0)
    return {
        "name": page.name,
        "index": page.index,
        "cells": len(page.cells),
        "nodes": nodes,
        "edges": [_relationship_entry(ctx, page, e) for e in page.edges],
        "orphans": [renderer.orphan(n) for n in orphans],
    }


def structure(ctx: QueryContext, doc: Document, page_name: Optional[str] = None) -> dict[str, Any]:
    """Full hierarchical render of every selected page."""
    pages = select_pages(doc, page_name, "structure")
    return {"page_filter": page_name or None, "pages": [render_page(ctx, p) for p in pages]}


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

OPERATIONS: dict[str, Callable[..., dict[str, Any]]] = {
    "overview": overview,
    "components": components,
    "text": text_content,
    "classes": classes,
    "relationships": relationships,
    "structure": structure,
}
_CAPPED = {"components", "text", "relationships"}


def run_query(
    ctx: QueryContext,
    operation: str,
    source: str = "",
    *,
    page_name: Optional[str] = None,
    limit: Optional[int] = None,
    xml_content: Optional[str] = None,
) -> dict[str, Any]:
    """Load a diagram and run one named projection over it.

    Raises:
        UnknownOperation: *operation* is not one of :data:`OPERATIONS`.
        SourceUnavailable, DocumentMalformed, PageNotFound: see the loaders
            and :func:`select_pages`.
    """
    func = OPERATIONS.get(operation)
    if func is None:
        raise UnknownOperation(
            f"unknown operation '{operation}'. Use: {', '.join(OPERATIONS)}.",
            operation=operation, source=source,
        )
    try:
        doc = ctx.load(source, xml_content)
    except DiagramError as exc:
        exc.operation = operation
        raise
    kwargs: dict[str, Any] = {"page_name": page_name or None}
    if operation in _CAPPED:
        kwargs["limit"] = limit
    return func(ctx, doc, **kwargs)
