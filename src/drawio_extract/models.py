"""
Data model for extracted draw.io diagrams.

A :class:`Document` owns its :class:`Page` objects in document order.  Each
page owns the flat, normalized :class:`Cell` records and the :class:`Node`
tree built over them.  Nothing here is mutated once the hierarchy builder
has finished with a page.
"""

from __future__ import annotations

import html as _html
import re
from dataclasses import dataclass, field
from functools import cached_property
from typing import Optional

from drawio_extract.styles import (
    RelationType,
    ShapeType,
    StyleTokens,
    classify_relation,
    classify_shape,
)

# Parent ids meaning "no container": the root cell and the default layer.
ROOT_IDS = frozenset({"0", "1"})

UNNAMED_PAGE = "Unnamed"


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")
_LINE_BREAK_RE = re.compile(r"<br\s*/?>|</div>|</p>|</li>", re.IGNORECASE)


def clean_text(value: Optional[str]) -> str:
    """Decode HTML entities, strip tags and collapse whitespace."""
    if not value:
        return ""
    text = _TAG_RE.sub("", _html.unescape(value))
    return _WS_RE.sub(" ", text).strip()


def text_lines(value: Optional[str]) -> list[str]:
    """Like :func:`clean_text` but keeps line structure (``<br>``, ``<div>``)."""
    if not value:
        return []
    text = _LINE_BREAK_RE.sub("\n", _html.unescape(value))
    text = _TAG_RE.sub("", text)
    lines = (_WS_RE.sub(" ", line).strip() for line in text.split("\n"))
    return [line for line in lines if line]


def truncate(text: str, length: int) -> str:
    return text if len(text) <= length else text[:length]


# ---------------------------------------------------------------------------
# Cell
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Cell:
    """A normalized shape or connector record."""
    id: str = ""
    value: str = ""
    style: Optional[str] = None
    parent_id: Optional[str] = None
    is_edge: bool = False
    source_id: Optional[str] = None
    target_id: Optional[str] = None
    hyperlink: Optional[str] = None
    tooltip: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Node
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class Node:
    """A cell placed in its page's containment tree."""
    cell: Cell
    text: str = ""
    children: list[Node] = field(default_factory=list)

    @classmethod
    def from_cell(cls, cell: Cell) -> Node:
        return cls(cell=cell, text=clean_text(cell.value))

    @property
    def id(self) -> str:
        return self.cell.id

    @property
    def is_edge(self) -> bool:
        return self.cell.is_edge

    @cached_property
    def style_tokens(self) -> StyleTokens:
        return StyleTokens(self.cell.style)

    @property
    def shape_type(self) -> ShapeType:
        return classify_shape(self.style_tokens)

    @property
    def relation_type(self) -> RelationType:
        return classify_relation(self.style_tokens)

    @property
    def type_label(self) -> str:
        """Relationship label for edges, shape label for everything else."""
        if self.is_edge:
            return self.relation_type.value
        return self.shape_type.value

    def __repr__(self) -> str:
        return f"Node(id={self.id!r}, text={self.text!r}, children={len(self.children)})"


# ---------------------------------------------------------------------------
# Page / Document
# ---------------------------------------------------------------------------

@dataclass
class Page:
    """One diagram page with its cells and hierarchy."""
    name: str = UNNAMED_PAGE
    index: int = 0
    cells: list[Cell] = field(default_factory=list)
    nodes: list[Node] = field(default_factory=list)
    by_id: dict[str, Node] = field(default_factory=dict)
    top_level: list[Node] = field(default_factory=list)
    compressed: bool = False
    decode_error: Optional[str] = None

    def get(self, cell_id: Optional[str]) -> Optional[Node]:
        """Resolve *cell_id* on this page; root sentinels never resolve."""
        if not cell_id or cell_id in ROOT_IDS:
            return None
        return self.by_id.get(cell_id)

    def parent_of(self, node: Node) -> Optional[Node]:
        return self.get(node.cell.parent_id)

    @property
    def edges(self) -> list[Node]:
        return [n for n in self.nodes if n.is_edge]


@dataclass
class Document:
    """A parsed draw.io file."""
    source: str = ""
    pages: list[Page] = field(default_factory=list)

    @property
    def page_names(self) -> list[str]:
        return [p.name for p in self.pages]
