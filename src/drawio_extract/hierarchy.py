"""
Containment hierarchy for one page.

The builder only appends parent → child links and never walks the tree, so
a cyclic ``parent`` chain in a malformed file cannot make it loop.  Code
that walks the tree afterwards carries a visited set and a depth cap.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from drawio_extract.models import ROOT_IDS, Cell, Node, Page

logger = logging.getLogger("drawio-extract")


def build_hierarchy(page: Page, cells: Sequence[Cell]) -> Page:
    """Populate *page* with one :class:`Node` per cell and link the tree.

    Cells without an id are kept in ``page.nodes`` for statistics but are
    neither indexed nor placed in the tree.  When an id repeats on a page
    the first cell keeps the index entry.
    """
    page.cells = list(cells)
    page.nodes = [Node.from_cell(c) for c in page.cells]
    page.by_id = {}
    page.top_level = []

    for node in page.nodes:
        if not node.id or node.id in ROOT_IDS:
            continue
        if node.id in page.by_id:
            logger.debug("Duplicate cell id '%s' on page '%s'", node.id, page.name)
            continue
        page.by_id[node.id] = node

    for node in page.nodes:
        if not node.id:
            continue
        parent = _resolve_parent(page, node)
        if parent is None:
            page.top_level.append(node)
        else:
            parent.children.append(node)
    return page


def _resolve_parent(page: Page, node: Node) -> Optional[Node]:
    parent_id = node.cell.parent_id
    if not parent_id or parent_id in ROOT_IDS:
        return None
    return page.by_id.get(parent_id)
