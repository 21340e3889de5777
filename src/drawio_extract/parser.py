"""
Reading draw.io files into :class:`~drawio_extract.models.Document` objects.

Two on-disk record shapes are merged into one :class:`Cell`:

* ``<mxCell>``: a *direct* record carrying every attribute itself.
* ``<object>`` / ``<UserObject>``: a *wrapped* record: the wrapper holds the
  label and custom attributes (``link``, ``tooltip``, user metadata) and
  nests one ``<mxCell>`` with the structural attributes.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Union

from drawio_extract.decompress import Decoded, decompress_page
from drawio_extract.errors import DocumentMalformed, SourceUnavailable
from drawio_extract.hierarchy import build_hierarchy
from drawio_extract.models import UNNAMED_PAGE, Cell, Document, Page

logger = logging.getLogger("drawio-extract")

_STRUCTURAL_ATTRS = ("style", "parent", "edge", "vertex", "source", "target")
_KNOWN_OBJ_ATTRS = {"id", "label", "value", "link", "tooltip", "placeholders", *_STRUCTURAL_ATTRS}
_WRAPPER_TAGS = {"object", "UserObject"}


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DirectCell:
    """An ``<mxCell>`` element's attributes."""
    attrs: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class WrappedCell:
    """An ``<object>``/``<UserObject>`` wrapper and its nested cell."""
    attrs: dict[str, str] = field(default_factory=dict)
    inner: Optional[DirectCell] = None


Record = Union[DirectCell, WrappedCell]


def read_records(model: ET.Element) -> Iterator[Record]:
    """Yield cell records from ``mxGraphModel/root`` in document order."""
    root_el = model.find("root")
    if root_el is None:
        return
    for child_el in root_el:
        if child_el.tag == "mxCell":
            yield DirectCell(dict(child_el.attrib))
        elif child_el.tag in _WRAPPER_TAGS:
            inner_el = child_el.find("mxCell")
            inner = DirectCell(dict(inner_el.attrib)) if inner_el is not None else None
            yield WrappedCell(dict(child_el.attrib), inner)
        else:
            logger.debug("Skipping <%s> record", child_el.tag)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def _is_edge(attrs: dict[str, str]) -> bool:
    # A source reference marks a connector even when edge="1" was dropped.
    return attrs.get("edge") == "1" or bool(attrs.get("source"))


def _cell_from_attrs(
    attrs: dict[str, str],
    *,
    cell_id: str,
    value: str,
    hyperlink: Optional[str] = None,
    tooltip: Optional[str] = None,
    metadata: Optional[dict[str, str]] = None,
) -> Cell:
    return Cell(
        id=cell_id,
        value=value,
        style=attrs.get("style"),
        parent_id=attrs.get("parent") or None,
        is_edge=_is_edge(attrs),
        source_id=attrs.get("source") or None,
        target_id=attrs.get("target") or None,
        hyperlink=hyperlink or None,
        tooltip=tooltip or None,
        metadata=metadata or {},
    )


def normalize(record: Record) -> Cell:
    """Merge a direct or wrapped record into one :class:`Cell`."""
    if isinstance(record, DirectCell):
        attrs = record.attrs
        return _cell_from_attrs(attrs, cell_id=attrs.get("id", ""), value=attrs.get("value", ""))

    outer = record.attrs
    inner = record.inner.attrs if record.inner is not None else {}
    merged = {k: outer[k] for k in _STRUCTURAL_ATTRS if k in outer}
    merged.update({k: inner[k] for k in _STRUCTURAL_ATTRS if k in inner})
    metadata = {k: v for k, v in outer.items() if k not in _KNOWN_OBJ_ATTRS}
    label = outer.get("label")
    if label is None:
        label = outer.get("value", "")
    return _cell_from_attrs(
        merged,
        cell_id=inner.get("id") or outer.get("id", ""),
        value=label,
        hyperlink=outer.get("link"),
        tooltip=outer.get("tooltip"),
        metadata=metadata,
    )


# ---------------------------------------------------------------------------
# Pages / documents
# ---------------------------------------------------------------------------

def _page_model(diag_el: ET.Element, page: Page) -> Optional[ET.Element]:
    model_el = diag_el.find("mxGraphModel")
    if model_el is not None:
        return model_el
    raw = diag_el.text or ""
    if not raw.strip():
        return None
    page.compressed = True
    result = decompress_page(raw, page.name)
    if isinstance(result, Decoded):
        return result.model
    page.decode_error = result.reason
    return None


def parse_page(diag_el: ET.Element, index: int = 0) -> Page:
    """Build a :class:`Page` from a ``<diagram>`` element."""
    page = Page(name=diag_el.get("name") or UNNAMED_PAGE, index=index)
    model_el = _page_model(diag_el, page)
    cells = [normalize(r) for r in read_records(model_el)] if model_el is not None else []
    return build_hierarchy(page, cells)


def parse_document(xml_content: str, source: str = "<inline>") -> Document:
    """Parse draw.io XML text.

    Raises:
        DocumentMalformed: the text is not well-formed XML or its root is
            neither ``<mxfile>`` nor ``<mxGraphModel>``.
    """
    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError as exc:
        raise DocumentMalformed(f"could not parse XML: {exc}", source=source) from exc

    if root.tag == "mxfile":
        diagram_elements = root.findall("diagram")
    elif root.tag == "mxGraphModel":
        diag_el = ET.Element("diagram", attrib={"name": "Page-1"})
        diag_el.append(root)
        diagram_elements = [diag_el]
    else:
        raise DocumentMalformed(f"unrecognized root element <{root.tag}>.", source=source)

    pages = [parse_page(d, i) for i, d in enumerate(diagram_elements)]
    logger.debug("Parsed %s: %d page(s), %d cells", source, len(pages),
                 sum(len(p.cells) for p in pages))
    return Document(source=source, pages=pages)


def load_document(file_path: Union[str, Path]) -> Document:
    """Read and parse a ``.drawio`` file.

    Raises:
        SourceUnavailable: the file cannot be read.
        DocumentMalformed: see :func:`parse_document`.
    """
    path = Path(file_path)
    try:
        xml = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceUnavailable(f"cannot read '{file_path}': {exc}", source=str(file_path)) from exc
    return parse_document(xml, source=str(file_path))
