"""
Style token parsing and shape / relationship classification.

A draw.io style is a semicolon-delimited list of ``key=value`` pairs and bare
flags (``ellipse;whiteSpace=wrap;html=1;``).  It is parsed once into
:class:`StyleTokens`; the classifiers are ordered first-match rule lists of
predicates over those tokens.  Rule order matters because several shape
families can be named in one style string.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Optional


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------

class ShapeType(Enum):
    SWIMLANE = "swimlane"
    DECISION = "decision"
    START_END = "start-end"
    ELLIPSE = "ellipse"
    DATABASE = "database"
    CLOUD = "cloud"
    PROCESS = "process"
    BPMN = "bpmn"
    ICON = "icon"
    HEXAGON = "hexagon"
    PARALLELOGRAM = "parallelogram"
    DOCUMENT = "document"
    CALLOUT = "callout"
    NOTE = "note"
    TEXT = "text"
    GROUP = "group"
    ROUNDED_RECT = "rounded-rect"
    SHAPE = "shape"


class RelationType(Enum):
    DEPENDENCY = "dependency"
    INHERITANCE = "inheritance"
    FLOW = "flow"
    COMPOSITION = "composition"
    MESSAGE = "message"
    AGGREGATION = "aggregation"
    ASSOCIATION = "association"


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

class StyleTokens:
    """Parsed form of a style string.

    Keys, values and flags are lower-cased so every rule matches
    case-insensitively.  Later duplicates of a key override earlier ones,
    the same way draw.io resolves them.
    """

    def __init__(self, raw: Optional[str] = None) -> None:
        self.raw = raw or ""
        self._parts: dict[str, str] = {}
        self._flags: list[str] = []
        self._parse(self.raw)

    def _parse(self, raw: str) -> None:
        tokens = [t.strip() for t in raw.split(";") if t.strip()]
        for tok in tokens:
            if "=" in tok:
                k, v = tok.split("=", 1)
                self._parts[k.strip().lower()] = v.strip().lower()
            else:
                self._flags.append(tok.lower())

    def __bool__(self) -> bool:
        return bool(self._parts or self._flags)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._parts.get(key.lower(), default)

    def has_key(self, key: str) -> bool:
        return key.lower() in self._parts

    def has_flag(self, flag: str) -> bool:
        return flag.lower() in self._flags

    def is_on(self, name: str) -> bool:
        """True for a bare ``name`` flag or ``name=<anything but 0>``."""
        if self.has_flag(name):
            return True
        value = self.get(name)
        return value is not None and value != "0"

    def mentions(self, word: str) -> bool:
        """Substring containment over every flag, key and value."""
        word = word.lower()
        if any(word in f for f in self._flags):
            return True
        return any(word in k or word in v for k, v in self._parts.items())


# ---------------------------------------------------------------------------
# Shape rules
# ---------------------------------------------------------------------------

Rule = Callable[[StyleTokens], bool]


def _is_start_end(s: StyleTokens) -> bool:
    return s.mentions("doubleellipse") or (s.mentions("ellipse") and s.get("double") == "1")


def _shape_startswith(prefix: str) -> Rule:
    return lambda s: (s.get("shape") or "").startswith(prefix)


SHAPE_RULES: list[tuple[ShapeType, Rule]] = [
    (ShapeType.SWIMLANE, lambda s: s.mentions("swimlane")),
    (ShapeType.DECISION, lambda s: s.mentions("rhombus")),
    (ShapeType.START_END, _is_start_end),
    (ShapeType.ELLIPSE, lambda s: s.mentions("ellipse")),
    (ShapeType.DATABASE, lambda s: s.mentions("cylinder")),
    (ShapeType.CLOUD, lambda s: s.mentions("cloud")),
    (ShapeType.PROCESS, lambda s: s.get("shape") == "process"),
    (ShapeType.BPMN, _shape_startswith("mxgraph.bpmn")),
    (ShapeType.ICON, lambda s: s.get("shape") == "image" or s.has_flag("image")),
    (ShapeType.HEXAGON, lambda s: s.mentions("hexagon")),
    (ShapeType.PARALLELOGRAM, lambda s: s.mentions("parallelogram")),
    (ShapeType.DOCUMENT, lambda s: s.mentions("document")),
    (ShapeType.CALLOUT, lambda s: s.mentions("callout")),
    (ShapeType.NOTE, lambda s: s.mentions("note")),
    (ShapeType.TEXT, lambda s: s.has_flag("text")),
    (ShapeType.GROUP, lambda s: s.mentions("group")),
    (ShapeType.ROUNDED_RECT, lambda s: s.get("rounded") not in (None, "0")),
]


def classify_shape(style: Optional[str | StyleTokens]) -> ShapeType:
    """Return the first matching shape type for *style*."""
    tokens = style if isinstance(style, StyleTokens) else StyleTokens(style)
    if not tokens:
        return ShapeType.SHAPE
    for shape_type, rule in SHAPE_RULES:
        if rule(tokens):
            return shape_type
    return ShapeType.SHAPE


# ---------------------------------------------------------------------------
# Relationship rules
# ---------------------------------------------------------------------------

def _end_arrow(s: StyleTokens) -> str:
    return s.get("endarrow") or ""


def _is_directed(s: StyleTokens) -> bool:
    return s.has_key("edgestyle") or _end_arrow(s) not in ("", "none")


RELATION_RULES: list[tuple[RelationType, Rule]] = [
    (RelationType.DEPENDENCY, lambda s: s.is_on("dashed")),
    (RelationType.INHERITANCE, lambda s: _end_arrow(s) == "block" and s.get("endfill") == "0"),
    (RelationType.FLOW, lambda s: _end_arrow(s).startswith("block")),
    (RelationType.COMPOSITION, lambda s: _end_arrow(s) in ("diamond", "diamondthin")),
    (RelationType.MESSAGE, lambda s: _end_arrow(s).startswith("open") and s.has_key("dashpattern")),
    (RelationType.AGGREGATION, lambda s: _end_arrow(s).startswith("open")),
    (RelationType.FLOW, _is_directed),
]


def classify_relation(style: Optional[str | StyleTokens]) -> RelationType:
    """Return the first matching relationship type for an edge *style*."""
    tokens = style if isinstance(style, StyleTokens) else StyleTokens(style)
    if not tokens:
        return RelationType.ASSOCIATION
    for relation_type, rule in RELATION_RULES:
        if rule(tokens):
            return relation_type
    return RelationType.ASSOCIATION
