"""Tests for style parsing and shape / relationship classification."""

import pytest

from drawio_extract.styles import (
    RelationType,
    ShapeType,
    StyleTokens,
    classify_relation,
    classify_shape,
)


def test_tokens_basic() -> None:
    s = StyleTokens("ellipse;whiteSpace=wrap;html=1;fillColor=#DAE8FC;")
    assert s.has_flag("ellipse")
    assert s.get("whiteSpace") == "wrap"
    assert s.get("fillcolor") == "#dae8fc"
    assert s.has_key("HTML")
    assert s.get("missing") is None
    assert s.mentions("Ellipse")
    assert s.mentions("dae8")


def test_tokens_empty() -> None:
    assert not StyleTokens(None)
    assert not StyleTokens(" ; ;")
    assert StyleTokens("text")


def test_tokens_is_on() -> None:
    assert StyleTokens("dashed;").is_on("dashed")
    assert StyleTokens("dashed=1").is_on("dashed")
    assert not StyleTokens("dashed=0").is_on("dashed")
    assert not StyleTokens("html=1").is_on("dashed")


def test_later_key_wins() -> None:
    assert StyleTokens("rounded=1;rounded=0").get("rounded") == "0"


@pytest.mark.parametrize(
    "style, expected",
    [
        ("swimlane;startSize=23;", ShapeType.SWIMLANE),
        ("rhombus;whiteSpace=wrap;html=1;", ShapeType.DECISION),
        ("ellipse;shape=doubleEllipse;", ShapeType.START_END),
        ("ellipse;double=1;", ShapeType.START_END),
        ("ellipse;whiteSpace=wrap;", ShapeType.ELLIPSE),
        ("shape=cylinder3;boundedLbl=1;", ShapeType.DATABASE),
        ("ellipse;shape=cloud;", ShapeType.ELLIPSE),
        ("shape=cloud;", ShapeType.CLOUD),
        ("shape=process;whiteSpace=wrap;", ShapeType.PROCESS),
        ("shape=mxgraph.bpmn.task;taskMarker=abstract;", ShapeType.BPMN),
        ("shape=image;verticalLabelPosition=bottom;", ShapeType.ICON),
        ("shape=hexagon;perimeter=hexagonPerimeter2;", ShapeType.HEXAGON),
        ("shape=parallelogram;perimeter=parallelogramPerimeter;", ShapeType.PARALLELOGRAM),
        ("shape=document;boundedLbl=1;", ShapeType.DOCUMENT),
        ("shape=callout;", ShapeType.CALLOUT),
        ("shape=note;size=20;", ShapeType.NOTE),
        ("text;html=1;align=center;", ShapeType.TEXT),
        ("group", ShapeType.GROUP),
        ("rounded=1;whiteSpace=wrap;html=1;", ShapeType.ROUNDED_RECT),
        ("rounded=0;whiteSpace=wrap;html=1;", ShapeType.SHAPE),
        ("whiteSpace=wrap;html=1;", ShapeType.SHAPE),
        ("SwimLane;", ShapeType.SWIMLANE),
    ],
)
def test_classify_shape(style: str, expected: ShapeType) -> None:
    assert classify_shape(style) is expected


def test_absent_style_is_fallback() -> None:
    assert classify_shape(None) is ShapeType.SHAPE
    assert classify_shape("") is ShapeType.SHAPE
    assert classify_relation(None) is RelationType.ASSOCIATION
    assert classify_relation("") is RelationType.ASSOCIATION


def test_shape_precedence_ignores_token_order() -> None:
    assert classify_shape("swimlane;rhombus;") is ShapeType.SWIMLANE
    assert classify_shape("rhombus;swimlane;") is ShapeType.SWIMLANE


def test_accepts_parsed_tokens() -> None:
    assert classify_shape(StyleTokens("rhombus")) is ShapeType.DECISION


@pytest.mark.parametrize(
    "style, expected",
    [
        ("dashed=1;endArrow=open;", RelationType.DEPENDENCY),
        ("endArrow=open;dashed=1;dashPattern=8 8;", RelationType.DEPENDENCY),
        ("endArrow=block;endFill=0;html=1;", RelationType.INHERITANCE),
        ("endArrow=block;endFill=1;", RelationType.FLOW),
        ("endArrow=blockThin;", RelationType.FLOW),
        ("endArrow=diamondThin;endFill=1;", RelationType.COMPOSITION),
        ("endArrow=diamond;endFill=0;", RelationType.COMPOSITION),
        ("endArrow=open;dashPattern=8 8;", RelationType.MESSAGE),
        ("endArrow=open;endFill=0;", RelationType.AGGREGATION),
        ("dashed=0;endArrow=open;", RelationType.AGGREGATION),
        ("edgeStyle=orthogonalEdgeStyle;rounded=0;html=1;", RelationType.FLOW),
        ("endArrow=classic;html=1;", RelationType.FLOW),
        ("endArrow=none;html=1;", RelationType.ASSOCIATION),
        ("html=1;", RelationType.ASSOCIATION),
    ],
)
def test_classify_relation(style: str, expected: RelationType) -> None:
    assert classify_relation(style) is expected
