"""Tests for tool parameter validation."""

import pytest

from drawio_extract.validation import (
    ValidationError,
    validate_action,
    validate_file_path,
    validate_int,
    validate_limit,
    validate_source,
    validate_string,
    _EXTRACT_ACTIONS,
)


class TestValidateString:
    def test_allow_empty(self) -> None:
        assert validate_string("", "f") == ""

    def test_disallow_empty(self) -> None:
        with pytest.raises(ValidationError, match="must not be empty"):
            validate_string(" ", "f", allow_empty=False)

    def test_wrong_type(self) -> None:
        with pytest.raises(ValidationError, match="got NoneType"):
            validate_string(None, "f")


class TestValidateInt:
    def test_valid(self) -> None:
        assert validate_int(5, "n", min_val=0, max_val=10) == 5

    def test_bool_rejected(self) -> None:
        with pytest.raises(ValidationError, match="integer"):
            validate_int(True, "n")

    def test_range(self) -> None:
        with pytest.raises(ValidationError, match=">= 0"):
            validate_int(-1, "n", min_val=0)
        with pytest.raises(ValidationError, match="<= 10"):
            validate_int(11, "n", max_val=10)


class TestValidateAction:
    def test_normalizes(self) -> None:
        assert validate_action(" OverView ", "extract", _EXTRACT_ACTIONS) == "overview"

    def test_missing(self) -> None:
        with pytest.raises(ValidationError, match="requires an 'action'"):
            validate_action("", "extract", _EXTRACT_ACTIONS)

    def test_unknown_lists_choices(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_action("draw", "extract", _EXTRACT_ACTIONS)
        assert "structure" in exc_info.value.message
        assert "overview" in exc_info.value.message


class TestValidateSource:
    def test_file_path(self) -> None:
        assert validate_source(" a.drawio ", "") == ("a.drawio", "")

    def test_xml_content(self) -> None:
        assert validate_source("", "<mxfile/>") == ("", "<mxfile/>")

    def test_neither(self) -> None:
        with pytest.raises(ValidationError, match="file_path"):
            validate_source("", "  ")

    def test_both(self) -> None:
        with pytest.raises(ValidationError, match="not both"):
            validate_source("a.drawio", "<mxfile/>")


def test_validate_file_path() -> None:
    assert validate_file_path(" x ", "file_path") == "x"
    with pytest.raises(ValidationError):
        validate_file_path("", "file_path")


def test_validate_limit() -> None:
    assert validate_limit(0) == 0
    assert validate_limit(25) == 25
    with pytest.raises(ValidationError):
        validate_limit("10")
