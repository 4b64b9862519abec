"""Tests for row conversion."""

from collections import namedtuple
from dataclasses import dataclass

import pytest

from google_connect.sheets import UnknownDataShapeError, convert_data, create_row
from google_connect.sheets.rows import header_row

FIELDS = {"a": "A", "b": "B"}


@dataclass
class Item:
    a: str
    b: str


Pair = namedtuple("Pair", ["a", "b"])


class Plain:
    def __init__(self):
        self.a = "x"
        self.b = "y"
        self._hidden = "z"


class TestConvertData:
    """Test collection conversion."""

    def test_none_is_empty(self):
        """Should produce no rows for None."""
        assert list(convert_data(None)) == []

    def test_list_passes_through(self):
        """Should keep lists as they are."""
        rows = [["x"], ["y"]]
        assert convert_data(rows) is rows

    def test_generator_passes_through(self):
        """Should iterate generators lazily."""
        rows = (["x"] for _ in range(3))
        assert list(convert_data(rows)) == [["x"], ["x"], ["x"]]

    def test_mapping_values(self):
        """Should use the values of a mapping."""
        assert list(convert_data({"r1": ["x"], "r2": ["y"]})) == [["x"], ["y"]]

    @pytest.mark.parametrize("value", ["text", b"bytes", 42, 1.5, object()])
    def test_scalars_rejected(self, value):
        """Should reject values that are not collections."""
        with pytest.raises(UnknownDataShapeError):
            convert_data(value)


class TestCreateRow:
    """Test row building."""

    def test_fields_select_in_declaration_order(self):
        """Should pick fields in the order of the mapping."""
        assert create_row({"b": "y", "a": "x", "c": "z"}, FIELDS) == ["x", "y"]

    def test_fields_missing_value(self):
        """Should leave missing fields empty."""
        assert create_row({"a": "x"}, FIELDS) == ["x", ""]

    def test_without_fields_sequence_unchanged(self):
        """Should keep sequence values in order."""
        assert create_row(["x", "y", "z"]) == ["x", "y", "z"]

    def test_without_fields_mapping_values(self):
        """Should output all mapping values in order."""
        assert create_row({"a": "x", "b": "y"}) == ["x", "y"]

    def test_values_stringified(self):
        """Should render values as strings and None as empty."""
        assert create_row([1, 2.5, None, True]) == ["1", "2.5", "", "True"]

    def test_none_row(self):
        """Should produce empty cells for a missing row."""
        assert create_row(None) == []
        assert create_row(None, FIELDS) == ["", ""]

    @pytest.mark.parametrize("row", [Item("x", "y"), Pair("x", "y"), Plain()])
    def test_objects_with_fields(self, row):
        """Should read fields from dataclasses, namedtuples and plain objects."""
        assert create_row(row, FIELDS) == ["x", "y"]

    def test_plain_object_public_attributes(self):
        """Should skip private attributes of plain objects."""
        assert create_row(Plain()) == ["x", "y"]

    def test_pydantic_style_model(self):
        """Should use model_dump() when available."""

        class Model:
            def model_dump(self):
                return {"a": "x", "b": "y"}

        assert create_row(Model(), FIELDS) == ["x", "y"]

    def test_fields_require_named_values(self):
        """Should reject positional rows when fields are given."""
        with pytest.raises(UnknownDataShapeError):
            create_row(["x", "y"], FIELDS)

    @pytest.mark.parametrize("row", ["text", 42])
    def test_scalar_rows_rejected(self, row):
        """Should reject scalar rows."""
        with pytest.raises(UnknownDataShapeError):
            create_row(row)

    def test_header_row(self):
        """Should build the header from the field titles."""
        assert header_row(FIELDS) == ["A", "B"]
